"""Source readers."""

from bulkingest.io.readers import (
    get_reader,
    infer_reader,
    list_readers,
    open_source,
    register_reader,
)

__all__ = ["get_reader", "infer_reader", "list_readers", "open_source", "register_reader"]
