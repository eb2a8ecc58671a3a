"""Destination handle, bulk COPY loader and baseline insert profiles."""

from bulkingest.load.baseline import insert_rows_batched, insert_rows_naive
from bulkingest.load.destination import Destination, build_table
from bulkingest.load.loader import BulkLoader, copy_statement

__all__ = [
    "BulkLoader",
    "Destination",
    "build_table",
    "copy_statement",
    "insert_rows_batched",
    "insert_rows_naive",
]
