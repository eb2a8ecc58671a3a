"""Protocol definitions for pluggable pipeline components.

Protocols:
    - SourceReader: Opens a tabular source file as a lazy Polars frame
    - CopyConnection: The subset of a psycopg connection the bulk loader uses

Readers must not materialize the source when the format supports lazy
scanning, and must raise SourceError for unreadable input.
"""

from contextlib import AbstractContextManager
from pathlib import Path
from typing import Any, Protocol

import polars as pl


class SourceReader(Protocol):
    """Protocol for format-specific source readers.

    Example:
        >>> class CSVSourceReader:
        ...     def scan(self, path: Path, **config: Any) -> pl.LazyFrame:
        ...         return pl.scan_csv(path, infer_schema=False, **config)
        ...
        >>> lf = CSVSourceReader().scan(Path("employees.csv"))
    """

    def scan(self, path: Path, **config: Any) -> pl.LazyFrame:
        """Open the source as a LazyFrame.

        Args:
            path: Path to the source file
            **config: Format-specific options (separator, sheet name, ...)

        Returns:
            LazyFrame over the raw source columns

        Raises:
            SourceError: If the file cannot be opened or parsed
        """
        ...


class CopyCursor(Protocol):
    rowcount: int

    def copy(self, statement: Any) -> AbstractContextManager[Any]: ...

    def __enter__(self) -> "CopyCursor": ...

    def __exit__(self, *exc_info: Any) -> Any: ...


class CopyConnection(Protocol):
    """Connection used by the bulk loader.

    psycopg.Connection satisfies this protocol. The loader only needs a
    transaction scope and a cursor that can open a COPY channel.
    """

    def transaction(self) -> AbstractContextManager[Any]: ...

    def cursor(self) -> CopyCursor: ...
