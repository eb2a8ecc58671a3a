"""Source readers and the reader registry.

Readers open a tabular source as a Polars LazyFrame. CSV and Parquet are
scanned lazily so the analytical engine streams them; spreadsheets are read
by the fastexcel (calamine) engine and then handled lazily.

The registry maps reader names to classes so that the CLI and the pipeline
can pick a reader from a name or a file extension.
"""

import logging
from pathlib import Path
from typing import Any

import fastexcel
import polars as pl

from bulkingest.core.exceptions import SourceError
from bulkingest.core.protocols import SourceReader
from bulkingest.core.schema import check_source_columns, normalize_source

logger = logging.getLogger(__name__)


class CSVSourceReader:
    """Lazy CSV reader; every column is read as text."""

    def scan(self, path: Path, **config: Any) -> pl.LazyFrame:
        try:
            return pl.scan_csv(path, infer_schema=False, **config)
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SourceError(
                f"Cannot open CSV source: {e}",
                file_path=str(path),
                format="csv",
                reason=str(e),
            ) from e


class ExcelSourceReader:
    """Spreadsheet reader backed by fastexcel.

    The first sheet is read unless ``sheet_name`` or ``sheet_id`` is given.
    """

    def scan(self, path: Path, **config: Any) -> pl.LazyFrame:
        try:
            return pl.read_excel(path, engine="calamine", **config).lazy()
        except (OSError, ValueError, fastexcel.FastExcelError, pl.exceptions.PolarsError) as e:
            raise SourceError(
                f"Cannot read spreadsheet source: {e}",
                file_path=str(path),
                format="excel",
                reason=str(e),
            ) from e


class ParquetSourceReader:
    def scan(self, path: Path, **config: Any) -> pl.LazyFrame:
        try:
            return pl.scan_parquet(path, **config)
        except (OSError, pl.exceptions.PolarsError) as e:
            raise SourceError(
                f"Cannot open Parquet source: {e}",
                file_path=str(path),
                format="parquet",
                reason=str(e),
            ) from e


READERS: dict[str, type[SourceReader]] = {
    "csv": CSVSourceReader,
    "excel": ExcelSourceReader,
    "parquet": ParquetSourceReader,
}

READER_DESCRIPTIONS: dict[str, str] = {
    "csv": "Comma-separated text with a header row",
    "excel": "Excel workbook (.xlsx, .xls), first sheet by default",
    "parquet": "Apache Parquet file",
}

EXTENSIONS: dict[str, str] = {
    ".csv": "csv",
    ".xlsx": "excel",
    ".xls": "excel",
    ".parquet": "parquet",
    ".pq": "parquet",
}


def register_reader(name: str, cls: type[SourceReader], description: str = "") -> None:
    """Register a reader implementation under a name.

    Example:
        >>> class TSVReader:
        ...     def scan(self, path, **config):
        ...         return pl.scan_csv(path, separator="\\t", infer_schema=False)
        >>> register_reader("tsv", TSVReader, "Tab-separated text")
    """
    READERS[name] = cls
    READER_DESCRIPTIONS[name] = description


def get_reader(name: str) -> SourceReader:
    """Get a reader instance by name.

    Raises:
        KeyError: If the name is not registered, with the available names
    """
    if name not in READERS:
        available = ", ".join(sorted(READERS.keys())) if READERS else "none"
        raise KeyError(f"Unknown reader '{name}'. Available: {available}")
    return READERS[name]()


def list_readers() -> dict[str, str]:
    """Return registered reader names with their descriptions."""
    return {name: READER_DESCRIPTIONS.get(name, "") for name in sorted(READERS)}


def infer_reader(path: Path) -> str:
    """Infer the reader name from a file extension.

    Raises:
        ValueError: If the extension is not recognized
    """
    suffix = path.suffix.lower()
    if suffix not in EXTENSIONS:
        raise ValueError(
            f"Cannot infer reader type from extension '{suffix}'. "
            f"Please specify --reader explicitly."
        )
    return EXTENSIONS[suffix]


def open_source(path: Path, reader: str | None = None, **config: Any) -> pl.LazyFrame:
    """Open a source file as a normalized, header-checked LazyFrame.

    The returned frame has exactly the source columns (SN plus every employee
    field), all as text, in file row order. Nothing beyond the header is read.

    Args:
        path: Path to the source file
        reader: Reader name; inferred from the extension when None
        **config: Passed through to the reader

    Returns:
        LazyFrame ready for validation and export

    Raises:
        SourceError: If the file is missing, the format is unknown, the file
                    cannot be parsed, or required columns are missing
    """
    path = Path(path)
    if not path.is_file():
        raise SourceError(
            "Source file not found",
            file_path=str(path),
            reason="File does not exist",
        )

    try:
        reader_name = reader or infer_reader(path)
        reader_instance = get_reader(reader_name)
    except (ValueError, KeyError) as e:
        raise SourceError(
            f"Unsupported source format: {e}",
            file_path=str(path),
            reason=str(e),
        ) from e

    lf = reader_instance.scan(path, **config)

    try:
        columns = lf.collect_schema().names()
    except (OSError, pl.exceptions.PolarsError) as e:
        raise SourceError(
            f"Cannot read source header: {e}",
            file_path=str(path),
            format=reader_name,
            reason=str(e),
        ) from e

    check_source_columns(columns, file_path=str(path))
    logger.debug("Opened %s source %s with columns %s", reader_name, path, columns)

    return normalize_source(lf)
