"""Projection of validated source rows into the intermediate CSV.

The exporter re-reads the source through Polars and streams it straight to
a CSV file shaped like the destination table: a generated UUID per row, the
employee fields verbatim, ``is_active = true`` and both timestamps set to
the export instant. The frame is never collected; ``sink_csv`` writes it
batch by batch.

Values are quoted when they contain the delimiter, a quote character or a
line break, which PostgreSQL's CSV COPY format reads back unchanged.
"""

import logging
import os
import tempfile
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path

import polars as pl

from bulkingest.core.exceptions import ResourceError
from bulkingest.core.schema import EMPLOYEE_FIELDS, ROW_ID
from bulkingest.io.readers import open_source

logger = logging.getLogger(__name__)

DELIMITER = ","


def _new_id(_: object) -> str:
    return str(uuid.uuid4())


def build_export_query(lf: pl.LazyFrame, now: datetime) -> pl.LazyFrame:
    """Project a source frame onto the destination column order.

    Args:
        lf: Normalized source frame (see bulkingest.io.readers.open_source)
        now: Instant stamped into created_at and updated_at

    Returns:
        LazyFrame with DESTINATION_COLUMNS, in order
    """
    stamp = now.isoformat()

    return lf.select(
        # Polars has no UUID expression; this is the one per-row Python call
        pl.col(ROW_ID)
        .map_elements(_new_id, return_dtype=pl.Utf8, skip_nulls=False)
        .alias("id"),
        *[pl.col(name) for name in EMPLOYEE_FIELDS],
        pl.lit(True).alias("is_active"),
        pl.lit(stamp, dtype=pl.Utf8).alias("created_at"),
        pl.lit(stamp, dtype=pl.Utf8).alias("updated_at"),
    )


def export(
    source: Path | str | pl.LazyFrame,
    output_path: Path,
    now: datetime | None = None,
) -> Path:
    """Stream the destination projection of a source to a CSV file.

    Only call this on a source the batch validator accepted; no rule is
    re-checked here.

    Args:
        source: Path to a source file, or a normalized source frame
        output_path: File to create or overwrite
        now: Timestamp for created_at/updated_at (defaults to current UTC time)

    Returns:
        The output path

    Raises:
        SourceError: If a source path cannot be opened
        ResourceError: If the file cannot be written

    Example:
        >>> with intermediate_file() as csv_path:
        ...     export(open_source(Path("employees.csv")), csv_path)
        ...     loader.load(csv_path, connection)
    """
    lf = source if isinstance(source, pl.LazyFrame) else open_source(Path(source))
    now = now or datetime.now(timezone.utc)
    output_path = Path(output_path)

    try:
        build_export_query(lf, now).sink_csv(
            output_path,
            include_header=True,
            separator=DELIMITER,
            quote_style="necessary",
        )
    except (OSError, pl.exceptions.PolarsError) as e:
        raise ResourceError(
            f"Failed to write intermediate file: {e}",
            path=str(output_path),
            reason=str(e),
        ) from e

    logger.info("Exported intermediate CSV to %s", output_path)
    return output_path


@contextmanager
def intermediate_file(directory: Path | None = None) -> Iterator[Path]:
    """Reserve a temporary CSV path owned by the current invocation.

    The file is deleted when the block exits, whether it completes, returns
    early or raises.

    Args:
        directory: Where to create the file (system temp dir when None)

    Raises:
        ResourceError: If the file cannot be created
    """
    try:
        fd, name = tempfile.mkstemp(prefix="bulkingest-", suffix=".csv", dir=directory)
        os.close(fd)
    except OSError as e:
        raise ResourceError(
            f"Cannot create intermediate file: {e}",
            path=str(directory) if directory else None,
            reason=str(e),
        ) from e

    path = Path(name)
    try:
        yield path
    finally:
        path.unlink(missing_ok=True)
        logger.debug("Removed intermediate file %s", path)
