"""Reference insert profiles used for performance comparison.

Both profiles materialize the validated source as Python dictionaries and
insert them with SQLAlchemy Core statements:

- naive: one INSERT statement per row, committed once at the end
- batched: executemany per batch of ``batch_size`` rows, committed after
  each batch, so a failure in a later batch leaves earlier batches stored

They exist only to measure the bulk COPY path against; the pipeline's
all-or-nothing guarantee applies to the optimized profile.
"""

import logging
import uuid
from collections.abc import Iterator
from datetime import datetime, timezone
from typing import Any

import polars as pl
from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError

from bulkingest.core.exceptions import TransferError
from bulkingest.core.schema import EMPLOYEE_FIELDS, ROW_ID
from bulkingest.load.destination import Destination
from bulkingest.rules.constraints import parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000


def _records(
    lf: pl.LazyFrame, batch_size: int, now: datetime, table: str
) -> Iterator[list[dict[str, Any]]]:
    frame = lf.select(ROW_ID, *EMPLOYEE_FIELDS).collect()

    for chunk in frame.iter_slices(n_rows=batch_size):
        batch = []
        for row in chunk.iter_rows(named=True):
            row_id = row.pop(ROW_ID)
            dob = row["date_of_birth"]
            parsed = parse_iso_date(dob) if dob else None
            if dob and parsed is None:
                raise TransferError(
                    f"Cannot convert date_of_birth {dob!r} to a date",
                    table=table,
                    row=row_id,
                    column="date_of_birth",
                    value=dob,
                )
            batch.append(
                {
                    "id": uuid.uuid4(),
                    **row,
                    "date_of_birth": parsed,
                    "is_active": True,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        yield batch


def insert_rows_naive(lf: pl.LazyFrame, destination: Destination) -> int:
    """Insert every row with its own INSERT statement.

    Returns:
        Number of rows inserted

    Raises:
        TransferError: If any statement fails; the transaction is rolled back
    """
    table = destination.table_definition()
    now = datetime.now(timezone.utc)
    inserted = 0

    try:
        with destination.engine() as engine, engine.begin() as conn:
            for batch in _records(lf, DEFAULT_BATCH_SIZE, now, destination.table):
                for record in batch:
                    conn.execute(insert(table), record)
                    inserted += 1
    except SQLAlchemyError as e:
        raise TransferError(
            f"Row-by-row insert into '{destination.table}' failed: {e}",
            table=destination.table,
            reason=type(e).__name__,
        ) from e

    logger.info("Inserted %d rows one by one into %s", inserted, destination.table)
    return inserted


def insert_rows_batched(
    lf: pl.LazyFrame,
    destination: Destination,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Insert rows in executemany batches, committing after each batch.

    Raises:
        ValueError: If batch_size is not positive
        TransferError: If a batch fails; batches committed before it remain
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got: {batch_size}")

    table = destination.table_definition()
    now = datetime.now(timezone.utc)
    inserted = 0

    try:
        with destination.engine() as engine, engine.connect() as conn:
            for batch in _records(lf, batch_size, now, destination.table):
                conn.execute(insert(table), batch)
                conn.commit()
                inserted += len(batch)
                logger.debug("Saved batch of %d records", len(batch))
    except SQLAlchemyError as e:
        raise TransferError(
            f"Batched insert into '{destination.table}' failed after {inserted} rows: {e}",
            table=destination.table,
            rows_committed=inserted,
            reason=type(e).__name__,
        ) from e

    logger.info("Inserted %d rows in batches of %d into %s", inserted, batch_size, destination.table)
    return inserted
