"""Row builders, Hypothesis strategies and an in-memory psycopg stand-in."""

import csv
import io
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from typing import Any

import polars as pl
import psycopg
from hypothesis import strategies as st
from hypothesis.strategies import composite

from bulkingest.core.schema import DESTINATION_COLUMNS, SOURCE_COLUMNS, SOURCE_SCHEMA

TODAY = date(2026, 1, 15)

VALID_ROW: dict[str, str] = {
    "SN": "1",
    "employee_id": "EMP001",
    "first_name": "Alice",
    "middle_name": "Marie",
    "last_name": "Smith",
    "email": "alice.smith@example.com",
    "phone": "5551234567",
    "date_of_birth": "1990-05-17",
    "gender": "Female",
    "national_id": "AB123456",
    "country": "USA",
    "state": "California",
    "city": "San Francisco",
    "address_line": "123 Market Street",
    "zip_code": "94105",
}


def make_row(sn: int | str = 1, **overrides: str | None) -> dict[str, str | None]:
    """Build a valid source row, with selected fields overridden.

    Example:
        >>> make_row(4, gender="Unknown")["gender"]
        'Unknown'
    """
    row: dict[str, str | None] = dict(VALID_ROW)
    row["SN"] = str(sn)
    row["employee_id"] = f"EMP{int(sn) % 1000:03d}" if str(sn).isdigit() else VALID_ROW["employee_id"]
    row.update(overrides)
    return row


def source_frame(rows: list[dict[str, Any]]) -> pl.LazyFrame:
    """Build a normalized source LazyFrame from row dictionaries."""
    return pl.LazyFrame(rows, schema=SOURCE_SCHEMA)


class FakeCopy:
    """COPY channel that buffers written bytes and parses them on close."""

    def __init__(self, cursor: "FakeCursor") -> None:
        self.cursor = cursor
        self.buffer = bytearray()

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    def __enter__(self) -> "FakeCopy":
        return self

    def __exit__(self, exc_type: Any, exc: Any, tb: Any) -> bool:
        if exc_type is None:
            self.cursor.finish_copy(bytes(self.buffer))
        return False


class FakeCursor:
    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection
        self.rowcount = -1

    def copy(self, statement: Any) -> FakeCopy:
        self.connection.statements.append(statement)
        return FakeCopy(self)

    def finish_copy(self, data: bytes) -> None:
        """Parse the CSV like the server would and stage the rows."""
        if self.connection.error is not None:
            raise self.connection.error

        reader = csv.reader(io.StringIO(data.decode("utf-8"), newline=""))
        header = next(reader, None)
        if header != self.connection.columns:
            raise psycopg.errors.BadCopyFileFormat(f"unexpected header: {header}")

        staged = []
        for line_nr, values in enumerate(reader, start=2):
            if len(values) != len(self.connection.columns):
                raise psycopg.errors.BadCopyFileFormat(
                    f"line {line_nr}: expected {len(self.connection.columns)} columns"
                )
            staged.append(dict(zip(self.connection.columns, values)))

        self.connection.pending.extend(staged)
        self.rowcount = len(staged)

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info: Any) -> bool:
        return False


class FakeConnection:
    """In-memory stand-in for a psycopg connection.

    Rows copied inside a transaction become visible in ``rows`` only when the
    transaction block exits without an exception.

    Attributes:
        rows: Committed rows, as dictionaries keyed by destination column
        error: Exception to raise when a COPY completes, to simulate a
               server-side failure
    """

    def __init__(self, columns: list[str] | None = None, error: Exception | None = None) -> None:
        self.columns = list(columns or DESTINATION_COLUMNS)
        self.error = error
        self.rows: list[dict[str, str]] = []
        self.pending: list[dict[str, str]] = []
        self.statements: list[Any] = []
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def transaction(self) -> Iterator[None]:
        self.pending = []
        try:
            yield
        except BaseException:
            self.pending = []
            self.rollbacks += 1
            raise
        self.rows.extend(self.pending)
        self.pending = []
        self.commits += 1

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)


# Characters covering every rule's character classes without straying into
# Unicode categories where regex dialects differ
FIELD_ALPHABET = "ABCEMPZabcxyz0123456789 @.-_"


@composite
def field_value(draw: st.DrawFn, max_size: int = 25) -> str | None:
    """Generate a cell value: absent, empty, or short ASCII text."""
    return draw(
        st.one_of(
            st.none(),
            st.just(""),
            st.text(alphabet=FIELD_ALPHABET, min_size=1, max_size=max_size),
        )
    )


# Impossible dates, other formats and unpadded or padded near-ISO strings
MALFORMED_DATES = [
    "2000-02-30",
    "1990-13-01",
    "17/05/1990",
    "yesterday",
    "200-01-01",
    "+2000-01-01",
    " 2000-01-01",
    "2000-01-01 ",
    "2000-1-1",
    "0000-01-01",
]


@composite
def date_of_birth_value(draw: st.DrawFn) -> str | None:
    """Generate a date of birth: absent, ISO date, impossible date or garbage."""
    return draw(
        st.one_of(
            st.none(),
            st.just(""),
            st.dates(min_value=date(1900, 1, 1), max_value=date(2030, 12, 31)).map(
                lambda d: d.isoformat()
            ),
            st.sampled_from(MALFORMED_DATES),
        )
    )


@composite
def employee_row(draw: st.DrawFn, sn: int = 1) -> dict[str, str | None]:
    """Generate a source row mixing valid and invalid values in every field.

    Half of the fields on average keep their valid value so that rows with
    a handful of violations are as common as rows failing everywhere.
    """
    row: dict[str, str | None] = {"SN": str(sn)}
    for name in SOURCE_COLUMNS[1:]:
        if draw(st.booleans()):
            row[name] = VALID_ROW[name]
        elif name == "date_of_birth":
            row[name] = draw(date_of_birth_value())
        elif name == "employee_id":
            row[name] = draw(st.one_of(field_value(max_size=8), st.sampled_from(["EMP123", "EMPX12"])))
        elif name == "gender":
            row[name] = draw(st.one_of(field_value(), st.sampled_from(["Male", "Female", "Other", "male"])))
        elif name == "address_line":
            row[name] = draw(field_value(max_size=110))
        else:
            row[name] = draw(field_value())
    return row


@composite
def employee_rows(draw: st.DrawFn, max_rows: int = 8) -> list[dict[str, str | None]]:
    size = draw(st.integers(min_value=0, max_value=max_rows))
    return [draw(employee_row(sn=i + 1)) for i in range(size)]
