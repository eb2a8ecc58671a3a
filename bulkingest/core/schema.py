"""Source and destination schema definitions.

This module defines the fixed field set shared by every stage of the
ingestion pipeline. The source is a tabular file whose header must contain
the row identifier column plus every employee field; every column is read
as a string so that rule evaluation works on the literal cell value.

Source schema:
    - SN (Utf8): Caller-supplied row identifier used for error attribution
    - employee_id, first_name, last_name (Utf8) [REQUIRED]
    - middle_name, email, phone, date_of_birth, gender, national_id,
      country, state, city, address_line, zip_code (Utf8) [OPTIONAL]

Destination columns add a generated ``id``, an ``is_active`` flag and the
``created_at`` / ``updated_at`` timestamps.
"""

from collections.abc import Iterable

import polars as pl

from bulkingest.core.exceptions import SourceError

ROW_ID = "SN"

EMPLOYEE_FIELDS = [
    "employee_id",
    "first_name",
    "middle_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "gender",
    "national_id",
    "country",
    "state",
    "city",
    "address_line",
    "zip_code",
]

# Fields that must be present and non-empty
REQUIRED_FIELDS = ["employee_id", "first_name", "last_name"]

# Fields that may be null or empty
OPTIONAL_FIELDS = [f for f in EMPLOYEE_FIELDS if f not in REQUIRED_FIELDS]

SOURCE_COLUMNS = [ROW_ID, *EMPLOYEE_FIELDS]

# Every source column is read as text; date_of_birth is parsed by its rule
SOURCE_SCHEMA = {name: pl.Utf8 for name in SOURCE_COLUMNS}

GENERATED_COLUMNS = ["id", "is_active", "created_at", "updated_at"]

# Column order of the intermediate CSV and of the COPY column list
DESTINATION_COLUMNS = [
    "id",
    *EMPLOYEE_FIELDS,
    "is_active",
    "created_at",
    "updated_at",
]

DEFAULT_TABLE = "employees"

DATE_FORMAT = "%Y-%m-%d"


def create_empty_source() -> pl.DataFrame:
    """Create an empty source DataFrame with the correct schema.

    Example:
        >>> df = create_empty_source()
        >>> df.columns[:2]
        ['SN', 'employee_id']
        >>> len(df)
        0
    """
    return pl.DataFrame(schema=SOURCE_SCHEMA)


def check_source_columns(columns: Iterable[str], file_path: str | None = None) -> None:
    """Verify that a source header carries every required column.

    Column names are matched case-sensitively. Extra columns are allowed and
    ignored by later stages.

    Args:
        columns: Column names found in the source header
        file_path: Source path, included in the error context

    Raises:
        SourceError: If any column of SOURCE_COLUMNS is missing

    Example:
        >>> check_source_columns(SOURCE_COLUMNS)
        >>> check_source_columns(["SN", "employee_id"])
        Traceback (most recent call last):
        ...
        bulkingest.core.exceptions.SourceError: Missing required columns: [...]
    """
    present = set(columns)
    missing = [name for name in SOURCE_COLUMNS if name not in present]

    if missing:
        raise SourceError(
            f"Missing required columns: {missing}",
            file_path=file_path,
            missing_columns=missing,
        )


def normalize_source(lf: pl.LazyFrame) -> pl.LazyFrame:
    """Project a source frame onto SOURCE_COLUMNS with every column as text.

    Temporal columns (spreadsheet engines report dates natively) are rendered
    as ``YYYY-MM-DD`` so that the date rule sees the same literal form a CSV
    source would carry. Other types are cast to strings unchanged.

    Args:
        lf: Lazy source frame whose header already passed check_source_columns

    Returns:
        New LazyFrame with exactly SOURCE_COLUMNS, all Utf8
    """
    schema = lf.collect_schema()
    exprs = []

    for name in SOURCE_COLUMNS:
        dtype = schema[name]
        if dtype == pl.Date:
            exprs.append(pl.col(name).dt.strftime(DATE_FORMAT))
        elif dtype.base_type() == pl.Datetime:
            exprs.append(pl.col(name).dt.date().dt.strftime(DATE_FORMAT))
        elif dtype == pl.Utf8:
            exprs.append(pl.col(name))
        elif dtype.is_float():
            # Spreadsheet numeric cells arrive as floats: 5551234.0 -> "5551234"
            col = pl.col(name)
            exprs.append(
                pl.when(col == col.floor())
                .then(col.cast(pl.Int64).cast(pl.Utf8))
                .otherwise(col.cast(pl.Utf8))
                .alias(name)
            )
        else:
            exprs.append(pl.col(name).cast(pl.Utf8))

    return lf.select(exprs)
