"""Destination handle and table definition.

A Destination names the database and table for one pipeline invocation.
Connections are opened from it on demand and closed when the invocation
ends; there is no module-level connection or engine.

The SQLAlchemy table definition documents the expected destination layout.
It is used by the baseline insert profiles and to create the table in tests
and benchmarks; the pipeline never alters an existing table.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import psycopg
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Engine,
    MetaData,
    String,
    Table,
    Uuid,
    create_engine,
    func,
    select,
)
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError

from bulkingest.core.exceptions import TransferError
from bulkingest.core.schema import DEFAULT_TABLE

logger = logging.getLogger(__name__)

DATABASE_URL_ENV = "BULKINGEST_DATABASE_URL"


def build_table(name: str = DEFAULT_TABLE, metadata: MetaData | None = None) -> Table:
    """Build the SQLAlchemy Core definition of the destination table.

    Args:
        name: Table name, optionally schema-qualified ("hr.employees")
        metadata: MetaData to attach to (a fresh one when None)
    """
    metadata = metadata if metadata is not None else MetaData()
    schema, _, table_name = name.rpartition(".")

    return Table(
        table_name,
        metadata,
        Column("id", Uuid, primary_key=True),
        Column("employee_id", String(6), nullable=False),
        Column("first_name", String, nullable=False),
        Column("middle_name", String(20)),
        Column("last_name", String, nullable=False),
        Column("email", String(50)),
        Column("phone", String(15)),
        Column("date_of_birth", Date),
        Column("gender", String),
        Column("national_id", String(20)),
        Column("country", String(50)),
        Column("state", String(50)),
        Column("city", String(50)),
        Column("address_line", String(100)),
        Column("zip_code", String(10)),
        Column("is_active", Boolean, nullable=False, default=True),
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True)),
        schema=schema or None,
    )


@dataclass(frozen=True)
class Destination:
    """Explicit destination handle scoped to one invocation.

    Attributes:
        url: Database URL, ``postgresql://`` or ``postgresql+psycopg://``
        table: Destination table name

    Example:
        >>> dest = Destination("postgresql://app@localhost/hr", table="employees")
        >>> with dest.connect() as conn:
        ...     BulkLoader(dest.table).load(csv_path, conn)
    """

    url: str
    table: str = DEFAULT_TABLE

    @property
    def conninfo(self) -> str:
        """The URL in the form psycopg accepts (plain ``postgresql://``)."""
        try:
            url = make_url(self.url)
        except ArgumentError as e:
            raise TransferError(
                f"Invalid database URL: {e}", table=self.table, reason=str(e)
            ) from e
        return url.set(drivername="postgresql").render_as_string(hide_password=False)

    @property
    def sqlalchemy_url(self) -> str:
        """The URL with the psycopg (v3) driver selected for SQLAlchemy."""
        try:
            url = make_url(self.url)
        except ArgumentError as e:
            raise TransferError(
                f"Invalid database URL: {e}", table=self.table, reason=str(e)
            ) from e
        return url.set(drivername="postgresql+psycopg").render_as_string(hide_password=False)

    @contextmanager
    def connect(self) -> Iterator[psycopg.Connection]:
        """Open a psycopg connection, closed when the block exits.

        Raises:
            TransferError: If the connection cannot be established
        """
        try:
            conn = psycopg.connect(self.conninfo)
        except psycopg.Error as e:
            raise TransferError(
                f"Cannot connect to destination: {e}",
                table=self.table,
                reason=type(e).__name__,
            ) from e

        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def engine(self) -> Iterator[Engine]:
        """Create a SQLAlchemy engine, disposed when the block exits."""
        engine = create_engine(self.sqlalchemy_url)
        try:
            yield engine
        finally:
            engine.dispose()

    def table_definition(self) -> Table:
        return build_table(self.table)

    def create_table(self) -> None:
        """Create the destination table if it does not exist.

        Raises:
            TransferError: If the DDL cannot be executed
        """
        table = self.table_definition()
        try:
            with self.engine() as engine:
                table.metadata.create_all(engine, tables=[table])
        except SQLAlchemyError as e:
            raise TransferError(
                f"Cannot create destination table: {e}",
                table=self.table,
                reason=type(e).__name__,
            ) from e
        logger.info("Ensured destination table %s exists", self.table)

    def count_rows(self) -> int:
        """Return the current row count of the destination table.

        Raises:
            TransferError: If the count query fails
        """
        table = self.table_definition()
        try:
            with self.engine() as engine, engine.connect() as conn:
                return conn.execute(select(func.count()).select_from(table)).scalar_one()
        except SQLAlchemyError as e:
            raise TransferError(
                f"Cannot count rows in destination: {e}",
                table=self.table,
                reason=type(e).__name__,
            ) from e
