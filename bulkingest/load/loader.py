"""Bulk loading of the intermediate CSV through PostgreSQL COPY.

The loader opens ``COPY <table> (<columns>) FROM STDIN`` on an explicitly
passed connection and streams the intermediate file into it line by line,
without parsing. PostgreSQL parses the CSV and finalizes the rows.

The whole transfer runs inside one transaction: either every line is
committed or, on any failure (driver error, malformed line, constraint
violation, interruption), the COPY is aborted and the transaction rolled
back, leaving the table's row count unchanged.
"""

import logging
import time
from collections.abc import Sequence
from pathlib import Path

import psycopg
from psycopg import sql

from bulkingest.core.exceptions import ResourceError, TransferError
from bulkingest.core.protocols import CopyConnection
from bulkingest.core.schema import DEFAULT_TABLE, DESTINATION_COLUMNS

logger = logging.getLogger(__name__)


def copy_statement(table: str, columns: Sequence[str]) -> sql.Composed:
    """Compose the COPY statement for a (possibly schema-qualified) table.

    Example:
        >>> copy_statement("hr.employees", ["id", "employee_id"]).as_string()
        'COPY "hr"."employees" ("id", "employee_id") FROM STDIN WITH (FORMAT csv, HEADER true)'
    """
    return sql.SQL("COPY {table} ({columns}) FROM STDIN WITH (FORMAT csv, HEADER true)").format(
        table=sql.Identifier(*table.split(".")),
        columns=sql.SQL(", ").join(sql.Identifier(c) for c in columns),
    )


class BulkLoader:
    """Streams an intermediate CSV into a destination table.

    Attributes:
        table: Destination table name, optionally schema-qualified
        columns: Column list matching the CSV header order

    Example:
        >>> loader = BulkLoader(table="employees")
        >>> with psycopg.connect(conninfo) as conn:
        ...     rows = loader.load(Path("employees.csv"), conn)
    """

    def __init__(
        self,
        table: str = DEFAULT_TABLE,
        columns: Sequence[str] = DESTINATION_COLUMNS,
    ) -> None:
        self.table = table
        self.columns = list(columns)

    def load(self, path: Path, connection: CopyConnection) -> int:
        """Stream the file into the destination in a single transaction.

        Args:
            path: Intermediate CSV with a header line
            connection: Open psycopg connection owned by the caller

        Returns:
            Number of rows the destination reports as copied

        Raises:
            TransferError: If the COPY fails; nothing is committed
            ResourceError: If the intermediate file cannot be read; nothing
                          is committed
        """
        statement = copy_statement(self.table, self.columns)
        lines_sent = 0
        started = time.perf_counter()

        try:
            with connection.transaction():
                with connection.cursor() as cur:
                    with cur.copy(statement) as copy:
                        with Path(path).open("rb") as f:
                            for line in f:
                                copy.write(line)
                                lines_sent += 1
                    rows = cur.rowcount
        except psycopg.Error as e:
            logger.error(
                "Bulk load into %s aborted after %d lines: %s", self.table, lines_sent, e
            )
            raise TransferError(
                f"Bulk load into '{self.table}' failed: {e}",
                table=self.table,
                lines_sent=lines_sent,
                reason=type(e).__name__,
            ) from e
        except OSError as e:
            raise ResourceError(
                f"Cannot read intermediate file: {e}",
                path=str(path),
                reason=str(e),
            ) from e

        logger.info(
            "Bulk loaded %d rows into %s in %.1f ms",
            rows,
            self.table,
            (time.perf_counter() - started) * 1000,
        )
        return rows
