"""Tests for the COPY bulk loader, against an in-memory connection."""

from pathlib import Path

import psycopg
import pytest

from bulkingest.core.exceptions import ResourceError, TransferError
from bulkingest.core.schema import DESTINATION_COLUMNS
from bulkingest.export.exporter import export
from bulkingest.load.loader import BulkLoader, copy_statement
from tests.support import FakeConnection, make_row, source_frame


@pytest.fixture
def exported(tmp_path: Path, valid_rows: list[dict]) -> Path:
    return export(source_frame(valid_rows), tmp_path / "employees.csv")


class TestCopyStatement:
    def test_plain_table(self) -> None:
        text = copy_statement("employees", ["id", "employee_id"]).as_string()
        assert text == 'COPY "employees" ("id", "employee_id") FROM STDIN WITH (FORMAT csv, HEADER true)'

    def test_schema_qualified_table(self) -> None:
        text = copy_statement("hr.employees", DESTINATION_COLUMNS).as_string()
        assert text.startswith('COPY "hr"."employees" ("id", "employee_id", "first_name"')


class TestBulkLoader:
    def test_loads_every_row(self, exported: Path, fake_connection: FakeConnection) -> None:
        rows = BulkLoader().load(exported, fake_connection)

        assert rows == 3
        assert len(fake_connection.rows) == 3
        assert fake_connection.commits == 1
        assert {r["is_active"] for r in fake_connection.rows} == {"true"}
        assert [r["first_name"] for r in fake_connection.rows] == ["Alice", "Bob", "Carol"]

    def test_malformed_line_rolls_back_everything(
        self, exported: Path, fake_connection: FakeConnection
    ) -> None:
        fake_connection.rows.append({"id": "existing"})
        with exported.open("a", encoding="utf-8") as f:
            f.write("not,enough,columns\n")

        with pytest.raises(TransferError) as exc_info:
            BulkLoader().load(exported, fake_connection)

        assert fake_connection.rows == [{"id": "existing"}]
        assert fake_connection.rollbacks == 1
        assert exc_info.value.context["lines_sent"] == 5
        assert exc_info.value.context["reason"] == "BadCopyFileFormat"
        assert isinstance(exc_info.value.__cause__, psycopg.Error)

    def test_server_error_is_a_transfer_error(self, exported: Path) -> None:
        connection = FakeConnection(error=psycopg.errors.UniqueViolation("duplicate key value"))

        with pytest.raises(TransferError) as exc_info:
            BulkLoader(table="staff").load(exported, connection)

        assert connection.rows == []
        assert exc_info.value.context["table"] == "staff"
        assert exc_info.value.context["reason"] == "UniqueViolation"

    def test_missing_file_is_a_resource_error(
        self, tmp_path: Path, fake_connection: FakeConnection
    ) -> None:
        with pytest.raises(ResourceError):
            BulkLoader().load(tmp_path / "gone.csv", fake_connection)
        assert fake_connection.rows == []
        assert fake_connection.rollbacks == 1

    def test_export_then_load_is_repeatable(self, tmp_path: Path, valid_rows: list[dict]) -> None:
        counts = []
        for attempt in range(2):
            path = export(source_frame(valid_rows), tmp_path / f"run{attempt}.csv")
            connection = FakeConnection()
            counts.append(BulkLoader().load(path, connection))
            assert len(connection.rows) == counts[-1]
        assert counts == [3, 3]

    def test_quoted_values_survive(self, tmp_path: Path, fake_connection: FakeConnection) -> None:
        row = make_row(1, address_line="Unit 4, Block B")
        path = export(source_frame([row]), tmp_path / "quoted.csv")

        BulkLoader().load(path, fake_connection)

        assert fake_connection.rows[0]["address_line"] == "Unit 4, Block B"

    def test_statement_targets_table(self, exported: Path, fake_connection: FakeConnection) -> None:
        BulkLoader(table="hr.employees").load(exported, fake_connection)
        assert fake_connection.statements == [copy_statement("hr.employees", DESTINATION_COLUMNS)]
