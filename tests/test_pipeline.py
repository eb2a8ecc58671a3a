"""Tests for import orchestration.

Covers the result status for every failure kind, the end-to-end scenarios
against an in-memory destination, and removal of the intermediate file on
every exit path.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path

import psycopg
import pytest
from sqlalchemy import Engine, create_engine

from bulkingest.core.exceptions import SourceError, TransferError
from bulkingest.core.pipeline import (
    ImportProfile,
    export_source,
    run_import,
    validate_source,
)
from bulkingest.core.result import ImportStatus, Violation
from bulkingest.load.destination import Destination
from bulkingest.validation.batch import BatchValidator
from tests.support import TODAY, FakeConnection, make_row


@pytest.fixture
def work_dir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


class TestRunImport:
    def test_valid_source_is_loaded(
        self, write_source, valid_rows, fake_destination, fake_connection, work_dir
    ) -> None:
        result = run_import(write_source(valid_rows), fake_destination, temp_dir=work_dir)

        assert result.status is ImportStatus.SUCCESS
        assert result.is_success()
        assert result.rows_loaded == 3
        assert result.profile == "optimized"
        assert result.elapsed_ms > 0
        assert len(fake_connection.rows) == 3
        assert {r["is_active"] for r in fake_connection.rows} == {"true"}
        assert list(work_dir.iterdir()) == []

    def test_violations_stop_before_export(
        self, write_source, valid_rows, fake_destination, fake_connection, work_dir
    ) -> None:
        valid_rows[1]["employee_id"] = "EMPX12"

        result = run_import(write_source(valid_rows), fake_destination, temp_dir=work_dir)

        assert result.status is ImportStatus.VALIDATION_FAILED
        assert result.violations == [
            Violation(
                "2", "EmployeeId must start with 'EMP' and be exactly 6 characters.", "employee_id"
            )
        ]
        assert result.rows_loaded == 0
        assert fake_connection.rows == []
        assert fake_connection.statements == []
        assert list(work_dir.iterdir()) == []

    def test_underage_employee(self, write_source, fake_destination, fake_connection) -> None:
        born = date(date.today().year - 10, 6, 1).isoformat()
        result = run_import(write_source([make_row(1, date_of_birth=born)]), fake_destination)

        assert result.status is ImportStatus.VALIDATION_FAILED
        assert [v.message for v in result.violations] == [
            "Invalid DateOfBirth. Must be at least 18 years old."
        ]
        assert fake_connection.rows == []

    def test_unknown_gender_reported_with_other_rows(
        self, write_source, fake_destination, fake_connection
    ) -> None:
        rows = [make_row(1), make_row(2, gender="Unknown"), make_row(3, phone="12")]

        result = run_import(write_source(rows), fake_destination)

        assert [str(v) for v in result.violations] == ["3 : Invalid Phone.", "2 : Invalid Gender."]
        assert fake_connection.rows == []

    def test_missing_source(self, tmp_path: Path, fake_destination) -> None:
        result = run_import(tmp_path / "absent.xlsx", fake_destination)
        assert result.status is ImportStatus.SOURCE_ERROR
        assert isinstance(result.error, SourceError)

    def test_malformed_header(self, tmp_path: Path, fake_destination) -> None:
        path = tmp_path / "employees.csv"
        path.write_text("sn,EmployeeId\n1,EMP001\n")
        result = run_import(path, fake_destination)
        assert result.status is ImportStatus.SOURCE_ERROR
        assert "SN" in result.error.context["missing_columns"]

    def test_transfer_failure_leaves_destination_unchanged(
        self, write_source, valid_rows, monkeypatch, work_dir
    ) -> None:
        connection = FakeConnection(error=psycopg.errors.CheckViolation("check constraint"))
        connection.rows.append({"id": "existing"})

        @contextmanager
        def connect(self: Destination) -> Iterator[FakeConnection]:
            yield connection

        monkeypatch.setattr(Destination, "connect", connect)

        result = run_import(
            write_source(valid_rows), Destination("postgresql://t@h/db"), temp_dir=work_dir
        )

        assert result.status is ImportStatus.TRANSFER_ERROR
        assert isinstance(result.error, TransferError)
        assert connection.rows == [{"id": "existing"}]
        assert list(work_dir.iterdir()) == []

    def test_connection_failure(self, write_source, valid_rows, monkeypatch, work_dir) -> None:
        def refuse(conninfo: str, **kwargs):
            raise psycopg.OperationalError("could not connect")

        monkeypatch.setattr(psycopg, "connect", refuse)

        result = run_import(
            write_source(valid_rows), Destination("postgresql://t@h/db"), temp_dir=work_dir
        )

        assert result.status is ImportStatus.TRANSFER_ERROR
        assert list(work_dir.iterdir()) == []

    def test_unusable_temp_dir(self, write_source, valid_rows, fake_destination, tmp_path) -> None:
        result = run_import(
            write_source(valid_rows), fake_destination, temp_dir=tmp_path / "missing"
        )
        assert result.status is ImportStatus.RESOURCE_ERROR

    def test_interruption_propagates_and_cleans_up(
        self, write_source, valid_rows, monkeypatch, work_dir
    ) -> None:
        @contextmanager
        def connect(self: Destination) -> Iterator[FakeConnection]:
            raise KeyboardInterrupt
            yield

        monkeypatch.setattr(Destination, "connect", connect)

        with pytest.raises(KeyboardInterrupt):
            run_import(
                write_source(valid_rows), Destination("postgresql://t@h/db"), temp_dir=work_dir
            )
        assert list(work_dir.iterdir()) == []

    def test_custom_validator(self, write_source, fake_destination) -> None:
        born = date(TODAY.year - 20, 1, 1).isoformat()
        later = BatchValidator(today=date(TODAY.year - 5, 1, 1))

        result = run_import(
            write_source([make_row(1, date_of_birth=born)]), fake_destination, validator=later
        )

        assert result.status is ImportStatus.VALIDATION_FAILED

    def test_format(self, write_source, valid_rows, fake_destination) -> None:
        result = run_import(write_source(valid_rows), fake_destination)
        assert result.format().startswith("[optimized] Import succeeded: 3 rows loaded in ")


class TestBaselineProfiles:
    @pytest.mark.parametrize("profile", [ImportProfile.NAIVE, ImportProfile.BATCHED])
    def test_profiles_dispatch(self, write_source, valid_rows, monkeypatch, profile) -> None:
        calls = []

        def fake_insert(lf, destination, **kwargs):
            calls.append(kwargs)
            return lf.collect().height

        monkeypatch.setattr("bulkingest.core.pipeline.insert_rows_naive", fake_insert)
        monkeypatch.setattr("bulkingest.core.pipeline.insert_rows_batched", fake_insert)

        result = run_import(
            write_source(valid_rows), Destination("postgresql://t@h/db"), profile=profile, batch_size=2
        )

        assert result.status is ImportStatus.SUCCESS
        assert result.rows_loaded == 3
        assert result.profile == profile.value
        assert calls == ([{}] if profile is ImportProfile.NAIVE else [{"batch_size": 2}])

    def test_baseline_failure_is_transfer_error(self, write_source, valid_rows, monkeypatch) -> None:
        def failing_insert(lf, destination, **kwargs):
            raise TransferError("insert failed", table=destination.table)

        monkeypatch.setattr("bulkingest.core.pipeline.insert_rows_naive", failing_insert)

        result = run_import(
            write_source(valid_rows), Destination("postgresql://t@h/db"), profile=ImportProfile.NAIVE
        )

        assert result.status is ImportStatus.TRANSFER_ERROR

    @pytest.mark.parametrize("profile", [ImportProfile.NAIVE, ImportProfile.BATCHED])
    def test_unconvertible_date_becomes_transfer_error(
        self, write_source, monkeypatch, tmp_path: Path, profile
    ) -> None:
        url = f"sqlite:///{tmp_path / 'hr.db'}"

        @contextmanager
        def engine(self: Destination) -> Iterator[Engine]:
            eng = create_engine(url)
            try:
                yield eng
            finally:
                eng.dispose()

        monkeypatch.setattr(Destination, "engine", engine)
        destination = Destination("postgresql://t@h/db")
        destination.create_table()

        # no date rule, so the malformed value reaches the insert stage
        result = run_import(
            write_source([make_row(1, date_of_birth="200-01-01")]),
            destination,
            profile=profile,
            validator=BatchValidator(rules=[], today=TODAY),
        )

        assert result.status is ImportStatus.TRANSFER_ERROR
        assert result.error.context["value"] == "200-01-01"
        assert destination.count_rows() == 0

    @pytest.mark.parametrize("size", [0, -1])
    def test_batch_size_checked_before_any_work(self, tmp_path: Path, size: int) -> None:
        with pytest.raises(ValueError, match="batch_size must be positive"):
            run_import(
                tmp_path / "absent.csv",
                Destination("postgresql://t@h/db"),
                profile=ImportProfile.BATCHED,
                batch_size=size,
            )


class TestStageHelpers:
    def test_validate_source(self, write_source) -> None:
        path = write_source([make_row(1, gender="?")])
        assert [v.field for v in validate_source(path)] == ["gender"]

    def test_export_source_writes_valid(self, write_source, valid_rows, tmp_path: Path) -> None:
        out = tmp_path / "out.csv"
        assert export_source(write_source(valid_rows), out) == []
        assert out.read_text().count("\n") == 4

    def test_export_source_skips_invalid(self, write_source, tmp_path: Path) -> None:
        out = tmp_path / "out.csv"
        violations = export_source(write_source([make_row(1, gender="?")]), out)
        assert len(violations) == 1
        assert not out.exists()
