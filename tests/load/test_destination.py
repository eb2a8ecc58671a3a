"""Tests for the destination handle and table definition."""

import psycopg
import pytest
from sqlalchemy import Boolean, Date, MetaData

from bulkingest.core.exceptions import TransferError
from bulkingest.core.schema import DESTINATION_COLUMNS
from bulkingest.load.destination import Destination, build_table


class TestBuildTable:
    def test_columns_in_destination_order(self) -> None:
        table = build_table()
        assert table.name == "employees"
        assert [c.name for c in table.columns] == DESTINATION_COLUMNS

    def test_column_types(self) -> None:
        table = build_table()
        assert table.c.id.primary_key
        assert isinstance(table.c.date_of_birth.type, Date)
        assert isinstance(table.c.is_active.type, Boolean)
        assert table.c.employee_id.type.length == 6
        assert not table.c.last_name.nullable
        assert table.c.middle_name.nullable

    def test_schema_qualified(self) -> None:
        table = build_table("hr.staff", MetaData())
        assert table.schema == "hr"
        assert table.name == "staff"


class TestDestination:
    def test_conninfo_strips_driver(self) -> None:
        dest = Destination("postgresql+psycopg://app:secret@db:5432/hr")
        assert dest.conninfo == "postgresql://app:secret@db:5432/hr"

    def test_sqlalchemy_url_selects_psycopg(self) -> None:
        dest = Destination("postgresql://app:secret@db/hr")
        assert dest.sqlalchemy_url == "postgresql+psycopg://app:secret@db/hr"

    def test_invalid_url(self) -> None:
        dest = Destination("not a url", table="staff")
        with pytest.raises(TransferError) as exc_info:
            dest.conninfo
        assert exc_info.value.context["table"] == "staff"

    def test_connection_failure(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def refuse(conninfo: str, **kwargs):
            raise psycopg.OperationalError("connection refused")

        monkeypatch.setattr(psycopg, "connect", refuse)

        with pytest.raises(TransferError) as exc_info:
            with Destination("postgresql://app@db/hr").connect():
                pass
        assert exc_info.value.context["reason"] == "OperationalError"

    def test_connection_closed_after_block(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class Recorder:
            closed = False

            def close(self) -> None:
                self.closed = True

        conn = Recorder()
        monkeypatch.setattr(psycopg, "connect", lambda conninfo, **kwargs: conn)

        with pytest.raises(RuntimeError):
            with Destination("postgresql://app@db/hr").connect():
                raise RuntimeError("aborted")
        assert conn.closed

    def test_default_table(self) -> None:
        assert Destination("postgresql://app@db/hr").table == "employees"
