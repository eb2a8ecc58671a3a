"""Shared test fixtures for bulkingest tests."""

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import date
from pathlib import Path
from typing import Any

import polars as pl
import pytest

from bulkingest.core.schema import SOURCE_COLUMNS, SOURCE_SCHEMA
from bulkingest.load.destination import Destination
from tests.support import TODAY, FakeConnection, make_row


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def valid_rows() -> list[dict[str, str | None]]:
    """Three fully valid rows with distinct serial numbers."""
    return [
        make_row(1),
        make_row(2, first_name="Bob", last_name="Jones", gender="Male", email="bob@example.org"),
        make_row(3, first_name="Carol", middle_name=None, email=None, phone=None, gender="Other"),
    ]


@pytest.fixture
def write_source(tmp_path: Path) -> Callable[..., Path]:
    """Return a helper that writes rows to a CSV source file.

    Example:
        >>> path = write_source([make_row(1)], name="staff.csv")
    """

    def _write(rows: list[dict[str, Any]], name: str = "employees.csv") -> Path:
        path = tmp_path / name
        pl.DataFrame(rows, schema=SOURCE_SCHEMA).select(SOURCE_COLUMNS).write_csv(path)
        return path

    return _write


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def fake_destination(
    monkeypatch: pytest.MonkeyPatch, fake_connection: FakeConnection
) -> Destination:
    """Destination whose connect() yields the in-memory fake connection."""

    @contextmanager
    def connect(self: Destination) -> Iterator[FakeConnection]:
        yield fake_connection

    monkeypatch.setattr(Destination, "connect", connect)
    return Destination("postgresql://tester@localhost/hr")
