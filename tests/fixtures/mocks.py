"""
Mock executors for orchestration tests.

Provides a recording executor that answers queries from canned rows without a
database, built on the same CursorRows/ExecResult types DBAPIExecutor uses.

Usage:
    def test_load(fake_db):
        fake_db.add_result(['id', 'name'], [(5, 'a')])
        ...
        assert fake_db.calls == [('query', sql, [5])]
"""
from collections.abc import Sequence
from typing import Any

import pytest
from meddler.executor import CursorRows, ExecResult


class FakeCursor:
    """Minimal DBAPI cursor over canned rows."""

    def __init__(self, columns: Sequence[str], rows: Sequence[tuple]) -> None:
        self.description = [(name, None, None, None, None, None, None) for name in columns]
        self._rows = list(rows)
        self.closed = False

    def fetchone(self) -> tuple | None:
        if not self._rows:
            return None
        return self._rows.pop(0)

    def close(self) -> None:
        self.closed = True


class FakeExecutor:
    """Executor recording every call and answering from queued results."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, list[Any]]] = []
        self.cursors: list[FakeCursor] = []
        self._results: list[tuple[Sequence[str], Sequence[tuple]]] = []
        self.rowcount = 1
        self.lastrowid: int | None = None
        self.error: Exception | None = None

    def add_result(self, columns: Sequence[str], rows: Sequence[tuple]) -> None:
        self._results.append((columns, rows))

    def _rows(self, limit: int | None = None) -> CursorRows:
        columns, rows = self._results.pop(0) if self._results else ((), ())
        cursor = FakeCursor(columns, rows)
        self.cursors.append(cursor)
        return CursorRows(cursor, limit=limit)

    def _record(self, method: str, sql: str, args: Sequence[Any]) -> None:
        self.calls.append((method, sql, list(args)))
        if self.error is not None:
            raise self.error

    def execute(self, sql: str, args: Sequence[Any] = ()) -> ExecResult:
        self._record('execute', sql, args)
        return ExecResult(self.rowcount, self.lastrowid)

    def query(self, sql: str, args: Sequence[Any] = ()) -> CursorRows:
        self._record('query', sql, args)
        return self._rows()

    def query_row(self, sql: str, args: Sequence[Any] = ()) -> CursorRows:
        self._record('query_row', sql, args)
        return self._rows(limit=1)


@pytest.fixture
def fake_db():
    """Recording executor with no queued results."""
    return FakeExecutor()


@pytest.fixture
def fake_rows():
    """Factory for CursorRows over canned rows.

    Example usage:
        def test_scan(fake_rows):
            rows = fake_rows(['id', 'name'], [(1, 'a')])
    """
    def factory(columns, rows):
        return CursorRows(FakeCursor(columns, rows))

    return factory
