"""
Executor contract and the adapter for PEP-249 connections.

Statement orchestration only needs three operations from a database handle:

- ``execute(sql, args)`` -> ``Result`` (row count, generated id)
- ``query(sql, args)`` -> ``Rows`` (multi-row cursor)
- ``query_row(sql, args)`` -> ``Rows`` (cursor yielding at most one row)

``DBAPIExecutor`` provides them on top of any DBAPI connection
(psycopg, sqlite3). Connection lifetime, pooling and transactions stay with
the caller.
"""
import logging
import time
from collections.abc import Sequence
from functools import wraps
from typing import Any, Protocol, runtime_checkable

from meddler.dialect import Dialect, get_dialect, get_dialect_name
from meddler.exceptions import ShapeMismatchError
from meddler.meddlers import Target

logger = logging.getLogger(__name__)

__all__ = [
    'Result',
    'Rows',
    'Executor',
    'Statement',
    'ExecResult',
    'CursorRows',
    'DBAPIExecutor',
]


@runtime_checkable
class Result(Protocol):
    rowcount: int

    def last_insert_id(self) -> int: ...


@runtime_checkable
class Rows(Protocol):
    @property
    def columns(self) -> list[str]: ...

    def next(self) -> bool: ...

    def scan(self, targets: Sequence[Target]) -> None: ...

    def close(self) -> None: ...


@runtime_checkable
class Executor(Protocol):
    def execute(self, sql: str, args: Sequence[Any] = ()) -> Result: ...

    def query(self, sql: str, args: Sequence[Any] = ()) -> Rows: ...

    def query_row(self, sql: str, args: Sequence[Any] = ()) -> Rows: ...


@runtime_checkable
class Statement(Protocol):
    """Pre-compiled statement returned by a statement cache hook.
    """

    def execute(self, args: Sequence[Any] = ()) -> Result: ...

    def query(self, args: Sequence[Any] = ()) -> Rows: ...

    def query_row(self, args: Sequence[Any] = ()) -> Rows: ...


class ExecResult:
    """Summary of an executed statement.
    """

    def __init__(self, rowcount: int, lastrowid: int | None = None) -> None:
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def last_insert_id(self) -> int:
        """Return the id generated by the statement.

        Raises LookupError when the driver did not report one.
        """
        if self.lastrowid is None:
            raise LookupError('driver did not report a generated id')
        return self.lastrowid

    def __repr__(self) -> str:
        return f'ExecResult(rowcount={self.rowcount}, lastrowid={self.lastrowid})'


class CursorRows:
    """Row cursor over a DBAPI cursor.

    ``next()`` advances to the next row; ``scan()`` copies the current row
    into scan targets. With ``limit`` the cursor stops after that many rows.
    """

    def __init__(self, cursor: Any, limit: int | None = None) -> None:
        self.cursor = cursor
        self.limit = limit
        self.closed = False
        self._row: Sequence[Any] | None = None
        self._count = 0

    @property
    def columns(self) -> list[str]:
        return [desc[0] for desc in (self.cursor.description or [])]

    def next(self) -> bool:
        if self.closed or (self.limit is not None and self._count >= self.limit):
            self._row = None
            return False
        row = self.cursor.fetchone()
        self._row = row
        if row is None:
            return False
        self._count += 1
        return True

    def scan(self, targets: Sequence[Target]) -> None:
        if self._row is None:
            raise ValueError('scan called without a current row')
        if len(targets) != len(self._row):
            raise ShapeMismatchError(
                f'scan: mismatch in number of columns ({len(self._row)}) and targets ({len(targets)})')
        for target, value in zip(targets, self._row):
            target.value = value

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self.cursor.close()

    def __enter__(self) -> 'CursorRows':
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


def dumpsql(func):
    """Decorator for logging SQL statements and parameters."""
    @wraps(func)
    def wrapper(self, sql: str, args: Sequence[Any] = (), *a: Any, **kw: Any):
        start = time.time()
        logger.debug(f'SQL:\n{sql}\nargs: {args}')
        try:
            return func(self, sql, args, *a, **kw)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{sql}\nargs: {args}')
            raise
        finally:
            elapsed = time.time() - start
            self.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class DBAPIExecutor:
    """Executor over a raw DBAPI connection.

    The dialect is detected from the connection type unless given.
    """

    def __init__(self, connection: Any, dialect: str | Dialect | None = None) -> None:
        self.connection = connection
        if dialect is None:
            dialect = get_dialect_name(connection)
        self.dialect = get_dialect(dialect) if isinstance(dialect, str) else dialect
        self.call_count = 0
        self.call_time = 0.0

    @property
    def supports_prepare(self) -> bool:
        return self.dialect.name == 'postgresql'

    def addcall(self, elapsed: float) -> None:
        self.call_count += 1
        self.call_time += elapsed

    @dumpsql
    def _cursor(self, sql: str, args: Sequence[Any] = (), prepare: bool | None = None) -> Any:
        cursor = self.dialect.cursor(self.connection)
        kwargs = self.dialect.execute_kwargs(prepare)
        try:
            if args:
                cursor.execute(sql, tuple(args), **kwargs)
            else:
                cursor.execute(sql, **kwargs)
        except Exception:
            cursor.close()
            raise
        return cursor

    def execute(self, sql: str, args: Sequence[Any] = (), prepare: bool | None = None) -> ExecResult:
        cursor = self._cursor(sql, args, prepare=prepare)
        try:
            return ExecResult(cursor.rowcount, getattr(cursor, 'lastrowid', None))
        finally:
            cursor.close()

    def query(self, sql: str, args: Sequence[Any] = (), prepare: bool | None = None) -> CursorRows:
        return CursorRows(self._cursor(sql, args, prepare=prepare))

    def query_row(self, sql: str, args: Sequence[Any] = (), prepare: bool | None = None) -> CursorRows:
        return CursorRows(self._cursor(sql, args, prepare=prepare), limit=1)

    def __repr__(self) -> str:
        return f'DBAPIExecutor({self.dialect.name})'
