"""
Bind dataclass records to relational table rows and back.

All operations can be called either as:
- Module functions: meddler.load(db, table, dst, pk)
- Mapper methods: Mapper(dialect='sqlite').load(db, table, dst, pk)

The module functions are facades over the process-wide ``default`` mapper
(PostgreSQL dialect). ``db`` is any executor (see ``meddler.executor``);
wrap a DBAPI connection with ``DBAPIExecutor``.
"""
__version__ = '0.1.0'

from collections.abc import MutableSequence, Sequence
from typing import Any

from meddler.cache import PreparedStatement, StatementCache
from meddler.descriptor import FieldDescriptor, FieldRef, TypeDescriptor
from meddler.descriptor import column
from meddler.dialect import Dialect, get_dialect, register_dialect
from meddler.exceptions import ConfigurationError, DriverError, ExecutorError
from meddler.exceptions import GeneratedKeyError, IntegrityError, MeddlerError
from meddler.exceptions import NoSuchRowError, PipelineError, PreconditionError
from meddler.exceptions import ShapeMismatchError, UnknownMeddlerError
from meddler.exceptions import driver_err
from meddler.executor import CursorRows, DBAPIExecutor, ExecResult, Executor
from meddler.executor import Result, Rows, Statement
from meddler.mapper import Mapper
from meddler.meddlers import IdentityMeddler, JsonMeddler, Meddler
from meddler.meddlers import MeddlerRegistry, Target, TimeMeddler
from meddler.meddlers import TimeTextMeddler, ZeroIsNullMeddler, register
from meddler.meddlers import registry
from meddler.options import MeddlerOptions

default = Mapper()


def set_debug(enabled: bool) -> None:
    """Turn unmatched column/field diagnostics of the default mapper on or off.
    """
    default.debug = enabled


def set_statement_cache(hook: Any) -> None:
    """Install (or remove, with None) the default mapper's statement cache hook.
    """
    default.statement_cache = hook


def columns(src: Any, include_pk: bool = True) -> list[str]:
    """Return the column names of a record.
    """
    return default.columns(src, include_pk)


def columns_quoted(src: Any, include_pk: bool = True) -> str:
    """Return the quoted, comma-joined column names of a record.
    """
    return default.columns_quoted(src, include_pk)


def primary_key(src: Any) -> tuple[str, int]:
    """Return the primary key name and value of a record.
    """
    return default.primary_key(src)


def set_primary_key(src: Any, pk: int) -> None:
    """Store a primary key value into a record.
    """
    default.set_primary_key(src, pk)


def values(src: Any, include_pk: bool = True) -> list[Any]:
    """Return pre-write values for all columns of a record.
    """
    return default.values(src, include_pk)


def some_values(src: Any, names: Sequence[str]) -> list[Any]:
    """Return pre-write values for the given columns of a record.
    """
    return default.some_values(src, names)


def placeholders(src: Any, include_pk: bool = True) -> list[str]:
    """Return positional placeholders for the columns of a record.
    """
    return default.placeholders(src, include_pk)


def placeholders_string(src: Any, include_pk: bool = True) -> str:
    """Return comma-joined placeholders for the columns of a record.
    """
    return default.placeholders_string(src, include_pk)


def targets(dst: Any, names: Sequence[str]) -> list[Target]:
    """Return scan targets for the given result columns.
    """
    return default.targets(dst, names)


def write_targets(dst: Any, names: Sequence[str], scanned: Sequence[Target]) -> None:
    """Store scanned targets into a record.
    """
    default.write_targets(dst, names, scanned)


def scan(rows: Rows, dst: Any) -> Any:
    """Scan the next row into a record, leaving the cursor open.
    """
    return default.scan(rows, dst)


def scan_row(rows: Rows, dst: Any) -> Any:
    """Scan one row into a record and close the cursor.
    """
    return default.scan_row(rows, dst)


def scan_all(rows: Rows, dst: MutableSequence, shape: type | None = None) -> MutableSequence:
    """Append one record per row to a list and close the cursor.
    """
    return default.scan_all(rows, dst, shape)


def load(db: Executor, table: str, dst: Any, pk: int) -> Any:
    """Load a record by primary key.
    """
    return default.load(db, table, dst, pk)


def insert(db: Executor, table: str, src: Any) -> None:
    """Insert a record, storing its generated primary key.
    """
    default.insert(db, table, src)


def update(db: Executor, table: str, src: Any) -> int:
    """Update a record by primary key.
    """
    return default.update(db, table, src)


def save(db: Executor, table: str, src: Any) -> int | None:
    """Insert or update a record depending on its primary key.
    """
    return default.save(db, table, src)


def query_row(db: Executor, dst: Any, sql: str, *args: Any) -> Any:
    """Run a query and scan its first row into a record.
    """
    return default.query_row(db, dst, sql, *args)


def query_all(db: Executor, dst: MutableSequence, sql: str, *args: Any,
              shape: type | None = None) -> MutableSequence:
    """Run a query and append one record per row to a list.
    """
    return default.query_all(db, dst, sql, *args, shape=shape)


__all__ = [
    'Mapper',
    'MeddlerOptions',
    'default',
    'set_debug',
    'set_statement_cache',
    'column',
    'register',
    'registry',
    'columns',
    'columns_quoted',
    'primary_key',
    'set_primary_key',
    'values',
    'some_values',
    'placeholders',
    'placeholders_string',
    'targets',
    'write_targets',
    'scan',
    'scan_row',
    'scan_all',
    'load',
    'insert',
    'update',
    'save',
    'query_row',
    'query_all',
    'driver_err',
    'Meddler',
    'MeddlerRegistry',
    'IdentityMeddler',
    'ZeroIsNullMeddler',
    'TimeMeddler',
    'TimeTextMeddler',
    'JsonMeddler',
    'Target',
    'FieldRef',
    'FieldDescriptor',
    'TypeDescriptor',
    'Dialect',
    'get_dialect',
    'register_dialect',
    'Executor',
    'Result',
    'Rows',
    'Statement',
    'ExecResult',
    'CursorRows',
    'DBAPIExecutor',
    'StatementCache',
    'PreparedStatement',
    'MeddlerError',
    'ConfigurationError',
    'UnknownMeddlerError',
    'NoSuchRowError',
    'ShapeMismatchError',
    'PreconditionError',
    'PipelineError',
    'ExecutorError',
    'GeneratedKeyError',
    'DriverError',
    'IntegrityError',
]
