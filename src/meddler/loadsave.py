"""
Load, insert, update and save records, and run ad-hoc queries into records.

Statements are generated from the record descriptor; every statement is
routed through the mapper's statement cache hook when one is installed.
Driver failures are wrapped in ExecutorError (see ``driver_err``);
NoSuchRowError is passed through unchanged.
"""
import logging
from collections.abc import MutableSequence, Sequence
from typing import TYPE_CHECKING, Any

from meddler.exceptions import ConfigurationError, ExecutorError
from meddler.exceptions import GeneratedKeyError, MeddlerError
from meddler.exceptions import PreconditionError
from meddler.executor import Executor, Result, Rows
from meddler.meddlers import Target
from meddler.pipeline import columns, columns_quoted, placeholders
from meddler.pipeline import placeholders_string, primary_key
from meddler.pipeline import set_primary_key, values
from meddler.scan import scan_all, scan_row

if TYPE_CHECKING:
    from meddler.mapper import Mapper

logger = logging.getLogger(__name__)

__all__ = [
    'load',
    'insert',
    'update',
    'save',
    'query_row',
    'query_all',
]


def _statement(m: 'Mapper', db: Executor, sql: str) -> Any:
    """Return the cached statement for ``sql``, or None to use ``db`` directly.
    """
    if m.statement_cache is None:
        return None
    return m.statement_cache(db, sql)


def _run_query(m: 'Mapper', db: Executor, sql: str, args: Sequence[Any]) -> Rows:
    stmt = _statement(m, db, sql)
    if stmt is not None:
        return stmt.query(args)
    return db.query(sql, args)


def _run_query_row(m: 'Mapper', db: Executor, sql: str, args: Sequence[Any]) -> Rows:
    stmt = _statement(m, db, sql)
    if stmt is not None:
        return stmt.query_row(args)
    return db.query_row(sql, args)


def _run_exec(m: 'Mapper', db: Executor, sql: str, args: Sequence[Any]) -> Result:
    stmt = _statement(m, db, sql)
    if stmt is not None:
        return stmt.execute(args)
    return db.execute(sql, args)


def _wrap(msg: str, run, *args: Any) -> Any:
    """Call ``run`` and wrap driver failures into ExecutorError.
    """
    try:
        return run(*args)
    except MeddlerError:
        raise
    except Exception as err:
        raise ExecutorError(msg, err) from err


def load(m: 'Mapper', db: Executor, table: str, dst: Any, pk: int) -> Any:
    """Load the row with primary key ``pk`` from ``table`` into ``dst``.

    Raises NoSuchRowError if there is no such row.
    """
    cols = columns_quoted(m, dst, include_pk=True)
    pk_name, _ = primary_key(m, dst)
    if not pk_name:
        raise ConfigurationError('meddler.load: no primary key field found')

    quote = m.dialect.quote_identifier
    sql = f'SELECT {cols} FROM {quote(table)} WHERE {quote(pk_name)} = {m.dialect.placeholder(1)}'

    rows = _wrap('meddler.load: DB error in query', _run_query, m, db, sql, [pk])
    return scan_row(m, rows, dst)


def insert(m: 'Mapper', db: Executor, table: str, src: Any) -> None:
    """Insert ``src`` as a new row of ``table``.

    A primary key field must be zero; it receives the generated key, read
    back through RETURNING or the executor's last insert id.
    """
    pk_name, pk_value = primary_key(m, src)
    if pk_name and pk_value != 0:
        raise PreconditionError('meddler.insert: primary key must be zero')

    names_part = columns_quoted(m, src, include_pk=False)
    values_part = placeholders_string(m, src, include_pk=False)
    args = values(m, src, include_pk=False)

    quote = m.dialect.quote_identifier
    if names_part:
        sql = f'INSERT INTO {quote(table)} ({names_part}) VALUES ({values_part})'
    else:
        sql = f'INSERT INTO {quote(table)} DEFAULT VALUES'

    if pk_name and m.use_returning:
        sql += f' RETURNING {quote(pk_name)}'
        rows = _wrap('meddler.insert: DB error in query_row', _run_query_row, m, db, sql, args)
        target = Target()
        try:
            if not _wrap('meddler.insert: DB error in query_row', rows.next):
                raise GeneratedKeyError('meddler.insert: no generated key returned',
                                        LookupError('RETURNING produced no row'))
            _wrap('meddler.insert: DB error in query_row', rows.scan, [target])
        finally:
            rows.close()
        new_pk = target.value
    elif pk_name:
        result = _wrap('meddler.insert: DB error in exec', _run_exec, m, db, sql, args)
        try:
            new_pk = result.last_insert_id()
        except Exception as err:
            raise GeneratedKeyError('meddler.insert: DB error getting new primary key value', err) from err
    else:
        _wrap('meddler.insert: DB error in exec', _run_exec, m, db, sql, args)
        return

    if new_pk is None:
        raise GeneratedKeyError('meddler.insert: DB error getting new primary key value',
                                LookupError('generated key is NULL'))
    try:
        set_primary_key(m, src, new_pk)
    except (TypeError, ValueError) as err:
        raise GeneratedKeyError('meddler.insert: error saving updated pk', err) from err


def update(m: 'Mapper', db: Executor, table: str, src: Any) -> int:
    """Update the row of ``table`` selected by the primary key of ``src``.

    Returns the affected row count reported by the executor.
    """
    pk_name, pk_value = primary_key(m, src)
    if not pk_name:
        raise PreconditionError('meddler.update: no primary key field')
    if pk_value < 1:
        raise PreconditionError('meddler.update: primary key must be an integer > 0')

    names = columns(m, src, include_pk=False)
    if not names:
        raise ConfigurationError('meddler.update: no columns to update besides the primary key')
    phs = placeholders(m, src, include_pk=False)
    args = values(m, src, include_pk=False)

    quote = m.dialect.quote_identifier
    pairs = ','.join(f'{quote(name)}={ph}' for name, ph in zip(names, phs))
    sql = (f'UPDATE {quote(table)} SET {pairs} '
           f'WHERE {quote(pk_name)}={m.dialect.placeholder(len(phs) + 1)}')
    args.append(pk_value)

    result = _wrap('meddler.update: DB error in exec', _run_exec, m, db, sql, args)
    return result.rowcount


def save(m: 'Mapper', db: Executor, table: str, src: Any) -> int | None:
    """Update ``src`` when its primary key is set, insert it otherwise.
    """
    pk_name, pk_value = primary_key(m, src)
    if pk_name and pk_value != 0:
        return update(m, db, table, src)
    return insert(m, db, table, src)


def query_row(m: 'Mapper', db: Executor, dst: Any, sql: str, *args: Any) -> Any:
    """Run ``sql`` and scan the first result row into ``dst``.

    Raises NoSuchRowError if there is no result row.
    """
    m.descriptor(dst)
    rows = _wrap('meddler.query_row: DB error in query', _run_query, m, db, sql, args)
    return scan_row(m, rows, dst)


def query_all(m: 'Mapper', db: Executor, dst: MutableSequence, sql: str, *args: Any,
              shape: type | None = None) -> MutableSequence:
    """Run ``sql`` and append one record per result row to ``dst``.
    """
    rows = _wrap('meddler.query_all: DB error in query', _run_query, m, db, sql, args)
    return scan_all(m, rows, dst, shape=shape)
