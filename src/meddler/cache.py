"""
Statement caching for meddler operations.

A statement cache hook is any callable ``(db, sql) -> statement | None``.
When installed on a mapper it is consulted before every statement; a returned
statement is run instead of the raw executor. ``StatementCache`` is the
default implementation: it keeps a bounded cachetools LRU of
``PreparedStatement`` objects that ask the driver for server-side
preparation.
"""
import logging
import threading
from collections.abc import Sequence
from typing import Any

import cachetools
from meddler.executor import Result, Rows

logger = logging.getLogger(__name__)


class PreparedStatement:
    """Statement text bound to one executor.

    Runs through the executor with ``prepare=True`` when the executor
    advertises ``supports_prepare``.
    """

    def __init__(self, db: Any, sql: str) -> None:
        self.db = db
        self.sql = sql
        self._kwargs = {'prepare': True} if getattr(db, 'supports_prepare', False) else {}

    def execute(self, args: Sequence[Any] = ()) -> Result:
        return self.db.execute(self.sql, args, **self._kwargs)

    def query(self, args: Sequence[Any] = ()) -> Rows:
        return self.db.query(self.sql, args, **self._kwargs)

    def query_row(self, args: Sequence[Any] = ()) -> Rows:
        return self.db.query_row(self.sql, args, **self._kwargs)

    def __repr__(self) -> str:
        return f'PreparedStatement({self.sql!r})'


class StatementCache:
    """Thread-safe LRU cache of prepared statements keyed by executor and SQL.

    Instances are callable and can be installed directly as a statement cache
    hook.
    """

    def __init__(self, maxsize: int = 256) -> None:
        self._cache: cachetools.LRUCache = cachetools.LRUCache(maxsize=maxsize)
        self._lock = threading.RLock()
        self.hits = 0
        self.misses = 0

    def __call__(self, db: Any, sql: str) -> PreparedStatement:
        key = (id(db), sql)
        with self._lock:
            stmt = self._cache.get(key)
            if stmt is not None and stmt.db is db:
                self.hits += 1
                logger.debug(f'Statement cache hit for {sql!r}')
                return stmt
            self.misses += 1
            logger.debug(f'Statement cache miss for {sql!r}')
            stmt = PreparedStatement(db, sql)
            self._cache[key] = stmt
            return stmt

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)
