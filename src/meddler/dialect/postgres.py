"""
PostgreSQL dialect.

Uses native ``$n`` placeholders, so cursors are opened as
``psycopg.RawCursor`` which passes them to the server untouched.
"""
import logging
from typing import Any

import psycopg
from meddler.dialect.base import Dialect, register_dialect

logger = logging.getLogger(__name__)


@register_dialect('postgresql')
class PostgresDialect(Dialect):
    """PostgreSQL statement rendering.
    """

    use_returning = True

    @property
    def name(self) -> str:
        return 'postgresql'

    def placeholder(self, n: int) -> str:
        return f'${n}'

    def cursor(self, raw_conn: Any) -> Any:
        if isinstance(raw_conn, psycopg.Connection):
            return psycopg.RawCursor(raw_conn)
        return raw_conn.cursor()

    def execute_kwargs(self, prepare: bool | None) -> dict[str, Any]:
        if prepare is None:
            return {}
        return {'prepare': prepare}
