"""
SQLite dialect.

Generated keys are read from ``cursor.lastrowid`` instead of RETURNING.
"""
from meddler.dialect.base import Dialect, register_dialect


@register_dialect('sqlite')
class SQLiteDialect(Dialect):
    """SQLite statement rendering.
    """

    use_returning = False

    @property
    def name(self) -> str:
        return 'sqlite'

    def placeholder(self, n: int) -> str:
        return '?'
