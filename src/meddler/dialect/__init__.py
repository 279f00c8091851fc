"""
Dialect factory for statement rendering.
"""
from functools import lru_cache

from meddler.dialect.base import _DIALECT_REGISTRY
from meddler.dialect.base import Dialect as Dialect
from meddler.dialect.base import register_dialect as register_dialect
from meddler.dialect.postgres import PostgresDialect as PostgresDialect
from meddler.dialect.sqlite import SQLiteDialect as SQLiteDialect


def _validate_dialect(name: str) -> None:
    """Raise ValueError if dialect is not registered."""
    if name not in _DIALECT_REGISTRY:
        available = list(_DIALECT_REGISTRY.keys())
        raise ValueError(f'Unsupported dialect: {name}. Available: {available}')


@lru_cache(maxsize=8)
def get_dialect(name: str) -> Dialect:
    """Get cached dialect instance for a dialect name."""
    _validate_dialect(name)
    return _DIALECT_REGISTRY[name]()


def get_available_dialects() -> list[str]:
    """Return list of registered dialect names."""
    return list(_DIALECT_REGISTRY.keys())


def is_supported_dialect(name: str) -> bool:
    """Check if a dialect is supported."""
    return name in _DIALECT_REGISTRY


def get_dialect_name(obj) -> str:
    """Guess the dialect of a raw DBAPI connection from its type.
    """
    if hasattr(obj, 'dialect'):
        dialect = obj.dialect
        if isinstance(dialect, str):
            return dialect.lower()
        return str(dialect.name).lower()

    type_name = f'{type(obj).__module__}.{type(obj).__name__}'
    if 'psycopg' in type_name:
        return 'postgresql'
    if 'sqlite3' in type_name:
        return 'sqlite'

    raise AttributeError(f'Cannot determine dialect for {type(obj)}')
