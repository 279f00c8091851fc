"""
Base dialect interface for statement generation.

A dialect knows how to quote identifiers, how to render the Nth positional
placeholder, whether generated keys come back through a RETURNING clause,
and how to open a cursor on a raw DBAPI connection.
"""
from abc import ABC, abstractmethod
from typing import Any

# Registry of dialect name -> dialect class
_DIALECT_REGISTRY: dict[str, type['Dialect']] = {}


def register_dialect(name: str):
    """Decorator to register a dialect class under a name.

    Usage:
        @register_dialect('postgresql')
        class PostgresDialect(Dialect):
            ...
    """
    def decorator(cls: type['Dialect']) -> type['Dialect']:
        _DIALECT_REGISTRY[name] = cls
        return cls
    return decorator


class Dialect(ABC):
    """SQL rendering rules for one database flavor.
    """

    quote: str = '"'

    #: fetch generated primary keys with INSERT ... RETURNING
    use_returning: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the dialect identifier."""

    @abstractmethod
    def placeholder(self, n: int) -> str:
        """Return the placeholder for the 1-based positional argument ``n``.
        """

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table or column name, doubling embedded quote characters.
        """
        return self.quote + identifier.replace(self.quote, self.quote * 2) + self.quote

    def placeholders(self, count: int, start: int = 1) -> list[str]:
        return [self.placeholder(n) for n in range(start, start + count)]

    def cursor(self, raw_conn: Any) -> Any:
        """Open a cursor on a raw DBAPI connection.
        """
        return raw_conn.cursor()

    def execute_kwargs(self, prepare: bool | None) -> dict[str, Any]:
        """Extra keyword arguments for ``cursor.execute``.
        """
        return {}

    def __repr__(self) -> str:
        return f'{type(self).__name__}()'
