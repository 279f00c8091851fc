from collections.abc import Callable
from dataclasses import dataclass, fields
from typing import Any

from meddler.dialect import get_available_dialects, is_supported_dialect

__all__ = [
    'MeddlerOptions',
    'load_options',
]


@dataclass
class MeddlerOptions:
    """Options

    supported dialects: `postgresql`, `sqlite`

    - debug: log columns without a matching field and fields without a
      matching column (default: False)
    - use_returning: fetch generated primary keys with RETURNING; None uses
      the dialect default (default: None)
    - statement_cache: callable ``(db, sql) -> statement | None`` consulted
      before every statement (default: None)
    """
    dialect: str = 'postgresql'
    debug: bool = False
    use_returning: bool | None = None
    statement_cache: Callable[[Any, str], Any] | None = None

    def __post_init__(self):
        if not is_supported_dialect(self.dialect):
            available = get_available_dialects()
            raise ValueError(f'dialect must be one of: {available}')
        if self.statement_cache is not None and not callable(self.statement_cache):
            raise ValueError('statement_cache must be callable')


def load_options(options: MeddlerOptions | dict[str, Any] | None = None,
                 **kw: Any) -> MeddlerOptions:
    """Build options from an options object, a dict and/or keyword arguments.

    Keyword arguments override values from ``options``.
    """
    if options is None:
        options = {}
    if isinstance(options, MeddlerOptions):
        if not kw:
            return options
        options = {f.name: getattr(options, f.name) for f in fields(options)}
    if not isinstance(options, dict):
        raise TypeError(f'Unsupported options type: {type(options).__name__}')

    merged = {**options, **kw}
    known = {f.name for f in fields(MeddlerOptions)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise ValueError(f'Unknown options: {unknown}')
    return MeddlerOptions(**merged)
