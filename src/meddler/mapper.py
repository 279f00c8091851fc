"""
The mapper: one object carrying everything the record operations need.

A ``Mapper`` holds the dialect, the options, the meddler registry and the
descriptor cache, and exposes every operation as a method:

    m = Mapper(dialect='sqlite')
    m.insert(db, 'person', person)
    m.load(db, 'person', Person(), person.id)

Mappers built with the default registry share the process-wide descriptor
cache. A mapper given its own registry gets its own cache, which keeps
registries isolated (e.g. per test).
"""
import logging
from collections.abc import Callable
from functools import wraps
from typing import Any

from meddler import loadsave, pipeline, scan
from meddler.descriptor import DescriptorCache, TypeDescriptor, shape_of
from meddler.dialect import Dialect, get_dialect
from meddler.meddlers import MeddlerRegistry
from meddler.meddlers import registry as default_registry
from meddler.options import MeddlerOptions, load_options

logger = logging.getLogger(__name__)

__all__ = ['Mapper', 'descriptor_cache']

descriptor_cache = DescriptorCache()

_OPERATIONS = {
    pipeline: pipeline.__all__,
    scan: scan.__all__,
    loadsave: loadsave.__all__,
    }


def _bind(op: Callable[..., Any]) -> Callable[..., Any]:
    """Create a method that forwards to a module function, mapper first.
    """
    @wraps(op)
    def _method(self, *args, **kwargs):
        return op(self, *args, **kwargs)

    return _method


class Mapper:
    """Binds dataclass records to table rows for one dialect.
    """

    for _module, _names in _OPERATIONS.items():
        for _name in _names:
            locals()[_name] = _bind(getattr(_module, _name))
    del _module, _names, _name

    def __init__(self, options: MeddlerOptions | dict[str, Any] | None = None,
                 registry: MeddlerRegistry | None = None,
                 cache: DescriptorCache | None = None, **kw: Any) -> None:
        self.options = load_options(options, **kw)
        self.dialect: Dialect = get_dialect(self.options.dialect)
        if registry is None:
            self.registry = default_registry
            self.cache = cache if cache is not None else descriptor_cache
        else:
            self.registry = registry
            self.cache = cache if cache is not None else DescriptorCache()

    @property
    def debug(self) -> bool:
        return self.options.debug

    @debug.setter
    def debug(self, value: bool) -> None:
        self.options.debug = bool(value)

    @property
    def use_returning(self) -> bool:
        if self.options.use_returning is None:
            return self.dialect.use_returning
        return self.options.use_returning

    @use_returning.setter
    def use_returning(self, value: bool | None) -> None:
        self.options.use_returning = value

    @property
    def statement_cache(self) -> Callable[[Any, str], Any] | None:
        return self.options.statement_cache

    @statement_cache.setter
    def statement_cache(self, hook: Callable[[Any, str], Any] | None) -> None:
        if hook is not None and not callable(hook):
            raise ValueError('statement_cache must be callable')
        self.options.statement_cache = hook

    def get_descriptor(self, shape: type) -> TypeDescriptor:
        """Return the cached descriptor of a record class, building it once.
        """
        return self.cache.get(shape, self.registry)

    def descriptor(self, record: Any) -> TypeDescriptor:
        """Return the descriptor of a record instance.
        """
        return self.get_descriptor(shape_of(record))

    def __repr__(self) -> str:
        return f'Mapper(dialect={self.dialect.name!r}, debug={self.debug})'
