"""
Per-shape column metadata derived from dataclass field declarations.

The descriptor of a record shape lists its columns in declaration order,
flattening composed dataclasses depth-first, and binds each column to a
meddler. Descriptors are built once per shape and cached for the life of
the process.

Field tags live in the dataclass field metadata under ``'meddler'`` and use
the form ``name,modifier,...``:

- empty name: the column is named after the field
- ``-``: the field is not mapped
- ``pk``: the field is the integer primary key
- anything else: the name of a registered meddler
"""
import dataclasses
import logging
import threading
import types
import typing
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Union

from meddler.exceptions import ConfigurationError, UnknownMeddlerError
from meddler.meddlers import PK_MARKER, SKIP_MARKER, ZERO_SCALARS
from meddler.meddlers import IdentityMeddler, Meddler, MeddlerRegistry

logger = logging.getLogger(__name__)

TAG_KEY = 'meddler'

IDENTITY = IdentityMeddler()


def column(tag: str = '', **kw: Any) -> Any:
    """Declare a dataclass field carrying a meddler tag.

    Accepts the keyword arguments of ``dataclasses.field``.

    >>> @dataclass
    ... class Item:
    ...     id: int = column('id,pk', default=0)
    >>> dataclasses.fields(Item)[0].metadata['meddler']
    'id,pk'
    """
    metadata = dict(kw.pop('metadata', None) or {})
    metadata[TAG_KEY] = tag
    return dataclasses.field(metadata=metadata, **kw)


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Mapping of one column to a (possibly nested) record field.

    ``path`` holds the positions of the field within each enclosing shape and
    ``attrs`` the matching attribute names. ``composed`` holds the composed
    shapes crossed on the way, used to fill in ``None`` compositions on write.
    """
    column: str
    path: tuple[int, ...]
    attrs: tuple[str, ...]
    composed: tuple[type, ...]
    primary_key: bool
    meddler: Meddler
    type: Any = None

    def get(self, record: Any) -> Any:
        obj = record
        for name in self.attrs:
            if obj is None:
                return None
            obj = getattr(obj, name)
        return obj

    def set(self, record: Any, value: Any) -> None:
        obj = record
        for name, shape in zip(self.attrs[:-1], self.composed):
            child = getattr(obj, name)
            if child is None:
                child = shape()
                setattr(obj, name, child)
            obj = child
        setattr(obj, self.attrs[-1], value)


@dataclass(frozen=True)
class TypeDescriptor:
    """Compiled metadata for one record shape.
    """
    shape: type
    columns: tuple[str, ...]
    fields: Mapping[str, FieldDescriptor]
    pk: str = ''

    def pk_field(self) -> FieldDescriptor | None:
        if not self.pk:
            return None
        return self.fields[self.pk]

    def select_columns(self, include_pk: bool) -> list[str]:
        return [name for name in self.columns if include_pk or name != self.pk]


class FieldRef:
    """Location of a field within one record, handed to meddlers.
    """

    __slots__ = ('record', 'field')

    def __init__(self, record: Any, field: FieldDescriptor) -> None:
        self.record = record
        self.field = field

    @property
    def column(self) -> str:
        return self.field.column

    @property
    def type(self) -> Any:
        return self.field.type

    def get(self) -> Any:
        return self.field.get(self.record)

    def set(self, value: Any) -> None:
        self.field.set(self.record, value)

    def zero(self) -> Any:
        """Return the zero value of the field type, ``None`` if it has none.
        """
        hint = _unwrap_newtype(self.field.type)
        if isinstance(hint, type) and issubclass(hint, ZERO_SCALARS):
            try:
                return hint()
            except TypeError:
                return None
        return None

    def __repr__(self) -> str:
        return f'FieldRef({type(self.record).__name__}.{".".join(self.field.attrs)})'


def _unwrap_newtype(hint: Any) -> Any:
    while hasattr(hint, '__supertype__'):
        hint = hint.__supertype__
    return hint


def _optional_of(hint: Any) -> Any | None:
    """Return ``X`` for ``X | None``/``Optional[X]``, else None.
    """
    if typing.get_origin(hint) not in {Union, types.UnionType}:
        return None
    args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
    if len(args) != 1 or len(args) == len(typing.get_args(hint)):
        return None
    return args[0]


def _composed_shape(hint: Any) -> type | None:
    """Return the dataclass composed by a field annotation, if any.
    """
    inner = _optional_of(hint)
    if inner is not None:
        hint = inner
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return hint
    return None


def _check_primary_key(shape: type, name: str, hint: Any) -> None:
    if _optional_of(hint) is not None:
        raise ConfigurationError(
            f'meddler found field {shape.__name__}.{name} which is marked as '
            'the primary key but is optional')
    base = _unwrap_newtype(hint)
    if not isinstance(base, type) or not issubclass(base, int) or issubclass(base, bool):
        raise ConfigurationError(
            f'meddler found field {shape.__name__}.{name} which is marked as '
            'the primary key, but is not an integer type')


def _resolve_hints(shape: type) -> dict[str, Any]:
    try:
        return typing.get_type_hints(shape)
    except Exception as err:
        raise ConfigurationError(f'meddler could not resolve annotations of {shape.__name__}: {err}') from err


def _walk(shape: type, registry: MeddlerRegistry, path: tuple[int, ...],
          attrs: tuple[str, ...], composed: tuple[type, ...]) -> Iterator[FieldDescriptor]:
    """Yield field descriptors for ``shape``, recursing into compositions.
    """
    hints = _resolve_hints(shape)
    identity = registry.get('identity') if 'identity' in registry else IDENTITY

    for index, f in enumerate(dataclasses.fields(shape)):
        if f.name.startswith('_'):
            continue

        hint = hints.get(f.name, f.type)
        tag = f.metadata.get(TAG_KEY, '')
        if not isinstance(tag, str):
            raise ConfigurationError(f'meddler found field {shape.__name__}.{f.name} with a non-string tag {tag!r}')

        if not tag:
            inner = _composed_shape(hint)
            if inner is not None:
                if inner is shape or inner in composed:
                    raise ConfigurationError(f'meddler found cyclic composition of {inner.__name__} in {shape.__name__}')
                yield from _walk(inner, registry, (*path, index), (*attrs, f.name), (*composed, inner))
                continue

        tokens = tag.split(',')
        if tokens[0].strip() == SKIP_MARKER:
            continue
        name = tokens[0].strip() or f.name

        meddler = identity
        primary_key = False
        for token in (t.strip() for t in tokens[1:]):
            if not token:
                continue
            if token == PK_MARKER:
                _check_primary_key(shape, f.name, hint)
                primary_key = True
            elif token in registry:
                meddler = registry.get(token)
            else:
                raise UnknownMeddlerError(
                    f'meddler found field {shape.__name__}.{f.name} with meddler {token}, '
                    'but that meddler is not registered')

        yield FieldDescriptor(
            column=name,
            path=(*path, index),
            attrs=(*attrs, f.name),
            composed=composed,
            primary_key=primary_key,
            meddler=meddler,
            type=hint,
            )


def build_descriptor(shape: Any, registry: MeddlerRegistry) -> TypeDescriptor:
    """Build the descriptor of a dataclass record shape.

    Raises ConfigurationError for shapes that cannot be mapped and
    UnknownMeddlerError for tags naming unregistered meddlers.
    """
    if not isinstance(shape, type) or not dataclasses.is_dataclass(shape):
        raise ConfigurationError(f'meddler called with non-record shape {shape!r}')

    columns: list[str] = []
    fields: dict[str, FieldDescriptor] = {}
    pk = ''
    for field in _walk(shape, registry, (), (), ()):
        if field.primary_key:
            if pk:
                raise ConfigurationError(
                    f'meddler found field {".".join(field.attrs)} which is marked as the '
                    f'primary key, but a primary key field was already found ({pk})')
            pk = field.column
        if field.column in fields:
            raise ConfigurationError(f'meddler found multiple fields for column {field.column}')
        fields[field.column] = field
        columns.append(field.column)

    logger.debug(f'Built descriptor for {shape.__name__}: columns={columns} pk={pk!r}')
    return TypeDescriptor(
        shape=shape,
        columns=tuple(columns),
        fields=types.MappingProxyType(fields),
        pk=pk,
        )


def shape_of(record: Any) -> type:
    """Return the shape of a record instance.

    Raises ConfigurationError when ``record`` is a class or not a dataclass
    instance.
    """
    if isinstance(record, type):
        raise ConfigurationError(f'meddler called with class {record.__name__}, expected a record instance')
    if not dataclasses.is_dataclass(record):
        raise ConfigurationError(f'meddler called with non-record value of type {type(record).__name__}')
    return type(record)


class DescriptorCache:
    """Shape -> descriptor mapping, filled lazily and never evicted.

    Lookup-or-build runs under one lock; failed builds are not cached.
    """

    def __init__(self) -> None:
        self._descriptors: dict[type, TypeDescriptor] = {}
        self._lock = threading.Lock()

    def get(self, shape: type, registry: MeddlerRegistry) -> TypeDescriptor:
        with self._lock:
            descriptor = self._descriptors.get(shape)
            if descriptor is None:
                descriptor = build_descriptor(shape, registry)
                self._descriptors[shape] = descriptor
            return descriptor

    def clear(self) -> None:
        with self._lock:
            self._descriptors.clear()

    def __contains__(self, shape: object) -> bool:
        return shape in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
