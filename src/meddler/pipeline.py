"""
Column lists, placeholders and meddled values for one record.

Every function takes the mapper first; ``Mapper`` exposes them as methods.
Outbound (``values``/``some_values``) runs each field's ``pre_write``;
inbound (``targets``/``write_targets``) runs ``pre_read`` and ``post_read``
around a cursor scan. Columns without a matching field are not an error:
they write NULL and read into a throwaway target.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from meddler.descriptor import FieldRef
from meddler.exceptions import ConfigurationError, PipelineError
from meddler.exceptions import PreconditionError, ShapeMismatchError
from meddler.meddlers import Target

if TYPE_CHECKING:
    from meddler.mapper import Mapper

logger = logging.getLogger(__name__)

__all__ = [
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
]


def columns(m: 'Mapper', src: Any, include_pk: bool = True) -> list[str]:
    """Return the column names of a record in declaration order.
    """
    return m.descriptor(src).select_columns(include_pk)


def columns_quoted(m: 'Mapper', src: Any, include_pk: bool = True) -> str:
    """Return the quoted column names joined by commas: ``"a","b"``.
    """
    return ','.join(m.dialect.quote_identifier(name) for name in columns(m, src, include_pk))


def primary_key(m: 'Mapper', src: Any) -> tuple[str, int]:
    """Return the name and current value of the primary key.

    The name is empty (and the value 0) when no field is marked ``pk``.
    """
    descriptor = m.descriptor(src)
    field = descriptor.pk_field()
    if field is None:
        return '', 0

    value = field.get(src)
    if value is None:
        return descriptor.pk, 0
    if not isinstance(value, int) or isinstance(value, bool):
        raise PreconditionError(
            f'meddler found primary key {descriptor.pk} holding non-integer value {value!r}')
    return descriptor.pk, int(value)


def set_primary_key(m: 'Mapper', src: Any, pk: int) -> None:
    """Store ``pk`` into the primary key field.
    """
    descriptor = m.descriptor(src)
    field = descriptor.pk_field()
    if field is None:
        raise ConfigurationError('meddler.set_primary_key: no primary key field found')
    field.set(src, int(pk))


def values(m: 'Mapper', src: Any, include_pk: bool = True) -> list[Any]:
    """Return pre-write values for ``columns(src, include_pk)``, same order.
    """
    return some_values(m, src, columns(m, src, include_pk))


def some_values(m: 'Mapper', src: Any, names: Sequence[str]) -> list[Any]:
    """Return pre-write values for the given columns, same order.

    Columns missing from the record are written as NULL.
    """
    descriptor = m.descriptor(src)

    result: list[Any] = []
    for name in names:
        field = descriptor.fields.get(name)
        if field is None:
            result.append(None)
            if m.debug:
                logger.debug(f'meddler.some_values: column [{name}] not found in {descriptor.shape.__name__}')
            continue

        try:
            result.append(field.meddler.pre_write(field.get(src)))
        except Exception as err:
            raise PipelineError(f'meddler.some_values: pre_write error on column [{name}]: {err}', name) from err

    return result


def placeholders(m: 'Mapper', src: Any, include_pk: bool = True) -> list[str]:
    """Return positional placeholders matching ``values(src, include_pk)``.
    """
    return m.dialect.placeholders(len(columns(m, src, include_pk)))


def placeholders_string(m: 'Mapper', src: Any, include_pk: bool = True) -> str:
    """Return placeholders joined by commas: ``$1,$2,$3``.
    """
    return ','.join(placeholders(m, src, include_pk))


def targets(m: 'Mapper', dst: Any, names: Sequence[str]) -> list[Target]:
    """Return scan targets for the given result columns, same order.

    After the cursor filled them in, hand the same targets to
    ``write_targets`` to store the values into ``dst``.
    """
    descriptor = m.descriptor(dst)

    result: list[Target] = []
    for name in names:
        field = descriptor.fields.get(name)
        if field is None:
            result.append(Target())
            if m.debug:
                logger.debug(f'meddler.targets: column [{name}] not found in {descriptor.shape.__name__}')
            continue

        try:
            result.append(field.meddler.pre_read(FieldRef(dst, field)))
        except Exception as err:
            raise PipelineError(f'meddler.targets: pre_read error on column [{name}]: {err}', name) from err

    if m.debug:
        present = set(names)
        for name in descriptor.columns:
            if name not in present:
                logger.debug(f'meddler.targets: field for column [{name}] of '
                             f'{descriptor.shape.__name__} not found in result')

    return result


def write_targets(m: 'Mapper', dst: Any, names: Sequence[str],
                  scanned: Sequence[Target], log_missing: bool = True) -> None:
    """Run post-read meddlers to store scanned targets into ``dst``.
    """
    if len(names) != len(scanned):
        raise ShapeMismatchError(
            f'meddler.write_targets: mismatch in number of columns ({len(names)}) '
            f'and targets ({len(scanned)})')

    descriptor = m.descriptor(dst)

    for name, target in zip(names, scanned):
        field = descriptor.fields.get(name)
        if field is None:
            if m.debug and log_missing:
                logger.debug(f'meddler.write_targets: column [{name}] not found in {descriptor.shape.__name__}')
            continue

        try:
            field.meddler.post_read(FieldRef(dst, field), target)
        except Exception as err:
            raise PipelineError(f'meddler.write_targets: post_read error on column [{name}]: {err}', name) from err
