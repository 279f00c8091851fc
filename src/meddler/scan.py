"""
Scanning result cursors into records.

- ``scan``: read the next row into a record, leave the cursor open
- ``scan_row``: read one row into a record, always close the cursor
- ``scan_all``: append one new record per row to a list, always close

A missing row is reported with ``NoSuchRowError``.
"""
import dataclasses
import logging
from collections.abc import MutableSequence, Sequence
from typing import TYPE_CHECKING, Any

from meddler.exceptions import ConfigurationError, NoSuchRowError
from meddler.exceptions import ShapeMismatchError
from meddler.executor import Rows
from meddler.pipeline import targets, write_targets

if TYPE_CHECKING:
    from meddler.mapper import Mapper

logger = logging.getLogger(__name__)

__all__ = ['scan', 'scan_row', 'scan_all']


def _scan_row(m: 'Mapper', rows: Rows, dst: Any, names: Sequence[str]) -> None:
    """Advance the cursor once and store the row into ``dst``.
    """
    if not rows.next():
        raise NoSuchRowError('meddler: no rows in result set')

    scanned = targets(m, dst, names)
    rows.scan(scanned)
    write_targets(m, dst, names, scanned, log_missing=False)


def scan(m: 'Mapper', rows: Rows, dst: Any) -> Any:
    """Scan the next row of ``rows`` into ``dst``.

    Leaves ``rows`` open and positioned on that row. Raises NoSuchRowError
    when the cursor is exhausted.
    """
    m.descriptor(dst)
    _scan_row(m, rows, dst, list(rows.columns))
    return dst


def scan_row(m: 'Mapper', rows: Rows, dst: Any) -> Any:
    """Scan exactly one row into ``dst`` and close ``rows``.

    Raises NoSuchRowError when there is no row.
    """
    try:
        return scan(m, rows, dst)
    finally:
        rows.close()


def _check_destination(dst: Any, shape: type | None) -> type:
    """Validate a scan_all destination list and return the record shape.
    """
    if not isinstance(dst, MutableSequence) or isinstance(dst, (str, bytes, bytearray)):
        raise ShapeMismatchError(f'scan_all called with non-list destination: {type(dst).__name__}')

    if shape is None:
        if not dst:
            raise ShapeMismatchError('scan_all cannot infer the record shape of an empty destination')
        shape = type(dst[0])
    if not isinstance(shape, type) or not dataclasses.is_dataclass(shape):
        raise ShapeMismatchError(f'scan_all expects elements to be records, found {shape!r}')

    for elt in dst:
        if not isinstance(elt, shape):
            raise ShapeMismatchError(
                f'scan_all expects elements of type {shape.__name__}, found {type(elt).__name__}')
    return shape


def scan_all(m: 'Mapper', rows: Rows, dst: MutableSequence, shape: type | None = None) -> MutableSequence:
    """Append one record per remaining row of ``rows`` to ``dst``.

    ``shape`` is the record class to create; it defaults to the type of the
    records already in ``dst``. Existing contents are kept. Closes ``rows``.
    """
    try:
        shape = _check_destination(dst, shape)
        m.get_descriptor(shape)
        names = list(rows.columns)

        while True:
            try:
                elt = shape()
            except TypeError as err:
                raise ConfigurationError(f'scan_all cannot create {shape.__name__} without arguments: {err}') from err

            try:
                _scan_row(m, rows, elt, names)
            except NoSuchRowError:
                return dst

            dst.append(elt)
    finally:
        rows.close()
