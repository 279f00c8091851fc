"""
Per-field value transformers ("meddlers") and the registry that names them.

A meddler sits between a record field and its column. It has three hooks:

- ``pre_write(value)``: in-memory value -> value handed to the driver
- ``pre_read(ref)``: field location -> scan target the cursor fills in
- ``post_read(ref, target)``: finalize the scanned value into the field

Meddlers are shared by every record of every shape, so they must not keep
per-call state. Field tags refer to them by their registered name:

    @dataclass
    class Person:
        id: int = column('id,pk', default=0)
        closed: datetime | None = column('closed,utctimez', default=None)
"""
import datetime
import gzip
import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any

import dateutil.parser
from meddler.exceptions import UnknownMeddlerError

if TYPE_CHECKING:
    from meddler.descriptor import FieldRef

logger = logging.getLogger(__name__)

PK_MARKER = 'pk'
SKIP_MARKER = '-'

ZERO_SCALARS = (bool, int, float, complex, Decimal, str, bytes)


class Target:
    """Scan target handed to a cursor; the cursor stores the raw column value.
    """

    __slots__ = ('value',)

    def __init__(self, value: Any = None) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f'Target({self.value!r})'


class Meddler(ABC):
    """Base class for value transformers.
    """

    def pre_read(self, ref: 'FieldRef') -> Target:
        """Return the scan target for the field at ``ref``.
        """
        return Target()

    @abstractmethod
    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        """Store the scanned ``target`` value into the field at ``ref``.
        """

    @abstractmethod
    def pre_write(self, value: Any) -> Any:
        """Convert a field value into the value sent to the database.
        """


class IdentityMeddler(Meddler):
    """Pass values through unchanged.
    """

    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        ref.set(target.value)

    def pre_write(self, value: Any) -> Any:
        return value


def _is_zero(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, ZERO_SCALARS) and not value


class ZeroIsNullMeddler(Meddler):
    """Write zero values as NULL; read NULL back as the field's zero value.
    """

    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        if target.value is None:
            ref.set(ref.zero())
        else:
            ref.set(target.value)

    def pre_write(self, value: Any) -> Any:
        if _is_zero(value):
            return None
        return value


def _as_datetime(raw: Any) -> datetime.datetime:
    """Coerce a scanned value into an aware datetime (naive means UTC).
    """
    if isinstance(raw, bytes):
        raw = raw.decode()
    if isinstance(raw, str):
        raw = dateutil.parser.isoparse(raw)
    if not isinstance(raw, datetime.datetime):
        raise TypeError(f'expected a datetime, got {type(raw).__name__}')
    if raw.tzinfo is None:
        raw = raw.replace(tzinfo=datetime.timezone.utc)
    return raw


def _to_utc(value: Any) -> datetime.datetime:
    if not isinstance(value, datetime.datetime):
        raise TypeError(f'expected a datetime, got {type(value).__name__}')
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


class TimeMeddler(Meddler):
    """Store datetimes in UTC and read them back in UTC or local time.

    With ``zero_is_null``, ``None`` (and ``datetime.min``) map to NULL;
    otherwise a NULL column is an error.
    """

    def __init__(self, zero_is_null: bool = False, local: bool = False) -> None:
        self.zero_is_null = zero_is_null
        self.local = local

    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        if target.value is None:
            if self.zero_is_null:
                ref.set(None)
                return
            raise ValueError('NULL value for a field that does not accept NULL')
        value = _as_datetime(target.value)
        ref.set(value.astimezone() if self.local else value.astimezone(datetime.timezone.utc))

    def pre_write(self, value: Any) -> Any:
        if value is None:
            return None
        if self.zero_is_null and value == datetime.datetime.min:
            return None
        return _to_utc(value)


class TimeTextMeddler(Meddler):
    """Store datetimes as ISO-8601 UTC text.
    """

    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        if target.value is None:
            ref.set(None)
            return
        ref.set(_as_datetime(target.value).astimezone(datetime.timezone.utc))

    def pre_write(self, value: Any) -> Any:
        if value is None:
            return None
        return _to_utc(value).isoformat(sep=' ', timespec='microseconds')


class JsonMeddler(Meddler):
    """Store values as JSON text, optionally gzip-compressed bytes.
    """

    def __init__(self, compress: bool = False) -> None:
        self.compress = compress

    def post_read(self, ref: 'FieldRef', target: Target) -> None:
        raw = target.value
        if raw is None:
            ref.set(ref.zero())
            return
        if isinstance(raw, memoryview):
            raw = raw.tobytes()
        if self.compress:
            raw = gzip.decompress(raw)
        if isinstance(raw, (str, bytes, bytearray)):
            raw = json.loads(raw)
        ref.set(raw)

    def pre_write(self, value: Any) -> Any:
        text = json.dumps(value)
        if self.compress:
            return gzip.compress(text.encode('utf-8'))
        return text


class MeddlerRegistry:
    """Mapping from meddler name to meddler instance.

    Populate before concurrent use; lookups are not synchronized with
    registration.
    """

    def __init__(self, meddlers: dict[str, Meddler] | None = None) -> None:
        self._meddlers: dict[str, Meddler] = {}
        for name, meddler in (meddlers or {}).items():
            self.register(name, meddler)

    def register(self, name: str, meddler: Meddler) -> None:
        """Register ``meddler`` under ``name``, replacing any previous entry.
        """
        if not name or name in {PK_MARKER, SKIP_MARKER} or ',' in name:
            raise ValueError(f'Invalid meddler name: {name!r}')
        if not isinstance(meddler, Meddler):
            raise TypeError(f'{name!r} is not a Meddler: {meddler!r}')
        if name in self._meddlers:
            logger.debug(f'Replacing meddler {name}')
        self._meddlers[name] = meddler

    def get(self, name: str) -> Meddler:
        try:
            return self._meddlers[name]
        except KeyError:
            raise UnknownMeddlerError(f'meddler {name} is not registered') from None

    def names(self) -> list[str]:
        return sorted(self._meddlers)

    def copy(self) -> 'MeddlerRegistry':
        return MeddlerRegistry(self._meddlers)

    def __contains__(self, name: object) -> bool:
        return name in self._meddlers

    def __len__(self) -> int:
        return len(self._meddlers)


def default_registry() -> MeddlerRegistry:
    """Build a registry holding the built-in meddlers.
    """
    return MeddlerRegistry({
        'identity': IdentityMeddler(),
        'localtime': TimeMeddler(zero_is_null=False, local=True),
        'localtimez': TimeMeddler(zero_is_null=True, local=True),
        'utctime': TimeMeddler(zero_is_null=False, local=False),
        'utctimez': TimeMeddler(zero_is_null=True, local=False),
        'utctimetext': TimeTextMeddler(),
        'zeroisnull': ZeroIsNullMeddler(),
        'json': JsonMeddler(compress=False),
        'jsongzip': JsonMeddler(compress=True),
        })


registry = default_registry()


def register(name: str, meddler: Meddler) -> None:
    """Register a meddler in the process-wide registry.
    """
    registry.register(name, meddler)
