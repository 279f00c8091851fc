"""
Meddler exception classes.
"""
import sqlite3

import psycopg


class MeddlerError(Exception):
    """Base class for all meddler errors.
    """


class ConfigurationError(MeddlerError):
    """Record shape cannot be mapped to a table row.
    """


class UnknownMeddlerError(ConfigurationError):
    """Field tag names a meddler that is not registered.
    """


class NoSuchRowError(MeddlerError):
    """Query produced no result row.

    Expected outcome for lookups; never wrapped and never logged as a failure.
    """


class ShapeMismatchError(MeddlerError):
    """Destination or scan targets do not fit the result set.
    """


class PreconditionError(MeddlerError):
    """Record state does not allow the requested statement.
    """


class PipelineError(MeddlerError):
    """A meddler failed while converting the value of one column.
    """

    def __init__(self, msg: str, column: str) -> None:
        super().__init__(msg)
        self.column = column


class ExecutorError(MeddlerError):
    """Failure reported by the executor (driver) boundary.

    The underlying driver exception is kept on ``cause``.
    """

    def __init__(self, msg: str, cause: BaseException) -> None:
        super().__init__(f'{msg}: {cause}')
        self.msg = msg
        self.cause = cause


class GeneratedKeyError(ExecutorError):
    """Executor could not report the generated primary key of an insert.
    """


def driver_err(err: BaseException) -> tuple[BaseException, bool]:
    """Return the underlying driver error behind ``err``.

    >>> cause = ValueError('boom')
    >>> driver_err(ExecutorError('meddler.load: DB error in query', cause)) == (cause, True)
    True
    >>> err = PreconditionError('nope')
    >>> driver_err(err) == (err, False)
    True
    """
    if isinstance(err, ExecutorError):
        return err.cause, True
    return err, False


DriverError = (
    psycopg.Error,
    sqlite3.Error,
    ExecutorError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )
