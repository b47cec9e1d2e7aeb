"""Classification of storage errors into engine error kinds.

Driver errors are classified by SQLSTATE where the driver provides one
(PostgreSQL) and by message text otherwise (SQLite). The raw details are
logged here and never copied into the returned error's message.
"""

from collections.abc import Callable

from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from entitystore.core.exceptions import (
    ConflictError,
    ConnectionFailureError,
    ConstraintViolationError,
    EntityStoreError,
    ReferentialViolationError,
    UnexpectedError,
)
from entitystore.core.logging import get_logger

logger = get_logger(__name__)

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
SERIALIZATION_FAILURE = "40001"
DEADLOCK_DETECTED = "40P01"

_SQLITE_CONFLICT_MARKERS = ("database is locked", "database table is locked")
_SQLITE_CONNECTION_MARKERS = ("unable to open database", "disk i/o error")


def get_sqlstate(exc: DBAPIError) -> str | None:
    """Extract the SQLSTATE code from a wrapped driver error, if any."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if isinstance(code, str) and code:
            return code
    return None


def _classify_sqlstate(
    code: str, on_unique: Callable[[], EntityStoreError]
) -> EntityStoreError | None:
    if code.startswith("08"):
        return ConnectionFailureError()
    if code in (SERIALIZATION_FAILURE, DEADLOCK_DETECTED):
        return ConflictError()
    if code == UNIQUE_VIOLATION:
        return on_unique()
    if code == FOREIGN_KEY_VIOLATION:
        return ReferentialViolationError()
    if code.startswith("23"):
        return ConstraintViolationError()
    return None


def _classify_message(
    message: str, on_unique: Callable[[], EntityStoreError]
) -> EntityStoreError | None:
    text = message.lower()
    if "unique constraint failed" in text or "duplicate key" in text:
        return on_unique()
    if "foreign key constraint" in text:
        return ReferentialViolationError()
    if any(marker in text for marker in _SQLITE_CONFLICT_MARKERS):
        return ConflictError()
    if any(marker in text for marker in _SQLITE_CONNECTION_MARKERS):
        return ConnectionFailureError()
    if "constraint failed" in text:
        return ConstraintViolationError()
    return None


def classify_database_error(
    exc: Exception,
    operation: str,
    on_unique: Callable[[], EntityStoreError] = ConstraintViolationError,
) -> EntityStoreError:
    """Map a storage exception to an engine error kind.

    Args:
        exc: The exception raised by SQLAlchemy or the driver.
        operation: Name of the failing operation, for the log entry.
        on_unique: Factory for the error used on unique violations.

    Returns:
        The classified error (retryable or not).
    """
    if isinstance(exc, EntityStoreError):
        return exc

    error: EntityStoreError | None = None
    sqlstate: str | None = None

    if isinstance(exc, StaleDataError):
        error = ConflictError(
            "The entity was modified by another operation. Please reload and try again."
        )
    elif isinstance(exc, DBAPIError):
        sqlstate = get_sqlstate(exc)
        if exc.connection_invalidated:
            error = ConnectionFailureError()
        elif sqlstate:
            error = _classify_sqlstate(sqlstate, on_unique)
        if error is None:
            error = _classify_message(str(exc.orig), on_unique)
    elif isinstance(exc, (ConnectionError, OSError)):
        error = ConnectionFailureError()

    if error is None:
        error = UnexpectedError()

    log = logger.warning if error.retryable else logger.error
    log(
        "Storage operation failed",
        operation=operation,
        error_kind=error.code,
        retryable=error.retryable,
        sqlstate=sqlstate,
        error_type=type(exc).__name__,
        error=str(exc),
    )
    return error


STORAGE_ERRORS = (SQLAlchemyError, ConnectionError, OSError)
