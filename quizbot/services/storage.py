from contextlib import contextmanager
from typing import Callable, Iterator, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from quizbot.logging_config import get_logger
from quizbot.services.errors import ConcurrentModification, DependencyTimeout, StorageUnavailable
from quizbot.services.result import Lookup

logger = get_logger("storage")

T = TypeVar("T")

_TIMEOUT_MARKERS = ("timeout", "timed out", "statement_timeout", "canceling statement", "database is locked")


def _is_timeout(exc: BaseException) -> bool:
    message = str(exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


@contextmanager
def storage_guard(operation: str) -> Iterator[None]:
    """Translate SQLAlchemy errors raised by a write into the domain taxonomy."""
    try:
        yield
    except (IntegrityError, StaleDataError) as e:
        logger.warning(
            "Concurrent modification detected",
            extra={"context": {"operation": operation, "error": str(e)}},
        )
        raise ConcurrentModification(f"{operation}: {e}") from e
    except OperationalError as e:
        if _is_timeout(e):
            logger.error("Storage timeout", extra={"context": {"operation": operation, "error": str(e)}})
            raise DependencyTimeout(f"{operation} timed out") from e
        logger.error("Storage unavailable", extra={"context": {"operation": operation, "error": str(e)}})
        raise StorageUnavailable(f"{operation} failed: {e}") from e
    except SQLAlchemyError as e:
        logger.error("Storage error", extra={"context": {"operation": operation, "error": str(e)}})
        raise StorageUnavailable(f"{operation} failed: {e}") from e


def read(operation: str, query: Callable[[], T | None]) -> Lookup[T]:
    """Run a read and report Found / NotFound / Failure instead of a bare Optional."""
    try:
        value = query()
    except SQLAlchemyError as e:
        code = DependencyTimeout.code if _is_timeout(e) else StorageUnavailable.code
        logger.error(
            "Storage read failed",
            extra={"context": {"operation": operation, "error": str(e), "code": code}},
        )
        return Lookup.failure(f"{operation}: {e}", code)
    if value is None:
        return Lookup.not_found()
    return Lookup.found(value)
