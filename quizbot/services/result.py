from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from quizbot.services.errors import DependencyTimeout, StorageUnavailable

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    ok: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def success(value: T) -> "Result[T]":
        return Result(ok=True, value=value)

    @staticmethod
    def failure(error: str, code: str = "unknown") -> "Result[T]":
        return Result(ok=False, error=error, error_code=code)


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    FAILURE = "failure"


@dataclass
class Lookup(Generic[T]):
    """Outcome of a storage read: found, not found, or failed to ask."""

    status: LookupStatus
    value: Optional[T] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None

    @staticmethod
    def found(value: T) -> "Lookup[T]":
        return Lookup(status=LookupStatus.FOUND, value=value)

    @staticmethod
    def not_found() -> "Lookup[T]":
        return Lookup(status=LookupStatus.NOT_FOUND)

    @staticmethod
    def failure(reason: str, code: str = "storage_unavailable") -> "Lookup[T]":
        return Lookup(status=LookupStatus.FAILURE, reason=reason, error_code=code)

    @property
    def is_found(self) -> bool:
        return self.status == LookupStatus.FOUND

    @property
    def is_not_found(self) -> bool:
        return self.status == LookupStatus.NOT_FOUND

    @property
    def is_failure(self) -> bool:
        return self.status == LookupStatus.FAILURE

    def require(self) -> Optional[T]:
        """Value if found, None if not found; raises if the read itself failed."""
        if self.is_failure:
            if self.error_code == DependencyTimeout.code:
                raise DependencyTimeout(self.reason or "storage read timed out")
            raise StorageUnavailable(self.reason or "storage read failed")
        return self.value
