import threading
from contextlib import contextmanager
from typing import Iterator

from quizbot.logging_config import get_logger
from quizbot.services.errors import DependencyTimeout

logger = get_logger("locks")


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class ParticipantLocks:
    """One mutex per participant key; entries are dropped once nobody holds or waits."""

    def __init__(self):
        self._entries: dict[str, _Entry] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, key: str, timeout: float) -> Iterator[None]:
        with self._guard:
            entry = self._entries.setdefault(key, _Entry())
            entry.users += 1

        acquired = entry.lock.acquire(timeout=timeout)
        try:
            if not acquired:
                logger.warning("Participant lock timeout", extra={"context": {"key": key, "timeout": timeout}})
                raise DependencyTimeout(f"Participant {key} is busy")
            try:
                yield
            finally:
                entry.lock.release()
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0 and self._entries.get(key) is entry:
                    del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)
