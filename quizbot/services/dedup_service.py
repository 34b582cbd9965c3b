"""Once-only admission of inbound deliveries within a short window.

The window only has to cover channel retry intervals (tens of seconds); it is not
long-term dedup. A missing delivery id is admitted (fail open) and logged.
"""

import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Optional

import redis

from quizbot.logging_config import get_logger

logger = get_logger("dedup")

DEDUP_KEY_PREFIX = "quizbot:dedup:"


class Admission(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"


class Deduplicator(ABC):
    def __init__(self, window_seconds: float):
        self.window_seconds = window_seconds

    def admit(self, delivery_id: Optional[str], window: Optional[float] = None) -> Admission:
        delivery_id = (delivery_id or "").strip()
        if not delivery_id:
            logger.warning("Inbound delivery without id admitted unchecked")
            return Admission.ACCEPTED

        window_seconds = window if window is not None else self.window_seconds
        if self._check_and_insert(delivery_id, window_seconds):
            logger.debug("Delivery admitted", extra={"context": {"delivery_id": delivery_id}})
            return Admission.ACCEPTED

        logger.info("Duplicate delivery skipped", extra={"context": {"delivery_id": delivery_id}})
        return Admission.DUPLICATE

    def release(self, delivery_id: Optional[str]) -> None:
        """Forget an admission so a redelivery of a failed message is processed again."""
        delivery_id = (delivery_id or "").strip()
        if delivery_id:
            self._forget(delivery_id)

    @abstractmethod
    def _check_and_insert(self, delivery_id: str, window_seconds: float) -> bool:
        """Atomically record delivery_id; True if it was not seen inside the window."""

    @abstractmethod
    def _forget(self, delivery_id: str) -> None:
        pass


class MemoryDeduplicator(Deduplicator):
    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        super().__init__(window_seconds)
        self._clock = clock
        self._seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def _check_and_insert(self, delivery_id: str, window_seconds: float) -> bool:
        with self._lock:
            now = self._clock()
            self._prune(now, window_seconds)
            first_seen = self._seen.get(delivery_id)
            if first_seen is not None and now - first_seen < window_seconds:
                return False
            self._seen[delivery_id] = now
            return True

    def _prune(self, now: float, window_seconds: float) -> None:
        horizon = max(window_seconds, self.window_seconds)
        expired = [key for key, seen_at in self._seen.items() if now - seen_at >= horizon]
        for key in expired:
            del self._seen[key]

    def _forget(self, delivery_id: str) -> None:
        with self._lock:
            self._seen.pop(delivery_id, None)

    def __len__(self) -> int:
        return len(self._seen)


class RedisDeduplicator(Deduplicator):
    """SET NX EX in Redis; while Redis is unreachable an in-process map takes over."""

    def __init__(self, client: "redis.Redis", window_seconds: float, fallback: Optional[MemoryDeduplicator] = None):
        super().__init__(window_seconds)
        self._client = client
        self._fallback = fallback or MemoryDeduplicator(window_seconds)

    def _check_and_insert(self, delivery_id: str, window_seconds: float) -> bool:
        key = f"{DEDUP_KEY_PREFIX}{delivery_id}"
        try:
            was_set = self._client.set(key, "1", ex=max(int(window_seconds), 1), nx=True)
        except redis.RedisError as e:
            logger.warning(
                "Dedup redis unavailable, using in-process window",
                extra={"context": {"delivery_id": delivery_id, "error": str(e)}},
            )
            return self._fallback._check_and_insert(delivery_id, window_seconds)
        return bool(was_set)

    def _forget(self, delivery_id: str) -> None:
        self._fallback._forget(delivery_id)
        try:
            self._client.delete(f"{DEDUP_KEY_PREFIX}{delivery_id}")
        except redis.RedisError as e:
            logger.warning("Dedup release failed", extra={"context": {"delivery_id": delivery_id, "error": str(e)}})


def build_deduplicator(settings) -> Deduplicator:
    if settings.dedup_backend == "redis":
        client = redis.Redis.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
        )
        return RedisDeduplicator(client, settings.dedup_window_seconds)
    return MemoryDeduplicator(settings.dedup_window_seconds)
