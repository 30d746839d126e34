"""Process-local TTL cache for leaderboard intermediates."""
from __future__ import annotations

from datetime import UTC, datetime
from threading import RLock
from typing import Any, Callable

from ..models import CacheEntry


class CacheKeys:
    POOL_FACTORS = "pool_factors"
    OBLIGATION_PDAS = "obligation_pdas"


def _now_ms() -> int:
    return int(datetime.now(UTC).timestamp() * 1000)


class ServerCache:
    """Keyed cache of :class:`CacheEntry` values with per-entry TTLs.

    Entries are replaced whole on ``set``; readers never observe a partial
    value. Expired entries are evicted lazily on read.
    """

    def __init__(self, clock: Callable[[], int] | None = None) -> None:
        self._clock = clock or _now_ms
        self._entries: dict[str, CacheEntry[Any]] = {}
        self._lock = RLock()

    def get(self, key: str) -> CacheEntry[Any] | None:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if now > entry.expires_at:
                del self._entries[key]
                return None
            return entry

    def set(self, key: str, data: Any, ttl_seconds: float) -> CacheEntry[Any]:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        now = self._clock()
        entry = CacheEntry(
            data=data,
            scanned_at=now,
            expires_at=now + int(ttl_seconds * 1000),
        )
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
