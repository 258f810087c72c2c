"""Thread-safe in-memory cache storing JSON-serialised values with optional expiry."""

from __future__ import annotations

import json
import threading
import time
from datetime import timedelta
from typing import Any, Callable

__all__ = [
    "CacheMiss",
    "CacheExpired",
    "MemoryCache",
    "STATS_CACHE",
    "CACHE_KEY_OVERVIEW",
    "CACHE_KEY_DEFECT_TYPES",
    "CACHE_KEY_DEFECT_TREND",
    "CACHE_KEY_BRIDGE_RANKING",
    "CACHE_KEY_RECENT_DETECTION",
    "CACHE_KEY_HIGH_RISK_ALERT",
    "CACHE_TTL_OVERVIEW",
    "CACHE_TTL_DEFECT_TYPE",
    "CACHE_TTL_TREND",
    "CACHE_TTL_RANKING",
    "CACHE_TTL_RECENT",
    "CACHE_TTL_ALERT",
]


class CacheMiss(LookupError):
    """Raised when a key is not present in the cache."""

    def __init__(self, key: str) -> None:
        super().__init__(f"cache miss: {key}")
        self.key = key


class CacheExpired(LookupError):
    """Raised when a key is present but its time to live has passed."""

    def __init__(self, key: str) -> None:
        super().__init__(f"cache expired: {key}")
        self.key = key


def _seconds(ttl: float | timedelta) -> float:
    if isinstance(ttl, timedelta):
        return ttl.total_seconds()
    return float(ttl)


class MemoryCache:
    """In-memory key/value cache.

    Values are stored as JSON, so ``get`` always returns a fresh copy.
    A daemon thread sweeps expired entries every ``cleanup_interval`` seconds
    once the first value has been stored.
    """

    def __init__(
        self,
        *,
        cleanup_interval: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._data: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._stop = threading.Event()
        self._worker: threading.Thread | None = None

    def __enter__(self) -> MemoryCache:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, key: str) -> Any:
        """Return the value stored under ``key``.

        Raises CacheMiss if absent and CacheExpired if its expiry has passed.
        """
        with self._lock:
            try:
                payload = self._data[key]
            except KeyError:
                raise CacheMiss(key) from None
            expires = self._expires.get(key)
            if expires is not None and self._clock() > expires:
                raise CacheExpired(key)
        return json.loads(payload)

    def set(self, key: str, value: Any, ttl: float | timedelta = 0) -> None:
        """Store ``value`` under ``key``; a ``ttl`` of zero or less never expires."""
        payload = json.dumps(value, ensure_ascii=False, allow_nan=False)
        seconds = _seconds(ttl)
        with self._lock:
            self._data[key] = payload
            if seconds > 0:
                self._expires[key] = self._clock() + seconds
        self._ensure_worker()

    def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        with self._lock:
            self._data.pop(key, None)
            self._expires.pop(key, None)

    def delete_pattern(self, pattern: str) -> int:
        """Remove every key containing ``pattern`` with ``*`` stripped; return the count."""
        needle = pattern.replace("*", "")
        with self._lock:
            matched = [key for key in self._data if needle in key]
            for key in matched:
                del self._data[key]
                self._expires.pop(key, None)
        return len(matched)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._data = {}
            self._expires = {}

    def cleanup_expired(self) -> int:
        """Remove entries whose expiry has passed; return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, when in self._expires.items() if now > when]
            for key in expired:
                self._data.pop(key, None)
                del self._expires[key]
        return len(expired)

    def close(self) -> None:
        """Stop the background sweeper."""
        self._stop.set()
        worker = self._worker
        if worker is not None and worker is not threading.current_thread():
            worker.join()

    def _ensure_worker(self) -> None:
        if self._worker is not None or self._stop.is_set():
            return
        with self._lock:
            if self._worker is None:
                self._worker = threading.Thread(
                    target=self._sweep_forever, name="memory-cache-sweeper", daemon=True
                )
                self._worker.start()

    def _sweep_forever(self) -> None:
        while not self._stop.wait(self._cleanup_interval):
            self.cleanup_expired()


STATS_CACHE = MemoryCache()

CACHE_KEY_OVERVIEW = "stats:overview:{}"
CACHE_KEY_DEFECT_TYPES = "stats:defect_types:{}:{}"
CACHE_KEY_DEFECT_TREND = "stats:trend:{}:{}:{}"
CACHE_KEY_BRIDGE_RANKING = "stats:ranking:{}:{}"
CACHE_KEY_RECENT_DETECTION = "stats:recent:{}:{}"
CACHE_KEY_HIGH_RISK_ALERT = "stats:alerts:{}:{}:{}"

CACHE_TTL_OVERVIEW = timedelta(minutes=5)
CACHE_TTL_DEFECT_TYPE = timedelta(minutes=10)
CACHE_TTL_TREND = timedelta(hours=1)
CACHE_TTL_RANKING = timedelta(minutes=10)
CACHE_TTL_RECENT = timedelta(minutes=3)
CACHE_TTL_ALERT = timedelta(minutes=5)