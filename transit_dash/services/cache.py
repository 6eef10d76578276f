"""
Cache Store

Process-wide key/value cache with a per-entry time-to-live.

Consumers depend on the CacheStore interface and receive an instance through
their constructor, so the in-memory store can be replaced by a shared cache
in a multi-process deployment and by a fresh store in tests.
"""

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from transit_dash.config import CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheKey:
    """Typed cache key: one entry per distinct (resource, params) pair"""
    resource: str
    params: Tuple[Hashable, ...] = ()

    @classmethod
    def of(cls, resource: str, *params: Hashable) -> "CacheKey":
        return cls(resource=resource, params=tuple(params))


@dataclass(frozen=True)
class CacheEntry:
    """Cached value; replaced on refresh, never mutated in place"""
    value: Any
    stored_at: float

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return now - self.stored_at >= ttl_seconds


class CacheStore(ABC):
    """Best-effort cache. A miss only ever means a re-fetch."""

    @abstractmethod
    def get(self, key: CacheKey) -> Optional[Any]:
        """Return the value, or None if absent or expired"""

    @abstractmethod
    def set(self, key: CacheKey, value: Any) -> None:
        """Store value, overwriting any existing entry"""

    @abstractmethod
    def clear(self) -> None:
        """Drop every entry"""

    def prune(self) -> int:
        """Drop expired entries; returns how many were removed"""
        return 0


class InMemoryCacheStore(CacheStore):
    """
    Dict-backed TTL cache.

    Concurrent fan-out reads may race to populate the same key; last write
    wins, which is fine because entries are snapshots of the same upstream
    data within the TTL window.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: CacheKey) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self.ttl_seconds, self._clock()):
            return None
        logger.debug(f"[Cache] Hit {key.resource} {key.params}")
        return entry.value

    def set(self, key: CacheKey, value: Any) -> None:
        entry = CacheEntry(value=value, stored_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
        logger.info("[Cache] Cleared")

    def prune(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [
                key for key, entry in self._entries.items()
                if entry.is_expired(self.ttl_seconds, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


# Singleton instance
_cache_store: Optional[CacheStore] = None


def get_cache_store() -> CacheStore:
    """Get or create the process-wide cache store"""
    global _cache_store
    if _cache_store is None:
        _cache_store = InMemoryCacheStore()
    return _cache_store
