"""
Draw Cache
==========

Time-bounded in-memory cache keyed by draw number. One instance is shared by
every request in the process and handed to the loader explicitly.

Entries are never mutated after being written. Two requests missing the same
key at once may both fetch and both write; the last write wins and the
values are identical per key, so no lock is taken.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional

from loguru import logger

from src.config import DEFAULT_CACHE_TTL_SECONDS


@dataclass(frozen=True)
class CacheEntry:
    value: Any
    fetched_at: float
    ttl: float

    def is_expired(self, now: float) -> bool:
        return now - self.fetched_at >= self.ttl


class DrawCache:
    """In-process TTL cache with an injectable clock."""

    def __init__(self, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry] = {}

    def get(self, key: Hashable) -> Optional[CacheEntry]:
        """
        Return the live entry for key, or None when missing or expired.

        Expired entries are dropped on access.
        """
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            logger.debug(f"Cache entry for {key} expired")
            self._entries.pop(key, None)
            return None
        return entry

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> CacheEntry:
        entry = CacheEntry(
            value=value,
            fetched_at=self._clock(),
            ttl=self.ttl_seconds if ttl is None else ttl,
        )
        self._entries[key] = entry
        return entry

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None
