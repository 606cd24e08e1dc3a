"""
In-process cache for sold-price lookups.

Entries expire 24 hours after insertion. Expiry is only checked when an
entry is read; stale entries linger until overwritten or cleared, and the
map has no size cap.
"""

import time
from dataclasses import dataclass, replace
from typing import Callable, Dict, NamedTuple, Optional

from pricing_tools.sold_stats import SoldPriceStats

CACHE_DURATION_SECONDS = 24 * 60 * 60
CACHE_DURATION_HOURS = CACHE_DURATION_SECONDS // 3600


@dataclass(frozen=True)
class CachedStats:
    record: SoldPriceStats
    inserted_at: float


class CacheStats(NamedTuple):
    total_entries: int
    valid_entries: int


class ResultCache:
    """Map of cache key -> CachedStats with lazy TTL checks."""

    def __init__(self, ttl_seconds: float = CACHE_DURATION_SECONDS, clock: Callable[[], float] = time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CachedStats] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def _is_fresh(self, entry: CachedStats, now: float) -> bool:
        return now - entry.inserted_at < self.ttl_seconds

    def get(self, key: str) -> Optional[SoldPriceStats]:
        """
        Return the cached record flagged from_cache=True, or None if the key
        is missing or older than the TTL.
        """
        entry = self._entries.get(key)
        if entry is None or not self._is_fresh(entry, self._clock()):
            return None
        return replace(entry.record, from_cache=True)

    def put(self, key: str, record: SoldPriceStats) -> None:
        self._entries[key] = CachedStats(record=replace(record, from_cache=False), inserted_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> CacheStats:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if self._is_fresh(entry, now))
        return CacheStats(total_entries=len(self._entries), valid_entries=valid)
