"""
Verification result cache.

This module memoizes "is this canonical locator retrievable" results with:
- TTL based freshness (lazy expiry on read, proactive sweeps on demand)
- A hard size bound with oldest-entry eviction
- Hit/miss statistics

The cache is in-memory, single-process and not durable. It is meant to be
used from one asyncio event loop, so no locking is done; concurrent writes
for the same key are last-writer-wins.
"""

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, List, Optional

from ..config import ConfigService
from .url import canonicalize

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Cached verification result for one canonical key."""

    key: str
    verified: bool
    tested_at: float
    probe_duration_ms: int = 0

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        """Check if the entry is older than the freshness window."""
        return now - self.tested_at > ttl_seconds


@dataclass
class CacheStats:
    """Snapshot of cache statistics."""

    size: int
    hits: int
    misses: int
    hit_rate_percent: float
    working_count: int
    failed_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "size": self.size,
            "hits": self.hits,
            "misses": self.misses,
            "hitRatePercent": self.hit_rate_percent,
            "workingCount": self.working_count,
            "failedCount": self.failed_count,
        }


class CacheService:
    """
    Bounded, TTL based memo of verification results.

    Entries are keyed by the canonical form of the locator. TTL and size
    limit are read from the config service on every call, so runtime
    configuration updates apply to subsequent operations.
    """

    def __init__(
        self,
        config_service: ConfigService,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize cache.

        Args:
            config_service: Source of ``cache_ttl_ms`` and ``max_cache_entries``
            clock: Function returning the current time in seconds
        """
        self.config_service = config_service
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._cleanup_task: Optional["asyncio.Task[None]"] = None

    def _ttl_seconds(self) -> float:
        return self.config_service.get_config().cache_ttl_ms / 1000.0

    def _max_entries(self) -> int:
        return self.config_service.get_config().max_cache_entries

    def _enabled(self) -> bool:
        return self.config_service.get_config().enable_cache

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, locator: str) -> bool:
        if not self._enabled():
            return False
        entry = self._entries.get(canonicalize(locator))
        return entry is not None and not entry.is_expired(self._clock(), self._ttl_seconds())

    def get(self, locator: str) -> Optional[bool]:
        """
        Look up the cached result for a locator.

        Args:
            locator: Locator (canonicalized before lookup)

        Returns:
            True/False on a hit, None on a miss, an expired entry or while
            caching is disabled
        """
        if not self._enabled():
            return None

        key = canonicalize(locator)
        entry = self._entries.get(key)

        if entry is not None and entry.is_expired(self._clock(), self._ttl_seconds()):
            del self._entries[key]
            entry = None

        if entry is None:
            self._misses += 1
            logger.debug(f"Cache miss: {key[:80]}")
            return None

        self._hits += 1
        logger.debug(f"Cache hit ({'ok' if entry.verified else 'failed'}): {key[:80]}")
        return entry.verified

    def get_entry(self, locator: str) -> Optional[CacheEntry]:
        """Return the raw entry without touching statistics or expiry."""
        return self._entries.get(canonicalize(locator))

    def set(self, locator: str, verified: bool, probe_duration_ms: int = 0) -> None:
        """
        Store a verification result.

        When inserting a new key into a full cache, the entry with the oldest
        ``tested_at`` is evicted first.

        Args:
            locator: Locator (canonicalized before storing)
            verified: Whether the resource was retrievable
            probe_duration_ms: How long the probe took
        """
        if not self._enabled():
            return

        key = canonicalize(locator)

        if key not in self._entries:
            max_entries = self._max_entries()
            while len(self._entries) >= max_entries:
                self._evict_oldest()

        self._entries[key] = CacheEntry(
            key=key,
            verified=verified,
            tested_at=self._clock(),
            probe_duration_ms=int(probe_duration_ms),
        )
        logger.debug(f"Cache stored ({'ok' if verified else 'failed'}): {key[:80]}")

    def _evict_oldest(self) -> None:
        """Remove the entry with the oldest tested_at."""
        if not self._entries:
            return
        oldest_key = min(self._entries, key=lambda k: self._entries[k].tested_at)
        del self._entries[oldest_key]
        self._evictions += 1
        logger.debug(f"Evicted oldest cache entry: {oldest_key[:80]}")

    def cleanup_expired(self) -> int:
        """
        Remove every entry past its TTL.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        ttl = self._ttl_seconds()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now, ttl)]
        for key in expired:
            del self._entries[key]

        if expired:
            logger.info(f"Removed {len(expired)} expired cache entries")
        return len(expired)

    def clear(self) -> None:
        """Clear all entries and reset statistics."""
        self._entries.clear()
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        logger.info("Verification cache cleared")

    def stats(self) -> CacheStats:
        """Get cache statistics."""
        total = self._hits + self._misses
        working = sum(1 for entry in self._entries.values() if entry.verified)
        return CacheStats(
            size=len(self._entries),
            hits=self._hits,
            misses=self._misses,
            hit_rate_percent=(self._hits / total) * 100 if total else 0.0,
            working_count=working,
            failed_count=len(self._entries) - working,
        )

    def export(self) -> List[Dict[str, Any]]:
        """Export entries for debugging, oldest first."""
        return [
            asdict(entry)
            for entry in sorted(self._entries.values(), key=lambda e: e.tested_at)
        ]

    def debug_info(self) -> Dict[str, Any]:
        """Statistics plus the limits currently in force."""
        info = self.stats().to_dict()
        info.update(
            {
                "evictions": self._evictions,
                "maxCacheEntries": self._max_entries(),
                "cacheTtlMs": self.config_service.get_config().cache_ttl_ms,
            }
        )
        return info

    def start_cleanup_task(self, interval: float = 300.0) -> "asyncio.Task[None]":
        """
        Sweep expired entries periodically on the running event loop.

        Args:
            interval: Seconds between sweeps

        Returns:
            The background task (also cancelled by ``close``)
        """
        if self._cleanup_task is None or self._cleanup_task.done():
            self._cleanup_task = asyncio.create_task(self._cleanup_loop(interval))
        return self._cleanup_task

    async def _cleanup_loop(self, interval: float) -> None:
        """Background cleanup task."""
        while True:
            await asyncio.sleep(interval)
            self.cleanup_expired()

    async def close(self) -> None:
        """Stop the background cleanup task."""
        if self._cleanup_task:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None
