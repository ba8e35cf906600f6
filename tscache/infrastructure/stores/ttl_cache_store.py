"""
In-memory key/value store with independent per-key TTL.

Expiry is enforced two ways:
- lazily: every read checks the entry's deadline, so an expired key is
  indistinguishable from one that was never set
- actively: a sweep task started with start() purges expired entries every
  check_period_seconds so their payloads are released even if never read

All operations are synchronous and complete without awaiting, which makes
each of them atomic with respect to other coroutines on the event loop.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

from ...utils.logging_setup import get_logger

logger = get_logger(__name__)

# (value, expires_at) where expires_at is None for entries that never expire
_Entry = Tuple[Any, Optional[float]]


@dataclass
class CacheStats:
    """Counters for health reporting."""

    hits: int = 0
    misses: int = 0
    sets: int = 0
    expirations: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "expirations": self.expirations,
        }


class TTLCacheStore:
    """Process-wide cache with per-key TTL and a periodic expiry sweep."""

    def __init__(
        self,
        default_ttl_seconds: float = 600,
        check_period_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Args:
            default_ttl_seconds: TTL used when set() is called without one.
                0 or less means entries never expire.
            check_period_seconds: Interval between active sweeps.
            clock: Monotonic seconds source; injectable for tests.
        """
        if check_period_seconds <= 0:
            raise ValueError("check_period_seconds must be positive")

        self._default_ttl = default_ttl_seconds
        self._check_period = check_period_seconds
        self._clock = clock
        self._entries: Dict[Hashable, _Entry] = {}
        self._stats = CacheStats()

        self._running = False
        self._task: Optional[asyncio.Task] = None

    @property
    def default_ttl_seconds(self) -> float:
        return self._default_ttl

    @property
    def stats(self) -> CacheStats:
        return self._stats

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and self._clock() >= expires_at

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the value for key, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            self._stats.misses += 1
            return None

        value, expires_at = entry
        if self._is_expired(expires_at):
            del self._entries[key]
            self._stats.expirations += 1
            self._stats.misses += 1
            return None

        self._stats.hits += 1
        return value

    def has(self, key: Hashable) -> bool:
        """True if key holds a live entry. Does not touch hit/miss counters."""
        entry = self._entries.get(key)
        return entry is not None and not self._is_expired(entry[1])

    def set(self, key: Hashable, value: Any, ttl: Optional[float] = None) -> None:
        """
        Store value under key, replacing any previous entry and its deadline.

        Args:
            key: Hashable key.
            value: Payload.
            ttl: Seconds until expiry; None uses the default, 0 or less never expires.
        """
        ttl_seconds = self._default_ttl if ttl is None else ttl
        expires_at = self._clock() + ttl_seconds if ttl_seconds > 0 else None
        self._entries[key] = (value, expires_at)
        self._stats.sets += 1

    def delete(self, key: Hashable) -> bool:
        """Remove key. Returns True if an entry was removed."""
        return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [
            key for key, (_, expires_at) in self._entries.items()
            if expires_at is not None and now >= expires_at
        ]
        for key in expired:
            del self._entries[key]
        self._stats.expirations += len(expired)
        return len(expired)

    # -------------------------------------------------------------------------
    # Active sweep
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the periodic expiry sweep."""
        if self._running:
            logger.warning("Cache sweep already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._sweep_loop())
        logger.info(f"Cache sweep started (every {self._check_period}s)")

    async def stop(self) -> None:
        """Stop the periodic expiry sweep."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Cache sweep stopped")

    async def _sweep_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._check_period)
            try:
                removed = self.purge_expired()
                if removed:
                    logger.debug(f"Cache sweep removed {removed} expired entries ({len(self)} remain)")
            except Exception as e:
                logger.error(f"Cache sweep error: {e}", exc_info=True)
