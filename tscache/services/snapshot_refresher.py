"""
Snapshot Refresher - keeps the "current" cache slot warm.

On a fixed cadence, fetches the trailing window (default: last 60 seconds)
for a default symbol/period and overwrites CURRENT_SNAPSHOT_KEY in the
shared store. It does not go through bucket partitioning, so it never
contends with range-query bucket keys.

A failed tick is logged and skipped; the slot keeps its previous value and
the next tick runs on schedule. There is no retry inside a tick.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from ..domain.cache_keys import CURRENT_SNAPSHOT_KEY
from ..domain.exceptions import UpstreamFetchError
from ..domain.interfaces.timeseries_source import TimeSeriesSource
from ..infrastructure.stores.ttl_cache_store import TTLCacheStore
from ..utils.logging_setup import get_logger
from ..utils.trace_context import new_trace
from ..utils.timezone import now_utc
from .range_resolver import fetch_window

logger = get_logger(__name__)


class SnapshotRefresher:
    """Repeating timer that refreshes the current snapshot slot."""

    def __init__(
        self,
        source: TimeSeriesSource,
        store: TTLCacheStore,
        symbol: str = "AAPL",
        period: str = "1min",
        interval_seconds: float = 60,
        window_seconds: float = 60,
        timeout_seconds: Optional[float] = 10.0,
        ttl_seconds: Optional[float] = None,
        align_to_interval: bool = True,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        """
        Args:
            source: Upstream provider.
            store: Shared cache store.
            symbol: Symbol to keep warm.
            period: Period to request.
            interval_seconds: Seconds between ticks.
            window_seconds: Length of the trailing window fetched per tick.
            timeout_seconds: Max wait per upstream call.
            ttl_seconds: TTL for the snapshot slot (None = store default).
            align_to_interval: Fire on wall-clock multiples of the interval
                (second 0 of every minute by default) instead of sleeping a
                fixed interval from start.
            clock: Source of aware UTC "now".
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._source = source
        self._store = store
        self._symbol = symbol
        self._period = period
        self._interval = interval_seconds
        self._window = timedelta(seconds=window_seconds)
        self._timeout = timeout_seconds
        self._ttl = ttl_seconds
        self._align = align_to_interval
        self._clock = clock

        self._running = False
        self._task: Optional[asyncio.Task] = None
        # epoch seconds of the boundary the loop last slept towards
        self._next_boundary: Optional[float] = None

        self._tick_count = 0
        self._failure_count = 0
        self._last_success: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def failure_count(self) -> int:
        return self._failure_count

    def status(self) -> Dict[str, Any]:
        """Health summary."""
        return {
            "running": self._running,
            "symbol": self._symbol,
            "period": self._period,
            "ticks": self._tick_count,
            "failures": self._failure_count,
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_error": self._last_error,
        }

    async def start(self) -> None:
        """Start the refresh loop."""
        if self._running:
            logger.warning("Snapshot refresher already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            f"Snapshot refresher started: {self._symbol} {self._period} every {self._interval}s"
        )

    async def stop(self) -> None:
        """Stop the refresh loop."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        self._next_boundary = None
        logger.info("Snapshot refresher stopped")

    async def _run_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self._seconds_until_next_tick())
            await self.tick()

    def _seconds_until_next_tick(self) -> float:
        """
        Seconds to sleep before the next tick.

        asyncio.sleep runs on the monotonic clock, so a wake-up can land just
        before the wall-clock boundary it was aiming for. The next target is
        therefore never earlier than one interval past the previous one.
        """
        if not self._align:
            return self._interval
        epoch_seconds = self._clock().timestamp()
        boundary = epoch_seconds - (epoch_seconds % self._interval) + self._interval
        if self._next_boundary is not None and boundary <= self._next_boundary:
            boundary = self._next_boundary + self._interval
        self._next_boundary = boundary
        return boundary - epoch_seconds

    async def tick(self) -> bool:
        """
        Run one refresh.

        Returns:
            True if the slot was updated, False if the tick failed.
        """
        with new_trace() as trace_id:
            self._tick_count += 1
            end = self._clock()
            start = end - self._window

            try:
                records = await fetch_window(
                    self._source, self._symbol, self._period, start, end, self._timeout
                )
            except UpstreamFetchError as e:
                self._failure_count += 1
                self._last_error = str(e)
                logger.error(f"[{trace_id}] Error refreshing snapshot: {e}")
                return False
            except Exception as e:
                self._failure_count += 1
                self._last_error = str(e)
                logger.error(f"[{trace_id}] Unexpected error refreshing snapshot: {e}", exc_info=True)
                return False

            self._store.set(CURRENT_SNAPSHOT_KEY, records, self._ttl)
            self._last_success = end
            self._last_error = None
            logger.debug(f"[{trace_id}] Snapshot refreshed: {len(records)} records for {self._symbol}")
            return True
