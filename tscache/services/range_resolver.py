"""
Range Resolver - serves range queries from cached buckets plus targeted
upstream fetches.

Resolution of (symbol, period, [start, end)):
1. Whole-range slot hit -> return it (populated by the caller via
   remember_range after a previous successful resolve).
2. Partition the range into buckets.
3. Probe the store for every bucket, keeping one result slot per bucket
   position.
4. Fetch all missing buckets concurrently (bounded by a semaphore and a
   per-call timeout); each bucket is written to the store as soon as its
   own fetch succeeds.
5. Concatenate slots in bucket order, so records come back chronologically
   no matter which buckets were hits.

Any failed bucket fails the whole request with UpstreamFetchError. Buckets
that did arrive stay cached.

Usage:
    resolver = RangeResolver(source=adapter, store=store)
    records = await resolver.resolve_range("AAPL", "1min", start, end)
"""

from __future__ import annotations

import asyncio
from datetime import datetime
from typing import List, Optional, Set, Tuple, Union

from ..domain.buckets import Bucket, BoundaryPolicy, partition
from ..domain.exceptions import UpstreamFetchError
from ..domain.interfaces.timeseries_source import Record, TimeSeriesSource
from ..domain.range_query import RangeQuery
from ..infrastructure.stores.ttl_cache_store import TTLCacheStore
from ..utils.logging_setup import get_logger
from ..utils.perf_logger import log_timing_async
from ..utils.trace_context import get_trace_id
from ..utils.timezone import to_iso_z

logger = get_logger(__name__)


async def fetch_window(
    source: TimeSeriesSource,
    symbol: str,
    period: str,
    start: datetime,
    end: datetime,
    timeout_seconds: Optional[float],
) -> List[Record]:
    """
    Call the provider for one window with a bounded wait.

    Every failure mode, timeouts included, surfaces as UpstreamFetchError.
    """
    try:
        records = await asyncio.wait_for(
            source.fetch_records(symbol, period, start, end),
            timeout=timeout_seconds,
        )
    except UpstreamFetchError:
        raise
    except asyncio.TimeoutError as e:
        raise UpstreamFetchError(
            f"Upstream {source.source_name} timed out after {timeout_seconds}s "
            f"for {symbol} {period} {to_iso_z(start)}..{to_iso_z(end)}",
            symbol=symbol, period=period, start=start, end=end,
        ) from e
    except Exception as e:
        raise UpstreamFetchError(
            f"Upstream {source.source_name} failed for {symbol} {period}: {e}",
            symbol=symbol, period=period, start=start, end=end,
        ) from e

    return list(records) if records is not None else []


class RangeResolver:
    """
    Merge-fetch orchestrator over a shared TTLCacheStore.

    The store is injected and shared with the snapshot refresher; the
    resolver only ever writes bucket keys.
    """

    def __init__(
        self,
        source: TimeSeriesSource,
        store: TTLCacheStore,
        timeout_seconds: Optional[float] = 10.0,
        max_concurrent_fetches: int = 4,
        boundary_policy: BoundaryPolicy = BoundaryPolicy.CLAMP,
        ttl_seconds: Optional[float] = None,
    ) -> None:
        """
        Args:
            source: Upstream provider.
            store: Shared cache store.
            timeout_seconds: Max wait per upstream call (None = unbounded).
            max_concurrent_fetches: Max upstream calls in flight across all requests.
            boundary_policy: Final bucket policy for partitioning.
            ttl_seconds: TTL for bucket and whole-range entries
                (None = the store's default).
        """
        if max_concurrent_fetches < 1:
            raise ValueError("max_concurrent_fetches must be >= 1")

        self._source = source
        self._store = store
        self._timeout = timeout_seconds
        self._policy = boundary_policy
        self._ttl = ttl_seconds
        self._semaphore = asyncio.Semaphore(max_concurrent_fetches)

        # Bucket fetches still running; they outlive cancelled requests
        self._inflight: Set[asyncio.Task] = set()

    @property
    def boundary_policy(self) -> BoundaryPolicy:
        return self._policy

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    async def resolve_range(
        self,
        symbol: str,
        period: str,
        start: Union[str, datetime],
        end: Union[str, datetime],
    ) -> List[Record]:
        """
        Resolve a range from raw parameters.

        Raises:
            InvalidRange: Before touching the cache or the provider.
            UpstreamFetchError: If any missing bucket cannot be fetched.
        """
        return await self.resolve(RangeQuery.create(symbol, period, start, end))

    async def resolve(self, query: RangeQuery) -> List[Record]:
        """Resolve a validated query. See module docstring for the steps."""
        cached = self._store.get(query.key)
        if cached is not None:
            logger.debug(f"[{get_trace_id()}] Whole-range hit: {query.symbol} {query.period}")
            return list(cached)

        async with log_timing_async("resolve_range", extra={"symbol": query.symbol, "period": query.period}) as ctx:
            buckets = partition(query.symbol, query.period, query.start, query.end, self._policy)

            slots: List[Optional[List[Record]]] = []
            pending: List[Tuple[int, Bucket]] = []
            for position, bucket in enumerate(buckets):
                payload = self._store.get(bucket.key)
                slots.append(payload)
                if payload is None:
                    pending.append((position, bucket))

            ctx["buckets"] = len(buckets)
            ctx["misses"] = len(pending)
            logger.debug(
                f"[{get_trace_id()}] {query.symbol} {query.period}: "
                f"{len(buckets) - len(pending)}/{len(buckets)} buckets cached"
            )

            if pending:
                logger.info(
                    f"[{get_trace_id()}] Fetching {len(pending)} missing buckets for "
                    f"{query.symbol} {query.period} from {self._source.source_name}"
                )
                tasks = [self._spawn_fetch(bucket) for _, bucket in pending]
                # shield: cancelling this request must not cancel shared fetches
                fetched = await asyncio.gather(*(asyncio.shield(t) for t in tasks))
                for (position, _), records in zip(pending, fetched):
                    slots[position] = records

            merged: List[Record] = []
            for payload in slots:
                merged.extend(payload)
            ctx["records"] = len(merged)

        return merged

    def remember_range(self, query: RangeQuery, records: List[Record]) -> None:
        """Populate the whole-range slot so identical queries skip partitioning."""
        self._store.set(query.key, list(records), self._ttl)

    async def aclose(self) -> None:
        """Wait for bucket fetches still in flight."""
        if self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _spawn_fetch(self, bucket: Bucket) -> asyncio.Task:
        task = asyncio.create_task(self._fetch_bucket(bucket))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _fetch_bucket(self, bucket: Bucket) -> List[Record]:
        async with self._semaphore:
            try:
                records = await fetch_window(
                    self._source, bucket.symbol, bucket.period,
                    bucket.start, bucket.end, self._timeout,
                )
            except UpstreamFetchError as e:
                logger.warning(f"[{get_trace_id()}] Bucket fetch failed: {e}")
                raise

        self._store.set(bucket.key, records, self._ttl)
        return records
