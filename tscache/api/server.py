"""
HTTP boundary for range queries.

Endpoints:
- GET /timeseries?symbol=&period=&start=&end=   merged records (JSON array)
- GET /timeseries/current                        refresher's snapshot slot
- GET /health                                    refresher + cache status

Status codes for /timeseries:
- 400 when a parameter is missing or the range is invalid
- 200 with the merged records on success
- 500 when the upstream provider fails

After a successful resolve the endpoint fills the whole-range cache slot,
so an identical query is answered without partitioning.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Optional, Sequence

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from ..domain.cache_keys import CURRENT_SNAPSHOT_KEY
from ..domain.exceptions import InvalidRange, UpstreamFetchError
from ..domain.range_query import RangeQuery
from ..infrastructure.stores.ttl_cache_store import TTLCacheStore
from ..services.range_resolver import RangeResolver
from ..services.snapshot_refresher import SnapshotRefresher
from ..utils.logging_setup import get_logger
from ..utils.trace_context import new_trace

logger = get_logger(__name__)

UPSTREAM_ERROR_MESSAGE = "Failed to fetch data from external API"


def create_app(
    resolver: RangeResolver,
    store: TTLCacheStore,
    refresher: Optional[SnapshotRefresher] = None,
    shutdown_hooks: Sequence[Callable[[], None]] = (),
) -> FastAPI:
    """
    Build the FastAPI application around already-constructed services.

    The app lifespan owns background work: the store's expiry sweep and the
    snapshot refresher start on startup and stop on shutdown. shutdown_hooks
    run last, after in-flight fetches have finished.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await store.start()
        if refresher is not None:
            await refresher.start()
        logger.info("tscache API ready")
        try:
            yield
        finally:
            if refresher is not None:
                await refresher.stop()
            await store.stop()
            await resolver.aclose()
            for hook in shutdown_hooks:
                hook()
            logger.info("tscache API shut down")

    app = FastAPI(
        title="tscache",
        description="Cached range queries over an upstream time-series provider.",
        lifespan=lifespan,
    )

    @app.get("/timeseries")
    async def get_timeseries(
        request: Request,
        symbol: Optional[str] = Query(None),
        period: Optional[str] = Query(None),
        start: Optional[str] = Query(None),
        end: Optional[str] = Query(None),
    ):
        with new_trace(request.headers.get("x-request-id")) as trace_id:
            try:
                query = RangeQuery.create(symbol, period, start, end)
            except InvalidRange as e:
                logger.debug(f"[{trace_id}] Rejected range query: {e}")
                return JSONResponse(status_code=400, content={"error": str(e)})

            try:
                records = await resolver.resolve(query)
            except UpstreamFetchError as e:
                logger.error(f"[{trace_id}] Error: {e}")
                return JSONResponse(status_code=500, content={"error": UPSTREAM_ERROR_MESSAGE})

            resolver.remember_range(query, records)
            return records

    @app.get("/timeseries/current")
    async def get_current_snapshot():
        snapshot = store.get(CURRENT_SNAPSHOT_KEY)
        if snapshot is None:
            return JSONResponse(status_code=404, content={"error": "No current snapshot available"})
        return snapshot

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "cache": {"entries": len(store), **store.stats.as_dict()},
            "refresher": refresher.status() if refresher is not None else None,
            "inflight_fetches": resolver.inflight_count,
        }

    return app
