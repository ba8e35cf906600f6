"""Service wiring: builds the store, provider, resolver, refresher and app from config."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from fastapi import FastAPI

from config.models import AppConfig

from .api.server import create_app
from .domain.buckets import BoundaryPolicy
from .domain.interfaces.timeseries_source import TimeSeriesSource
from .infrastructure.adapters.http_timeseries_adapter import HttpTimeSeriesAdapter
from .infrastructure.stores.ttl_cache_store import TTLCacheStore
from .services.range_resolver import RangeResolver
from .services.snapshot_refresher import SnapshotRefresher
from .utils.logging_setup import get_logger

logger = get_logger(__name__)


@dataclass
class Services:
    """Process-wide service graph. The store is shared by resolver and refresher."""
    store: TTLCacheStore
    source: TimeSeriesSource
    resolver: RangeResolver
    refresher: Optional[SnapshotRefresher]
    app: FastAPI


def build_services(config: AppConfig, source: Optional[TimeSeriesSource] = None) -> Services:
    """
    Construct every component from configuration.

    Args:
        config: Loaded application config.
        source: Provider override (tests); defaults to the HTTP adapter.
    """
    store = TTLCacheStore(
        default_ttl_seconds=config.cache.ttl_seconds,
        check_period_seconds=config.cache.check_period_seconds,
    )

    # injected providers are closed by their owner
    shutdown_hooks: List[Callable[[], None]] = []
    if source is None:
        adapter = HttpTimeSeriesAdapter(
            base_url=config.upstream.base_url,
            timeout_seconds=config.upstream.timeout_seconds,
        )
        shutdown_hooks.append(adapter.close)
        source = adapter

    resolver = RangeResolver(
        source=source,
        store=store,
        timeout_seconds=config.upstream.timeout_seconds,
        max_concurrent_fetches=config.upstream.max_concurrent_fetches,
        boundary_policy=BoundaryPolicy(config.cache.boundary_policy),
    )

    refresher: Optional[SnapshotRefresher] = None
    if config.refresher.enabled:
        refresher = SnapshotRefresher(
            source=source,
            store=store,
            symbol=config.refresher.symbol,
            period=config.refresher.period,
            interval_seconds=config.refresher.interval_seconds,
            window_seconds=config.refresher.window_seconds,
            timeout_seconds=config.upstream.timeout_seconds,
            align_to_interval=config.refresher.align_to_interval,
        )
    else:
        logger.info("Snapshot refresher disabled by config")

    app = create_app(
        resolver=resolver, store=store, refresher=refresher, shutdown_hooks=shutdown_hooks,
    )
    return Services(store=store, source=source, resolver=resolver, refresher=refresher, app=app)
