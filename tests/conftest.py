"""Pytest configuration and fixtures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

import pytest

from tscache.domain.exceptions import UpstreamFetchError
from tscache.infrastructure.stores.ttl_cache_store import TTLCacheStore


T0 = datetime(2024, 3, 1, 14, 30, tzinfo=timezone.utc)

Window = Tuple[str, str, datetime, datetime]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    """
    In-memory TimeSeriesSource.

    Returns one record per call tagged with the requested window, records
    every call, and can be told to fail or stall for given windows.
    """

    def __init__(self) -> None:
        self.calls: List[Window] = []
        self.fail_windows: Dict[Tuple[datetime, datetime], Exception] = {}
        self.fail_all: Optional[Exception] = None
        self.delay_seconds: float = 0.0
        self.delays: Dict[Tuple[datetime, datetime], float] = {}

    @property
    def source_name(self) -> str:
        return "fake"

    @staticmethod
    def record_for(symbol: str, period: str, start: datetime, end: datetime) -> dict:
        return {"symbol": symbol, "period": period, "start": start.isoformat(), "end": end.isoformat()}

    async def fetch_records(self, symbol: str, period: str, start: datetime, end: datetime) -> List[dict]:
        self.calls.append((symbol, period, start, end))
        delay = self.delays.get((start, end), self.delay_seconds)
        if delay:
            await asyncio.sleep(delay)
        if self.fail_all is not None:
            raise self.fail_all
        error = self.fail_windows.get((start, end))
        if error is not None:
            raise error
        return [self.record_for(symbol, period, start, end)]


@pytest.fixture
def t0() -> datetime:
    return T0


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def store(fake_clock: FakeClock) -> TTLCacheStore:
    return TTLCacheStore(default_ttl_seconds=600, check_period_seconds=60, clock=fake_clock)


@pytest.fixture
def upstream_error() -> UpstreamFetchError:
    return UpstreamFetchError("provider down")


def minutes(n: float) -> timedelta:
    return timedelta(minutes=n)
