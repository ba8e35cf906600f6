"""
Tests for SnapshotRefresher.

Verifies:
- A tick fetches the trailing window and fills the snapshot slot
- Failed ticks are contained and keep the previous snapshot
- Loop keeps ticking after failures
- Interval alignment
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from tscache.domain.cache_keys import CURRENT_SNAPSHOT_KEY
from tscache.services.snapshot_refresher import SnapshotRefresher


NOW = datetime(2024, 3, 1, 14, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def refresher(fake_source, store):
    return SnapshotRefresher(
        source=fake_source,
        store=store,
        symbol="AAPL",
        period="1min",
        interval_seconds=60,
        window_seconds=60,
        clock=lambda: NOW,
    )


class TestTick:

    @pytest.mark.asyncio
    async def test_tick_fetches_trailing_window(self, refresher, fake_source):
        assert await refresher.tick() is True

        assert fake_source.calls == [("AAPL", "1min", NOW - timedelta(seconds=60), NOW)]

    @pytest.mark.asyncio
    async def test_tick_sets_snapshot_slot(self, refresher, fake_source, store):
        await refresher.tick()

        assert store.get(CURRENT_SNAPSHOT_KEY) == [
            fake_source.record_for("AAPL", "1min", NOW - timedelta(seconds=60), NOW)
        ]

    @pytest.mark.asyncio
    async def test_failed_tick_without_previous_value(self, refresher, fake_source, store, upstream_error):
        fake_source.fail_all = upstream_error

        assert await refresher.tick() is False
        assert store.get(CURRENT_SNAPSHOT_KEY) is None
        assert refresher.failure_count == 1

    @pytest.mark.asyncio
    async def test_failed_tick_keeps_previous_value(self, refresher, fake_source, store, upstream_error):
        await refresher.tick()
        previous = store.get(CURRENT_SNAPSHOT_KEY)

        fake_source.fail_all = upstream_error
        assert await refresher.tick() is False

        assert store.get(CURRENT_SNAPSHOT_KEY) == previous
        assert refresher.status()["last_error"] == "provider down"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_contained(self, refresher, fake_source):
        fake_source.fail_all = RuntimeError("boom")

        assert await refresher.tick() is False

    @pytest.mark.asyncio
    async def test_timeout_is_contained(self, fake_source, store):
        fake_source.delay_seconds = 1.0
        refresher = SnapshotRefresher(fake_source, store, timeout_seconds=0.01, clock=lambda: NOW)

        assert await refresher.tick() is False
        assert store.get(CURRENT_SNAPSHOT_KEY) is None

    @pytest.mark.asyncio
    async def test_does_not_touch_bucket_keys(self, refresher, store):
        await refresher.tick()

        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_status_after_success(self, refresher):
        await refresher.tick()
        status = refresher.status()

        assert status["ticks"] == 1
        assert status["failures"] == 0
        assert status["last_success"] == NOW.isoformat()


class TestLoop:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, refresher):
        await refresher.start()
        assert refresher.is_running is True

        await refresher.stop()
        assert refresher.is_running is False

    @pytest.mark.asyncio
    async def test_loop_continues_after_failures(self, fake_source, store, upstream_error):
        fake_source.fail_all = upstream_error
        refresher = SnapshotRefresher(
            fake_source, store, interval_seconds=0.01, align_to_interval=False, clock=lambda: NOW
        )

        await refresher.start()
        try:
            await asyncio.sleep(0.1)
        finally:
            await refresher.stop()

        assert refresher.tick_count >= 2
        assert refresher.failure_count >= refresher.tick_count - 1

    @pytest.mark.asyncio
    async def test_loop_recovers_when_provider_returns(self, fake_source, store, upstream_error):
        fake_source.fail_all = upstream_error
        refresher = SnapshotRefresher(
            fake_source, store, interval_seconds=0.01, align_to_interval=False, clock=lambda: NOW
        )

        await refresher.start()
        try:
            await asyncio.sleep(0.05)
            fake_source.fail_all = None
            await asyncio.sleep(0.05)
        finally:
            await refresher.stop()

        assert store.get(CURRENT_SNAPSHOT_KEY) is not None


class TestScheduling:

    def test_aligned_sleep_reaches_next_minute(self, fake_source, store):
        refresher = SnapshotRefresher(
            fake_source, store, interval_seconds=60,
            clock=lambda: datetime(2024, 3, 1, 14, 30, 15, tzinfo=timezone.utc),
        )

        assert refresher._seconds_until_next_tick() == pytest.approx(45)

    def test_aligned_on_boundary_waits_full_interval(self, refresher):
        assert refresher._seconds_until_next_tick() == pytest.approx(60)

    def test_early_wakeup_does_not_tick_twice(self, fake_source, store):
        now = [datetime(2024, 3, 1, 14, 30, 15, tzinfo=timezone.utc)]
        refresher = SnapshotRefresher(fake_source, store, interval_seconds=60, clock=lambda: now[0])

        assert refresher._seconds_until_next_tick() == pytest.approx(45)

        # timer fires a millisecond short of 14:31:00
        now[0] = datetime(2024, 3, 1, 14, 30, 59, 999000, tzinfo=timezone.utc)
        assert refresher._seconds_until_next_tick() == pytest.approx(60.001)

    def test_late_wakeup_targets_following_boundary(self, fake_source, store):
        now = [datetime(2024, 3, 1, 14, 30, 15, tzinfo=timezone.utc)]
        refresher = SnapshotRefresher(fake_source, store, interval_seconds=60, clock=lambda: now[0])
        refresher._seconds_until_next_tick()

        now[0] = datetime(2024, 3, 1, 14, 31, 0, 5000, tzinfo=timezone.utc)
        assert refresher._seconds_until_next_tick() == pytest.approx(59.995)

        # a stalled loop skips the missed boundary instead of firing immediately
        now[0] = datetime(2024, 3, 1, 14, 33, 10, tzinfo=timezone.utc)
        assert refresher._seconds_until_next_tick() == pytest.approx(50)

    def test_unaligned_sleep_is_interval(self, fake_source, store):
        refresher = SnapshotRefresher(fake_source, store, interval_seconds=30, align_to_interval=False)

        assert refresher._seconds_until_next_tick() == 30

    @pytest.mark.parametrize("field", ["interval_seconds", "window_seconds"])
    def test_rejects_non_positive_intervals(self, fake_source, store, field):
        with pytest.raises(ValueError):
            SnapshotRefresher(fake_source, store, **{field: 0})
