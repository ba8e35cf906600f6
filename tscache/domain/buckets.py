"""
Bucket partitioning for range queries.

A requested range [start, end) is cut into consecutive, non-overlapping
buckets of the period's duration starting at `start`. Buckets are the unit
of caching: two queries that produce the same bucket share its cache entry.

Final bucket boundary policy:
- CLAMP (default): the last bucket ends at `end`.
    partition("AAPL", "1min", t0, t0 + 150s)
        -> [t0, t0+60) [t0+60, t0+120) [t0+120, t0+150)
- OVERSHOOT: every bucket spans a full period, so the last one may extend
  past `end` by up to one period.
        -> [t0, t0+60) [t0+60, t0+120) [t0+120, t0+180)

An unrecognized period yields a single bucket equal to [start, end).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Union

from .cache_keys import CacheKey
from .exceptions import InvalidRange


class Period(Enum):
    """Known sampling granularities, valued by their wire name."""

    MIN_1 = "1min"
    MIN_5 = "5min"
    MIN_15 = "15min"
    MIN_30 = "30min"
    HOUR_1 = "1hour"
    HOUR_4 = "4hour"
    DAY_1 = "1day"

    @property
    def seconds(self) -> int:
        return _PERIOD_SECONDS[self]

    @property
    def duration(self) -> timedelta:
        return timedelta(seconds=_PERIOD_SECONDS[self])

    @classmethod
    def parse(cls, value: Union[str, "Period"]) -> Optional["Period"]:
        """Return the Period for a wire name, or None if unrecognized."""
        if isinstance(value, Period):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


_PERIOD_SECONDS = {
    Period.MIN_1: 60,
    Period.MIN_5: 5 * 60,
    Period.MIN_15: 15 * 60,
    Period.MIN_30: 30 * 60,
    Period.HOUR_1: 60 * 60,
    Period.HOUR_4: 4 * 60 * 60,
    Period.DAY_1: 24 * 60 * 60,
}


class BoundaryPolicy(Enum):
    """How the final bucket of a partition is bounded."""

    CLAMP = "clamp"
    OVERSHOOT = "overshoot"


@dataclass(frozen=True, slots=True)
class Bucket:
    """A half-open [start, end) slice of a range query."""

    symbol: str
    period: str
    start: datetime
    end: datetime

    @property
    def key(self) -> CacheKey:
        return CacheKey.for_bucket(self.symbol, self.period, self.start, self.end)

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()


def partition(
    symbol: str,
    period: Union[str, Period],
    start: datetime,
    end: datetime,
    policy: BoundaryPolicy = BoundaryPolicy.CLAMP,
) -> List[Bucket]:
    """
    Split [start, end) into ordered buckets of the period's duration.

    Args:
        symbol: Instrument symbol.
        period: Period wire name (unknown names are allowed).
        start: Range start (inclusive).
        end: Range end (exclusive).
        policy: Final bucket boundary policy.

    Returns:
        Buckets in chronological order. Empty when start == end.

    Raises:
        InvalidRange: If end is before start.
    """
    if end < start:
        raise InvalidRange(f"start ({start}) must be before end ({end})")

    period_name = period.value if isinstance(period, Period) else period
    known = Period.parse(period)

    if start == end:
        return []
    if known is None:
        return [Bucket(symbol, period_name, start, end)]

    step = known.duration
    buckets: List[Bucket] = []
    cursor = start
    while cursor < end:
        bucket_end = cursor + step
        if policy is BoundaryPolicy.CLAMP and bucket_end > end:
            bucket_end = end
        buckets.append(Bucket(symbol, period_name, cursor, bucket_end))
        cursor = bucket_end
    return buckets
