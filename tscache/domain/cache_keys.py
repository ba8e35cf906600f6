"""Structured cache keys."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class KeyKind(Enum):
    """Which cache slot family a key belongs to."""

    RANGE = "range"        # whole-range result, populated by the HTTP layer
    BUCKET = "bucket"      # one partitioned bucket
    SNAPSHOT = "snapshot"  # refresher's "current" slot


@dataclass(frozen=True, slots=True)
class CacheKey:
    """
    Composite cache key.

    Field-wise equality means a symbol containing "-" or ":" can never be
    confused with a different (symbol, period) split.
    """

    kind: KeyKind
    symbol: Optional[str] = None
    period: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def for_bucket(cls, symbol: str, period: str, start: datetime, end: datetime) -> "CacheKey":
        return cls(KeyKind.BUCKET, symbol, period, start, end)

    @classmethod
    def for_range(cls, symbol: str, period: str, start: datetime, end: datetime) -> "CacheKey":
        return cls(KeyKind.RANGE, symbol, period, start, end)

    def __str__(self) -> str:
        if self.kind is KeyKind.SNAPSHOT:
            return "snapshot:current"
        return f"{self.kind.value}:{self.symbol}:{self.period}:{self.start}:{self.end}"


# Well-known slot kept warm by the snapshot refresher
CURRENT_SNAPSHOT_KEY = CacheKey(KeyKind.SNAPSHOT)
