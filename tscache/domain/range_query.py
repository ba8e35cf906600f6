"""Validated range query."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ..utils.timezone import parse_timestamp
from .cache_keys import CacheKey
from .exceptions import InvalidRange

TimestampLike = Union[str, datetime]


@dataclass(frozen=True, slots=True)
class RangeQuery:
    """A caller-supplied (symbol, period, [start, end)) request."""

    symbol: str
    period: str
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidRange(f"start ({self.start}) must be before end ({self.end})")

    @classmethod
    def create(
        cls,
        symbol: Optional[str],
        period: Optional[str],
        start: Optional[TimestampLike],
        end: Optional[TimestampLike],
    ) -> "RangeQuery":
        """
        Build a query from raw parameters.

        Timestamps may be ISO-8601 strings or datetimes; both are normalized
        to aware UTC.

        Raises:
            InvalidRange: If any field is missing, a timestamp does not
                parse, or start is not before end.
        """
        if not symbol or not period or not start or not end:
            raise InvalidRange("Symbol, period, start time, and end time are required")

        try:
            start_dt = parse_timestamp(start)
            end_dt = parse_timestamp(end)
        except ValueError as e:
            raise InvalidRange(f"Invalid timestamp: {e}") from e

        return cls(symbol=symbol, period=period, start=start_dt, end=end_dt)

    @property
    def key(self) -> CacheKey:
        return CacheKey.for_range(self.symbol, self.period, self.start, self.end)
