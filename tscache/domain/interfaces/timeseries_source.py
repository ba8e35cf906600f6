"""Upstream time-series source protocol."""

from __future__ import annotations
from typing import Any, Dict, List, Protocol, runtime_checkable
from datetime import datetime

# Records are opaque to the cache; the provider defines their shape.
Record = Dict[str, Any]


@runtime_checkable
class TimeSeriesSource(Protocol):
    """
    Protocol for upstream providers of time-series records.

    Implementations:
    - HttpTimeSeriesAdapter (HTTP JSON API)
    """

    @property
    def source_name(self) -> str:
        """Source identifier used in logs (e.g. 'http')."""
        ...

    async def fetch_records(
        self,
        symbol: str,
        period: str,
        start: datetime,
        end: datetime,
    ) -> List[Record]:
        """
        Fetch records for exactly the window [start, end).

        Args:
            symbol: Ticker symbol (e.g., 'AAPL').
            period: Period wire name ('1min', '1hour', ...), passed verbatim.
            start: Window start (inclusive, aware UTC).
            end: Window end (exclusive, aware UTC).

        Returns:
            Records in chronological order. Empty list if none.

        Raises:
            UpstreamFetchError: If the provider fails.
        """
        ...
