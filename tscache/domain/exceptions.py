"""
Domain exceptions for the time-series cache.

Distinguishes recoverable runtime errors (upstream outages, timeouts) from
fatal ones (bad configuration) and from caller mistakes (invalid ranges),
which are rejected before the cache or the provider is touched.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


class TsCacheError(Exception):
    """Base class for all tscache exceptions."""


class RecoverableError(TsCacheError):
    """
    Errors the process recovers from without restarting.

    Examples:
    - Upstream provider temporarily unavailable
    - Upstream request timed out
    """


class FatalError(TsCacheError):
    """Errors requiring operator intervention (startup aborts)."""


class InvalidRange(TsCacheError, ValueError):
    """A range query is missing a field or its start is not before its end."""


class UpstreamFetchError(RecoverableError):
    """
    The upstream provider failed or timed out for a window.

    The original exception, when there is one, is chained as __cause__.
    """

    def __init__(
        self,
        message: str,
        symbol: Optional[str] = None,
        period: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ):
        super().__init__(message)
        self.symbol = symbol
        self.period = period
        self.start = start
        self.end = end


class ConfigurationError(FatalError):
    """Invalid service configuration."""
