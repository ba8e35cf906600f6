"""Upstream provider adapters."""

from .http_timeseries_adapter import HttpTimeSeriesAdapter

__all__ = ["HttpTimeSeriesAdapter"]
