"""Domain interfaces."""

from .timeseries_source import Record, TimeSeriesSource

__all__ = ["Record", "TimeSeriesSource"]
