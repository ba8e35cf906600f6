"""Application services."""

from .range_resolver import RangeResolver, fetch_window
from .snapshot_refresher import SnapshotRefresher

__all__ = ["RangeResolver", "SnapshotRefresher", "fetch_window"]
