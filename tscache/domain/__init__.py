"""Domain layer: buckets, keys, queries and errors."""

from .buckets import Bucket, BoundaryPolicy, Period, partition
from .cache_keys import CURRENT_SNAPSHOT_KEY, CacheKey, KeyKind
from .exceptions import (
    ConfigurationError,
    FatalError,
    InvalidRange,
    RecoverableError,
    TsCacheError,
    UpstreamFetchError,
)
from .range_query import RangeQuery

__all__ = [
    "Bucket",
    "BoundaryPolicy",
    "Period",
    "partition",
    "CURRENT_SNAPSHOT_KEY",
    "CacheKey",
    "KeyKind",
    "ConfigurationError",
    "FatalError",
    "InvalidRange",
    "RecoverableError",
    "TsCacheError",
    "UpstreamFetchError",
    "RangeQuery",
]
