"""Utility modules."""

from .logging_setup import (
    setup_category_logging,
    shutdown_logging,
    set_log_timezone,
    get_current_timestamp,
    get_logger,
)
from .trace_context import (
    get_trace_id,
    new_trace,
    generate_trace_id,
)
from .perf_logger import (
    log_timing,
    log_timing_async,
)
from .timezone import (
    UTC,
    now_utc,
    to_utc,
    parse_timestamp,
    to_iso_z,
)

__all__ = [
    # Logging setup
    "setup_category_logging",
    "shutdown_logging",
    "set_log_timezone",
    "get_current_timestamp",
    "get_logger",
    # Trace context
    "get_trace_id",
    "new_trace",
    "generate_trace_id",
    # Performance logging
    "log_timing",
    "log_timing_async",
    # Time
    "UTC",
    "now_utc",
    "to_utc",
    "parse_timestamp",
    "to_iso_z",
]
