"""
Performance logging utilities.

Timing context managers for cycle-level operations. Every timing log
carries the current trace ID so a slow range query can be matched with
its upstream fetches.

Usage:
    with log_timing("partition"):
        buckets = partition(...)

    async with log_timing_async("resolve_range") as ctx:
        records = await resolver.resolve(query)
        ctx["records"] = len(records)

Do not wrap per-bucket cache probes; they are dictionary lookups and the
timing overhead would dominate.
"""

from __future__ import annotations

import time
import logging
from contextlib import contextmanager, asynccontextmanager
from typing import Optional, Generator, AsyncGenerator

from .trace_context import get_trace_id

_perf_logger: Optional[logging.Logger] = None


def get_perf_logger() -> logging.Logger:
    """Get or create the performance logger."""
    global _perf_logger
    if _perf_logger is None:
        _perf_logger = logging.getLogger("tscache.perf")
    return _perf_logger


def set_perf_logger(logger: logging.Logger) -> None:
    """Set the performance logger (for testing or custom configuration)."""
    global _perf_logger
    _perf_logger = logger


def _emit(
    operation: str,
    duration_ms: float,
    warn_threshold_ms: float,
    error_threshold_ms: float,
    context: dict,
) -> None:
    logger = get_perf_logger()
    trace_id = get_trace_id()
    log_data = {
        "trace": trace_id,
        "operation": operation,
        "duration_ms": round(duration_ms, 2),
        **context,
    }

    if duration_ms >= error_threshold_ms:
        logger.error(f"[{trace_id}] SLOW {operation}: {duration_ms:.1f}ms", extra={"data": log_data})
    elif duration_ms >= warn_threshold_ms:
        logger.warning(f"[{trace_id}] {operation}: {duration_ms:.1f}ms (slow)", extra={"data": log_data})
    else:
        logger.debug(f"[{trace_id}] {operation}: {duration_ms:.1f}ms", extra={"data": log_data})


@contextmanager
def log_timing(
    operation: str,
    warn_threshold_ms: float = 500.0,
    error_threshold_ms: float = 2000.0,
    extra: Optional[dict] = None,
) -> Generator[dict, None, None]:
    """
    Context manager to log operation timing.

    Args:
        operation: Name of the operation being timed.
        warn_threshold_ms: Duration above which to log as WARNING.
        error_threshold_ms: Duration above which to log as ERROR.
        extra: Additional data to include in the log.

    Yields:
        Dict that can be updated with additional context during execution.
    """
    context = extra.copy() if extra else {}
    start_time = time.perf_counter()
    try:
        yield context
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        _emit(operation, duration_ms, warn_threshold_ms, error_threshold_ms, context)


@asynccontextmanager
async def log_timing_async(
    operation: str,
    warn_threshold_ms: float = 1000.0,
    error_threshold_ms: float = 5000.0,
    extra: Optional[dict] = None,
) -> AsyncGenerator[dict, None]:
    """
    Async context manager to log operation timing.

    Same as log_timing but for awaited operations; thresholds default to
    upstream-fetch latencies.
    """
    context = extra.copy() if extra else {}
    start_time = time.perf_counter()
    try:
        yield context
    finally:
        duration_ms = (time.perf_counter() - start_time) * 1000
        _emit(operation, duration_ms, warn_threshold_ms, error_threshold_ms, context)
