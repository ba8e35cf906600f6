"""
Trace context for correlating logs across a single request or refresh tick.

Provides:
- Short hex trace IDs for each inbound range query and each refresher tick
- Context propagation via contextvars (async-safe, follows asyncio tasks)

Usage:
    # At the start of a request or tick
    with new_trace() as trace_id:
        await resolver.resolve(query)

    # In any module
    from tscache.utils.trace_context import get_trace_id
    logger.info(f"[{get_trace_id()}] Fetching bucket...")
"""

from __future__ import annotations

import secrets
from contextvars import ContextVar
from contextlib import contextmanager
from typing import Optional, Generator

# Context variable for the current trace ID (async-safe)
_trace_id: ContextVar[Optional[str]] = ContextVar("trace_id", default=None)


def generate_trace_id() -> str:
    """
    Generate a new trace ID.

    Returns:
        6-character hex string (e.g., "a7f3b2").
    """
    return secrets.token_hex(3)


def get_trace_id() -> str:
    """Get the current trace ID, or "------" outside of any trace."""
    trace_id = _trace_id.get()
    return trace_id if trace_id else "------"


@contextmanager
def new_trace(trace_id: Optional[str] = None) -> Generator[str, None, None]:
    """
    Open a new trace scope.

    Args:
        trace_id: Use this ID instead of generating one (e.g. an inbound
            X-Request-ID header).

    Yields:
        The active trace ID.
    """
    token = _trace_id.set(trace_id or generate_trace_id())
    try:
        yield _trace_id.get()
    finally:
        _trace_id.reset(token)
