"""
Logging setup with categories, per-run log files and trace ID support.

Provides:
- 4 log categories: system, adapter, data, perf
- Automatic module -> category routing
- Trace ID correlation in all logs
- Non-blocking file logging (QueueHandler -> QueueListener -> FileHandler)
- Console output with colors
- JSON formatting for files
- Configurable timezone for log timestamps

Categories:
- system: Startup, shutdown, config, HTTP boundary, refresher lifecycle
- adapter: Upstream provider calls, timeouts, HTTP errors
- data: Cache store, range resolution, snapshot refresh results
- perf: Timing and latency diagnostics
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
import os
import re
import json
from queue import Queue
from pathlib import Path
from typing import Optional, Dict, List
from datetime import datetime
from zoneinfo import ZoneInfo

from .trace_context import get_trace_id

# =============================================================================
# GLOBAL STATE
# =============================================================================

# Run number for this session (determined at first setup)
_session_run_number: Optional[int] = None

# Timezone for log timestamps (None = local time)
_log_timezone: Optional[ZoneInfo] = None

# Configured category loggers
_category_loggers: Dict[str, logging.Logger] = {}

# Queue listeners for async file logging (one per category)
_queue_listeners: List[logging.handlers.QueueListener] = []

# =============================================================================
# LOG CATEGORIES AND ROUTING
# =============================================================================

LOGGER_PREFIX = "tscache"

CATEGORIES = ["system", "adapter", "data", "perf"]

CATEGORY_SUFFIXES = {
    "system": "sys",
    "adapter": "adp",
    "data": "dat",
    "perf": "prf",
}

# Module path -> category routing
# More specific paths should come first
MODULE_ROUTING: List[tuple[str, str]] = [
    ("tscache.infrastructure.adapters", "adapter"),
    ("tscache.infrastructure.stores", "data"),
    ("tscache.services.range_resolver", "data"),
    ("tscache.services.snapshot_refresher", "data"),
    ("tscache.domain", "data"),
    ("tscache.api", "system"),
    ("config", "system"),
    ("tscache", "system"),
]


def get_category_for_module(module_name: str) -> str:
    """
    Determine the log category for a given module name.

    Args:
        module_name: Full module path (e.g., "tscache.infrastructure.stores.ttl_cache_store").

    Returns:
        Category name (system, adapter, data, or perf).
    """
    for prefix, category in MODULE_ROUTING:
        if module_name.startswith(prefix):
            return category
    return "system"


# =============================================================================
# TIMEZONE SUPPORT
# =============================================================================

def set_log_timezone(tz: Optional[str] = None) -> None:
    """
    Set the timezone for log timestamps.

    Args:
        tz: Timezone name (e.g., "UTC", "America/New_York"). None or
            "local" uses local system time.
    """
    global _log_timezone
    if tz is None or tz == "local":
        _log_timezone = None
    else:
        _log_timezone = ZoneInfo(tz)


def get_current_timestamp() -> str:
    """ISO timestamp in the configured log timezone."""
    if _log_timezone is not None:
        return datetime.now(_log_timezone).isoformat()
    return datetime.now().isoformat()


# =============================================================================
# FORMATTERS
# =============================================================================

class JSONFormatter(logging.Formatter):
    """
    Single-line JSON formatter.

    Fields: ts, level, cat, trace, msg, plus "data" when a record was
    logged with extra={"data": {...}} and "exception" when exc_info is set.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "ts": get_current_timestamp(),
            "level": record.levelname,
            "cat": self._get_category(record.name),
            "trace": get_trace_id(),
            "msg": record.getMessage(),
        }

        if hasattr(record, "data") and record.data:
            log_entry["data"] = record.data

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)

    def _get_category(self, logger_name: str) -> str:
        parts = logger_name.split(".")
        if len(parts) >= 2 and parts[0] == LOGGER_PREFIX and parts[1] in CATEGORIES:
            return parts[1]
        return "system"


class ConsoleFormatter(logging.Formatter):
    """
    Console formatter with trace ID and color support.

    Format: [LEVEL] [trace] message
    """

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        trace_id = get_trace_id()
        level = record.levelname
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        if self.use_colors:
            color = self.COLORS.get(level, "")
            return f"{color}[{level:7}]{self.RESET} [{trace_id}] {message}"
        return f"[{level:7}] [{trace_id}] {message}"


# =============================================================================
# LOGGER FACTORY
# =============================================================================

def get_logger(module_name: str) -> logging.Logger:
    """
    Get the category logger for a module.

    Example:
        from tscache.utils.logging_setup import get_logger
        logger = get_logger(__name__)
        logger.info("Processing...")
    """
    category = get_category_for_module(module_name)
    return logging.getLogger(f"{LOGGER_PREFIX}.{category}")


# =============================================================================
# RUN NUMBER MANAGEMENT
# =============================================================================

def _get_next_run_number(log_dir: str, env: str, date_str: str) -> int:
    """Find the next available run number for today's date."""
    log_path = Path(log_dir) / date_str
    if not log_path.exists():
        return 1

    # Pattern: tscache_{env}_{category}_{date}_{N}.log
    pattern = re.compile(
        rf'^tscache_{re.escape(env)}_(?:sys|adp|dat|prf)_{re.escape(date_str)}_(\d+)\.log$'
    )

    max_num = 0
    for filename in os.listdir(log_path):
        match = pattern.match(filename)
        if match:
            max_num = max(max_num, int(match.group(1)))

    return max_num + 1


def _get_session_run_number(log_dir: str, env: str) -> int:
    global _session_run_number

    if _session_run_number is None:
        date_str = datetime.now().strftime('%Y-%m-%d')
        _session_run_number = _get_next_run_number(log_dir, env, date_str)

    return _session_run_number


def reset_session_run_number() -> None:
    """Reset the session run number (for testing)."""
    global _session_run_number
    _session_run_number = None


# =============================================================================
# CATEGORY LOGGING SETUP
# =============================================================================

def setup_category_logging(
    env: str,
    log_dir: Optional[str] = "./logs",
    level: str = "INFO",
    console: bool = True,
    verbose: bool = False,
) -> Dict[str, logging.Logger]:
    """
    Set up one logger (and one log file) per category.

    Files are written to logs/{date}/tscache_{env}_{suffix}_{date}_{run}.log.
    Pass log_dir=None to disable file output entirely.

    Args:
        env: Environment name (dev/prod).
        log_dir: Base directory for log files.
        level: Logging level for all categories.
        console: Enable console output.
        verbose: Force DEBUG level on every handler.

    Returns:
        Dict mapping category name to logger.
    """
    global _category_loggers

    shutdown_logging()
    for category in CATEGORIES:
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{category}")
        for handler in logger.handlers[:]:
            handler.close()
            logger.removeHandler(handler)

    effective_level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    log_path: Optional[Path] = None
    date_str = datetime.now().strftime('%Y-%m-%d')
    if log_dir:
        log_path = Path(log_dir) / date_str
        log_path.mkdir(parents=True, exist_ok=True)
        run_number = _get_session_run_number(log_dir, env)

    for category in CATEGORIES:
        logger = logging.getLogger(f"{LOGGER_PREFIX}.{category}")
        logger.setLevel(effective_level)
        logger.propagate = False

        if log_path is not None:
            suffix = CATEGORY_SUFFIXES[category]
            filename = f"tscache_{env}_{suffix}_{date_str}_{run_number}.log"

            file_handler = logging.FileHandler(
                filename=str(log_path / filename),
                mode='a',
                encoding='utf-8',
            )
            file_handler.setFormatter(JSONFormatter())
            file_handler.setLevel(effective_level)

            # QueueHandler keeps disk writes off the event loop
            log_queue: Queue = Queue(-1)
            logger.addHandler(logging.handlers.QueueHandler(log_queue))
            listener = logging.handlers.QueueListener(
                log_queue, file_handler, respect_handler_level=True
            )
            listener.start()
            _queue_listeners.append(listener)

        if console:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setFormatter(ConsoleFormatter(use_colors=sys.stderr.isatty()))
            console_handler.setLevel(effective_level)
            logger.addHandler(console_handler)

        _category_loggers[category] = logger

    return _category_loggers


def shutdown_logging() -> None:
    """Stop all queue listeners, flushing pending records to disk."""
    for listener in _queue_listeners:
        listener.stop()
    _queue_listeners.clear()
