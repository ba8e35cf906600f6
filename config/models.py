"""Configuration data models."""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any


@dataclass
class ServerConfig:
    """HTTP server binding."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class UpstreamConfig:
    """Upstream time-series provider."""
    base_url: str = "https://externalAPI.com/"
    timeout_seconds: float = 10.0
    max_concurrent_fetches: int = 4


@dataclass
class CacheConfig:
    """Cache store configuration."""
    ttl_seconds: float = 600
    check_period_seconds: float = 60  # Active expiry sweep interval
    boundary_policy: str = "clamp"  # "clamp" or "overshoot"


@dataclass
class RefresherConfig:
    """Background snapshot refresher."""
    enabled: bool = True
    symbol: str = "AAPL"
    period: str = "1min"
    interval_seconds: float = 60
    window_seconds: float = 60
    align_to_interval: bool = True


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    dir: str = "./logs"  # Empty string disables file logging
    console: bool = True
    timezone: str = "UTC"  # Timezone for log timestamps ("local" for system time)


@dataclass
class AppConfig:
    """Complete application configuration."""
    server: ServerConfig
    upstream: UpstreamConfig
    cache: CacheConfig
    refresher: RefresherConfig
    logging: LoggingConfig
    raw: Dict[str, Any]  # Merged raw config dict
