"""
Configuration manager with environment-based loading.

Supports:
- Base configuration (base.yaml)
- Environment-specific overrides (dev.yaml, prod.yaml)
- Secrets loading (secrets.yaml - gitignored)
- PORT / UPSTREAM_BASE_URL environment variable overrides
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Dict, Any, Mapping, Optional
import yaml
import logging

from tscache.domain.buckets import BoundaryPolicy
from tscache.domain.exceptions import ConfigurationError

from .models import (
    AppConfig,
    ServerConfig,
    UpstreamConfig,
    CacheConfig,
    RefresherConfig,
    LoggingConfig,
)


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path(__file__).resolve().parent


class ConfigManager:
    """
    Configuration manager with environment support.

    Loads configuration in this order:
    1. base.yaml (default config)
    2. {env}.yaml (environment-specific, e.g., dev.yaml)
    3. secrets.yaml (if exists, gitignored)
    4. environment variables (PORT, UPSTREAM_BASE_URL)

    Later sources override earlier ones.
    """

    def __init__(
        self,
        config_dir: str | Path = DEFAULT_CONFIG_DIR,
        env: str = "dev",
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Initialize config manager.

        Args:
            config_dir: Directory containing config files.
            env: Environment name (dev, prod, etc).
            environ: Environment variables (defaults to os.environ).
        """
        self.config_dir = Path(config_dir)
        self.env = env
        self.environ = os.environ if environ is None else environ
        self.config: Dict[str, Any] = {}

    def load(self) -> AppConfig:
        """
        Load configuration from YAML files.

        Returns:
            AppConfig object.

        Raises:
            FileNotFoundError: If base config not found.
            ConfigurationError: If config is invalid.
        """
        base_path = self.config_dir / "base.yaml"
        if not base_path.exists():
            raise FileNotFoundError(f"Base config not found: {base_path}")

        self.config = self._load_yaml(base_path)
        logger.info(f"Loaded base config from {base_path}")

        env_path = self.config_dir / f"{self.env}.yaml"
        if env_path.exists():
            self.config = self._merge_dicts(self.config, self._load_yaml(env_path))
            logger.info(f"Loaded {self.env} config from {env_path}")

        secrets_path = self.config_dir / "secrets.yaml"
        if secrets_path.exists():
            self.config = self._merge_dicts(self.config, self._load_yaml(secrets_path))
            logger.info("Loaded secrets")

        self._apply_env_overrides()
        return self._parse_config()

    def _load_yaml(self, path: Path) -> Dict[str, Any]:
        """Load YAML file."""
        with open(path, "r") as f:
            return yaml.safe_load(f) or {}

    def _merge_dicts(self, base: Dict, override: Dict) -> Dict:
        """Deep merge two dicts (override wins)."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_dicts(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self) -> None:
        port = self.environ.get("PORT")
        if port:
            self.config.setdefault("server", {})["port"] = port
        base_url = self.environ.get("UPSTREAM_BASE_URL")
        if base_url:
            self.config.setdefault("upstream", {})["base_url"] = base_url

    def _parse_config(self) -> AppConfig:
        """Parse raw dict into AppConfig."""
        try:
            server_raw = self.config.get("server", {})
            upstream_raw = self.config.get("upstream", {})
            cache_raw = self.config.get("cache", {})
            refresher_raw = self.config.get("refresher", {})
            logging_raw = self.config.get("logging", {})

            server = ServerConfig(
                host=str(server_raw.get("host", "0.0.0.0")),
                port=int(server_raw.get("port", 3000)),
            )
            upstream = UpstreamConfig(
                base_url=str(upstream_raw.get("base_url", "https://externalAPI.com/")),
                timeout_seconds=float(upstream_raw.get("timeout_seconds", 10.0)),
                max_concurrent_fetches=int(upstream_raw.get("max_concurrent_fetches", 4)),
            )
            cache = CacheConfig(
                ttl_seconds=float(cache_raw.get("ttl_seconds", 600)),
                check_period_seconds=float(cache_raw.get("check_period_seconds", 60)),
                boundary_policy=str(cache_raw.get("boundary_policy", "clamp")).lower(),
            )
            refresher = RefresherConfig(
                enabled=bool(refresher_raw.get("enabled", True)),
                symbol=str(refresher_raw.get("symbol", "AAPL")),
                period=str(refresher_raw.get("period", "1min")),
                interval_seconds=float(refresher_raw.get("interval_seconds", 60)),
                window_seconds=float(refresher_raw.get("window_seconds", 60)),
                align_to_interval=bool(refresher_raw.get("align_to_interval", True)),
            )
            log_cfg = LoggingConfig(
                level=str(logging_raw.get("level", "INFO")).upper(),
                dir=str(logging_raw.get("dir") or ""),
                console=bool(logging_raw.get("console", True)),
                timezone=str(logging_raw.get("timezone", "UTC")),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

        self._validate(upstream, cache, refresher)

        return AppConfig(
            server=server,
            upstream=upstream,
            cache=cache,
            refresher=refresher,
            logging=log_cfg,
            raw=self.config,
        )

    @staticmethod
    def _validate(upstream: UpstreamConfig, cache: CacheConfig, refresher: RefresherConfig) -> None:
        if upstream.timeout_seconds <= 0:
            raise ConfigurationError("upstream.timeout_seconds must be positive")
        if upstream.max_concurrent_fetches < 1:
            raise ConfigurationError("upstream.max_concurrent_fetches must be >= 1")
        if cache.check_period_seconds <= 0:
            raise ConfigurationError("cache.check_period_seconds must be positive")
        if cache.boundary_policy not in {p.value for p in BoundaryPolicy}:
            raise ConfigurationError(
                f"cache.boundary_policy must be one of "
                f"{sorted(p.value for p in BoundaryPolicy)}, got {cache.boundary_policy!r}"
            )
        if refresher.interval_seconds <= 0 or refresher.window_seconds <= 0:
            raise ConfigurationError("refresher intervals must be positive")
