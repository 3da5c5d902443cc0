"""RouterConfig loading logic.

Provides ``_RouterConfigLoader``, a mixin whose methods are inherited by
``RouterConfig`` (defined in ``server.py``), keeping that module focused on
field definitions.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional, cast

if TYPE_CHECKING:
    from hybrid_router.config.server import RouterConfig

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from hybrid_router.config.domains import (
    CacheConfig,
    CircuitBreakerConfig,
    CloudConfig,
    CostConfig,
    RateLimitConfig,
    RetrySettings,
    RoutingConfig,
)
from hybrid_router.config.parsing import _normalize_log_level, _parse_bool, _parse_optional_float

logger = logging.getLogger(__name__)

CONFIG_FILE_ENV_VAR = "HYBRID_ROUTER_CONFIG_FILE"


class _RouterConfigLoader:
    """Mixin providing config-loading methods for ``RouterConfig``."""

    if TYPE_CHECKING:
        log_level: str
        structured_logging: bool
        routing: RoutingConfig
        cache: CacheConfig
        rate_limit: RateLimitConfig
        cost: CostConfig
        retry: RetrySettings
        circuit_breaker: CircuitBreakerConfig
        cloud: CloudConfig

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "RouterConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. Project TOML config (./hybrid-router.toml)
        3. User TOML config (~/.hybrid-router.toml)
        4. XDG config (~/.config/hybrid-router/config.toml)
        5. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get(CONFIG_FILE_ENV_VAR)
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")
            xdg_config = Path(xdg_config_home) / "hybrid-router" / "config.toml"
            if xdg_config.exists():
                config._load_toml(xdg_config)
                logger.debug("Loaded XDG config from %s", xdg_config)

            home_config = Path.home() / ".hybrid-router.toml"
            if home_config.exists():
                config._load_toml(home_config)
                logger.debug("Loaded user config from %s", home_config)

            project_config = Path("hybrid-router.toml")
            if project_config.exists():
                config._load_toml(project_config)
                logger.debug("Loaded project config from %s", project_config)

        config._load_env()
        return cast("RouterConfig", config)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file.

        A missing file is logged and skipped. A malformed file or an invalid
        value raises ``ValueError`` naming the file.
        """
        if not path.exists():
            logger.warning("Config file not found: %s", path)
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {path}: {e}") from e

        try:
            self._apply_toml(data)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid configuration in {path}: {e}") from e

    def _apply_toml(self, data: Any) -> None:
        if "logging" in data:
            log = data["logging"]
            if "level" in log:
                self.log_level = _normalize_log_level(str(log["level"]))
            if "structured" in log:
                self.structured_logging = _parse_bool(log["structured"])

        if "routing" in data:
            self.routing = RoutingConfig.from_toml_dict(data["routing"])
        if "cache" in data:
            self.cache = CacheConfig.from_toml_dict(data["cache"])
        if "rate_limit" in data:
            self.rate_limit = RateLimitConfig.from_toml_dict(data["rate_limit"])
        if "cost" in data:
            self.cost = CostConfig.from_toml_dict(data["cost"])
        if "retry" in data:
            self.retry = RetrySettings.from_toml_dict(data["retry"])
        if "circuit_breaker" in data:
            self.circuit_breaker = CircuitBreakerConfig.from_toml_dict(data["circuit_breaker"])
        if "cloud" in data:
            self.cloud = CloudConfig.from_toml_dict(data["cloud"])
            if self.cloud.api_key:
                logger.warning("API key read from config file; prefer HYBRID_ROUTER_API_KEY")

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("HYBRID_ROUTER_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)

        if structured := os.environ.get("HYBRID_ROUTER_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if threshold := os.environ.get("HYBRID_ROUTER_LOCAL_THRESHOLD"):
            try:
                self.routing.local_threshold = float(threshold)
            except ValueError:
                logger.warning("Ignoring non-numeric HYBRID_ROUTER_LOCAL_THRESHOLD=%r", threshold)

        for env_name, attr in (
            ("HYBRID_ROUTER_BUDGET_LIMIT", "budget_limit"),
            ("HYBRID_ROUTER_DAILY_LIMIT", "daily_limit"),
            ("HYBRID_ROUTER_MONTHLY_LIMIT", "monthly_limit"),
        ):
            if (limit := os.environ.get(env_name)) is not None:
                try:
                    setattr(self.cost, attr, _parse_optional_float(limit))
                except ValueError:
                    logger.warning("Ignoring non-numeric %s=%r", env_name, limit)

        if (ttl := os.environ.get("HYBRID_ROUTER_CACHE_TTL")) is not None:
            try:
                self.cache.ttl = _parse_optional_float(ttl)
            except ValueError:
                logger.warning("Ignoring non-numeric HYBRID_ROUTER_CACHE_TTL=%r", ttl)

        if max_requests := os.environ.get("HYBRID_ROUTER_MAX_REQUESTS"):
            try:
                self.rate_limit.max_requests = int(max_requests)
            except ValueError:
                logger.warning("Ignoring non-integer HYBRID_ROUTER_MAX_REQUESTS=%r", max_requests)

        if api_key := os.environ.get("HYBRID_ROUTER_API_KEY") or os.environ.get("OPENAI_API_KEY"):
            self.cloud.api_key = api_key

        if base_url := os.environ.get("HYBRID_ROUTER_BASE_URL"):
            self.cloud.base_url = base_url
