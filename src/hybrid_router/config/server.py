"""RouterConfig dataclass and global configuration state.

This module defines the ``RouterConfig`` class (field declarations and simple
accessor methods) and the global ``get_config`` / ``set_config`` helpers used
by the CLI. Loading logic lives in the ``_RouterConfigLoader`` mixin
(``loader.py``) which ``RouterConfig`` inherits from. The router core never
reads the global: it receives configuration through ``RouterContext``.
"""

import json
import logging
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from typing import Optional

from hybrid_router.config.domains import (
    CacheConfig,
    CircuitBreakerConfig,
    CloudConfig,
    CostConfig,
    RateLimitConfig,
    RetrySettings,
    RoutingConfig,
)
from hybrid_router.config.loader import _RouterConfigLoader

# Attribute marking handlers installed by setup_logging
_HANDLER_MARKER = "_hybrid_router_handler"


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("hybrid-router")
    except PackageNotFoundError:
        return "0.1.0"


_PACKAGE_VERSION = _get_version()


class JsonFormatter(logging.Formatter):
    """One JSON object per log line, including audit payloads when present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        audit = getattr(record, "audit", None)
        if audit is not None:
            entry["audit"] = audit
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


@dataclass
class RouterConfig(_RouterConfigLoader):
    """Router configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = False

    version: str = field(default_factory=lambda: _PACKAGE_VERSION)

    routing: RoutingConfig = field(default_factory=RoutingConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    cost: CostConfig = field(default_factory=CostConfig)
    retry: RetrySettings = field(default_factory=RetrySettings)
    circuit_breaker: CircuitBreakerConfig = field(default_factory=CircuitBreakerConfig)
    cloud: CloudConfig = field(default_factory=CloudConfig)

    def setup_logging(self) -> None:
        """Configure the ``hybrid_router`` logger based on settings.

        Safe to call more than once: a handler installed by an earlier call is
        replaced rather than duplicated.
        """
        level = getattr(logging, self.log_level, logging.INFO)

        if self.structured_logging:
            formatter: logging.Formatter = JsonFormatter()
        else:
            formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

        handler = logging.StreamHandler()
        handler.setFormatter(formatter)
        setattr(handler, _HANDLER_MARKER, True)

        root_logger = logging.getLogger("hybrid_router")
        for existing in list(root_logger.handlers):
            if getattr(existing, _HANDLER_MARKER, False):
                root_logger.removeHandler(existing)
        root_logger.setLevel(level)
        root_logger.addHandler(handler)


# Global configuration instance
_config: Optional[RouterConfig] = None


def get_config() -> RouterConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = RouterConfig.from_env()
    return _config


def set_config(config: RouterConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
