"""Configuration package for hybrid-router.

Sub-modules:
    parsing    – Boolean/float/log-level parsing helpers
    domains    – RoutingConfig, CacheConfig, RateLimitConfig, CostConfig,
                 RetrySettings, CircuitBreakerConfig, CloudConfig
    server     – RouterConfig dataclass, get_config/set_config globals
    loader     – RouterConfig loading mixin (_RouterConfigLoader)
    decorators – log_call, timed
"""

from hybrid_router.config.decorators import log_call, timed
from hybrid_router.config.domains import (
    CacheConfig,
    CircuitBreakerConfig,
    CloudConfig,
    CostConfig,
    RateLimitConfig,
    RetrySettings,
    RoutingConfig,
)
from hybrid_router.config.server import JsonFormatter, RouterConfig, get_config, set_config

__all__ = [
    "CacheConfig",
    "CircuitBreakerConfig",
    "CloudConfig",
    "CostConfig",
    "JsonFormatter",
    "RateLimitConfig",
    "RetrySettings",
    "RouterConfig",
    "RoutingConfig",
    "get_config",
    "log_call",
    "set_config",
    "timed",
]
