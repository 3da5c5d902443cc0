"""Per-component configuration dataclasses.

Small, focused configuration classes for each router component: routing
thresholds, response cache, rate limiter, cost ceiling, retry policy, circuit
breaker and the cloud endpoint. Each maps to one TOML section.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from hybrid_router.config.parsing import _parse_bool, _parse_optional_float


@dataclass
class RoutingConfig:
    """Routing thresholds.

    Attributes:
        local_threshold: Minimum confidence for local processing
        escalation_threshold: Confidence below which results are flagged for escalation
        max_input_length: Characters of input considered by the classifier
        cloud_timeout: Seconds allowed for each cloud attempt
        default_estimated_tokens: Tokens charged to the rate limiter per cloud request
    """

    local_threshold: float = 0.8
    escalation_threshold: float = 0.7
    max_input_length: int = 2000
    cloud_timeout: float = 30.0
    default_estimated_tokens: int = 1000

    def __post_init__(self) -> None:
        for name in ("local_threshold", "escalation_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"routing.{name} must be between 0 and 1, got {value}")
        if self.max_input_length < 1:
            raise ValueError(f"routing.max_input_length must be positive, got {self.max_input_length}")
        if self.cloud_timeout <= 0:
            raise ValueError(f"routing.cloud_timeout must be positive, got {self.cloud_timeout}")

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RoutingConfig":
        """Create config from TOML dict (typically [routing] section)."""
        return cls(
            local_threshold=float(data.get("local_threshold", 0.8)),
            escalation_threshold=float(data.get("escalation_threshold", 0.7)),
            max_input_length=int(data.get("max_input_length", 2000)),
            cloud_timeout=float(data.get("cloud_timeout", 30.0)),
            default_estimated_tokens=int(data.get("default_estimated_tokens", 1000)),
        )


@dataclass
class CacheConfig:
    """Response cache settings.

    Attributes:
        enabled: Whether results are cached at all
        max_size: Maximum number of cached results
        ttl: Seconds a cached result lives (None = until cleared)
    """

    enabled: bool = True
    max_size: int = 1000
    ttl: Optional[float] = None

    def __post_init__(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"cache.max_size must be positive, got {self.max_size}")

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        """Create config from TOML dict (typically [cache] section)."""
        return cls(
            enabled=_parse_bool(data.get("enabled", True)),
            max_size=int(data.get("max_size", 1000)),
            ttl=_parse_optional_float(data.get("ttl")),
        )


@dataclass
class RateLimitConfig:
    """Cloud admission control window."""

    max_requests: int = 60
    max_tokens: int = 90_000
    window_seconds: float = 60.0

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RateLimitConfig":
        """Create config from TOML dict (typically [rate_limit] section)."""
        return cls(
            max_requests=int(data.get("max_requests", 60)),
            max_tokens=int(data.get("max_tokens", 90_000)),
            window_seconds=float(data.get("window_seconds", 60.0)),
        )


@dataclass
class CostConfig:
    """Spending ceilings for cloud calls (None = unlimited).

    Attributes:
        budget_limit: Ceiling on total spend
        daily_limit: Ceiling on spend per calendar day (UTC)
        monthly_limit: Ceiling on spend per calendar month (UTC)
    """

    budget_limit: Optional[float] = None
    daily_limit: Optional[float] = None
    monthly_limit: Optional[float] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CostConfig":
        """Create config from TOML dict (typically [cost] section)."""
        return cls(
            budget_limit=_parse_optional_float(data.get("budget_limit")),
            daily_limit=_parse_optional_float(data.get("daily_limit")),
            monthly_limit=_parse_optional_float(data.get("monthly_limit")),
        )


@dataclass
class RetrySettings:
    """Retry policy for cloud calls: a named preset plus optional overrides.

    Attributes:
        preset: default, aggressive or conservative
        max_attempts: Overrides the preset's attempt count
        base_delay: Overrides the preset's first delay
        max_delay: Overrides the preset's delay cap
    """

    preset: str = "default"
    max_attempts: Optional[int] = None
    base_delay: Optional[float] = None
    max_delay: Optional[float] = None

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "RetrySettings":
        """Create config from TOML dict (typically [retry] section)."""
        max_attempts = data.get("max_attempts")
        base_delay = data.get("base_delay")
        max_delay = data.get("max_delay")
        return cls(
            preset=str(data.get("preset", "default")).strip().lower(),
            max_attempts=int(max_attempts) if max_attempts is not None else None,
            base_delay=float(base_delay) if base_delay is not None else None,
            max_delay=float(max_delay) if max_delay is not None else None,
        )


@dataclass
class CircuitBreakerConfig:
    """Circuit breaker thresholds for the cloud service."""

    failure_threshold: int = 5
    recovery_timeout: float = 60.0
    success_threshold: int = 3

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CircuitBreakerConfig":
        """Create config from TOML dict (typically [circuit_breaker] section)."""
        return cls(
            failure_threshold=int(data.get("failure_threshold", 5)),
            recovery_timeout=float(data.get("recovery_timeout", 60.0)),
            success_threshold=int(data.get("success_threshold", 3)),
        )


@dataclass
class CloudConfig:
    """Cloud endpoint settings.

    Attributes:
        base_url: OpenAI-compatible API base URL
        api_key: Bearer token (prefer the environment over the config file)
        organization: Optional organization id
        default_model: Forces one model instead of choosing by complexity
    """

    base_url: str = "https://api.openai.com/v1"
    api_key: Optional[str] = None
    organization: Optional[str] = None
    default_model: Optional[str] = None

    def __repr__(self) -> str:
        key = "****" if self.api_key else None
        return (
            f"CloudConfig(base_url={self.base_url!r}, api_key={key!r}, "
            f"organization={self.organization!r}, default_model={self.default_model!r})"
        )

    @classmethod
    def from_toml_dict(cls, data: Dict[str, Any]) -> "CloudConfig":
        """Create config from TOML dict (typically [cloud] section)."""
        return cls(
            base_url=str(data.get("base_url", "https://api.openai.com/v1")),
            api_key=data.get("api_key") or None,
            organization=data.get("organization") or None,
            default_model=data.get("default_model") or None,
        )
