"""Resilience primitives for the cloud path: retry with backoff and a circuit breaker."""

from hybrid_router.core.resilience.circuit_breaker import CircuitBreaker
from hybrid_router.core.resilience.retry import (
    RetryCancelled,
    RetryConfig,
    RetryFailure,
    RetryManager,
    RetryOutcome,
    RetryState,
    RetrySuccess,
    SleepFunc,
)

__all__ = [
    "CircuitBreaker",
    "RetryCancelled",
    "RetryConfig",
    "RetryFailure",
    "RetryManager",
    "RetryOutcome",
    "RetryState",
    "RetrySuccess",
    "SleepFunc",
]
