"""Resilience error classes raised by the rate limiter and circuit breaker."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from hybrid_router.core.errors.cloud import CloudServiceError
from hybrid_router.core.errors.types import ErrorKind

if TYPE_CHECKING:
    from hybrid_router.core.models import CircuitState


class RateLimitExceededError(CloudServiceError):
    """Local admission control rejected a cloud call.

    Attributes:
        wait_time: Seconds until the current window resets
        limit_type: Which budget was exhausted ("requests" or "tokens")
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        wait_time: float,
        limit_type: str = "requests",
    ):
        super().__init__(
            ErrorKind.CLOUD_RATE_LIMITED,
            message or f"Rate limit exceeded. Please wait {int(wait_time)} seconds",
            wait_time=wait_time,
            retry_after=wait_time,
            limit_type=limit_type,
        )
        self.wait_time = wait_time
        self.limit_type = limit_type


class CircuitOpenError(CloudServiceError):
    """Circuit breaker is open and rejecting calls.

    Never retryable: retrying into an open breaker cannot succeed before the
    recovery timeout, so each retry attempt re-checks the breaker instead.

    Attributes:
        breaker_name: Name of the circuit breaker
        state: Breaker state at rejection time
        retry_after: Seconds until the breaker will admit a trial call
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        breaker_name: Optional[str] = None,
        state: Optional["CircuitState"] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(
            ErrorKind.CIRCUIT_OPEN,
            message or f"Circuit breaker open for {breaker_name or 'cloud'}",
            breaker_name=breaker_name,
            state=state.value if state is not None else None,
            retry_after=retry_after,
        )
        self.breaker_name = breaker_name
        self.state = state
        self.retry_after = retry_after
