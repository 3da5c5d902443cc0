"""Circuit breaker guarding the cloud service.

Three states with four legal edges:

    closed    --failure_threshold consecutive failures-->  open
    open      --recovery_timeout elapsed, next call---->  half_open
    half_open --success_threshold successes---------->  closed
    half_open --any failure-------------------------->  open

While open, ``call`` rejects with ``CircuitOpenError`` without invoking the
operation. Every transition is logged and audited as ``circuit_state_change``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Optional, Tuple, TypeVar

from hybrid_router.core.errors.resilience import CircuitOpenError
from hybrid_router.core.models import CircuitState
from hybrid_router.core.observability import audit_log

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LEGAL_TRANSITIONS: FrozenSet[Tuple[CircuitState, CircuitState]] = frozenset(
    {
        (CircuitState.CLOSED, CircuitState.OPEN),
        (CircuitState.OPEN, CircuitState.HALF_OPEN),
        (CircuitState.HALF_OPEN, CircuitState.CLOSED),
        (CircuitState.HALF_OPEN, CircuitState.OPEN),
    }
)


class CircuitBreaker:
    """Failure-counting circuit breaker.

    Attributes:
        name: Breaker name used in logs and errors
        failure_threshold: Consecutive failures that open a closed breaker
        recovery_timeout: Seconds an open breaker waits before a trial call
        success_threshold: Trial successes that close a half-open breaker
    """

    def __init__(
        self,
        name: str = "cloud",
        *,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        success_threshold: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ):
        if failure_threshold < 1 or success_threshold < 1:
            raise ValueError("thresholds must be positive")
        if recovery_timeout < 0:
            raise ValueError(f"recovery_timeout must be non-negative, got {recovery_timeout}")
        self.name = name
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        with self._lock:
            return self._state

    @property
    def failure_count(self) -> int:
        with self._lock:
            return self._failure_count

    @property
    def success_count(self) -> int:
        with self._lock:
            return self._success_count

    def _transition_locked(self, new_state: CircuitState, action: str) -> None:
        old_state = self._state
        if (old_state, new_state) not in _LEGAL_TRANSITIONS:
            raise RuntimeError(f"Illegal circuit transition {old_state.value} -> {new_state.value}")
        self._state = new_state
        logger.info(
            "Circuit breaker %s: %s -> %s (%s)", self.name, old_state.value, new_state.value, action
        )
        audit_log(
            "circuit_state_change",
            breaker_name=self.name,
            old_state=old_state.value,
            new_state=new_state.value,
            action=action,
            failure_count=self._failure_count,
        )

    def _retry_after_locked(self, now: float) -> float:
        if self._last_failure_time is None:
            return 0.0
        return max(0.0, self.recovery_timeout - (now - self._last_failure_time))

    def can_execute(self) -> bool:
        """Whether a call would be admitted now.

        An open breaker whose recovery timeout has elapsed moves to half_open
        here, so the call that follows is the trial.
        """
        with self._lock:
            if self._state is not CircuitState.OPEN:
                return True
            now = self._clock()
            if self._last_failure_time is not None and now - self._last_failure_time > self.recovery_timeout:
                self._success_count = 0
                self._transition_locked(CircuitState.HALF_OPEN, "recovery_timeout_elapsed")
                return True
            return False

    def record_success(self) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                self._success_count += 1
                if self._success_count >= self.success_threshold:
                    self._failure_count = 0
                    self._success_count = 0
                    self._transition_locked(CircuitState.CLOSED, "recovered")
            elif self._state is CircuitState.CLOSED:
                self._failure_count = 0

    def record_failure(self) -> None:
        with self._lock:
            now = self._clock()
            self._last_failure_time = now
            if self._state is CircuitState.HALF_OPEN:
                self._success_count = 0
                self._transition_locked(CircuitState.OPEN, "trial_failed")
            elif self._state is CircuitState.CLOSED:
                self._failure_count += 1
                if self._failure_count >= self.failure_threshold:
                    self._transition_locked(CircuitState.OPEN, "failure_threshold_reached")
                    logger.warning(
                        "Circuit breaker %s opened after %d failures",
                        self.name,
                        self._failure_count,
                    )

    async def call(self, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` through the breaker.

        Raises:
            CircuitOpenError: If the breaker is open (operation not invoked)
        """
        if not self.can_execute():
            with self._lock:
                retry_after = self._retry_after_locked(self._clock())
                state = self._state
            raise CircuitOpenError(breaker_name=self.name, state=state, retry_after=retry_after)
        try:
            result = await operation()
        except Exception:
            self.record_failure()
            raise
        self.record_success()
        return result

    def reset(self) -> None:
        """Force the breaker closed with cleared counters."""
        with self._lock:
            old_state = self._state
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._success_count = 0
            self._last_failure_time = None
        if old_state is not CircuitState.CLOSED:
            logger.info("Circuit breaker %s manually reset from %s", self.name, old_state.value)
            audit_log(
                "circuit_state_change",
                breaker_name=self.name,
                old_state=old_state.value,
                new_state=CircuitState.CLOSED.value,
                action="manual_reset",
            )

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "name": self.name,
                "state": self._state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "failure_threshold": self.failure_threshold,
                "recovery_timeout": self.recovery_timeout,
                "success_threshold": self.success_threshold,
                "retry_after": round(self._retry_after_locked(self._clock()), 3)
                if self._state is CircuitState.OPEN
                else 0.0,
            }
