"""Async retry with exponential backoff, jitter and per-operation cancellation.

``RetryManager.execute_with_retry`` never raises for operation failures: it
returns a ``RetryOutcome`` (``RetrySuccess``, ``RetryFailure`` or
``RetryCancelled``). Whether an error is retried depends only on its code
being in the config's ``retryable_error_codes``.

Testing example:
    >>> sleeps = []
    >>> async def fake_sleep(s): sleeps.append(s)
    >>> manager = RetryManager(rng=random.Random(42), sleep_func=fake_sleep)
    >>> outcome = await manager.execute_with_retry(operation)
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Generic, List, Optional, Protocol, Tuple, TypeVar, Union

from hybrid_router.core.errors import DEFAULT_RETRYABLE_CODES, ErrorKind, error_code_for
from hybrid_router.core.observability import audit_log

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SleepFunc(Protocol):
    """Protocol for injectable sleep function."""

    async def __call__(self, seconds: float) -> None: ...


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class RetryConfig:
    """Backoff policy for one kind of operation.

    Attributes:
        max_attempts: Total attempts including the first
        base_delay: Delay before the second attempt, in seconds
        max_delay: Cap on any single delay before jitter
        backoff_multiplier: Growth factor per attempt
        jitter_range: (low, high) factor applied to each delay
        retryable_error_codes: Codes that may be retried
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0
    jitter_range: Tuple[float, float] = (0.8, 1.2)
    retryable_error_codes: FrozenSet[str] = DEFAULT_RETRYABLE_CODES

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("delays must be non-negative")
        if self.backoff_multiplier < 1:
            raise ValueError(f"backoff_multiplier must be >= 1, got {self.backoff_multiplier}")
        low, high = self.jitter_range
        if low <= 0 or high < low:
            raise ValueError(f"invalid jitter_range {self.jitter_range}")
        if ErrorKind.CIRCUIT_OPEN.value in self.retryable_error_codes:
            raise ValueError(f"{ErrorKind.CIRCUIT_OPEN.value} (circuit open) is never retryable")
        object.__setattr__(self, "retryable_error_codes", frozenset(self.retryable_error_codes))

    def delay_for(self, attempt: int, rng: random.Random) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        base = min(self.base_delay * (self.backoff_multiplier ** (attempt - 1)), self.max_delay)
        return base * rng.uniform(*self.jitter_range)

    def is_retryable(self, code: str) -> bool:
        return code in self.retryable_error_codes

    @classmethod
    def default(cls) -> "RetryConfig":
        return cls()

    @classmethod
    def aggressive(cls) -> "RetryConfig":
        return cls(
            max_attempts=5,
            base_delay=0.5,
            max_delay=60.0,
            backoff_multiplier=1.5,
            jitter_range=(0.9, 1.1),
        )

    @classmethod
    def conservative(cls) -> "RetryConfig":
        return cls(
            max_attempts=2,
            base_delay=2.0,
            max_delay=15.0,
            backoff_multiplier=3.0,
            jitter_range=(0.7, 1.3),
            retryable_error_codes=frozenset({"NE001", "NE002", "AS003", "AS013"}),
        )

    @classmethod
    def preset(cls, name: str) -> "RetryConfig":
        """Look up a named preset (default, aggressive, conservative)."""
        factories: Dict[str, Callable[[], RetryConfig]] = {
            "default": cls.default,
            "aggressive": cls.aggressive,
            "conservative": cls.conservative,
        }
        try:
            return factories[name]()
        except KeyError:
            raise ValueError(f"Unknown retry preset: {name}") from None


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class RetrySuccess(Generic[T]):
    value: T
    attempts: int

    @property
    def succeeded(self) -> bool:
        return True


@dataclass(frozen=True)
class RetryFailure:
    """Operation gave up. ``error`` is the last exception raised."""

    error: BaseException
    attempts_made: int

    @property
    def succeeded(self) -> bool:
        return False

    @property
    def error_code(self) -> str:
        return error_code_for(self.error)


@dataclass(frozen=True)
class RetryCancelled:
    attempts_made: int

    @property
    def succeeded(self) -> bool:
        return False


RetryOutcome = Union[RetrySuccess[Any], RetryFailure, RetryCancelled]


@dataclass
class RetryState:
    """Progress of one in-flight retried operation."""

    operation_id: str
    max_attempts: int
    current_attempt: int = 0
    next_retry_at: Optional[float] = None
    last_error_code: Optional[str] = None
    cancelled: bool = False
    started_at: float = field(default_factory=time.time)

    @property
    def remaining_attempts(self) -> int:
        return max(0, self.max_attempts - self.current_attempt)

    @property
    def progress(self) -> float:
        return self.current_attempt / self.max_attempts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "operation_id": self.operation_id,
            "current_attempt": self.current_attempt,
            "max_attempts": self.max_attempts,
            "remaining_attempts": self.remaining_attempts,
            "progress": round(self.progress, 4),
            "next_retry_at": self.next_retry_at,
            "last_error_code": self.last_error_code,
            "cancelled": self.cancelled,
        }


# =============================================================================
# Manager
# =============================================================================


class RetryManager:
    """Runs async operations under a retry policy and tracks them by id.

    Args:
        default_config: Policy used when ``execute_with_retry`` gets none
        rng: Injectable Random instance for deterministic jitter
        sleep_func: Injectable async sleep for time control in tests
    """

    def __init__(
        self,
        default_config: Optional[RetryConfig] = None,
        *,
        rng: Optional[random.Random] = None,
        sleep_func: Optional[SleepFunc] = None,
    ):
        self.default_config = default_config or RetryConfig.default()
        self._rng = rng or random.Random()
        self._sleep = sleep_func or asyncio.sleep
        self._lock = threading.Lock()
        self._states: Dict[str, RetryState] = {}
        self._counter = 0

    def _next_id(self) -> str:
        with self._lock:
            self._counter += 1
            return f"retry-{self._counter}"

    def _is_cancelled(self, operation_id: str) -> bool:
        with self._lock:
            state = self._states.get(operation_id)
            return state is not None and state.cancelled

    async def execute_with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        config: Optional[RetryConfig] = None,
        operation_id: Optional[str] = None,
    ) -> RetryOutcome:
        """Run ``operation`` until it succeeds, fails terminally, or is cancelled.

        Args:
            operation: Zero-argument async callable (use a lambda for args)
            config: Retry policy (defaults to the manager's)
            operation_id: Id used by ``cancel_retry`` (generated if omitted)

        Returns:
            RetrySuccess, RetryFailure or RetryCancelled
        """
        cfg = config or self.default_config
        op_id = operation_id or self._next_id()
        state = RetryState(operation_id=op_id, max_attempts=cfg.max_attempts)
        with self._lock:
            self._states[op_id] = state

        attempts_made = 0
        try:
            for attempt in range(1, cfg.max_attempts + 1):
                if self._is_cancelled(op_id):
                    return self._cancelled(op_id, attempts_made)

                with self._lock:
                    state.current_attempt = attempt
                    state.next_retry_at = None
                attempts_made = attempt

                try:
                    value = await operation()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    code = error_code_for(e)
                    with self._lock:
                        state.last_error_code = code

                    if self._is_cancelled(op_id):
                        return self._cancelled(op_id, attempts_made)
                    if not cfg.is_retryable(code):
                        logger.debug("Operation %s failed with non-retryable %s", op_id, code)
                        return RetryFailure(error=e, attempts_made=attempts_made)
                    if attempt == cfg.max_attempts:
                        logger.warning(
                            "Operation %s failed after %d attempts (%s)", op_id, attempt, code
                        )
                        return RetryFailure(error=e, attempts_made=attempts_made)

                    delay = cfg.delay_for(attempt, self._rng)
                    with self._lock:
                        state.next_retry_at = time.time() + delay
                    audit_log(
                        "retry_attempt",
                        operation_id=op_id,
                        attempt=attempt,
                        max_attempts=cfg.max_attempts,
                        error_code=code,
                        delay_ms=int(delay * 1000),
                    )
                    logger.info(
                        "Operation %s attempt %d/%d failed (%s), retrying in %.2fs",
                        op_id,
                        attempt,
                        cfg.max_attempts,
                        code,
                        delay,
                    )
                    await self._sleep(delay)
                else:
                    return RetrySuccess(value=value, attempts=attempts_made)
        finally:
            with self._lock:
                if self._states.get(op_id) is state:
                    del self._states[op_id]

        raise RuntimeError("execute_with_retry: unexpected state")

    def _cancelled(self, op_id: str, attempts_made: int) -> RetryCancelled:
        audit_log("retry_cancelled", operation_id=op_id, attempts_made=attempts_made)
        logger.info("Operation %s cancelled after %d attempts", op_id, attempts_made)
        return RetryCancelled(attempts_made=attempts_made)

    def cancel_retry(self, operation_id: str) -> bool:
        """Mark ``operation_id`` cancelled. Returns False if it is not in flight."""
        with self._lock:
            state = self._states.get(operation_id)
            if state is None:
                return False
            state.cancelled = True
        return True

    def cancel_all_retries(self) -> int:
        """Cancel every in-flight operation. Returns the count cancelled."""
        with self._lock:
            live = [s for s in self._states.values() if not s.cancelled]
            for state in live:
                state.cancelled = True
        return len(live)

    def get_retry_state(self, operation_id: str) -> Optional[RetryState]:
        with self._lock:
            return self._states.get(operation_id)

    def active_retries(self) -> List[str]:
        with self._lock:
            return [op_id for op_id, s in self._states.items() if not s.cancelled]
