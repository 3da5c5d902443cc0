"""Sliding-window admission control for the cloud path.

One shared window per limiter tracks requests and tokens admitted since the
window began. A check either admits the call and charges the window, or
raises ``RateLimitExceededError`` carrying the time left until the window
resets. Check and charge happen under one lock so concurrent callers can
never over-admit.

The window resets lazily: the first check after ``next_reset_time`` starts a
fresh window.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict

from hybrid_router.core.errors.resilience import RateLimitExceededError
from hybrid_router.core.observability import audit_log

logger = logging.getLogger(__name__)

# Fraction of either budget above which the limiter reports near-limit
NEAR_LIMIT_RATIO = 0.8


@dataclass
class RateLimitStatus:
    """Snapshot of the current window.

    Attributes:
        requests_used: Requests admitted in this window
        max_requests: Request budget per window
        tokens_used: Tokens charged in this window
        max_tokens: Token budget per window
        window_duration: Window length in seconds
        next_reset_time: Clock reading at which the window resets
        now: Clock reading when the snapshot was taken
    """

    requests_used: int
    max_requests: int
    tokens_used: int
    max_tokens: int
    window_duration: float
    next_reset_time: float
    now: float

    @property
    def requests_remaining(self) -> int:
        return max(0, self.max_requests - self.requests_used)

    @property
    def tokens_remaining(self) -> int:
        return max(0, self.max_tokens - self.tokens_used)

    @property
    def request_usage_pct(self) -> float:
        return self.requests_used / self.max_requests if self.max_requests else 0.0

    @property
    def token_usage_pct(self) -> float:
        return self.tokens_used / self.max_tokens if self.max_tokens else 0.0

    @property
    def is_near_limit(self) -> bool:
        return self.request_usage_pct > NEAR_LIMIT_RATIO or self.token_usage_pct > NEAR_LIMIT_RATIO

    @property
    def time_until_reset(self) -> float:
        return max(0.0, self.next_reset_time - self.now)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.pop("now")
        data.update(
            requests_remaining=self.requests_remaining,
            tokens_remaining=self.tokens_remaining,
            request_usage_pct=round(self.request_usage_pct, 4),
            token_usage_pct=round(self.token_usage_pct, 4),
            is_near_limit=self.is_near_limit,
            time_until_reset=round(self.time_until_reset, 3),
        )
        return data


class RateLimiter:
    """Request and token limiter over a fixed-length window.

    Example:
        limiter = RateLimiter(max_requests=60, max_tokens=90_000)
        try:
            limiter.check_rate_limit(estimated_tokens=1200)
        except RateLimitExceededError as e:
            print(f"retry in {e.wait_time:.0f}s")
    """

    def __init__(
        self,
        *,
        max_requests: int = 60,
        max_tokens: int = 90_000,
        window_duration: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError(f"max_requests must be positive, got {max_requests}")
        if max_tokens < 1:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")
        if window_duration <= 0:
            raise ValueError(f"window_duration must be positive, got {window_duration}")
        self.max_requests = max_requests
        self.max_tokens = max_tokens
        self.window_duration = window_duration
        self._clock = clock
        self._lock = threading.Lock()
        self._requests_used = 0
        self._tokens_used = 0
        self._next_reset_time = clock() + window_duration

    def _roll_window_locked(self, now: float) -> None:
        if now >= self._next_reset_time:
            self._requests_used = 0
            self._tokens_used = 0
            self._next_reset_time = now + self.window_duration

    def check_rate_limit(self, estimated_tokens: int = 1000) -> None:
        """Admit one request, charging ``estimated_tokens`` to the window.

        Args:
            estimated_tokens: Tokens the request is expected to consume

        Raises:
            RateLimitExceededError: If either budget would be exceeded
        """
        estimated_tokens = max(0, int(estimated_tokens))
        with self._lock:
            now = self._clock()
            self._roll_window_locked(now)
            wait_time = max(0.0, self._next_reset_time - now)

            if self._requests_used + 1 > self.max_requests:
                limit_type = "requests"
            elif self._tokens_used + estimated_tokens > self.max_tokens:
                limit_type = "tokens"
            else:
                self._requests_used += 1
                self._tokens_used += estimated_tokens
                return

        logger.warning(
            "Rate limit exceeded (%s), window resets in %.1fs", limit_type, wait_time
        )
        audit_log(
            "rate_limit",
            limit_type=limit_type,
            wait_ms=int(wait_time * 1000),
            estimated_tokens=estimated_tokens,
        )
        raise RateLimitExceededError(wait_time=wait_time, limit_type=limit_type)

    def record_actual_usage(self, token_delta: int) -> None:
        """Correct the window once the real token count of a call is known.

        Args:
            token_delta: Actual minus estimated tokens (may be negative)
        """
        with self._lock:
            self._roll_window_locked(self._clock())
            self._tokens_used = max(0, self._tokens_used + int(token_delta))

    def get_current_status(self) -> RateLimitStatus:
        """Return a snapshot of the current window."""
        with self._lock:
            now = self._clock()
            self._roll_window_locked(now)
            return RateLimitStatus(
                requests_used=self._requests_used,
                max_requests=self.max_requests,
                tokens_used=self._tokens_used,
                max_tokens=self.max_tokens,
                window_duration=self.window_duration,
                next_reset_time=self._next_reset_time,
                now=now,
            )

    def time_until_available(self, estimated_tokens: int = 1000) -> float:
        """Seconds until a request of this size would be admitted (0 if now)."""
        status = self.get_current_status()
        if (
            status.requests_used + 1 <= status.max_requests
            and status.tokens_used + estimated_tokens <= status.max_tokens
        ):
            return 0.0
        return status.time_until_reset

    def reset(self) -> None:
        """Start a fresh window immediately."""
        with self._lock:
            self._requests_used = 0
            self._tokens_used = 0
            self._next_reset_time = self._clock() + self.window_duration
        logger.debug("Rate limiter reset")
