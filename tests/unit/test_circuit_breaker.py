"""Tests for CircuitBreaker state transitions."""

import logging

import pytest

from hybrid_router.core.errors import CircuitOpenError, ServerError
from hybrid_router.core.models import CircuitState
from hybrid_router.core.resilience import CircuitBreaker


class CountingOperation:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.fail:
            raise ServerError(status_code=500)
        return "ok"


def open_breaker(breaker: CircuitBreaker) -> None:
    for _ in range(breaker.failure_threshold):
        breaker.record_failure()


class TestClosedState:
    """Tests for the closed state."""

    def test_initially_closed(self, clock):
        """A new breaker is closed and admits calls."""
        breaker = CircuitBreaker(clock=clock)
        assert breaker.state is CircuitState.CLOSED
        assert breaker.can_execute()

    def test_opens_at_failure_threshold(self, clock):
        """failure_threshold consecutive failures open the breaker."""
        breaker = CircuitBreaker(failure_threshold=3, clock=clock)
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state is CircuitState.CLOSED
        breaker.record_failure()
        assert breaker.state is CircuitState.OPEN

    def test_success_resets_failure_count(self, clock):
        """Any success in closed state resets the failure count."""
        breaker = CircuitBreaker(failure_threshold=3, clock=clock)
        breaker.record_failure()
        breaker.record_failure()
        breaker.record_success()
        assert breaker.failure_count == 0
        breaker.record_failure()
        breaker.record_failure()
        assert breaker.state is CircuitState.CLOSED


class TestOpenState:
    """Tests for the open state."""

    @pytest.mark.asyncio
    async def test_rejects_without_invoking(self, clock):
        """While open, calls fail fast and the operation is not invoked."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, clock=clock)
        open_breaker(breaker)
        clock.advance(30)
        operation = CountingOperation()

        with pytest.raises(CircuitOpenError) as exc_info:
            await breaker.call(operation)

        assert operation.calls == 0
        assert exc_info.value.code == "AS017"
        assert exc_info.value.retry_after == pytest.approx(30.0)

    @pytest.mark.asyncio
    async def test_half_open_after_recovery_timeout(self, clock):
        """After recovery_timeout the next call is a half-open trial."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=60, clock=clock)
        open_breaker(breaker)
        clock.advance(61)
        operation = CountingOperation()

        assert await breaker.call(operation) == "ok"

        assert operation.calls == 1
        assert breaker.state is CircuitState.HALF_OPEN
        assert breaker.success_count == 1

    def test_exactly_at_timeout_still_open(self, clock):
        """The timeout must be strictly exceeded."""
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        breaker.record_failure()
        clock.advance(60)
        assert not breaker.can_execute()


class TestHalfOpenState:
    """Tests for the half-open state."""

    @pytest.mark.asyncio
    async def test_closes_after_success_threshold(self, clock):
        """success_threshold trial successes close the breaker with counters reset."""
        breaker = CircuitBreaker(
            failure_threshold=2, recovery_timeout=10, success_threshold=3, clock=clock
        )
        open_breaker(breaker)
        clock.advance(11)
        operation = CountingOperation()

        for _ in range(3):
            await breaker.call(operation)

        assert breaker.state is CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.success_count == 0

    @pytest.mark.asyncio
    async def test_single_failure_reopens(self, clock):
        """One failure in half-open reopens and resets the success count."""
        breaker = CircuitBreaker(failure_threshold=2, recovery_timeout=10, clock=clock)
        open_breaker(breaker)
        clock.advance(11)
        await breaker.call(CountingOperation())

        with pytest.raises(ServerError):
            await breaker.call(CountingOperation(fail=True))

        assert breaker.state is CircuitState.OPEN
        assert breaker.success_count == 0
        assert not breaker.can_execute()


class TestBreakerOperations:
    """Tests for reset, reporting and audit output."""

    def test_reset(self, clock):
        """reset() forces the breaker closed."""
        breaker = CircuitBreaker(failure_threshold=1, clock=clock)
        breaker.record_failure()
        breaker.reset()
        assert breaker.state is CircuitState.CLOSED
        assert breaker.can_execute()

    def test_to_dict(self, clock):
        """to_dict reports state and time until a trial is allowed."""
        breaker = CircuitBreaker(failure_threshold=1, recovery_timeout=60, clock=clock)
        breaker.record_failure()
        clock.advance(15)
        data = breaker.to_dict()
        assert data["state"] == "open"
        assert data["retry_after"] == pytest.approx(45.0)

    def test_transitions_are_audited(self, clock, caplog):
        """State changes emit circuit_state_change audit events."""
        breaker = CircuitBreaker(failure_threshold=1, clock=clock)
        with caplog.at_level(logging.INFO, logger="hybrid_router.core.observability.audit"):
            breaker.record_failure()

        events = [r.audit for r in caplog.records if hasattr(r, "audit")]
        assert events
        assert events[-1]["event_type"] == "circuit_state_change"
        assert events[-1]["details"]["new_state"] == "open"

    def test_invalid_thresholds(self):
        """Zero thresholds are rejected."""
        with pytest.raises(ValueError):
            CircuitBreaker(failure_threshold=0)
