"""Tests for RetryManager and RetryConfig.

Verifies:
- Transient failures are retried until success
- Non-retryable errors stop after one attempt
- Exhaustion returns the last error with attempts == max_attempts
- Backoff delays follow min(base * mult^(n-1), max) * jitter
- Cancellation by operation id
"""

import asyncio
import random

import pytest

from hybrid_router.core.errors import (
    APIKeyMissingError,
    CircuitOpenError,
    CloudNetworkError,
    ServerError,
)
from hybrid_router.core.resilience import (
    RetryCancelled,
    RetryConfig,
    RetryFailure,
    RetryManager,
    RetrySuccess,
)


class FlakyOperation:
    """Fails with ``error`` for the first ``failures`` calls, then returns ``value``."""

    def __init__(self, failures: int, error: Exception, value: str = "ok"):
        self.failures = failures
        self.error = error
        self.value = value
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return self.value


NO_JITTER = RetryConfig(max_attempts=3, base_delay=1.0, max_delay=30.0, jitter_range=(1.0, 1.0))


class TestRetryConfig:
    """Tests for policy validation and presets."""

    def test_delay_grows_and_caps(self):
        """Delay doubles per attempt and is capped at max_delay."""
        config = RetryConfig(base_delay=1.0, max_delay=5.0, jitter_range=(1.0, 1.0))
        rng = random.Random(0)
        assert [config.delay_for(n, rng) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 5.0]

    def test_jitter_within_range(self):
        """Jittered delays stay within the configured factor range."""
        config = RetryConfig(base_delay=10.0, jitter_range=(0.8, 1.2))
        rng = random.Random(7)
        for _ in range(50):
            assert 8.0 <= config.delay_for(1, rng) <= 12.0

    def test_circuit_open_cannot_be_retryable(self):
        """AS017 in the retryable set is rejected."""
        with pytest.raises(ValueError, match="AS017"):
            RetryConfig(retryable_error_codes=frozenset({"AS017", "NE001"}))

    def test_invalid_values(self):
        """Zero attempts and inverted jitter are rejected."""
        with pytest.raises(ValueError):
            RetryConfig(max_attempts=0)
        with pytest.raises(ValueError):
            RetryConfig(jitter_range=(1.2, 0.8))

    def test_presets(self):
        """Named presets resolve; unknown names fail."""
        assert RetryConfig.preset("aggressive").max_attempts == 5
        assert RetryConfig.preset("conservative").max_attempts == 2
        assert RetryConfig.preset("default") == RetryConfig()
        with pytest.raises(ValueError, match="Unknown retry preset"):
            RetryConfig.preset("reckless")


class TestExecuteWithRetry:
    """Tests for the retry loop."""

    @pytest.mark.asyncio
    async def test_two_failures_then_success(self, fake_sleep, rng):
        """Fails twice with a retryable error, succeeds on the third attempt."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        operation = FlakyOperation(2, CloudNetworkError())

        outcome = await manager.execute_with_retry(operation, NO_JITTER)

        assert isinstance(outcome, RetrySuccess)
        assert outcome.succeeded
        assert outcome.value == "ok"
        assert outcome.attempts == 3
        assert operation.calls == 3
        assert fake_sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_non_retryable_fails_after_one_attempt(self, fake_sleep, rng):
        """A non-retryable error code stops immediately."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        operation = FlakyOperation(10, APIKeyMissingError())

        outcome = await manager.execute_with_retry(operation, NO_JITTER)

        assert isinstance(outcome, RetryFailure)
        assert outcome.attempts_made == 1
        assert outcome.error_code == "AS001"
        assert operation.calls == 1
        assert fake_sleep.delays == []

    @pytest.mark.asyncio
    async def test_circuit_open_not_retried(self, fake_sleep, rng):
        """An open circuit is never retried by the default policy."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        operation = FlakyOperation(10, CircuitOpenError(breaker_name="cloud"))

        outcome = await manager.execute_with_retry(operation)

        assert isinstance(outcome, RetryFailure)
        assert outcome.attempts_made == 1

    @pytest.mark.asyncio
    async def test_exhaustion_returns_last_error(self, fake_sleep, rng):
        """After max_attempts the last error is returned."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        operation = FlakyOperation(10, ServerError(status_code=503))

        outcome = await manager.execute_with_retry(operation, NO_JITTER)

        assert isinstance(outcome, RetryFailure)
        assert outcome.attempts_made == 3
        assert outcome.error_code == "AS014"
        assert len(fake_sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_foreign_exceptions_use_mapped_codes(self, fake_sleep, rng):
        """Foreign exceptions are classified through the error mappings."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        operation = FlakyOperation(1, ConnectionError("reset"))

        outcome = await manager.execute_with_retry(operation, NO_JITTER)

        assert isinstance(outcome, RetrySuccess)
        assert outcome.attempts == 2

    @pytest.mark.asyncio
    async def test_state_removed_after_completion(self, fake_sleep, rng):
        """Retry state exists only while the operation is in flight."""
        manager = RetryManager(rng=rng, sleep_func=fake_sleep)
        await manager.execute_with_retry(FlakyOperation(0, CloudNetworkError()), operation_id="op-1")
        assert manager.get_retry_state("op-1") is None
        assert manager.active_retries() == []


class TestRetryCancellation:
    """Tests for cancellation by operation id."""

    @pytest.mark.asyncio
    async def test_cancel_during_backoff(self, rng):
        """Cancelling while backing off stops before the next attempt."""
        manager_holder = {}

        async def cancelling_sleep(seconds: float) -> None:
            manager_holder["manager"].cancel_retry("op-cancel")

        manager = RetryManager(rng=rng, sleep_func=cancelling_sleep)
        manager_holder["manager"] = manager
        operation = FlakyOperation(10, CloudNetworkError())

        outcome = await manager.execute_with_retry(operation, NO_JITTER, operation_id="op-cancel")

        assert isinstance(outcome, RetryCancelled)
        assert outcome.attempts_made == 1
        assert operation.calls == 1

    @pytest.mark.asyncio
    async def test_state_visible_while_in_flight(self, rng):
        """get_retry_state reports progress for a running operation."""
        seen = {}
        release = asyncio.Event()

        async def waiting_sleep(seconds: float) -> None:
            state = manager.get_retry_state("op-watch")
            seen["attempt"] = state.current_attempt
            seen["code"] = state.last_error_code
            seen["next_retry_at"] = state.next_retry_at
            release.set()

        manager = RetryManager(rng=rng, sleep_func=waiting_sleep)
        outcome = await manager.execute_with_retry(
            FlakyOperation(1, CloudNetworkError()), NO_JITTER, operation_id="op-watch"
        )

        assert release.is_set()
        assert isinstance(outcome, RetrySuccess)
        assert seen["attempt"] == 1
        assert seen["code"] == "AS005"
        assert seen["next_retry_at"] is not None

    def test_cancel_unknown_id(self):
        """Cancelling an id that is not in flight returns False."""
        assert RetryManager().cancel_retry("nope") is False

    @pytest.mark.asyncio
    async def test_cancel_all(self, rng):
        """cancel_all_retries cancels every in-flight operation."""
        counts = {}

        async def sleep(seconds: float) -> None:
            counts["cancelled"] = manager.cancel_all_retries()

        manager = RetryManager(rng=rng, sleep_func=sleep)
        outcome = await manager.execute_with_retry(FlakyOperation(5, CloudNetworkError()), NO_JITTER)

        assert isinstance(outcome, RetryCancelled)
        assert counts["cancelled"] == 1
