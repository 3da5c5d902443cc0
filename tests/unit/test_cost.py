"""Tests for CostTracker and model pricing."""

import json
import threading
from datetime import date, datetime, timezone

import pytest

from hybrid_router.core.cost import AIModel, BudgetStatus, CostTracker
from hybrid_router.core.errors import CostLimitExceededError
from hybrid_router.core.models import TaskComplexity


class FixedDateClock:
    def __init__(self, when: datetime):
        self.when = when

    def __call__(self) -> datetime:
        return self.when


class TestModelPricing:
    """Tests for AIModel and calculate_cost."""

    def test_calculate_cost(self):
        """Cost is tokens times the per-token price."""
        assert CostTracker.calculate_cost(1000, AIModel.GPT_4) == pytest.approx(0.03)
        assert CostTracker.calculate_cost(1000, "gpt-3.5-turbo") == pytest.approx(0.0015)

    def test_negative_tokens_rejected(self):
        """Negative token counts are invalid."""
        with pytest.raises(ValueError):
            CostTracker.calculate_cost(-1, AIModel.GPT_4)

    def test_unknown_model_rejected(self):
        """Unknown model names raise ValueError."""
        with pytest.raises(ValueError, match="Unknown model"):
            AIModel.parse("gpt-99")

    def test_model_for_complexity(self):
        """Harder tiers select stronger models."""
        assert AIModel.for_complexity(TaskComplexity.SIMPLE) is AIModel.GPT_35_TURBO
        assert AIModel.for_complexity(TaskComplexity.MODERATE) is AIModel.GPT_4_TURBO
        assert AIModel.for_complexity(TaskComplexity.ADVANCED) is AIModel.GPT_4


class TestUsageTracking:
    """Tests for running totals and the budget ceiling."""

    def test_track_usage_accumulates(self):
        """Totals and per-model breakdown accumulate."""
        tracker = CostTracker()
        tracker.track_usage(100, 0.003, AIModel.GPT_4)
        tracker.track_usage(200, 0.006, AIModel.GPT_4)
        tracker.track_usage(1000, 0.0015, "gpt-3.5-turbo")

        assert tracker.total_tokens == 1300
        assert tracker.total_cost == pytest.approx(0.0105)
        summary = tracker.get_usage_summary()
        assert summary.total_requests == 3
        assert summary.by_model["gpt-4"].requests == 2
        assert summary.by_model["gpt-4"].tokens == 300
        assert summary.average_cost_per_request == pytest.approx(0.0035)

    def test_no_budget_never_exceeds(self):
        """Without a ceiling every projection is allowed."""
        tracker = CostTracker()
        assert not tracker.would_exceed_budget(1_000_000.0)
        assert tracker.remaining_budget() is None

    def test_would_exceed_budget(self):
        """Projected spend past the ceiling is flagged before dispatch."""
        tracker = CostTracker(budget_limit=1.0)
        tracker.track_usage(1000, 0.9, AIModel.GPT_4)
        assert not tracker.would_exceed_budget(0.1)
        assert tracker.would_exceed_budget(0.11)
        assert tracker.remaining_budget() == pytest.approx(0.1)

    def test_reset_keeps_budget(self):
        """reset() clears usage but not the ceiling."""
        tracker = CostTracker(budget_limit=2.0)
        tracker.track_usage(10, 1.0, AIModel.GPT_4)
        tracker.reset()
        assert tracker.total_cost == 0.0
        assert tracker.budget_limit == 2.0
        assert tracker.records() == []

    def test_invalid_values_rejected(self):
        """Negative usage and negative ceilings are invalid."""
        with pytest.raises(ValueError):
            CostTracker(budget_limit=-1)
        with pytest.raises(ValueError):
            CostTracker(daily_limit=-0.5)
        with pytest.raises(ValueError):
            CostTracker().track_usage(-5, 0.0, AIModel.GPT_4)


class TestUsagePeriods:
    """Tests for daily and monthly aggregation and export."""

    def test_daily_and_monthly_usage(self):
        """Records aggregate by calendar day and month."""
        clock = FixedDateClock(datetime(2024, 3, 10, 12, tzinfo=timezone.utc))
        tracker = CostTracker(clock=clock)
        tracker.track_usage(100, 0.01, AIModel.GPT_4)
        clock.when = datetime(2024, 3, 11, 9, tzinfo=timezone.utc)
        tracker.track_usage(50, 0.005, AIModel.GPT_4)
        clock.when = datetime(2024, 4, 1, 9, tzinfo=timezone.utc)
        tracker.track_usage(10, 0.001, AIModel.GPT_4)

        assert tracker.daily_usage(date(2024, 3, 10)).tokens == 100
        march = tracker.monthly_usage(2024, 3)
        assert march.requests == 2
        assert march.cost == pytest.approx(0.015)
        assert tracker.daily_usage().tokens == 10

    def test_export_usage(self, tmp_path):
        """export_usage writes the summary and records as JSON."""
        tracker = CostTracker(budget_limit=5.0)
        tracker.track_usage(100, 0.003, AIModel.GPT_4, task_type="help")

        path = tracker.export_usage(tmp_path / "out" / "usage.json")

        data = json.loads(path.read_text())
        assert data["summary"]["total_tokens"] == 100
        assert data["summary"]["remaining_budget"] == pytest.approx(4.997)
        assert data["records"][0]["task_type"] == "help"
        assert data["records"][0]["model"] == "gpt-4"


class TestReservations:
    """Tests for holding projected spend while a call is in flight."""

    def test_reservation_counts_against_ceiling(self):
        """Held spend is counted before it is tracked."""
        tracker = CostTracker(budget_limit=1.0)
        reservation = tracker.reserve(0.6)

        assert tracker.reserved_cost == pytest.approx(0.6)
        assert tracker.would_exceed_budget(0.5)
        assert tracker.remaining_budget() == pytest.approx(0.4)
        with pytest.raises(CostLimitExceededError) as exc_info:
            tracker.reserve(0.5)
        assert exc_info.value.payload["current"] == pytest.approx(0.6)
        assert exc_info.value.payload["limit"] == 1.0

        tracker.release(reservation)
        assert tracker.reserved_cost == 0.0
        tracker.reserve(0.5)

    def test_settle_replaces_hold_with_usage(self):
        """settle() drops the hold and records the real cost."""
        tracker = CostTracker(budget_limit=1.0)
        reservation = tracker.reserve(0.3)

        record = tracker.settle(reservation, 200, 0.2, AIModel.GPT_4, task_type="help")

        assert record.cost == 0.2
        assert tracker.reserved_cost == 0.0
        assert tracker.total_cost == pytest.approx(0.2)
        assert tracker.get_usage_summary().remaining_budget == pytest.approx(0.8)

    def test_release_is_idempotent(self):
        """A reservation is only given back once."""
        tracker = CostTracker()
        first = tracker.reserve(0.2)
        tracker.reserve(0.3)

        tracker.release(first)
        tracker.release(first)

        assert tracker.reserved_cost == pytest.approx(0.3)
        assert not first.active

    def test_negative_projection_rejected(self):
        """Projected spend cannot be negative."""
        with pytest.raises(ValueError):
            CostTracker().reserve(-0.1)

    def test_no_overcommit_across_threads(self):
        """Concurrent reservations never hold more than the ceiling."""
        tracker = CostTracker(budget_limit=5.0)
        granted = []
        lock = threading.Lock()

        def worker():
            for _ in range(20):
                try:
                    reservation = tracker.reserve(0.1)
                except CostLimitExceededError:
                    continue
                with lock:
                    granted.append(reservation)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(granted) in (49, 50)
        assert tracker.reserved_cost <= 5.0 + 1e-9


class TestPeriodCeilings:
    """Tests for daily and monthly spending limits."""

    def test_daily_limit(self):
        """Today's spend is checked against the daily limit; yesterday's is not."""
        clock = FixedDateClock(datetime(2024, 3, 10, 23, tzinfo=timezone.utc))
        tracker = CostTracker(daily_limit=1.0, clock=clock)
        tracker.track_usage(100, 0.9, AIModel.GPT_4)

        with pytest.raises(CostLimitExceededError, match="Daily cost limit"):
            tracker.reserve(0.2)

        clock.when = datetime(2024, 3, 11, 1, tzinfo=timezone.utc)
        assert not tracker.would_exceed_budget(0.2)

    def test_monthly_limit(self):
        """Spend across days in the same month accumulates."""
        clock = FixedDateClock(datetime(2024, 3, 1, tzinfo=timezone.utc))
        tracker = CostTracker(daily_limit=5.0, monthly_limit=6.0, clock=clock)
        tracker.track_usage(100, 4.0, AIModel.GPT_4)
        clock.when = datetime(2024, 3, 20, tzinfo=timezone.utc)

        with pytest.raises(CostLimitExceededError, match="Monthly cost limit"):
            tracker.reserve(2.5)
        tracker.reserve(1.5)

        clock.when = datetime(2024, 4, 1, tzinfo=timezone.utc)
        assert tracker.budget_status().monthly_cost == 0.0

    def test_budget_status(self):
        """Status reports spend, percentages and whether every ceiling holds."""
        clock = FixedDateClock(datetime(2024, 3, 10, tzinfo=timezone.utc))
        tracker = CostTracker(daily_limit=2.0, monthly_limit=10.0, clock=clock)
        tracker.track_usage(100, 3.0, AIModel.GPT_4)

        status = tracker.budget_status()

        assert status.daily_exceeded
        assert not status.monthly_exceeded
        assert not tracker.is_within_budget()
        data = status.to_dict()
        assert data["daily_percentage"] == pytest.approx(1.5)
        assert data["monthly_percentage"] == pytest.approx(0.3)
        assert data["is_within_budget"] is False

    def test_unlimited_status(self):
        """Without ceilings nothing is exceeded and percentages are None."""
        status = BudgetStatus(total_cost=100.0, daily_cost=100.0, monthly_cost=100.0)
        assert status.is_within_budget
        assert status.to_dict()["daily_percentage"] is None
