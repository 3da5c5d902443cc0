"""Token usage and spend accounting for the cloud path.

Tracks running token and cost totals, a per-model breakdown, and a record
of every call, and enforces optional total, daily and monthly spending
ceilings. The router ``reserve``s the projected cost before dispatching,
``settle``s the reservation with the real cost after a successful call and
``release``s it when the call fails.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from filelock import FileLock

from hybrid_router.config.decorators import log_call
from hybrid_router.core.errors import CostLimitExceededError
from hybrid_router.core.models import TaskComplexity

logger = logging.getLogger(__name__)

# Seconds to wait for the export lock
EXPORT_LOCK_TIMEOUT = 10


class AIModel(str, Enum):
    """Cloud models the router can select, with their per-token price."""

    GPT_35_TURBO = "gpt-3.5-turbo"
    GPT_4_TURBO = "gpt-4-turbo-preview"
    GPT_4 = "gpt-4"

    @property
    def cost_per_token(self) -> float:
        return _COST_PER_TOKEN[self]

    @classmethod
    def for_complexity(cls, complexity: TaskComplexity) -> "AIModel":
        """Cheapest model adequate for the complexity tier."""
        if complexity is TaskComplexity.SIMPLE:
            return cls.GPT_35_TURBO
        if complexity is TaskComplexity.MODERATE:
            return cls.GPT_4_TURBO
        return cls.GPT_4

    @classmethod
    def parse(cls, model: Union["AIModel", str]) -> "AIModel":
        if isinstance(model, AIModel):
            return model
        try:
            return cls(model)
        except ValueError:
            raise ValueError(f"Unknown model: {model}") from None


_COST_PER_TOKEN: Dict[AIModel, float] = {
    AIModel.GPT_35_TURBO: 0.0000015,
    AIModel.GPT_4_TURBO: 0.00001,
    AIModel.GPT_4: 0.00003,
}


@dataclass
class UsageRecord:
    """One tracked cloud call."""

    timestamp: datetime
    model: str
    tokens: int
    cost: float
    task_type: Optional[str] = None


@dataclass
class ModelUsage:
    """Aggregated usage for one model or period."""

    requests: int = 0
    tokens: int = 0
    cost: float = 0.0

    def add(self, tokens: int, cost: float) -> None:
        self.requests += 1
        self.tokens += tokens
        self.cost += cost


@dataclass
class UsageSummary:
    """Totals and per-model breakdown."""

    total_requests: int
    total_tokens: int
    total_cost: float
    budget_limit: Optional[float]
    remaining_budget: Optional[float]
    by_model: Dict[str, ModelUsage] = field(default_factory=dict)
    reserved_cost: float = 0.0

    @property
    def average_cost_per_request(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_cost / self.total_requests

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["average_cost_per_request"] = self.average_cost_per_request
        return data


@dataclass
class BudgetStatus:
    """Spend against each configured ceiling. A ceiling of None is unlimited."""

    total_cost: float
    daily_cost: float
    monthly_cost: float
    budget_limit: Optional[float] = None
    daily_limit: Optional[float] = None
    monthly_limit: Optional[float] = None

    @property
    def total_exceeded(self) -> bool:
        return self.budget_limit is not None and self.total_cost > self.budget_limit

    @property
    def daily_exceeded(self) -> bool:
        return self.daily_limit is not None and self.daily_cost > self.daily_limit

    @property
    def monthly_exceeded(self) -> bool:
        return self.monthly_limit is not None and self.monthly_cost > self.monthly_limit

    @property
    def is_within_budget(self) -> bool:
        return not (self.total_exceeded or self.daily_exceeded or self.monthly_exceeded)

    @staticmethod
    def _percentage(spent: float, limit: Optional[float]) -> Optional[float]:
        if limit is None:
            return None
        if limit == 0:
            return 0.0 if spent == 0 else float("inf")
        return spent / limit

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data.update(
            daily_percentage=self._percentage(self.daily_cost, self.daily_limit),
            monthly_percentage=self._percentage(self.monthly_cost, self.monthly_limit),
            is_within_budget=self.is_within_budget,
        )
        return data


@dataclass
class BudgetReservation:
    """Projected spend held against the ceilings while a cloud call runs.

    Returned by ``CostTracker.reserve``; hand it back to ``settle`` or
    ``release`` exactly once. Both are no-ops on an inactive reservation.
    """

    cost: float
    active: bool = True


class CostTracker:
    """Thread-safe usage accumulator with optional spending ceilings.

    Spend counted against a ceiling is the tracked cost plus every active
    reservation.

    Attributes:
        budget_limit: Maximum total spend, or None for unlimited
        daily_limit: Maximum spend per calendar day, or None
        monthly_limit: Maximum spend per calendar month, or None
    """

    def __init__(
        self,
        *,
        budget_limit: Optional[float] = None,
        daily_limit: Optional[float] = None,
        monthly_limit: Optional[float] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        for name, value in (
            ("budget_limit", budget_limit),
            ("daily_limit", daily_limit),
            ("monthly_limit", monthly_limit),
        ):
            if value is not None and value < 0:
                raise ValueError(f"{name} must be non-negative, got {value}")
        self.budget_limit = budget_limit
        self.daily_limit = daily_limit
        self.monthly_limit = monthly_limit
        self._clock = clock
        self._lock = threading.Lock()
        self._records: List[UsageRecord] = []
        self._by_model: Dict[str, ModelUsage] = {}
        self._total_tokens = 0
        self._total_cost = 0.0
        self._reserved = 0.0

    @staticmethod
    def calculate_cost(tokens: int, model: Union[AIModel, str]) -> float:
        """Price ``tokens`` at ``model``'s per-token rate."""
        if tokens < 0:
            raise ValueError(f"tokens must be non-negative, got {tokens}")
        return tokens * AIModel.parse(model).cost_per_token

    @property
    def total_tokens(self) -> int:
        with self._lock:
            return self._total_tokens

    @property
    def total_cost(self) -> float:
        with self._lock:
            return self._total_cost

    @property
    def reserved_cost(self) -> float:
        """Spend held by reservations that are not yet settled or released."""
        with self._lock:
            return self._reserved

    def track_usage(
        self,
        tokens: int,
        cost: float,
        model: Union[AIModel, str],
        *,
        task_type: Optional[str] = None,
    ) -> UsageRecord:
        """Record a completed call.

        Args:
            tokens: Tokens consumed
            cost: Amount spent
            model: Model that served the call
            task_type: Task type, for reporting

        Returns:
            The stored usage record
        """
        return self._record(tokens, cost, model, task_type, None)

    def _record(
        self,
        tokens: int,
        cost: float,
        model: Union[AIModel, str],
        task_type: Optional[str],
        reservation: Optional[BudgetReservation],
    ) -> UsageRecord:
        if tokens < 0 or cost < 0:
            raise ValueError("tokens and cost must be non-negative")
        model_name = model.value if isinstance(model, AIModel) else str(model)
        record = UsageRecord(
            timestamp=self._clock(),
            model=model_name,
            tokens=tokens,
            cost=cost,
            task_type=task_type,
        )
        with self._lock:
            if reservation is not None:
                self._release_locked(reservation)
            self._records.append(record)
            self._total_tokens += tokens
            self._total_cost += cost
            self._by_model.setdefault(model_name, ModelUsage()).add(tokens, cost)
            total = self._total_cost
        logger.debug("Tracked %d tokens ($%.6f) on %s, total $%.6f", tokens, cost, model_name, total)
        return record

    # -------------------------------------------------------------------------
    # Ceilings
    # -------------------------------------------------------------------------

    def _period_cost_locked(self, predicate: Callable[[UsageRecord], bool]) -> float:
        return sum((r.cost for r in self._records if predicate(r)), 0.0)

    def _committed_locked(self) -> List[Tuple[str, float, float]]:
        """(ceiling name, committed spend, limit) for each configured ceiling."""
        ceilings = []
        if self.budget_limit is not None:
            ceilings.append(("total", self._total_cost + self._reserved, self.budget_limit))
        if self.daily_limit is None and self.monthly_limit is None:
            return ceilings
        now = self._clock()
        if self.daily_limit is not None:
            spent = self._period_cost_locked(lambda r: r.timestamp.date() == now.date())
            ceilings.append(("daily", spent + self._reserved, self.daily_limit))
        if self.monthly_limit is not None:
            spent = self._period_cost_locked(
                lambda r: (r.timestamp.year, r.timestamp.month) == (now.year, now.month)
            )
            ceilings.append(("monthly", spent + self._reserved, self.monthly_limit))
        return ceilings

    def _exceeded_locked(self, projected_cost: float) -> Optional[Tuple[str, float, float]]:
        for name, committed, limit in self._committed_locked():
            if committed + projected_cost > limit:
                return name, committed, limit
        return None

    def would_exceed_budget(self, projected_cost: float) -> bool:
        """True if spending ``projected_cost`` more would pass any ceiling."""
        with self._lock:
            return self._exceeded_locked(projected_cost) is not None

    def reserve(self, projected_cost: float) -> BudgetReservation:
        """Hold ``projected_cost`` against every ceiling.

        The ceiling check and the hold happen under one lock acquisition, so
        concurrent callers see each other's holds.

        Args:
            projected_cost: Estimated cost of the call about to be made

        Returns:
            An active reservation to ``settle`` or ``release``

        Raises:
            CostLimitExceededError: If the hold would pass a ceiling
            ValueError: If ``projected_cost`` is negative
        """
        if projected_cost < 0:
            raise ValueError(f"projected_cost must be non-negative, got {projected_cost}")
        with self._lock:
            exceeded = self._exceeded_locked(projected_cost)
            if exceeded is None:
                self._reserved += projected_cost
                return BudgetReservation(projected_cost)
        ceiling, committed, limit = exceeded
        raise CostLimitExceededError(
            f"{ceiling.capitalize()} cost limit exceeded: ${committed:.4f} committed of ${limit:.4f}",
            current=committed,
            limit=limit,
            projected=projected_cost,
        )

    def settle(
        self,
        reservation: BudgetReservation,
        tokens: int,
        cost: float,
        model: Union[AIModel, str],
        *,
        task_type: Optional[str] = None,
    ) -> UsageRecord:
        """Replace a reservation with the real usage of the call it covered."""
        return self._record(tokens, cost, model, task_type, reservation)

    def release(self, reservation: BudgetReservation) -> None:
        """Drop a reservation whose call spent nothing."""
        with self._lock:
            self._release_locked(reservation)

    def _release_locked(self, reservation: BudgetReservation) -> None:
        if not reservation.active:
            return
        reservation.active = False
        self._reserved = max(0.0, self._reserved - reservation.cost)

    def remaining_budget(self) -> Optional[float]:
        if self.budget_limit is None:
            return None
        with self._lock:
            return max(0.0, self.budget_limit - self._total_cost - self._reserved)

    def budget_status(self) -> BudgetStatus:
        """Tracked spend (reservations excluded) against each ceiling."""
        now = self._clock()
        with self._lock:
            return BudgetStatus(
                total_cost=self._total_cost,
                daily_cost=self._period_cost_locked(lambda r: r.timestamp.date() == now.date()),
                monthly_cost=self._period_cost_locked(
                    lambda r: (r.timestamp.year, r.timestamp.month) == (now.year, now.month)
                ),
                budget_limit=self.budget_limit,
                daily_limit=self.daily_limit,
                monthly_limit=self.monthly_limit,
            )

    def is_within_budget(self) -> bool:
        return self.budget_status().is_within_budget

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def get_usage_summary(self) -> UsageSummary:
        with self._lock:
            by_model = {name: ModelUsage(u.requests, u.tokens, u.cost) for name, u in self._by_model.items()}
            total_cost = self._total_cost
            reserved = self._reserved
            summary = UsageSummary(
                total_requests=len(self._records),
                total_tokens=self._total_tokens,
                total_cost=total_cost,
                budget_limit=self.budget_limit,
                remaining_budget=None,
                by_model=by_model,
                reserved_cost=reserved,
            )
        if self.budget_limit is not None:
            summary.remaining_budget = max(0.0, self.budget_limit - total_cost - reserved)
        return summary

    def daily_usage(self, day: Optional[date] = None) -> ModelUsage:
        """Usage for one calendar day (defaults to today)."""
        day = day or self._clock().date()
        return self._aggregate(lambda r: r.timestamp.date() == day)

    def monthly_usage(self, year: Optional[int] = None, month: Optional[int] = None) -> ModelUsage:
        """Usage for one calendar month (defaults to the current month)."""
        now = self._clock()
        year = year or now.year
        month = month or now.month
        return self._aggregate(lambda r: r.timestamp.year == year and r.timestamp.month == month)

    def _aggregate(self, predicate: Callable[[UsageRecord], bool]) -> ModelUsage:
        usage = ModelUsage()
        with self._lock:
            for record in self._records:
                if predicate(record):
                    usage.add(record.tokens, record.cost)
        return usage

    def records(self) -> List[UsageRecord]:
        with self._lock:
            return list(self._records)

    def reset(self) -> None:
        """Forget all usage. Ceilings and active reservations are kept."""
        with self._lock:
            self._records.clear()
            self._by_model.clear()
            self._total_tokens = 0
            self._total_cost = 0.0
        logger.info("Cost tracker reset")

    @log_call()
    def export_usage(self, path: Path) -> Path:
        """Write the usage summary and records to ``path`` as JSON.

        The write is guarded by a sibling ``.lock`` file so concurrent exports
        from several processes do not interleave.

        Args:
            path: Destination file

        Returns:
            The path written
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "exported_at": self._clock().isoformat(),
            "summary": self.get_usage_summary().to_dict(),
            "records": [
                {**asdict(r), "timestamp": r.timestamp.isoformat()} for r in self.records()
            ],
        }
        lock = FileLock(str(path) + ".lock", timeout=EXPORT_LOCK_TIMEOUT)
        with lock:
            path.write_text(json.dumps(payload, indent=2))
        logger.info("Exported %d usage records to %s", len(payload["records"]), path)
        return path
