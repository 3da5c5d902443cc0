"""Core data models shared across the router.

Defines the enums and result types that flow between the classifier, the
router and callers:
- TaskType, TaskComplexity, ProcessingRoute for classification
- TaskClassificationResult, the immutable classifier output
- TaskResult, the immutable outcome of ``process_input``
- CircuitState, HealthStatus for resilience and health reporting
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from hybrid_router.core.errors.taxonomy import ErrorInfo


# =============================================================================
# Enums
# =============================================================================


class TaskType(str, Enum):
    """Kind of task a request asks for."""

    FILE_OPERATION = "file_operation"
    SYSTEM_QUERY = "system_query"
    APP_CONTROL = "app_control"
    TEXT_PROCESSING = "text_processing"
    CALCULATION = "calculation"
    WEB_QUERY = "web_query"
    AUTOMATION = "automation"
    SETTINGS = "settings"
    HELP = "help"
    UNKNOWN = "unknown"


class ProcessingRoute(str, Enum):
    """Where a request is processed.

    HYBRID is only ever a suggestion; at dispatch it resolves to CLOUD.
    """

    LOCAL = "local"
    CLOUD = "cloud"
    HYBRID = "hybrid"


class TaskComplexity(str, Enum):
    """Expected processing difficulty."""

    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    ADVANCED = "advanced"

    @property
    def suggested_route(self) -> ProcessingRoute:
        if self is TaskComplexity.SIMPLE:
            return ProcessingRoute.LOCAL
        if self is TaskComplexity.MODERATE:
            return ProcessingRoute.HYBRID
        return ProcessingRoute.CLOUD

    @property
    def duration_multiplier(self) -> float:
        return _DURATION_MULTIPLIERS[self]

    def bumped(self) -> "TaskComplexity":
        """Return the next tier up (ADVANCED stays ADVANCED)."""
        order = list(TaskComplexity)
        return order[min(order.index(self) + 1, len(order) - 1)]


_DURATION_MULTIPLIERS: Dict[TaskComplexity, float] = {
    TaskComplexity.SIMPLE: 1.0,
    TaskComplexity.MODERATE: 2.0,
    TaskComplexity.COMPLEX: 4.0,
    TaskComplexity.ADVANCED: 8.0,
}


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class HealthStatus(str, Enum):
    """Health of a component or of the whole system."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


# =============================================================================
# Results
# =============================================================================


class TaskClassificationResult(BaseModel):
    """Classifier output for one input. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    task_type: TaskType = Field(..., description="Assigned task type")
    confidence: float = Field(..., ge=0.0, le=1.0, description="Certainty in the task type")
    complexity: TaskComplexity = Field(default=TaskComplexity.SIMPLE)
    parameters: Dict[str, str] = Field(default_factory=dict, description="Extracted values")
    suggested_route: ProcessingRoute = Field(default=ProcessingRoute.LOCAL)
    requires_confirmation: bool = Field(default=False, description="Task has side effects")
    requires_escalation: bool = Field(
        default=False, description="Confidence below the escalation threshold"
    )
    estimated_duration: float = Field(default=1.0, ge=0.0, description="Seconds")
    truncated: bool = Field(default=False, description="Input was cut to the length cap")


class TaskResult(BaseModel):
    """Outcome of processing one request. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    success: bool
    output: str
    route: ProcessingRoute
    task_type: TaskType = TaskType.UNKNOWN
    tokens_used: int = Field(default=0, ge=0)
    cost: float = Field(default=0.0, ge=0.0)
    cache_hit: bool = False
    error: Optional[ErrorInfo] = None
    processing_time: float = Field(default=0.0, ge=0.0)
    model: Optional[str] = None

    def as_cache_hit(self, processing_time: float = 0.0) -> "TaskResult":
        """Copy of this result as served from the cache (no tokens, no cost)."""
        return self.model_copy(
            update={
                "cache_hit": True,
                "tokens_used": 0,
                "cost": 0.0,
                "processing_time": processing_time,
            }
        )
