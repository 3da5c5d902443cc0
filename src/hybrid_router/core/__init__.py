"""Core routing components.

Leaf modules first: errors, models, cache, rate_limit, cost, resilience,
classifier, executors and cloud. ``context`` wires them from a config and
``router`` orchestrates them.
"""

from hybrid_router.core.cache import ResponseCache
from hybrid_router.core.classifier import Classifier, TaskClassifier
from hybrid_router.core.cloud import CloudClient, HttpCloudClient, StaticCloudClient
from hybrid_router.core.context import RouterContext
from hybrid_router.core.cost import AIModel, CostTracker
from hybrid_router.core.executors import ExecutorRegistry, LocalExecutor
from hybrid_router.core.models import (
    ProcessingRoute,
    TaskClassificationResult,
    TaskComplexity,
    TaskResult,
    TaskType,
)
from hybrid_router.core.rate_limit import RateLimiter
from hybrid_router.core.resilience import CircuitBreaker, RetryConfig, RetryManager
from hybrid_router.core.router import TaskRouter

__all__ = [
    "AIModel",
    "CircuitBreaker",
    "Classifier",
    "CloudClient",
    "CostTracker",
    "ExecutorRegistry",
    "HttpCloudClient",
    "LocalExecutor",
    "ProcessingRoute",
    "RateLimiter",
    "ResponseCache",
    "RetryConfig",
    "RetryManager",
    "RouterContext",
    "StaticCloudClient",
    "TaskClassificationResult",
    "TaskClassifier",
    "TaskComplexity",
    "TaskResult",
    "TaskRouter",
    "TaskType",
]
