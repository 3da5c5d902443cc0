"""Task router: decides where each request runs and never raises.

``TaskRouter.process_input`` is the single entry point. For every request it
looks in the response cache, classifies the input, applies the privacy
override, picks the local or cloud route, dispatches, caches replayable
results and updates statistics. Every failure below it is captured into a
``TaskResult`` with ``success=False``.

Empty input never reaches the classifier; it is answered by the local help
executor.

Cloud dispatch is layered, outermost first:

    availability -> rate limiter admission -> budget reservation
        -> retry manager -> circuit breaker -> per-attempt timeout -> cloud client

Failed cloud requests are recorded in the failure history and answered with
an apology plus manual guidance for the task type.
"""

from __future__ import annotations

import asyncio
import logging
import re
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Optional

from hybrid_router.config.decorators import timed
from hybrid_router.config.domains import RoutingConfig
from hybrid_router.core.cache import ResponseCache
from hybrid_router.core.classifier import Classifier
from hybrid_router.core.cloud import CloudClient, build_messages
from hybrid_router.core.context import RouterContext
from hybrid_router.core.cost import AIModel, CostTracker
from hybrid_router.core.errors import (
    CloudTimeoutError,
    CostLimitExceededError,
    ErrorKind,
    RateLimitExceededError,
    RoutingError,
    as_router_error,
    user_message,
)
from hybrid_router.core.executors import ExecutorRegistry
from hybrid_router.core.fallback import FailureHistory, degraded_response
from hybrid_router.core.models import (
    CircuitState,
    HealthStatus,
    ProcessingRoute,
    TaskClassificationResult,
    TaskComplexity,
    TaskResult,
    TaskType,
)
from hybrid_router.core.observability import audit_log, correlation_scope
from hybrid_router.core.rate_limit import RateLimiter
from hybrid_router.core.resilience import (
    CircuitBreaker,
    RetryCancelled,
    RetryConfig,
    RetryFailure,
    RetryManager,
)

logger = logging.getLogger(__name__)


PRIVACY_KEYWORDS = (
    "password",
    "passcode",
    "credential",
    "credentials",
    "credit card",
    "ssn",
    "social security",
    "api key",
    "secret",
    "private",
    "personal",
    "confidential",
    "keychain",
    "bank account",
)

_PRIVACY_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(k) for k in PRIVACY_KEYWORDS) + r")\b"
)

CACHEABLE_TASK_TYPES: FrozenSet[TaskType] = frozenset(
    {
        TaskType.HELP,
        TaskType.CALCULATION,
        TaskType.TEXT_PROCESSING,
        TaskType.WEB_QUERY,
        TaskType.UNKNOWN,
    }
)

# System queries whose answer does not change while the process runs
STATIC_QUERY_TYPES: FrozenSet[str] = frozenset({"system"})

LOCAL_COMPLEXITIES: FrozenSet[TaskComplexity] = frozenset(
    {TaskComplexity.SIMPLE, TaskComplexity.MODERATE}
)

# Floor for the projected token count used by the budget check
MIN_PROJECTED_TOKENS = 100


def is_privacy_sensitive(text: str, classification: Optional[TaskClassificationResult] = None) -> bool:
    """True if the input or its extracted parameters mention credentials or personal data."""
    if _PRIVACY_PATTERN.search(ResponseCache.normalize_key(text)):
        return True
    if classification is not None:
        return any(
            _PRIVACY_PATTERN.search(value.lower()) for value in classification.parameters.values()
        )
    return False


def is_cacheable(result: TaskResult, classification: TaskClassificationResult, private: bool) -> bool:
    """Whether ``result`` may be replayed for the same normalized input."""
    if not result.success or private:
        return False
    if classification.task_type in CACHEABLE_TASK_TYPES:
        return True
    if classification.task_type is TaskType.SYSTEM_QUERY:
        return classification.parameters.get("query_type") in STATIC_QUERY_TYPES
    return False


# =============================================================================
# Statistics
# =============================================================================


@dataclass
class RoutingStatistics:
    """Running counters for routed requests.

    Cache hits count toward ``total_requests`` and ``cache_hits`` only; the
    route counters and success/failure tallies cover dispatched requests.
    """

    total_requests: int = 0
    cache_hits: int = 0
    local_count: int = 0
    cloud_count: int = 0
    local_successes: int = 0
    cloud_successes: int = 0
    total_successes: int = 0
    total_failures: int = 0
    privacy_overrides: int = 0
    total_processing_time: float = 0.0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record_cache_hit(self, processing_time: float) -> None:
        with self._lock:
            self.total_requests += 1
            self.cache_hits += 1
            self.total_processing_time += processing_time

    def record(self, result: TaskResult, *, privacy_override: bool = False) -> None:
        with self._lock:
            self.total_requests += 1
            self.total_processing_time += result.processing_time
            if privacy_override:
                self.privacy_overrides += 1
            if result.route is ProcessingRoute.LOCAL:
                self.local_count += 1
                if result.success:
                    self.local_successes += 1
            else:
                self.cloud_count += 1
                if result.success:
                    self.cloud_successes += 1
            if result.success:
                self.total_successes += 1
            else:
                self.total_failures += 1

    def reset(self) -> None:
        with self._lock:
            self.total_requests = 0
            self.cache_hits = 0
            self.local_count = 0
            self.cloud_count = 0
            self.local_successes = 0
            self.cloud_successes = 0
            self.total_successes = 0
            self.total_failures = 0
            self.privacy_overrides = 0
            self.total_processing_time = 0.0

    def to_dict(self) -> Dict[str, Any]:
        with self._lock:
            total = self.total_requests
            dispatched = self.local_count + self.cloud_count
            return {
                "total_requests": total,
                "cache_hits": self.cache_hits,
                "local_count": self.local_count,
                "cloud_count": self.cloud_count,
                "total_successes": self.total_successes,
                "total_failures": self.total_failures,
                "privacy_overrides": self.privacy_overrides,
                "cache_hit_rate": self.cache_hits / total if total else 0.0,
                "local_rate": self.local_count / dispatched if dispatched else 0.0,
                "success_rate": self.total_successes / dispatched if dispatched else 0.0,
                "local_success_rate": (
                    self.local_successes / self.local_count if self.local_count else 0.0
                ),
                "cloud_success_rate": (
                    self.cloud_successes / self.cloud_count if self.cloud_count else 0.0
                ),
                "average_processing_time": self.total_processing_time / total if total else 0.0,
            }


# =============================================================================
# Router
# =============================================================================


class TaskRouter:
    """Routes requests between local executors and the cloud service.

    All collaborators are passed in; use ``from_context`` to wire a router
    from a ``RouterContext``.
    """

    def __init__(
        self,
        *,
        classifier: Classifier,
        executors: ExecutorRegistry,
        cloud_client: CloudClient,
        cache: ResponseCache,
        rate_limiter: RateLimiter,
        cost_tracker: CostTracker,
        retry_manager: RetryManager,
        circuit_breaker: CircuitBreaker,
        failure_history: Optional[FailureHistory] = None,
        routing: Optional[RoutingConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        default_model: Optional[str] = None,
        clock=time.perf_counter,
    ):
        self.classifier = classifier
        self.executors = executors
        self.cloud_client = cloud_client
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.cost_tracker = cost_tracker
        self.retry_manager = retry_manager
        self.circuit_breaker = circuit_breaker
        self.failure_history = failure_history if failure_history is not None else FailureHistory()
        self.routing = routing or RoutingConfig()
        self.retry_config = retry_config or retry_manager.default_config
        # Unknown model names fail here rather than on the first cloud call
        self.default_model = AIModel.parse(default_model) if default_model else None
        self._clock = clock
        self._stats = RoutingStatistics()

    @classmethod
    def from_context(cls, context: RouterContext) -> "TaskRouter":
        return cls(
            classifier=context.classifier,
            executors=context.executors,
            cloud_client=context.cloud_client,
            cache=context.cache,
            rate_limiter=context.rate_limiter,
            cost_tracker=context.cost_tracker,
            retry_manager=context.retry_manager,
            circuit_breaker=context.circuit_breaker,
            failure_history=context.failure_history,
            routing=context.config.routing,
            retry_config=context.retry_config,
            default_model=context.config.cloud.default_model,
        )

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    async def process_input(self, text: str) -> TaskResult:
        """Process one request end to end. Never raises.

        Args:
            text: Raw user input

        Returns:
            The result; ``success=False`` carries a user-facing ``output`` and
            the structured ``error``.
        """
        start = self._clock()
        with correlation_scope() as request_id:
            try:
                return await self._process(text or "", start, request_id)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.exception("Unhandled error while routing request %s", request_id)
                error = as_router_error(e)
                if error.kind is ErrorKind.UNKNOWN:
                    error = RoutingError(ErrorKind.INTERNAL_ERROR, detail=str(e))
                result = TaskResult(
                    success=False,
                    output=user_message(error),
                    route=ProcessingRoute.LOCAL,
                    error=error.to_info(),
                    processing_time=self._clock() - start,
                )
                self._stats.record(result)
                return result

    async def _process(self, text: str, start: float, request_id: str) -> TaskResult:
        key = ResponseCache.normalize_key(text)
        if not key:
            return await self._process_empty(start, request_id)

        cached = self.cache.get(key)
        if isinstance(cached, TaskResult):
            elapsed = self._clock() - start
            self._stats.record_cache_hit(elapsed)
            audit_log("cache_hit", task_type=cached.task_type.value, route=cached.route.value)
            logger.debug("Cache hit for request %s", request_id)
            return cached.as_cache_hit(elapsed)

        classification = self._classify(text)
        private = is_privacy_sensitive(text, classification)
        route = self.decide_route(classification, private=private)
        if private:
            audit_log(
                "privacy_override",
                task_type=classification.task_type.value,
                suggested_route=classification.suggested_route.value,
            )
        audit_log(
            "route_decision",
            route=route.value,
            task_type=classification.task_type.value,
            confidence=classification.confidence,
            complexity=classification.complexity.value,
            suggested_route=classification.suggested_route.value,
            privacy_override=private,
        )
        logger.info(
            "Routing %s to %s (type=%s, confidence=%.2f, complexity=%s)",
            request_id,
            route.value,
            classification.task_type.value,
            classification.confidence,
            classification.complexity.value,
        )

        if route is ProcessingRoute.LOCAL:
            result = await self._process_locally(classification, start)
        else:
            result = await self._process_in_cloud(text, classification, start, request_id)

        if is_cacheable(result, classification, private):
            self.cache.set(key, result, task_type=classification.task_type.value)

        self._stats.record(result, privacy_override=private)
        return result

    async def _process_empty(self, start: float, request_id: str) -> TaskResult:
        classification = TaskClassificationResult(
            task_type=TaskType.HELP,
            confidence=1.0,
            complexity=TaskComplexity.SIMPLE,
            suggested_route=ProcessingRoute.LOCAL,
        )
        audit_log(
            "route_decision",
            route=ProcessingRoute.LOCAL.value,
            task_type=TaskType.HELP.value,
            reason="empty_input",
        )
        logger.info("Routing %s to local help (empty input)", request_id)
        result = await self._process_locally(classification, start)
        self._stats.record(result)
        return result

    def _classify(self, text: str) -> TaskClassificationResult:
        try:
            return self.classifier.quick_classify(text) or self.classifier.classify(text)
        except Exception:
            logger.exception("Classifier failed; treating input as unknown")
            return TaskClassificationResult(
                task_type=TaskType.UNKNOWN,
                confidence=0.0,
                complexity=TaskComplexity.SIMPLE,
                suggested_route=ProcessingRoute.CLOUD,
                requires_escalation=True,
            )

    def decide_route(
        self, classification: TaskClassificationResult, *, private: bool = False
    ) -> ProcessingRoute:
        """Pick the dispatch route. Never returns HYBRID."""
        if private:
            return ProcessingRoute.LOCAL
        if (
            classification.confidence >= self.routing.local_threshold
            and classification.complexity in LOCAL_COMPLEXITIES
        ):
            return ProcessingRoute.LOCAL
        return ProcessingRoute.CLOUD

    # -------------------------------------------------------------------------
    # Local path
    # -------------------------------------------------------------------------

    async def _process_locally(
        self, classification: TaskClassificationResult, start: float
    ) -> TaskResult:
        task_type = classification.task_type
        try:
            output = await self.executors.run(task_type, classification.parameters)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = as_router_error(e)
            logger.warning("Local %s executor failed: %s", task_type.value, error.message)
            return TaskResult(
                success=False,
                output=user_message(error),
                route=ProcessingRoute.LOCAL,
                task_type=task_type,
                error=error.to_info(),
                processing_time=self._clock() - start,
            )
        return TaskResult(
            success=True,
            output=output,
            route=ProcessingRoute.LOCAL,
            task_type=task_type,
            processing_time=self._clock() - start,
        )

    # -------------------------------------------------------------------------
    # Cloud path
    # -------------------------------------------------------------------------

    def _model_for(self, classification: TaskClassificationResult) -> AIModel:
        return self.default_model or AIModel.for_complexity(classification.complexity)

    def _cloud_failure(
        self,
        text: str,
        classification: TaskClassificationResult,
        start: float,
        error: BaseException,
        output: Optional[str] = None,
        model: Optional[AIModel] = None,
    ) -> TaskResult:
        """Failed cloud result; ``output`` defaults to the degraded response."""
        routed_error = as_router_error(error)
        self.failure_history.record_failure(text, routed_error)
        if output is None:
            output = degraded_response(
                classification.task_type, exhausted=self.failure_history.is_exhausted(text)
            )
        return TaskResult(
            success=False,
            output=output,
            route=ProcessingRoute.CLOUD,
            task_type=classification.task_type,
            error=routed_error.to_info(),
            processing_time=self._clock() - start,
            model=model.value if model is not None else None,
        )

    async def _process_in_cloud(
        self,
        text: str,
        classification: TaskClassificationResult,
        start: float,
        request_id: str,
    ) -> TaskResult:
        model = self._model_for(classification)

        unavailable = self.cloud_client.unavailable_reason()
        if unavailable is not None:
            logger.warning(
                "Cloud client %s is not available: %s", self.cloud_client.name, unavailable.code
            )
            output = user_message(unavailable) if unavailable.kind is ErrorKind.API_KEY_MISSING else None
            return self._cloud_failure(text, classification, start, unavailable, output, model)

        estimated_tokens = self.routing.default_estimated_tokens
        try:
            self.rate_limiter.check_rate_limit(estimated_tokens)
        except RateLimitExceededError as e:
            return self._cloud_failure(text, classification, start, e, user_message(e), model)

        projected_tokens = max(MIN_PROJECTED_TOKENS, len(text) // 4)
        projected_cost = CostTracker.calculate_cost(projected_tokens, model)
        try:
            reservation = self.cost_tracker.reserve(projected_cost)
        except CostLimitExceededError as e:
            audit_log(
                "budget_exceeded",
                committed_cost=e.payload.get("current"),
                budget_limit=e.payload.get("limit"),
                projected_cost=projected_cost,
            )
            logger.warning("Cloud request %s refused: %s", request_id, e.message)
            self.rate_limiter.record_actual_usage(-estimated_tokens)
            return self._cloud_failure(text, classification, start, e, user_message(e), model)

        messages = build_messages(text, classification.task_type)

        async def attempt():
            return await self.circuit_breaker.call(lambda: self._call_cloud(messages, model))

        try:
            outcome = await self.retry_manager.execute_with_retry(
                attempt, self.retry_config, operation_id=request_id
            )
        except BaseException:
            self.cost_tracker.release(reservation)
            self.rate_limiter.record_actual_usage(-estimated_tokens)
            raise

        if isinstance(outcome, RetryCancelled):
            self.cost_tracker.release(reservation)
            self.rate_limiter.record_actual_usage(-estimated_tokens)
            error = RoutingError(ErrorKind.FALLBACK_FAILED, detail="cancelled")
            audit_log("cloud_failure", reason="cancelled", attempts=outcome.attempts_made)
            return self._cloud_failure(text, classification, start, error, model=model)

        if isinstance(outcome, RetryFailure):
            self.cost_tracker.release(reservation)
            self.rate_limiter.record_actual_usage(-estimated_tokens)
            error = as_router_error(outcome.error)
            audit_log(
                "cloud_failure",
                error_code=error.code,
                attempts=outcome.attempts_made,
                model=model.value,
            )
            logger.warning(
                "Cloud request %s failed after %d attempt(s): %s",
                request_id,
                outcome.attempts_made,
                error.code,
            )
            output = user_message(error) if error.kind is ErrorKind.CIRCUIT_OPEN else None
            return self._cloud_failure(text, classification, start, error, output, model)

        completion = outcome.value
        tokens = max(0, int(completion.tokens_used))
        served_by = completion.model or model.value
        try:
            cost = CostTracker.calculate_cost(tokens, served_by)
        except ValueError:
            cost = CostTracker.calculate_cost(tokens, model)
        self.cost_tracker.settle(
            reservation, tokens, cost, served_by, task_type=classification.task_type.value
        )
        self.rate_limiter.record_actual_usage(tokens - estimated_tokens)

        return TaskResult(
            success=True,
            output=completion.content,
            route=ProcessingRoute.CLOUD,
            task_type=classification.task_type,
            tokens_used=tokens,
            cost=cost,
            processing_time=self._clock() - start,
            model=served_by,
        )

    async def _call_cloud(self, messages, model: AIModel):
        timeout = self.routing.cloud_timeout
        try:
            return await asyncio.wait_for(
                self.cloud_client.generate_completion(messages, model), timeout=timeout
            )
        except asyncio.TimeoutError:
            raise CloudTimeoutError(provider=self.cloud_client.name, timeout=timeout) from None

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def get_routing_statistics(self) -> Dict[str, Any]:
        """Request counters, per-route split, rates and average processing time."""
        return self._stats.to_dict()

    def get_cache_statistics(self) -> Dict[str, Any]:
        """Cache hits, misses, hit rate and entry counts."""
        return self.cache.stats().to_dict()

    def _local_health(self) -> HealthStatus:
        try:
            result = self.classifier.classify("help")
        except Exception:
            logger.exception("Classifier health check failed")
            return HealthStatus.UNHEALTHY
        if result.task_type is not TaskType.HELP or TaskType.HELP not in self.executors:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    def _cloud_health(self) -> HealthStatus:
        if not self.cloud_client.is_available():
            return HealthStatus.UNHEALTHY
        if self.circuit_breaker.state is not CircuitState.CLOSED:
            return HealthStatus.DEGRADED
        return HealthStatus.HEALTHY

    @timed("router.check_system_health")
    async def check_system_health(self) -> Dict[str, str]:
        """Status of local processing, cloud processing, the cache and overall."""
        local = self._local_health()
        cloud = self._cloud_health()
        cache = self.cache.health()

        if local is HealthStatus.HEALTHY and cloud in (HealthStatus.HEALTHY, HealthStatus.DEGRADED):
            overall = HealthStatus.HEALTHY
        elif HealthStatus.DEGRADED in (local, cloud) or local is HealthStatus.HEALTHY:
            overall = HealthStatus.DEGRADED
        else:
            overall = HealthStatus.UNHEALTHY

        return {
            "local_processing": local.value,
            "cloud_processing": cloud.value,
            "response_cache": cache.value,
            "overall_status": overall.value,
        }

    def reset_statistics(self) -> None:
        self._stats.reset()

    def clear_cache(self) -> None:
        self.cache.clear()

    def get_failure_statistics(self) -> Dict[str, Any]:
        """Failed cloud inputs: totals, distinct inputs, recent inputs and error codes."""
        return self.failure_history.get_failure_statistics().to_dict()

    def has_recent_failures(self, text: str) -> bool:
        return self.failure_history.has_recent_failures(text)

    def clear_failure_history(self) -> None:
        self.failure_history.clear()
