"""Runtime dependency container.

``RouterContext`` builds each long-lived component exactly once from a
``RouterConfig`` and hands them to the router explicitly. Nothing in the core
looks components up globally; tests build a context with their own clocks,
sleep functions and cloud client.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional

from hybrid_router.config.server import RouterConfig
from hybrid_router.core.cache import ResponseCache
from hybrid_router.core.classifier import Classifier, TaskClassifier
from hybrid_router.core.cloud import CloudClient, HttpCloudClient
from hybrid_router.core.cost import CostTracker
from hybrid_router.core.executors import ExecutorRegistry
from hybrid_router.core.fallback import FailureHistory
from hybrid_router.core.rate_limit import RateLimiter
from hybrid_router.core.resilience import CircuitBreaker, RetryConfig, RetryManager, SleepFunc

logger = logging.getLogger(__name__)


def build_retry_config(config: RouterConfig) -> RetryConfig:
    """Resolve the configured preset and apply any overrides."""
    settings = config.retry
    retry_config = RetryConfig.preset(settings.preset)
    overrides = {
        name: value
        for name, value in (
            ("max_attempts", settings.max_attempts),
            ("base_delay", settings.base_delay),
            ("max_delay", settings.max_delay),
        )
        if value is not None
    }
    return replace(retry_config, **overrides) if overrides else retry_config


@dataclass
class RouterContext:
    """The components one router instance runs with."""

    config: RouterConfig
    classifier: Classifier
    executors: ExecutorRegistry
    cloud_client: CloudClient
    cache: ResponseCache
    rate_limiter: RateLimiter
    cost_tracker: CostTracker
    retry_manager: RetryManager
    retry_config: RetryConfig
    circuit_breaker: CircuitBreaker
    failure_history: FailureHistory

    @classmethod
    def from_config(
        cls,
        config: Optional[RouterConfig] = None,
        *,
        cloud_client: Optional[CloudClient] = None,
        executors: Optional[ExecutorRegistry] = None,
        classifier: Optional[Classifier] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep_func: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ) -> "RouterContext":
        """Build every component from ``config``.

        Args:
            config: Router configuration (defaults to built-in defaults)
            cloud_client: Cloud client override (default: HttpCloudClient from config)
            executors: Local executors (default: guidance executors)
            classifier: Classifier override (default: TaskClassifier from config)
            clock: Monotonic clock shared by cache, limiter, breaker and failure history
            sleep_func: Async sleep used for retry backoff
            rng: Random source for retry jitter
        """
        config = config or RouterConfig()
        routing = config.routing

        if cloud_client is None:
            cloud_client = HttpCloudClient(
                config.cloud.api_key,
                base_url=config.cloud.base_url,
                organization=config.cloud.organization,
                timeout=routing.cloud_timeout,
            )
            if not cloud_client.is_available():
                logger.info("No cloud API key configured; cloud routing will fail until one is set")

        retry_config = build_retry_config(config)
        context = cls(
            config=config,
            classifier=classifier
            or TaskClassifier(
                escalation_threshold=routing.escalation_threshold,
                max_input_length=routing.max_input_length,
            ),
            executors=executors if executors is not None else ExecutorRegistry.with_defaults(),
            cloud_client=cloud_client,
            cache=ResponseCache(
                max_size=config.cache.max_size,
                default_ttl=config.cache.ttl,
                enabled=config.cache.enabled,
                clock=clock,
            ),
            rate_limiter=RateLimiter(
                max_requests=config.rate_limit.max_requests,
                max_tokens=config.rate_limit.max_tokens,
                window_duration=config.rate_limit.window_seconds,
                clock=clock,
            ),
            cost_tracker=CostTracker(
                budget_limit=config.cost.budget_limit,
                daily_limit=config.cost.daily_limit,
                monthly_limit=config.cost.monthly_limit,
            ),
            retry_manager=RetryManager(retry_config, rng=rng, sleep_func=sleep_func),
            retry_config=retry_config,
            circuit_breaker=CircuitBreaker(
                "cloud",
                failure_threshold=config.circuit_breaker.failure_threshold,
                recovery_timeout=config.circuit_breaker.recovery_timeout,
                success_threshold=config.circuit_breaker.success_threshold,
                clock=clock,
            ),
            failure_history=FailureHistory(clock=clock),
        )
        logger.debug(
            "Router context built (local_threshold=%.2f, retry=%s, cache_ttl=%s)",
            routing.local_threshold,
            config.retry.preset,
            config.cache.ttl,
        )
        return context
