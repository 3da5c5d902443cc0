"""Shared fixtures for unit tests."""

import random
from typing import List

import pytest

from hybrid_router.config import RouterConfig
from hybrid_router.core.cloud import StaticCloudClient
from hybrid_router.core.context import RouterContext
from hybrid_router.core.router import TaskRouter


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSleep:
    """Async sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def cloud_client():
    return StaticCloudClient()


@pytest.fixture
def router_config():
    return RouterConfig()


@pytest.fixture
def router_context(router_config, cloud_client, clock, fake_sleep, rng):
    """Context wired with test doubles for the cloud, time and randomness."""
    return RouterContext.from_config(
        router_config,
        cloud_client=cloud_client,
        clock=clock,
        sleep_func=fake_sleep,
        rng=rng,
    )


@pytest.fixture
def router(router_context):
    return TaskRouter.from_context(router_context)
