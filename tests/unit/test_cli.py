"""Tests for the hybrid-router CLI."""

import json
import logging

import pytest
from click.testing import CliRunner

from hybrid_router.cli import cli

ENV_VARS = (
    "HYBRID_ROUTER_CONFIG_FILE",
    "HYBRID_ROUTER_LOG_LEVEL",
    "HYBRID_ROUTER_API_KEY",
    "OPENAI_API_KEY",
    "HYBRID_ROUTER_BUDGET_LIMIT",
    "HYBRID_ROUTER_DAILY_LIMIT",
    "HYBRID_ROUTER_MONTHLY_LIMIT",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.chdir(tmp_path)
    yield
    root = logging.getLogger("hybrid_router")
    for handler in list(root.handlers):
        if getattr(handler, "_hybrid_router_handler", False):
            root.removeHandler(handler)


@pytest.fixture
def runner():
    return CliRunner()


def invoke(runner, *args):
    result = runner.invoke(cli, ["--log-level", "ERROR", *args])
    return result, json.loads(result.output)


class TestRouteCommand:
    """Tests for `route`."""

    def test_route_help_twice(self, runner):
        """The second identical input is a cache hit."""
        result, payload = invoke(runner, "route", "help", "help", "--stats")

        assert result.exit_code == 0
        assert payload["success"] is True
        first, second = payload["data"]["results"]
        assert first["route"] == "local"
        assert first["cache_hit"] is False
        assert second["cache_hit"] is True
        assert payload["data"]["statistics"]["cache_hits"] == 1
        assert payload["data"]["cache"]["total_hits"] == 1

    def test_route_without_key_asks_for_one(self, runner):
        """Cloud-bound input without an API key fails with a configuration hint."""
        result, payload = invoke(runner, "route", "xyzzy plugh")

        assert result.exit_code == 0
        (routed,) = payload["data"]["results"]
        assert routed["route"] == "cloud"
        assert routed["success"] is False
        assert routed["error"]["code"] == "AS001"
        assert routed["error"]["recovery_suggestion"] == "Add an API key to the configuration"
        assert "API key" in routed["output"]

    def test_route_requires_input(self, runner):
        """At least one input is required."""
        result = runner.invoke(cli, ["route"])
        assert result.exit_code != 0


class TestClassifyCommand:
    """Tests for `classify`."""

    def test_battery_quick_path(self, runner):
        """Battery questions take the quick path and stay local."""
        result, payload = invoke(runner, "classify", "what's my battery level")

        assert result.exit_code == 0
        data = payload["data"]
        assert data["classification"]["task_type"] == "system_query"
        assert data["classification"]["confidence"] == 0.9
        assert data["route"] == "local"
        assert data["privacy_sensitive"] is False

    def test_privacy_flag(self, runner):
        """Sensitive input is reported and routed local."""
        _, payload = invoke(runner, "classify", "--full", "summarize my bank account statement")
        assert payload["data"]["privacy_sensitive"] is True
        assert payload["data"]["route"] == "local"


class TestStatsAndHealth:
    """Tests for `stats` and `health`."""

    def test_stats_reflect_config(self, runner, tmp_path):
        """Configured limits appear in the stats output."""
        config = tmp_path / "router.toml"
        config.write_text(
            '[rate_limit]\nmax_requests = 7\n[retry]\npreset = "conservative"\n[cost]\ndaily_limit = 2.5\n'
        )

        result, payload = invoke(runner, "--config", str(config), "stats")

        assert result.exit_code == 0
        data = payload["data"]
        assert data["rate_limit"]["max_requests"] == 7
        assert data["retry"]["max_attempts"] == 2
        assert data["circuit_breaker"]["state"] == "closed"
        assert data["thresholds"] == {"local": 0.8, "escalation": 0.7}
        assert data["budget"]["daily_limit"] == 2.5
        assert data["budget"]["is_within_budget"] is True
        assert data["failures"]["total_failures"] == 0

    def test_health_without_key(self, runner):
        """Without a key the cloud is unhealthy and the system degraded."""
        result, payload = invoke(runner, "health")

        assert result.exit_code == 0
        assert payload["data"]["local_processing"] == "healthy"
        assert payload["data"]["cloud_processing"] == "unhealthy"
        assert payload["data"]["overall_status"] == "degraded"


class TestConfigErrors:
    """Tests for configuration failures."""

    def test_bad_toml(self, runner, tmp_path):
        """Malformed config prints an error envelope and exits 1."""
        config = tmp_path / "bad.toml"
        config.write_text("[routing\n")

        result, payload = invoke(runner, "--config", str(config), "health")

        assert result.exit_code == 1
        assert payload["success"] is False
        assert payload["error"]["code"] == "CONFIG_ERROR"

    def test_unknown_model(self, runner, tmp_path):
        """An unknown default model is rejected before any request."""
        config = tmp_path / "router.toml"
        config.write_text('[cloud]\ndefault_model = "gpt-99"\n')

        result, payload = invoke(runner, "--config", str(config), "route", "help")

        assert result.exit_code == 1
        assert "gpt-99" in payload["error"]["message"]
