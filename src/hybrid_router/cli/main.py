"""Command-line interface for hybrid-router.

Commands:
    route     Process one or more inputs and print the results
    classify  Classify input without dispatching it
    stats     Show the effective limits and component state
    health    Check local, cloud and cache health
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import click

from hybrid_router.cli.output import emit_error, emit_success
from hybrid_router.config import RouterConfig, set_config
from hybrid_router.core.context import RouterContext
from hybrid_router.core.router import TaskRouter, is_privacy_sensitive

logger = logging.getLogger(__name__)

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class CliContext:
    """State shared by every command of one invocation."""

    config_file: Optional[Path] = None
    log_level: Optional[str] = None
    _config: Optional[RouterConfig] = None

    @property
    def config(self) -> RouterConfig:
        if self._config is None:
            try:
                config = RouterConfig.from_env(self.config_file)
            except ValueError as e:
                emit_error(
                    str(e),
                    code="CONFIG_ERROR",
                    error_type="validation",
                    remediation="Fix the configuration file or environment variables",
                    details={"config_file": str(self.config_file) if self.config_file else None},
                )
            if self.log_level:
                config.log_level = self.log_level
            config.setup_logging()
            set_config(config)
            self._config = config
        return self._config

    def build_router(self) -> Tuple[RouterContext, TaskRouter]:
        try:
            context = RouterContext.from_config(self.config)
            return context, TaskRouter.from_context(context)
        except ValueError as e:
            emit_error(
                str(e),
                code="CONFIG_ERROR",
                error_type="validation",
                remediation="Check the retry preset and cloud.default_model settings",
            )


@click.group()
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="TOML config file (overrides the layered lookup).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.version_option(package_name="hybrid-router", prog_name="hybrid-router")
@click.pass_context
def cli(ctx: click.Context, config_file: Optional[Path], log_level: Optional[str]) -> None:
    """Route requests between local handlers and a cloud AI service."""
    ctx.obj = CliContext(config_file=config_file, log_level=log_level.upper() if log_level else None)


@cli.command("route")
@click.argument("inputs", nargs=-1, required=True)
@click.option("--stats/--no-stats", "show_stats", default=False, help="Include routing statistics.")
@click.pass_obj
def route_cmd(obj: CliContext, inputs: Tuple[str, ...], show_stats: bool) -> None:
    """Process each of INPUTS in order and print the results.

    Inputs share one router, so a repeated input is served from the cache.
    """
    _, router = obj.build_router()

    async def _run():
        return [await router.process_input(text) for text in inputs]

    results = asyncio.run(_run())
    data = {"results": [result.model_dump(mode="json") for result in results]}
    if show_stats:
        data["statistics"] = router.get_routing_statistics()
        data["cache"] = router.get_cache_statistics()
    emit_success(data)


@cli.command("classify")
@click.argument("text")
@click.option("--full", is_flag=True, help="Skip the quick path and always run the full classifier.")
@click.pass_obj
def classify_cmd(obj: CliContext, text: str, full: bool) -> None:
    """Classify TEXT and print the classification and the route it would take."""
    context, router = obj.build_router()
    classifier = context.classifier
    result = None if full else classifier.quick_classify(text)
    result = result or classifier.classify(text)
    private = is_privacy_sensitive(text, result)
    emit_success(
        {
            "classification": result.model_dump(mode="json"),
            "privacy_sensitive": private,
            "route": router.decide_route(result, private=private).value,
        }
    )


@cli.command("stats")
@click.pass_obj
def stats_cmd(obj: CliContext) -> None:
    """Show the effective limits and component state."""
    context, router = obj.build_router()
    emit_success(
        {
            "routing": router.get_routing_statistics(),
            "cache": router.get_cache_statistics(),
            "rate_limit": context.rate_limiter.get_current_status().to_dict(),
            "cost": context.cost_tracker.get_usage_summary().to_dict(),
            "budget": context.cost_tracker.budget_status().to_dict(),
            "failures": router.get_failure_statistics(),
            "circuit_breaker": context.circuit_breaker.to_dict(),
            "retry": {
                "preset": context.config.retry.preset,
                "max_attempts": context.retry_config.max_attempts,
                "base_delay": context.retry_config.base_delay,
                "max_delay": context.retry_config.max_delay,
            },
            "thresholds": {
                "local": context.config.routing.local_threshold,
                "escalation": context.config.routing.escalation_threshold,
            },
        }
    )


@cli.command("health")
@click.pass_obj
def health_cmd(obj: CliContext) -> None:
    """Check local, cloud and cache health."""
    _, router = obj.build_router()
    emit_success(asyncio.run(router.check_system_health()))


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
