"""Command-line interface for hybrid-router."""

from hybrid_router.cli.main import cli, main

__all__ = ["cli", "main"]
