"""hybrid-router: route requests between local handlers and a cloud AI service."""

from hybrid_router.config.server import _PACKAGE_VERSION as __version__
from hybrid_router.core import RouterContext, TaskResult, TaskRouter

__all__ = ["RouterContext", "TaskResult", "TaskRouter", "__version__"]
