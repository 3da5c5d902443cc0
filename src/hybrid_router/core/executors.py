"""Local task executors.

A local executor turns a classified request into output without leaving the
machine and at zero cost. Concrete handlers (file system, app control, system
queries) live outside this package and are registered per task type; the
built-in ``GuidanceExecutor`` answers every type with guidance on how to do
the task by hand, so the local path always has something to run.

Executors may be sync or async. The registry runs sync executors in a worker
thread so they never block the event loop.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from hybrid_router.core.models import TaskType

logger = logging.getLogger(__name__)


@runtime_checkable
class LocalExecutor(Protocol):
    """Handles one task type locally.

    ``execute`` returns the user-facing output, or an awaitable of it. Any
    exception raised is turned into a failed result by the router.
    """

    def execute(self, parameters: Mapping[str, str]) -> Any: ...


DEGRADED_PREFIX = "I encountered an issue processing your request, but I can still help. "

_GUIDANCE: Dict[TaskType, str] = {
    TaskType.SYSTEM_QUERY: (
        "You can check system information in your system's settings panel, "
        "or open the system monitor for detailed stats."
    ),
    TaskType.FILE_OPERATION: (
        "You can perform file operations in your file manager. Copy and paste files "
        "with the usual shortcuts, or drag them between folders to move them."
    ),
    TaskType.APP_CONTROL: (
        "You can open applications from your launcher or application menu, "
        "and quit them from their File menu."
    ),
    TaskType.TEXT_PROCESSING: (
        "For text processing, a plain text editor handles basic editing and most "
        "document viewers can export to other formats."
    ),
    TaskType.WEB_QUERY: (
        "You can search the web from your browser's address bar."
    ),
    TaskType.AUTOMATION: (
        "For automation tasks, consider your system's built-in shortcut or "
        "task scheduler tools."
    ),
    TaskType.CALCULATION: (
        "You can use the calculator app or your launcher's search bar for quick calculations."
    ),
    TaskType.SETTINGS: (
        "You can change this in your system settings."
    ),
    TaskType.UNKNOWN: (
        "Could you please rephrase your request? I can help with files, system "
        "information, apps and settings."
    ),
}

HELP_TEXT = (
    "I'm your desktop AI assistant. I can help with file operations, system "
    "queries, app control, calculations, text processing and more. Just tell me "
    "what you'd like to do."
)


def guidance_for(task_type: TaskType, *, degraded: bool = False) -> str:
    """Manual-guidance text for a task type.

    Args:
        task_type: Task type to explain
        degraded: Prefix with the "I encountered an issue" preamble
    """
    if task_type is TaskType.HELP:
        return HELP_TEXT
    text = _GUIDANCE[task_type]
    return DEGRADED_PREFIX + text if degraded else text


class GuidanceExecutor:
    """Answers a task type with guidance text. Always succeeds."""

    def __init__(self, task_type: TaskType):
        self.task_type = task_type

    def execute(self, parameters: Mapping[str, str]) -> str:
        text = guidance_for(self.task_type)
        topic = parameters.get("topic") or parameters.get("query_type")
        if topic and self.task_type is not TaskType.HELP:
            return f"About {topic}: {text}"
        return text

    def __repr__(self) -> str:
        return f"GuidanceExecutor({self.task_type.value})"


class ExecutorRegistry:
    """Task type to local executor mapping, with HELP as the fallback."""

    def __init__(self, executors: Optional[Mapping[TaskType, LocalExecutor]] = None):
        self._executors: Dict[TaskType, LocalExecutor] = {}
        for task_type, executor in (executors or {}).items():
            self.register(task_type, executor)

    @classmethod
    def with_defaults(cls) -> "ExecutorRegistry":
        """Registry with a ``GuidanceExecutor`` for every task type."""
        return cls({task_type: GuidanceExecutor(task_type) for task_type in TaskType})

    def register(self, task_type: TaskType, executor: LocalExecutor) -> None:
        if not callable(getattr(executor, "execute", None)):
            raise TypeError(f"{executor!r} has no execute() method")
        self._executors[task_type] = executor
        logger.debug("Registered %r for %s", executor, task_type.value)

    def unregister(self, task_type: TaskType) -> bool:
        return self._executors.pop(task_type, None) is not None

    def get(self, task_type: TaskType) -> LocalExecutor:
        """Executor for ``task_type``, falling back to the HELP executor.

        Raises:
            LookupError: If neither is registered
        """
        executor = self._executors.get(task_type) or self._executors.get(TaskType.HELP)
        if executor is None:
            raise LookupError(f"No local executor for {task_type.value} and no help fallback")
        return executor

    async def run(self, task_type: TaskType, parameters: Mapping[str, str]) -> str:
        """Run the executor for ``task_type`` and return its output."""
        executor = self.get(task_type)
        execute = executor.execute
        if inspect.iscoroutinefunction(execute):
            result: Union[str, Any] = await execute(parameters)
        else:
            result = await asyncio.to_thread(execute, parameters)
            if inspect.isawaitable(result):
                result = await result
        return str(result)

    def __contains__(self, task_type: object) -> bool:
        return task_type in self._executors

    def __len__(self) -> int:
        return len(self._executors)
