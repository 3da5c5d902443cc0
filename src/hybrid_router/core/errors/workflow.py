"""Workflow error classes (WF codes)."""

from __future__ import annotations

from typing import Any, Optional

from hybrid_router.core.errors.local import LocalExecutionError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class WorkflowError(LocalExecutionError):
    """Automation workflow failed.

    Attributes:
        workflow: Name of the workflow
        step_index: Index of the failing step, if known
    """

    category = ErrorCategory.WORKFLOW

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        workflow: Optional[str] = None,
        step_index: Optional[int] = None,
        **payload: Any,
    ):
        super().__init__(
            message,
            kind=kind,
            task_type="automation",
            workflow=workflow,
            step_index=step_index,
            **payload,
        )
        self.workflow = workflow
        self.step_index = step_index
