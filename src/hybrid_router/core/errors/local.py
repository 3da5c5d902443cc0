"""Errors raised by local task executors.

Covers file operations (FO), system access (SA) and application
integration (AI). ``LocalExecutionError`` is the catch-all executors raise
when none of the specific families fits.
"""

from __future__ import annotations

from typing import Any, Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class LocalExecutionError(RouterError):
    """A local executor failed.

    Accepts any error kind so executors can report the precise code.

    Attributes:
        task_type: Task type the executor was handling
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        kind: ErrorKind = ErrorKind.UNKNOWN,
        task_type: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(kind, message, task_type=task_type, **payload)
        self.task_type = task_type


class FileOperationError(LocalExecutionError):
    """File operation failed.

    Attributes:
        path: File the operation was acting on
    """

    category = ErrorCategory.FILE_OPERATION

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        path: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(message, kind=kind, task_type="file_operation", path=path, **payload)
        self.path = path


class SystemAccessError(LocalExecutionError):
    """Reading or changing system state failed."""

    category = ErrorCategory.SYSTEM_ACCESS

    def __init__(self, kind: ErrorKind, message: Optional[str] = None, **payload: Any):
        super().__init__(message, kind=kind, **payload)


class AppIntegrationError(LocalExecutionError):
    """Controlling an application failed.

    Attributes:
        app_name: Application that was targeted
    """

    category = ErrorCategory.APP_INTEGRATION

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        app_name: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(message, kind=kind, task_type="app_control", app_name=app_name, **payload)
        self.app_name = app_name
