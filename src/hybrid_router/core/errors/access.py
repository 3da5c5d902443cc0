"""Permission (PE) and validation (VE) error classes.

Every kind in both families is recoverable: the user can grant the
permission or correct the input.
"""

from __future__ import annotations

from typing import Any, Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class PermissionDeniedError(RouterError):
    """A required OS permission has not been granted.

    Attributes:
        resource: What access was requested
    """

    category = ErrorCategory.PERMISSION

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        resource: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(kind, message, resource=resource, **payload)
        self.resource = resource


class ValidationError(RouterError):
    """Input failed validation.

    Attributes:
        field: Name of the offending field
    """

    category = ErrorCategory.VALIDATION

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        field: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(kind, message, field=field, **payload)
        self.field = field
