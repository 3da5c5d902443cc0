"""Routing error classes (RT codes) raised inside the router itself."""

from __future__ import annotations

from typing import Any, Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class RoutingError(RouterError):
    """The router could not complete a request."""

    category = ErrorCategory.ROUTING

    def __init__(
        self,
        kind: ErrorKind = ErrorKind.INTERNAL_ERROR,
        message: Optional[str] = None,
        **payload: Any,
    ):
        super().__init__(kind, message, **payload)


class UnknownError(RouterError):
    """Wraps an exception the taxonomy does not recognise.

    Attributes:
        original: The wrapped exception
    """

    category = ErrorCategory.UNKNOWN

    def __init__(self, original: BaseException):
        super().__init__(
            ErrorKind.UNKNOWN,
            str(original) or type(original).__name__,
            error_type=type(original).__name__,
        )
        self.original = original
