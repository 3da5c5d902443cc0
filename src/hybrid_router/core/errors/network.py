"""Network error classes (NE codes)."""

from __future__ import annotations

from typing import Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind, ErrorSeverity


class NetworkError(RouterError):
    """Base exception for network failures.

    Attributes:
        host: Host involved in the failure, if known
    """

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        kind: ErrorKind = ErrorKind.REQUEST_FAILED,
        message: Optional[str] = None,
        *,
        host: Optional[str] = None,
        **payload,
    ):
        super().__init__(kind, message, host=host, **payload)
        self.host = host


class HttpError(NetworkError):
    """Non-success HTTP status outside the cloud client's own mapping.

    Severity and recoverability depend on the status: client errors are
    medium and recoverable, server errors are high and not recoverable.

    Attributes:
        status_code: HTTP status code
    """

    def __init__(
        self,
        status_code: int,
        message: Optional[str] = None,
        *,
        host: Optional[str] = None,
    ):
        super().__init__(
            ErrorKind.HTTP_ERROR,
            message or f"HTTP error {status_code}",
            host=host,
            status_code=status_code,
        )
        self.status_code = status_code

    @property
    def severity(self) -> ErrorSeverity:
        if 500 <= self.status_code <= 599:
            return ErrorSeverity.HIGH
        return ErrorSeverity.MEDIUM

    @property
    def is_recoverable(self) -> bool:
        return self.status_code < 500
