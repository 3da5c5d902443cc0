"""Cloud AI service error classes (AS codes)."""

from __future__ import annotations

from typing import Optional

from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorCategory, ErrorKind


class CloudServiceError(RouterError):
    """Base exception for cloud AI service failures.

    Attributes:
        provider: Name of the cloud client that raised the error
    """

    category = ErrorCategory.CLOUD_SERVICE

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        **payload,
    ):
        super().__init__(kind, message, provider=provider, **payload)
        self.provider = provider


class APIKeyMissingError(CloudServiceError):
    """No API key configured for the cloud client."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.API_KEY_MISSING, message, provider=provider)


class APIKeyInvalidError(CloudServiceError):
    """The cloud service rejected the API key."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.API_KEY_INVALID, message, provider=provider)


class CloudRateLimitError(CloudServiceError):
    """The cloud service throttled the request.

    Attributes:
        retry_after: Seconds to wait before retrying, if the service said so
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        retry_after: Optional[float] = None,
    ):
        super().__init__(
            ErrorKind.CLOUD_RATE_LIMITED, message, provider=provider, retry_after=retry_after
        )
        self.retry_after = retry_after


class QuotaExceededError(CloudServiceError):
    """Account quota exhausted."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.QUOTA_EXCEEDED, message, provider=provider)


class CloudNetworkError(CloudServiceError):
    """Transport-level failure reaching the cloud service."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.CLOUD_NETWORK_ERROR, message, provider=provider)


class InvalidResponseError(CloudServiceError):
    """The cloud service returned a body we could not use."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.INVALID_RESPONSE, message, provider=provider)


class ModelNotAvailableError(CloudServiceError):
    """Requested model is unknown or not accessible.

    Attributes:
        model: The model that was requested
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        model: Optional[str] = None,
    ):
        super().__init__(ErrorKind.MODEL_NOT_AVAILABLE, message, provider=provider, model=model)
        self.model = model


class ContextLengthExceededError(CloudServiceError):
    """Prompt exceeds the model's context window."""

    def __init__(self, message: Optional[str] = None, *, provider: Optional[str] = None):
        super().__init__(ErrorKind.CONTEXT_LENGTH_EXCEEDED, message, provider=provider)


class CloudTimeoutError(CloudServiceError):
    """A single cloud attempt exceeded its deadline.

    Attributes:
        timeout: Deadline in seconds that was exceeded
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        super().__init__(ErrorKind.CLOUD_TIMEOUT, message, provider=provider, timeout=timeout)
        self.timeout = timeout


class ServerError(CloudServiceError):
    """The cloud service answered with a 5xx status.

    Attributes:
        status_code: HTTP status returned by the service
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        provider: Optional[str] = None,
        status_code: int = 500,
    ):
        super().__init__(
            ErrorKind.SERVER_ERROR,
            message or f"Cloud service returned a server error ({status_code})",
            provider=provider,
            status_code=status_code,
        )
        self.status_code = status_code


class CostLimitExceededError(CloudServiceError):
    """Dispatching the request would exceed the spending ceiling.

    Attributes:
        current: Cost accumulated so far
        limit: Configured ceiling
        projected: Estimated cost of the rejected request
    """

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        current: float,
        limit: float,
        projected: Optional[float] = None,
    ):
        super().__init__(
            ErrorKind.COST_LIMIT_EXCEEDED,
            message or f"Cost limit exceeded: ${current:.4f} spent of ${limit:.4f}",
            current=current,
            limit=limit,
            projected=projected,
        )
        self.current = current
        self.limit = limit
        self.projected = projected
