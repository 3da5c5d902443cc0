"""Unified error taxonomy for hybrid-router.

All exception classes are defined in domain-specific modules within this
package. This __init__.py re-exports everything for convenient access.

Usage:
    # Import from domain modules for specificity
    from hybrid_router.core.errors.cloud import CloudRateLimitError

    # Or from the package
    from hybrid_router.core.errors import ErrorKind, RouterError, error_code_for
"""

from hybrid_router.core.errors.access import PermissionDeniedError, ValidationError
from hybrid_router.core.errors.base import (
    ERROR_MAPPINGS,
    as_router_error,
    error_code_for,
    error_kind_for,
    error_to_response,
    user_message,
)
from hybrid_router.core.errors.classification import ClassificationError
from hybrid_router.core.errors.cloud import (
    APIKeyInvalidError,
    APIKeyMissingError,
    CloudNetworkError,
    CloudRateLimitError,
    CloudServiceError,
    CloudTimeoutError,
    ContextLengthExceededError,
    CostLimitExceededError,
    InvalidResponseError,
    ModelNotAvailableError,
    QuotaExceededError,
    ServerError,
)
from hybrid_router.core.errors.local import (
    AppIntegrationError,
    FileOperationError,
    LocalExecutionError,
    SystemAccessError,
)
from hybrid_router.core.errors.network import HttpError, NetworkError
from hybrid_router.core.errors.resilience import CircuitOpenError, RateLimitExceededError
from hybrid_router.core.errors.routing import RoutingError, UnknownError
from hybrid_router.core.errors.taxonomy import ErrorInfo, RouterError
from hybrid_router.core.errors.types import (
    DEFAULT_RETRYABLE_CODES,
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorKind,
    ErrorSeverity,
    ErrorSpec,
    get_spec,
    kind_for_code,
)
from hybrid_router.core.errors.workflow import WorkflowError

__all__ = [
    # Registry
    "DEFAULT_RETRYABLE_CODES",
    "ERROR_MAPPINGS",
    "ERROR_REGISTRY",
    "ErrorCategory",
    "ErrorInfo",
    "ErrorKind",
    "ErrorSeverity",
    "ErrorSpec",
    "as_router_error",
    "error_code_for",
    "error_kind_for",
    "error_to_response",
    "get_spec",
    "kind_for_code",
    "user_message",
    # Base
    "RouterError",
    # Classification
    "ClassificationError",
    # Cloud
    "APIKeyInvalidError",
    "APIKeyMissingError",
    "CloudNetworkError",
    "CloudRateLimitError",
    "CloudServiceError",
    "CloudTimeoutError",
    "ContextLengthExceededError",
    "CostLimitExceededError",
    "InvalidResponseError",
    "ModelNotAvailableError",
    "QuotaExceededError",
    "ServerError",
    # Resilience
    "CircuitOpenError",
    "RateLimitExceededError",
    # Network
    "HttpError",
    "NetworkError",
    # Local execution
    "AppIntegrationError",
    "FileOperationError",
    "LocalExecutionError",
    "SystemAccessError",
    "WorkflowError",
    # Access
    "PermissionDeniedError",
    "ValidationError",
    # Routing
    "RoutingError",
    "UnknownError",
]
