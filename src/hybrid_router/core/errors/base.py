"""Exception-to-ErrorKind mapping registry.

Provides a centralized mapping from foreign exception types (asyncio, OS,
httpx) to error kinds, so any exception raised below the router can be
turned into a taxonomy error with a stable code.

Usage:
    from hybrid_router.core.errors.base import as_router_error, error_to_response

    try:
        await client.generate_completion(messages, model)
    except Exception as e:
        error = as_router_error(e)
        if error.is_retryable:
            ...
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional, Type

import httpx

from hybrid_router.core.errors.local import LocalExecutionError
from hybrid_router.core.errors.routing import UnknownError
from hybrid_router.core.errors.taxonomy import RouterError
from hybrid_router.core.errors.types import ErrorKind

ERROR_MAPPINGS: Dict[Type[BaseException], ErrorKind] = {
    # --- Timeouts ---
    asyncio.TimeoutError: ErrorKind.CLOUD_TIMEOUT,
    TimeoutError: ErrorKind.CLOUD_TIMEOUT,
    httpx.TimeoutException: ErrorKind.CONNECTION_TIMEOUT,
    # --- Transport ---
    httpx.ConnectError: ErrorKind.NO_CONNECTION,
    httpx.ProxyError: ErrorKind.PROXY_ERROR,
    httpx.UnsupportedProtocol: ErrorKind.INVALID_URL,
    httpx.InvalidURL: ErrorKind.INVALID_URL,
    httpx.DecodingError: ErrorKind.NETWORK_RESPONSE_PARSING_FAILED,
    httpx.TransportError: ErrorKind.REQUEST_FAILED,
    httpx.HTTPStatusError: ErrorKind.HTTP_ERROR,
    ConnectionError: ErrorKind.NO_CONNECTION,
    # --- Local ---
    FileNotFoundError: ErrorKind.FILE_NOT_FOUND,
    PermissionError: ErrorKind.INSUFFICIENT_PERMISSIONS,
    FileExistsError: ErrorKind.DESTINATION_EXISTS,
    NotImplementedError: ErrorKind.UNSUPPORTED_TASK_TYPE,
    ValueError: ErrorKind.INVALID_FORMAT,
}

# Presentation text used after "I encountered an issue: "
_USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.CIRCUIT_OPEN: "The cloud AI service is temporarily unavailable. Please try again shortly.",
    ErrorKind.CLOUD_SERVICE_UNAVAILABLE: "The cloud AI service is temporarily unavailable. I'll try to help using local processing.",
    ErrorKind.CLOUD_TIMEOUT: "The request timed out. Please check your internet connection and try again.",
    ErrorKind.ROUTING_TIMEOUT: "The request timed out. Please check your internet connection and try again.",
    ErrorKind.INVALID_RESPONSE: "I received an unexpected response. Please try rephrasing your request.",
    ErrorKind.INVALID_CLOUD_RESPONSE: "I received an unexpected response. Please try rephrasing your request.",
    ErrorKind.CACHE_ERROR: "There was a caching issue, but this shouldn't affect your request. Please try again.",
    ErrorKind.FALLBACK_FAILED: "All processing methods failed. Please try a simpler request or restart the app.",
    ErrorKind.INTERNAL_ERROR: "An internal error occurred. Please restart the app if this continues.",
    ErrorKind.API_KEY_MISSING: "No cloud API key is configured. Add one to use cloud processing.",
    ErrorKind.API_KEY_INVALID: "The configured cloud API key was rejected. Please check it.",
    ErrorKind.COST_LIMIT_EXCEEDED: "The spending limit for cloud processing has been reached.",
}


def error_kind_for(exc: BaseException) -> ErrorKind:
    """Resolve the error kind for any exception.

    Taxonomy errors carry their own kind; foreign exceptions are matched
    against ``ERROR_MAPPINGS`` along their MRO so subclasses inherit the
    mapping of their closest registered base.
    """
    if isinstance(exc, RouterError):
        return exc.kind
    for cls in type(exc).__mro__:
        kind = ERROR_MAPPINGS.get(cls)
        if kind is not None:
            return kind
    return ErrorKind.UNKNOWN


def error_code_for(exc: BaseException) -> str:
    """Return the stable error code for any exception."""
    return error_kind_for(exc).value


def as_router_error(exc: BaseException) -> RouterError:
    """Wrap a foreign exception in the taxonomy, or return it unchanged."""
    if isinstance(exc, RouterError):
        return exc
    kind = error_kind_for(exc)
    if kind is ErrorKind.UNKNOWN:
        return UnknownError(exc)
    extra: Dict[str, Any] = {"error_type": type(exc).__name__}
    if isinstance(exc, httpx.HTTPStatusError):
        extra["status_code"] = exc.response.status_code
    wrapped = LocalExecutionError(str(exc) or None, kind=kind, **extra)
    wrapped.__cause__ = exc
    return wrapped


def user_message(exc: BaseException, *, wait_time: Optional[float] = None) -> str:
    """Render the user-facing explanation for an error.

    Args:
        exc: Any exception
        wait_time: Overrides the wait shown for rate limit errors

    Returns:
        Text starting with "I encountered an issue: "
    """
    error = as_router_error(exc)
    prefix = "I encountered an issue: "
    if error.kind in (ErrorKind.CLOUD_RATE_LIMITED, ErrorKind.ROUTING_RATE_LIMITED):
        wait = wait_time if wait_time is not None else error.payload.get("wait_time")
        if wait is None:
            wait = error.payload.get("retry_after")
        if wait is not None:
            return prefix + f"I've reached the rate limit. Please wait {int(wait)} seconds before trying again."
        return prefix + "I've reached the rate limit. Please wait a moment before trying again."
    text = _USER_MESSAGES.get(error.kind)
    if text is not None:
        return prefix + text
    return prefix + error.message.rstrip(".") + ". " + error.recovery_suggestion + "."


def error_to_response(exc: BaseException) -> Dict[str, Any]:
    """Convert any exception to a standard error response envelope.

    Args:
        exc: The exception to convert.

    Returns:
        Dict with ``success=False`` and a serialized ``error`` block.
    """
    info = as_router_error(exc).to_info()
    return {"success": False, "data": None, "error": info.model_dump(mode="json")}
