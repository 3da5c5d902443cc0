"""Cloud AI client interface and implementations.

``CloudClient`` is the seam the router calls for paid completions. Two
implementations ship here:

- ``HttpCloudClient``: OpenAI-compatible ``/chat/completions`` over httpx
- ``StaticCloudClient``: scripted responses and failures for tests and demos

Example:
    client = HttpCloudClient(api_key=os.environ["OPENAI_API_KEY"])
    result = await client.generate_completion(
        [ChatMessage(ChatRole.USER, "Summarize this paragraph ...")],
        model=AIModel.GPT_35_TURBO,
    )
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Deque, Dict, List, Optional, Sequence, Union

import httpx

from hybrid_router.core.cost import AIModel
from hybrid_router.core.errors import (
    APIKeyInvalidError,
    APIKeyMissingError,
    CloudNetworkError,
    CloudRateLimitError,
    CloudTimeoutError,
    ContextLengthExceededError,
    ErrorKind,
    HttpError,
    InvalidResponseError,
    ModelNotAvailableError,
    QuotaExceededError,
    RouterError,
    RoutingError,
    ServerError,
)
from hybrid_router.core.models import TaskType

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_TIMEOUT = 30.0
CHAT_COMPLETIONS_ENDPOINT = "/chat/completions"


# =============================================================================
# Messages
# =============================================================================


class ChatRole(str, Enum):
    """Role of a message in a chat conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    FUNCTION = "function"


@dataclass
class ChatMessage:
    """A message in a chat conversation.

    Attributes:
        role: The role of the message sender
        content: The text content of the message
        name: Function name when role is FUNCTION
    """

    role: ChatRole
    content: Optional[str] = None
    name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API calls."""
        result: Dict[str, Any] = {"role": self.role.value}
        if self.content is not None:
            result["content"] = self.content
        if self.name:
            result["name"] = self.name
        return result


@dataclass
class CompletionResult:
    """Response from a completion call.

    Attributes:
        content: Generated text
        tokens_used: Total tokens billed (prompt + completion)
        model: Model that served the call
        function_call: Function call requested by the model, if any
    """

    content: str
    tokens_used: int = 0
    model: Optional[str] = None
    function_call: Optional[Dict[str, Any]] = None


# =============================================================================
# System prompts
# =============================================================================

_BASE_PROMPT = "You are a helpful desktop AI assistant. "

_TASK_PROMPTS: Dict[TaskType, str] = {
    TaskType.FILE_OPERATION: "Help the user manage files and folders. Describe each step before it changes anything.",
    TaskType.SYSTEM_QUERY: "Answer questions about the user's computer and its resources concisely.",
    TaskType.APP_CONTROL: "Help the user open, close and switch between applications.",
    TaskType.TEXT_PROCESSING: "Process the user's text accurately and keep its meaning.",
    TaskType.CALCULATION: "Work out calculations precisely and show the result clearly.",
    TaskType.WEB_QUERY: "Help the user find information on the web and cite where it comes from.",
    TaskType.AUTOMATION: "Help the user design automations and workflows step by step.",
    TaskType.SETTINGS: "Help the user find and change system settings.",
    TaskType.HELP: "Explain what you can do and how to do it, in plain language.",
    TaskType.UNKNOWN: "Work out what the user needs and answer helpfully.",
}


def system_prompt_for(task_type: TaskType) -> str:
    return _BASE_PROMPT + _TASK_PROMPTS[task_type]


def build_messages(text: str, task_type: TaskType) -> List[ChatMessage]:
    """System prompt for the task type followed by the user's input."""
    return [
        ChatMessage(ChatRole.SYSTEM, system_prompt_for(task_type)),
        ChatMessage(ChatRole.USER, text),
    ]


# =============================================================================
# Secret redaction
# =============================================================================

_SECRET_PATTERN = re.compile(
    r"(?i)(?:(?:api[_-]?key|token|bearer|authorization)[\s:=]+)['\"]?([^\s'\"]{8,})['\"]?"
    r"|\b(sk-[A-Za-z0-9_-]{8,})"
)


def redact_secrets(text: str) -> str:
    """Replace API keys and bearer tokens in ``text`` with ``****``."""
    if not text:
        return text

    def _replace(match: "re.Match[str]") -> str:
        secret = match.group(1) or match.group(2)
        return match.group(0).replace(secret, "****")

    return _SECRET_PATTERN.sub(_replace, text)


# =============================================================================
# Interface
# =============================================================================


class CloudClient(ABC):
    """Abstract base class for cloud completion clients."""

    name: str = "cloud"

    @abstractmethod
    async def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Union[AIModel, str],
        functions: Optional[List[Dict[str, Any]]] = None,
    ) -> CompletionResult:
        """Generate a chat completion.

        Raises:
            CloudServiceError: On any service or transport failure
        """

    async def stream_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Union[AIModel, str],
    ) -> AsyncIterator[str]:
        """Stream completion text.

        Default implementation yields the full completion once. The iterator
        is finite and cannot be restarted.
        """
        result = await self.generate_completion(messages, model)
        yield result.content

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the client is configured well enough to attempt a call."""

    def unavailable_reason(self) -> Optional[RouterError]:
        """Why ``is_available`` is False, as the error to report, or None."""
        if self.is_available():
            return None
        return RoutingError(ErrorKind.CLOUD_SERVICE_UNAVAILABLE, provider=self.name)


# =============================================================================
# HTTP implementation
# =============================================================================


class HttpCloudClient(CloudClient):
    """Client for OpenAI-compatible chat completion APIs.

    Args:
        api_key: API key sent as a bearer token
        base_url: API base URL
        organization: Optional organization header
        timeout: Per-request timeout in seconds
        transport: httpx transport override (tests pass ``httpx.MockTransport``)
    """

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        organization: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._api_key = api_key or None
        self._base_url = base_url.rstrip("/")
        self._organization = organization
        self._timeout = timeout
        self._transport = transport

    def is_available(self) -> bool:
        return self._api_key is not None

    def unavailable_reason(self) -> Optional[RouterError]:
        if self._api_key is None:
            return APIKeyMissingError(provider=self.name)
        return None

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        if self._organization:
            headers["OpenAI-Organization"] = self._organization
        return headers

    async def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Union[AIModel, str],
        functions: Optional[List[Dict[str, Any]]] = None,
    ) -> CompletionResult:
        if self._api_key is None:
            raise APIKeyMissingError(provider=self.name)

        model_name = model.value if isinstance(model, AIModel) else str(model)
        payload: Dict[str, Any] = {
            "model": model_name,
            "messages": [m.to_dict() for m in messages],
        }
        if functions:
            payload["functions"] = functions

        url = f"{self._base_url}{CHAT_COMPLETIONS_ENDPOINT}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(url, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise CloudTimeoutError(
                f"Request to {self.name} timed out", provider=self.name, timeout=self._timeout
            ) from e
        except httpx.TransportError as e:
            raise CloudNetworkError(
                redact_secrets(f"Could not reach {self.name}: {e}"), provider=self.name
            ) from e

        if response.status_code >= 400:
            self._raise_for_status(response, model_name)
        return self._parse_response(response, model_name)

    def _raise_for_status(self, response: httpx.Response, model_name: str) -> None:
        status = response.status_code
        message = redact_secrets(self._extract_error_message(response))
        error_code = self._extract_error_code(response)

        if status == 401:
            raise APIKeyInvalidError(f"Invalid API key: {message}", provider=self.name)
        if status == 429:
            if error_code == "insufficient_quota":
                raise QuotaExceededError(message, provider=self.name)
            raise CloudRateLimitError(
                message, provider=self.name, retry_after=self._parse_retry_after(response)
            )
        if status == 404 or error_code == "model_not_found":
            raise ModelNotAvailableError(message, provider=self.name, model=model_name)
        if error_code == "context_length_exceeded":
            raise ContextLengthExceededError(message, provider=self.name)
        if status >= 500:
            raise ServerError(
                f"API error {status}: {message}", provider=self.name, status_code=status
            )
        raise HttpError(status, f"API error {status}: {message}", host=response.request.url.host)

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> Optional[float]:
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            try:
                return float(retry_after)
            except ValueError:
                return None
        return None

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            data = response.json()
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _extract_error_message(self, response: httpx.Response) -> str:
        data = self._error_body(response)
        error = data.get("error", data.get("message"))
        if isinstance(error, dict):
            error = error.get("message")
        if error:
            return str(error)
        return response.text[:200] if response.text else "Unknown error"

    def _extract_error_code(self, response: httpx.Response) -> Optional[str]:
        error = self._error_body(response).get("error")
        if isinstance(error, dict):
            return error.get("code") or error.get("type")
        return None

    def _parse_response(self, response: httpx.Response, model_name: str) -> CompletionResult:
        try:
            data = response.json()
            choice = data["choices"][0]
            message = choice["message"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise InvalidResponseError(
                f"Malformed completion response: {e}", provider=self.name
            ) from e

        function_call = message.get("function_call")
        if isinstance(function_call, dict) and isinstance(function_call.get("arguments"), str):
            try:
                function_call = {**function_call, "arguments": json.loads(function_call["arguments"])}
            except ValueError:
                logger.debug("Function call arguments are not JSON; keeping the raw string")

        content = message.get("content") or ""
        if not content and function_call is None:
            raise InvalidResponseError("Completion response has no content", provider=self.name)

        usage = data.get("usage") or {}
        return CompletionResult(
            content=content,
            tokens_used=int(usage.get("total_tokens", 0)),
            model=data.get("model", model_name),
            function_call=function_call,
        )


# =============================================================================
# Test double
# =============================================================================


@dataclass
class StaticCloudClient(CloudClient):
    """Cloud client that replays scripted outcomes.

    Each call pops the next item from ``script``: a ``CompletionResult`` is
    returned, an exception is raised. When the script is empty the
    ``default`` result is returned.

    Attributes:
        script: Outcomes to replay in order
        default: Result returned once the script runs out
        available: Value reported by ``is_available``
        calls: Messages of every call made, for assertions
    """

    script: Deque[Union[CompletionResult, BaseException]] = field(default_factory=deque)
    default: CompletionResult = field(
        default_factory=lambda: CompletionResult(content="Cloud response", tokens_used=150)
    )
    available: bool = True
    calls: List[List[ChatMessage]] = field(default_factory=list)

    name = "static"

    def __post_init__(self) -> None:
        self.script = deque(self.script)

    async def generate_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Union[AIModel, str],
        functions: Optional[List[Dict[str, Any]]] = None,
    ) -> CompletionResult:
        self.calls.append(list(messages))
        if self.script:
            outcome = self.script.popleft()
        else:
            outcome = self.default
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome.model is None:
            model_name = model.value if isinstance(model, AIModel) else str(model)
            return CompletionResult(outcome.content, outcome.tokens_used, model_name, outcome.function_call)
        return outcome

    def is_available(self) -> bool:
        return self.available

    @property
    def call_count(self) -> int:
        return len(self.calls)
