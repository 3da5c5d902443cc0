"""Tests for the HTTP cloud client and its helpers.

All HTTP traffic goes through ``httpx.MockTransport``; no network access.
"""

import json

import httpx
import pytest

from hybrid_router.core.cloud import (
    ChatMessage,
    ChatRole,
    HttpCloudClient,
    StaticCloudClient,
    build_messages,
    redact_secrets,
)
from hybrid_router.core.cost import AIModel
from hybrid_router.core.errors import (
    APIKeyInvalidError,
    APIKeyMissingError,
    CloudNetworkError,
    CloudRateLimitError,
    CloudTimeoutError,
    ContextLengthExceededError,
    HttpError,
    InvalidResponseError,
    ModelNotAvailableError,
    QuotaExceededError,
    ServerError,
)
from hybrid_router.core.models import TaskType

MESSAGES = [ChatMessage(ChatRole.USER, "hello")]


def make_client(handler, api_key="sk-test-key-123456"):
    return HttpCloudClient(api_key=api_key, transport=httpx.MockTransport(handler))


def error_response(status, message="boom", code=None, headers=None):
    error = {"message": message}
    if code:
        error["code"] = code
    return httpx.Response(status, json={"error": error}, headers=headers)


class TestSuccessfulCompletion:
    """Tests for parsing successful responses."""

    @pytest.mark.asyncio
    async def test_parses_content_and_usage(self):
        """Content, total tokens and model are read from the response."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "model": "gpt-4",
                    "choices": [{"message": {"role": "assistant", "content": "Hi there"}}],
                    "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
                },
            )

        result = await make_client(handler).generate_completion(MESSAGES, AIModel.GPT_4)

        assert result.content == "Hi there"
        assert result.tokens_used == 15
        assert result.model == "gpt-4"
        assert seen["url"] == "https://api.openai.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test-key-123456"
        assert seen["body"]["model"] == "gpt-4"
        assert seen["body"]["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_function_call_arguments_decoded(self):
        """JSON function call arguments are decoded into a dict."""

        def handler(request):
            return httpx.Response(
                200,
                json={
                    "choices": [
                        {
                            "message": {
                                "content": None,
                                "function_call": {"name": "open_app", "arguments": '{"app": "notes"}'},
                            }
                        }
                    ],
                },
            )

        result = await make_client(handler).generate_completion(MESSAGES, "gpt-3.5-turbo")

        assert result.content == ""
        assert result.function_call == {"name": "open_app", "arguments": {"app": "notes"}}
        assert result.tokens_used == 0
        assert result.model == "gpt-3.5-turbo"


class TestErrorMapping:
    """Tests for HTTP status and body to taxonomy error mapping."""

    @pytest.mark.asyncio
    async def test_missing_key(self):
        """No key fails before any request is made."""
        calls = []
        client = make_client(lambda r: calls.append(r), api_key=None)

        assert not client.is_available()
        assert isinstance(client.unavailable_reason(), APIKeyMissingError)
        with pytest.raises(APIKeyMissingError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert calls == []

    @pytest.mark.asyncio
    async def test_unauthorized(self):
        """401 maps to an invalid key."""
        client = make_client(lambda r: error_response(401, "Incorrect API key"))
        with pytest.raises(APIKeyInvalidError) as exc_info:
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert exc_info.value.code == "AS002"

    @pytest.mark.asyncio
    async def test_rate_limited_with_retry_after(self):
        """429 maps to a cloud rate limit carrying Retry-After."""
        client = make_client(lambda r: error_response(429, "slow down", headers={"Retry-After": "12"}))
        with pytest.raises(CloudRateLimitError) as exc_info:
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert exc_info.value.retry_after == 12.0
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_insufficient_quota(self):
        """429 with insufficient_quota is a quota error, not a rate limit."""
        client = make_client(lambda r: error_response(429, "quota", code="insufficient_quota"))
        with pytest.raises(QuotaExceededError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_server_error(self):
        """5xx maps to a retryable server error."""
        client = make_client(lambda r: error_response(502, "bad gateway"))
        with pytest.raises(ServerError) as exc_info:
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert exc_info.value.code == "AS014"
        assert exc_info.value.is_retryable

    @pytest.mark.asyncio
    async def test_model_not_found(self):
        """404 maps to an unavailable model."""
        client = make_client(lambda r: error_response(404, "no such model"))
        with pytest.raises(ModelNotAvailableError):
            await client.generate_completion(MESSAGES, "gpt-4")

    @pytest.mark.asyncio
    async def test_context_length(self):
        """context_length_exceeded maps regardless of status."""
        client = make_client(lambda r: error_response(400, "too long", code="context_length_exceeded"))
        with pytest.raises(ContextLengthExceededError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_other_client_error(self):
        """Unmapped 4xx responses become generic HTTP errors."""
        client = make_client(lambda r: error_response(418, "teapot"))
        with pytest.raises(HttpError) as exc_info:
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert exc_info.value.code == "NE006"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "body",
        [
            {"choices": []},
            {"unexpected": True},
            {"choices": [{"message": {"content": ""}}]},
        ],
    )
    async def test_malformed_body(self, body):
        """Bodies without usable content are invalid responses."""
        client = make_client(lambda r: httpx.Response(200, json=body))
        with pytest.raises(InvalidResponseError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        """A non-JSON success body is an invalid response."""
        client = make_client(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(InvalidResponseError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_transport_timeout(self):
        """httpx timeouts become cloud timeouts."""

        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(CloudTimeoutError):
            await make_client(handler).generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_connect_error(self):
        """Connection failures become network errors."""

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(CloudNetworkError):
            await make_client(handler).generate_completion(MESSAGES, AIModel.GPT_4)

    @pytest.mark.asyncio
    async def test_secrets_redacted_from_messages(self):
        """Keys echoed back by the service never reach error messages."""
        client = make_client(lambda r: error_response(401, "Incorrect API key provided: sk-abcdef1234567890"))
        with pytest.raises(APIKeyInvalidError) as exc_info:
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        assert "sk-abcdef1234567890" not in str(exc_info.value)


class TestHelpers:
    """Tests for message building, redaction and the static client."""

    def test_build_messages(self):
        """A system prompt for the task type precedes the user input."""
        messages = build_messages("what's 2+2", TaskType.CALCULATION)
        assert [m.role for m in messages] == [ChatRole.SYSTEM, ChatRole.USER]
        assert "calculations" in messages[0].content
        assert messages[1].content == "what's 2+2"

    def test_redact_secrets(self):
        """Bearer tokens and sk- keys are masked."""
        text = redact_secrets("Authorization: Bearer abcdefghijklmnop and key sk-1234567890abcdef")
        assert "abcdefghijklmnop" not in text
        assert "sk-1234567890abcdef" not in text
        assert redact_secrets("") == ""

    @pytest.mark.asyncio
    async def test_static_client_replays_script(self):
        """Scripted outcomes are replayed in order, then the default."""
        client = StaticCloudClient(script=[ServerError(status_code=500)])

        with pytest.raises(ServerError):
            await client.generate_completion(MESSAGES, AIModel.GPT_4)
        result = await client.generate_completion(MESSAGES, AIModel.GPT_35_TURBO)

        assert result.content == "Cloud response"
        assert result.model == "gpt-3.5-turbo"
        assert client.call_count == 2

    @pytest.mark.asyncio
    async def test_stream_completion_yields_once(self):
        """The default stream yields the whole completion."""
        client = StaticCloudClient()
        chunks = [chunk async for chunk in client.stream_completion(MESSAGES, AIModel.GPT_4)]
        assert chunks == ["Cloud response"]

    def test_unavailable_reason(self):
        """Configured clients report no reason; others report the service as unavailable."""
        assert make_client(lambda r: None).unavailable_reason() is None
        assert StaticCloudClient().unavailable_reason() is None
        reason = StaticCloudClient(available=False).unavailable_reason()
        assert reason.code == "RT001"
        assert reason.payload["provider"] == "static"
