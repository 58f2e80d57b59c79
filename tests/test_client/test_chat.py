"""Tests for the chat-completion clients."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from yaoaic.client import AsyncChatClient, ChatClient, parse_response
from yaoaic.exceptions import ApiError, ConnectionError_
from yaoaic.models import ChatModel, ChatRequest, FinishReason, Message
from yaoaic.output import OutputManager, set_output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _json_response(data: Any, status_code: int = 200) -> httpx.Response:
    """Build a mock httpx.Response with JSON content."""
    return httpx.Response(
        status_code=status_code,
        headers={"content-type": "application/json"},
        json=data,
        request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"),
    )


def _request(content: str = "hello") -> ChatRequest:
    return ChatRequest(messages=[Message(content=content)])


@pytest.fixture(autouse=True)
def _clean_output():
    """Reset the global output manager between tests."""
    set_output(OutputManager(no_color=True, quiet=True))
    yield


# ---------------------------------------------------------------------------
# Request encoding
# ---------------------------------------------------------------------------


class TestRequest:
    def test_wire_body_omits_unset_max_tokens(self) -> None:
        body = _request().to_wire()
        assert body == {
            "model": "gpt-3.5-turbo",
            "messages": [{"role": "user", "content": "hello"}],
            "top_p": 0.5,
        }

    def test_wire_body_includes_max_tokens(self) -> None:
        body = ChatRequest(model=ChatModel.CODE_DAVINCI, max_tokens=100).to_wire()
        assert body["model"] == "code-davinci-002"
        assert body["max_tokens"] == 100

    def test_model_context_sizes(self) -> None:
        assert ChatModel.GPT35_TURBO.max_tokens == 4096
        assert ChatModel.CODE_DAVINCI.max_tokens == 8001


# ---------------------------------------------------------------------------
# Response parsing
# ---------------------------------------------------------------------------


class TestParseResponse:
    def test_success(self, chat_body) -> None:
        response = parse_response(_json_response(chat_body("Hi there")))
        assert response.id == "chatcmpl-123"
        assert response.usage.total_tokens == 21
        assert response.choices[0].finish_reason is FinishReason.STOP
        assert response.first_message() == Message(role="assistant", content="Hi there")

    def test_unknown_fields_are_ignored(self, chat_body) -> None:
        body = chat_body("x")
        body["system_fingerprint"] = "fp_1"
        body["choices"][0]["logprobs"] = None
        assert parse_response(_json_response(body)).first_message().content == "x"

    def test_no_choices(self, chat_body) -> None:
        response = parse_response(_json_response(chat_body()))
        assert response.first_message() is None

    def test_error_object(self) -> None:
        body = {
            "error": {
                "message": "Incorrect API key provided",
                "type": "invalid_request_error",
                "param": None,
                "code": "invalid_api_key",
            }
        }
        with pytest.raises(ApiError) as exc_info:
            parse_response(_json_response(body, status_code=401))
        err = exc_info.value
        assert err.status_code == 401
        assert err.detail is not None
        assert err.detail.code == "invalid_api_key"
        assert err.detail.error_type == "invalid_request_error"
        assert "Incorrect API key provided" in str(err)

    def test_unparseable_body(self) -> None:
        response = httpx.Response(
            502,
            content=b"<html>bad gateway</html>",
            request=httpx.Request("POST", "https://api.example.com/v1/chat/completions"),
        )
        with pytest.raises(ApiError, match="HTTP 502: unable to parse response") as exc_info:
            parse_response(response)
        assert exc_info.value.detail is None

    def test_api_error_exit_code(self) -> None:
        assert ApiError("x").exit_code == 5


# ---------------------------------------------------------------------------
# ChatClient
# ---------------------------------------------------------------------------


class TestChatClient:
    def test_send_query(self, chat_body) -> None:
        """The request is POSTed as JSON with a bearer token."""
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=chat_body("pong"))

        with ChatClient(
            "sk-test", base_url="https://api.example.com/v1/", transport=httpx.MockTransport(handler)
        ) as client:
            response = client.send_query(_request("ping"))

        assert seen["url"] == "https://api.example.com/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"]["messages"] == [{"role": "user", "content": "ping"}]
        assert response.first_message().content == "pong"

    def test_api_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                429, json={"error": {"message": "Rate limit reached", "type": "requests"}}
            )

        with ChatClient("sk-test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ApiError, match="Rate limit reached"):
                client.send_query(_request())

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        with ChatClient("sk-test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ConnectionError_, match="Connection failed"):
                client.send_query(_request())

    def test_timeout_is_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        with ChatClient("sk-test", transport=httpx.MockTransport(handler)) as client:
            with pytest.raises(ConnectionError_):
                client.send_query(_request())

    def test_requires_context_manager(self) -> None:
        with pytest.raises(AssertionError):
            ChatClient("sk-test").send_query(_request())


class TestAsyncChatClient:
    def test_send_query(self, chat_body) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=chat_body("async pong"))

        async def run():
            async with AsyncChatClient(
                "sk-test", transport=httpx.MockTransport(handler)
            ) as client:
                return await client.send_query(_request())

        assert asyncio.run(run()).first_message().content == "async pong"

    def test_connection_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        async def run():
            async with AsyncChatClient(
                "sk-test", transport=httpx.MockTransport(handler)
            ) as client:
                return await client.send_query(_request())

        with pytest.raises(ConnectionError_):
            asyncio.run(run())
