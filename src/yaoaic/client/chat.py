"""Chat-completion HTTP clients.

This module provides :class:`ChatClient` and its non-blocking counterpart
:class:`AsyncChatClient`. Both wrap :mod:`httpx`, POST a
:class:`~yaoaic.models.ChatRequest` as JSON to ``<base_url>/chat/completions``
with a bearer token, and map the body back:

- a body that validates as :class:`~yaoaic.models.ChatResponse` is returned;
- otherwise, if it is an API error object (``{"error": {...}}``), an
  :class:`~yaoaic.exceptions.ApiError` carrying the parsed
  :class:`~yaoaic.models.ApiErrorDetail` is raised;
- otherwise an :class:`~yaoaic.exceptions.ApiError` describing the parse
  failure is raised.

Network failures raise :class:`~yaoaic.exceptions.ConnectionError_`. There
is no retry or backoff: each call sends exactly one request.
"""

from __future__ import annotations

from typing import Optional

import httpx
from pydantic import ValidationError

from yaoaic.exceptions import ApiError, ConnectionError_
from yaoaic.models import DEFAULT_API_BASE_URL, ApiErrorDetail, ChatRequest, ChatResponse
from yaoaic.output import get_output

CHAT_COMPLETIONS_PATH = "/chat/completions"


def _headers(api_key: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def parse_response(response: httpx.Response) -> ChatResponse:
    """Map an HTTP response to a :class:`ChatResponse` or raise :class:`ApiError`."""
    try:
        return ChatResponse.model_validate_json(response.content)
    except ValidationError as exc:
        raise _api_error(response, exc) from exc


def _api_error(response: httpx.Response, cause: ValidationError) -> ApiError:
    """Build the :class:`ApiError` for a body that is not a chat response."""
    status = response.status_code
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and isinstance(data.get("error"), dict):
        data = data["error"]
    try:
        detail = ApiErrorDetail.model_validate(data)
    except ValidationError:
        reason = str(cause).splitlines()[0]
        return ApiError(f"HTTP {status}: unable to parse response: {reason}", status_code=status)
    return ApiError(f"Error response: {detail}", status_code=status, detail=detail)


class ChatClient:
    """Synchronous chat-completion client.

    Must be used as a context manager so that the underlying
    :class:`httpx.Client` is opened and closed properly.

    Args:
        api_key: Bearer token for the API.
        base_url: API root, e.g. ``https://api.openai.com/v1``.
        timeout: Request timeout in seconds.
        transport: Optional httpx transport (tests pass an
            :class:`httpx.MockTransport`).

    Example::

        with ChatClient(api_key) as client:
            response = client.send_query(ChatRequest(messages=[Message(content="hi")]))
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> ChatClient:
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def send_query(self, request: ChatRequest) -> ChatResponse:
        """Send *request* and return the parsed response.

        Raises:
            ApiError: If the API returns an error or an unreadable body.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as context manager"

        get_output().debug(
            f"POST {self._base_url}{CHAT_COMPLETIONS_PATH} "
            f"({request.model.value}, {len(request.messages)} messages)"
        )
        try:
            response = self._client.post(
                CHAT_COMPLETIONS_PATH,
                json=request.to_wire(),
                headers=_headers(self._api_key),
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed: {exc}") from exc
        return parse_response(response)


class AsyncChatClient:
    """Asynchronous chat-completion client -- mirrors :class:`ChatClient`.

    Must be used as an async context manager.

    Example::

        async with AsyncChatClient(api_key) as client:
            response = await client.send_query(request)
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncChatClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def send_query(self, request: ChatRequest) -> ChatResponse:
        """Send *request* and return the parsed response.

        Raises:
            ApiError: If the API returns an error or an unreadable body.
            ConnectionError_: On network or timeout errors.
        """
        assert self._client is not None, "Client not initialised -- use as async context manager"

        try:
            response = await self._client.post(
                CHAT_COMPLETIONS_PATH,
                json=request.to_wire(),
                headers=_headers(self._api_key),
            )
        except httpx.TransportError as exc:
            raise ConnectionError_(f"Connection failed: {exc}") from exc
        return parse_response(response)
