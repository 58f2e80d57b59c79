"""Chat-completion API clients for yaoaic.

Provides synchronous and asynchronous clients that wrap :mod:`httpx` and
map the ``/chat/completions`` request/response shapes to the models in
:mod:`yaoaic.models`.

Classes:
    :class:`ChatClient` -- blocking client backed by :class:`httpx.Client`.
    :class:`AsyncChatClient` -- non-blocking client backed by :class:`httpx.AsyncClient`.

Example::

    from yaoaic.client import ChatClient

    with ChatClient(api_key) as client:
        response = client.send_query(request)
"""

from yaoaic.client.chat import AsyncChatClient, ChatClient, parse_response

__all__ = ["ChatClient", "AsyncChatClient", "parse_response"]
