"""Cache-aware orchestration of the prompt catalog and chat exchanges.

:class:`Session` is the glue between the CLI commands, the prompt loader,
the chat client, and the on-disk :class:`~yaoaic.cache.Cache`. It decides,
per operation, whether the cache is consulted:

* the prompt catalog goes through :meth:`~yaoaic.cache.Cache.with_cached`
  under the ``prompts`` entry;
* priming a conversation with a selected prompt first peeks at
  ``<index>_messages`` with :meth:`~yaoaic.cache.Cache.load_cached` and only
  calls the API (then stores the transcript) on a miss;
* every completed exchange is recorded unconditionally under
  ``last_messages`` with :meth:`~yaoaic.cache.Cache.store_cache`.

A session built with ``cache=None`` always recomputes and never writes.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import Optional, Sequence

from yaoaic.cache import Cache
from yaoaic.client import ChatClient
from yaoaic.exceptions import CacheError, ConfigError, PromptNotFoundError
from yaoaic.models import ChatConfig, ChatRequest, ChatResponse, Message, Prompt
from yaoaic.prompts import DEFAULT_SOURCES, PromptLoader, Source, valid_prompts

logger = logging.getLogger(__name__)

PROMPTS_ENTRY = "prompts"
LAST_MESSAGES_ENTRY = "last_messages"


def messages_entry(index: int) -> str:
    """Cache entry name for the primed transcript of catalog prompt *index*."""
    return f"{index}_messages"


class Session:
    """One CLI invocation's view of the catalog, the cache, and the chat API.

    Args:
        client: An entered :class:`~yaoaic.client.ChatClient`. Only needed
            by operations that talk to the API.
        cache: The on-disk cache, or ``None`` to disable caching.
        sources: Prompt catalog locations.
        chat: Model and sampling settings for every request.
        prompt_loader: Loader used to fetch the catalog.
    """

    def __init__(
        self,
        client: Optional[ChatClient] = None,
        cache: Optional[Cache] = None,
        sources: Sequence[Source] = DEFAULT_SOURCES,
        chat: Optional[ChatConfig] = None,
        prompt_loader: Optional[PromptLoader] = None,
    ) -> None:
        self._client = client
        self._cache = cache
        self._sources = tuple(sources)
        self._chat = chat or ChatConfig()
        self._prompt_loader = prompt_loader or PromptLoader()
        self._prompts: Optional[list[Prompt]] = None

    @property
    def cache(self) -> Optional[Cache]:
        return self._cache

    # ------------------------------------------------------------------ #
    # Catalog
    # ------------------------------------------------------------------ #

    def prompts(self) -> list[Prompt]:
        """Return the prompt catalog, from the cache when fresh."""
        if self._prompts is None:
            loader = partial(valid_prompts, loader=self._prompt_loader)
            if self._cache is None:
                self._prompts = loader(self._sources)
            else:
                self._prompts = self._cache.with_cached(
                    PROMPTS_ENTRY, self._sources, loader, list[Prompt]
                )
        return self._prompts

    def list_prompts(self, filter: Optional[str] = None) -> list[tuple[int, Prompt]]:
        """Return ``(index, prompt)`` pairs whose act or text contains *filter*.

        Matching is case-insensitive. Indices are positions in the full
        catalog, so they stay valid for :meth:`select`.
        """
        needle = (filter or "").lower()
        return [
            (i, p)
            for i, p in enumerate(self.prompts())
            if needle in p.act.lower() or needle in p.prompt.lower()
        ]

    def select(self, option: str) -> tuple[int, Prompt]:
        """Find a prompt by catalog index (if *option* is an integer) or by exact act.

        Raises:
            PromptNotFoundError: If nothing matches.
        """
        try:
            index: Optional[int] = int(option)
        except ValueError:
            index = None

        for i, prompt in enumerate(self.prompts()):
            if index is not None:
                if i == index:
                    return i, prompt
            elif prompt.act == option:
                return i, prompt
        raise PromptNotFoundError(f"No prompt matches '{option}'")

    # ------------------------------------------------------------------ #
    # Chat
    # ------------------------------------------------------------------ #

    def prime(self, index: int, prompt: Prompt) -> list[Message]:
        """Return the opening exchange for *prompt*, reusing a cached transcript.

        On a cache miss the prompt is sent as a single user message and
        ``[prompt message, *reply messages]`` is stored under
        ``<index>_messages``.
        """
        name = messages_entry(index)
        if self._cache is not None:
            try:
                cached = self._cache.load_cached(name, list[Message])
            except CacheError as exc:
                logger.warning("ignoring unreadable transcript %s: %s", name, exc)
                cached = None
            if cached is not None:
                logger.debug("reusing cached transcript %s", name)
                return cached

        prompt_message = Message(content=prompt.prompt)
        response = self._send([prompt_message])
        messages = [prompt_message, *(choice.message for choice in response.choices)]
        self._record(name, messages)
        return messages

    def ask(self, text: str, history: Sequence[Message] = ()) -> ChatResponse:
        """Send *text* after *history* and record the exchange as ``last_messages``."""
        messages = [*history, Message(content=text.strip())]
        response = self._send(messages)
        reply = response.first_message()
        self._record(LAST_MESSAGES_ENTRY, messages + ([reply] if reply is not None else []))
        return response

    def last_exchange(self) -> Optional[list[Message]]:
        """Peek at the last recorded exchange without calling the API.

        Returns ``None`` when caching is disabled or the entry is absent or stale.
        """
        if self._cache is None:
            return None
        return self._cache.load_cached(LAST_MESSAGES_ENTRY, list[Message])

    def _record(self, name: str, messages: list[Message]) -> None:
        """Store a transcript under *name*. Write failures are logged at WARNING and dropped."""
        if self._cache is None:
            return
        try:
            self._cache.store_cache(name, messages, list[Message])
        except CacheError as exc:
            logger.warning("unable to record transcript %s: %s", name, exc)

    def _send(self, messages: list[Message]) -> ChatResponse:
        if self._client is None:
            raise ConfigError("No chat client configured for this session")
        request = ChatRequest(
            model=self._chat.model,
            messages=messages,
            top_p=self._chat.top_p,
            max_tokens=self._chat.max_tokens,
        )
        return self._client.send_query(request)
