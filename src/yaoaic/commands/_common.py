"""Helpers shared by the yaoaic sub-commands.

The root callback in :mod:`yaoaic.app` stores the resolved
:class:`~yaoaic.models.GlobalConfig` in ``ctx.obj["config"]``; the helpers
here turn it into the objects the commands need (cache, chat client,
session) and read the user's input.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer

from yaoaic.cache import Cache
from yaoaic.client import ChatClient
from yaoaic.exceptions import CacheSetupError, InvalidUsageError
from yaoaic.models import ChatConfig, ChatModel, GlobalConfig
from yaoaic.output import debug, warning
from yaoaic.prompts import PromptLoader, Source
from yaoaic.session import Session


def get_config(ctx: typer.Context) -> GlobalConfig:
    """Return the effective config stored by the root callback.

    Falls back to resolving it from disk and environment when the command
    runs without the root callback (e.g. in a bare Typer app).
    """
    obj = ctx.find_root().obj or {}
    config = obj.get("config")
    if config is None:
        from yaoaic.config import resolve_config

        config = resolve_config()
    return config


def open_cache(config: GlobalConfig) -> Optional[Cache]:
    """Open the configured cache, or return ``None`` when caching is off.

    A cache directory that cannot be set up does not abort the command:
    a warning is printed and the command continues without a cache.
    """
    if not config.cache.enabled:
        debug("Cache disabled")
        return None

    from yaoaic.config import resolve_cache_dir

    try:
        return Cache(resolve_cache_dir(config), config.cache.ttl_seconds)
    except CacheSetupError as exc:
        warning(f"{exc} Continuing without cache.")
        return None


def open_client(chat: ChatConfig) -> ChatClient:
    """Create (but do not enter) a :class:`~yaoaic.client.ChatClient` for *chat*.

    Raises:
        ConfigError: If ``OPENAI_API_KEY`` is not set.
    """
    from yaoaic.config import resolve_api_key

    return ChatClient(resolve_api_key(), base_url=chat.base_url, timeout=chat.timeout)


def chat_settings(
    config: GlobalConfig,
    model: Optional[ChatModel] = None,
    top_p: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> ChatConfig:
    """Apply per-command overrides on top of ``config.chat``."""
    chat = config.chat.model_copy()
    if model is not None:
        chat.model = model
    if top_p is not None:
        chat.top_p = top_p
    if max_tokens is not None:
        chat.max_tokens = max_tokens
    return chat


def build_session(
    config: GlobalConfig,
    client: Optional[ChatClient] = None,
    chat: Optional[ChatConfig] = None,
) -> Session:
    """Assemble a :class:`~yaoaic.session.Session` for one command."""
    return Session(
        client=client,
        cache=open_cache(config),
        sources=[Source.parse(s) for s in config.sources],
        chat=chat or config.chat,
        prompt_loader=PromptLoader(timeout=config.chat.timeout),
    )


def read_input(input_file: Optional[str], stdin: bool) -> str:
    """Read the user's message from stdin or *input_file*.

    Raises:
        InvalidUsageError: If neither is given or the file cannot be read.
    """
    if stdin:
        return sys.stdin.read()
    if not input_file:
        raise InvalidUsageError("No input given: pass INPUT_FILE or --stdin.")
    try:
        return Path(input_file).expanduser().read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise InvalidUsageError(f"Unable to load file {input_file}: {exc}") from exc
