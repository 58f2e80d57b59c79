"""Canonical Pydantic models shared across all yaoaic modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`ChatConfig`, and :class:`GlobalConfig`.

**Catalog models** -- produced by the prompt loader and cached on disk:
    :class:`Prompt`.

**Chat API models** -- the request/response shapes of the
``/v1/chat/completions`` endpoint:
    :class:`Message`, :class:`ChatModel`, :class:`ChatRequest`,
    :class:`Usage`, :class:`FinishReason`, :class:`Choice`,
    :class:`ChatResponse`, and :class:`ApiErrorDetail`.

All models use Pydantic v2. Response models ignore unknown keys so that new
fields added by the API do not break parsing.
"""

from __future__ import annotations

import enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_PROMPTS_URL = (
    "https://raw.githubusercontent.com/f/awesome-chatgpt-prompts/main/prompts.csv"
)
DEFAULT_API_BASE_URL = "https://api.openai.com/v1"


# --- Catalog ---


class Prompt(BaseModel):
    """A reusable prompt from an awesome-chatgpt-prompts style CSV file.

    Example::

        Prompt(act="Linux Terminal", prompt="I want you to act as a linux terminal.")
    """

    act: str
    prompt: str


# --- Chat API ---


class ChatModel(str, enum.Enum):
    """Chat models understood by the client."""

    GPT35_TURBO = "gpt-3.5-turbo"
    CODE_DAVINCI = "code-davinci-002"

    @property
    def max_tokens(self) -> int:
        """The context size of the model in tokens."""
        if self is ChatModel.CODE_DAVINCI:
            return 8001
        return 4096


class Message(BaseModel):
    """A single chat message. Defaults to an empty ``user`` message."""

    role: str = "user"
    content: str = ""


class ChatRequest(BaseModel):
    """Body of a chat-completion request.

    ``max_tokens`` is dropped from the wire body when unset; see
    :meth:`to_wire`.
    """

    model: ChatModel = ChatModel.GPT35_TURBO
    messages: list[Message] = Field(default_factory=list)
    top_p: float = 0.5
    max_tokens: Optional[int] = None

    def to_wire(self) -> dict:
        """Return the JSON body sent to the API."""
        return self.model_dump(mode="json", exclude_none=True)


class Usage(BaseModel):
    """Token accounting reported by the API."""

    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class FinishReason(str, enum.Enum):
    """Why the API stopped generating tokens for a choice."""

    STOP = "stop"
    LENGTH = "length"
    TIMEOUT = "timeout"
    COMPLETION = "completion"
    MODEL_ERROR = "model_error"
    API_ERROR = "api_error"
    CONTENT_FILTER = "content_filter"
    TOOL_CALLS = "tool_calls"


class Choice(BaseModel):
    """One completion alternative in a :class:`ChatResponse`."""

    model_config = ConfigDict(extra="ignore")

    message: Message
    finish_reason: Optional[FinishReason] = None
    index: int


class ChatResponse(BaseModel):
    """A successful chat-completion response."""

    model_config = ConfigDict(extra="ignore")

    id: str
    object: str
    created: int
    usage: Optional[Usage] = None
    choices: list[Choice]
    context: Optional[str] = None

    def first_message(self) -> Optional[Message]:
        """Return the message of the first choice, if any."""
        if not self.choices:
            return None
        return self.choices[0].message


class ApiErrorDetail(BaseModel):
    """The ``error`` object returned by the API on failure."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    message: str
    error_type: str = Field(default="", alias="type")
    param: Optional[str] = None
    code: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code or '-'} {self.error_type}: {self.message}"


# --- Configuration ---


class CacheConfig(BaseModel):
    """On-disk cache settings stored in :class:`GlobalConfig`."""

    enabled: bool = Field(default=True, description="Enable the prompt and transcript cache")
    ttl_seconds: int = Field(
        default=60 * 60 * 24, description="Seconds a cached entry stays fresh"
    )
    directory: Optional[str] = Field(
        default=None, description="Override the cache directory (default: XDG cache dir)"
    )


class ChatConfig(BaseModel):
    """Default chat-completion settings stored in :class:`GlobalConfig`."""

    model: ChatModel = Field(default=ChatModel.GPT35_TURBO, description="Model identifier")
    top_p: float = Field(default=0.5, description="Nucleus sampling parameter")
    max_tokens: Optional[int] = Field(
        default=None, description="Maximum tokens to generate (None = API default)"
    )
    base_url: str = Field(default=DEFAULT_API_BASE_URL, description="API base URL")
    timeout: int = Field(default=60, description="Request timeout in seconds")


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/yaoaic/config.json``.

    Loaded and saved by :func:`~yaoaic.config.load_global_config` and
    :func:`~yaoaic.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or
    CLI flags. See :func:`~yaoaic.config.resolve_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    sources: list[str] = Field(
        default_factory=lambda: [DEFAULT_PROMPTS_URL],
        description="Prompt CSV locations (URLs or file paths)",
    )
