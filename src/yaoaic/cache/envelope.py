"""Timestamped wrapper around a cached payload."""

from __future__ import annotations

import time
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """A cached value together with the moment it was created.

    Envelopes are frozen: ``created`` is set once, at construction, and
    never changes afterwards. They only exist between the moment a value
    is handed to the cache and the moment it has been written to disk (or,
    on the read side, until the value has been unwrapped).

    Attributes:
        created: Seconds since the Unix epoch. Sub-second precision is
            kept but not relied upon.
        value: The payload. Anything Pydantic can serialise in JSON mode.

    Example::

        envelope = Envelope[list[Prompt]](value=prompts)
        envelope.created  # 1700000000.123
    """

    model_config = ConfigDict(frozen=True)

    created: float = Field(default_factory=time.time)
    value: T
