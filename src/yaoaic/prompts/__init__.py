"""Prompt catalog loading for yaoaic.

Reads awesome-chatgpt-prompts style CSV catalogs from URLs, local files,
or in-memory bytes and turns them into :class:`~yaoaic.models.Prompt`
records.

Typical usage::

    from yaoaic.prompts import DEFAULT_SOURCES, valid_prompts

    prompts = valid_prompts(DEFAULT_SOURCES)

See Also:
    :mod:`yaoaic.prompts.loader` -- implementation details.
"""

from yaoaic.prompts.loader import (
    DEFAULT_SOURCES,
    PromptLoader,
    PromptResult,
    Source,
    SourceKind,
    parse_csv,
    valid_prompts,
)

__all__ = [
    "DEFAULT_SOURCES",
    "PromptLoader",
    "PromptResult",
    "Source",
    "SourceKind",
    "parse_csv",
    "valid_prompts",
]
