"""Exception hierarchy for yaoaic.

All exceptions inherit from :class:`YaoaicError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`yaoaic.exit_codes`.
The top-level error handler in :func:`yaoaic.app.main` catches
``YaoaicError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    YaoaicError (exit 1)
    +-- InvalidUsageError      (exit 2)
    +-- ConfigError            (exit 1)
    +-- CacheError             (exit 8)
    |   +-- CacheSetupError
    |   +-- CacheNotFoundError
    |   +-- CacheFormatError
    |   +-- CacheIOError
    +-- PromptError            (exit 9)
    |   +-- PromptLoadError
    |   +-- PromptFormatError
    |   +-- PromptNotFoundError (exit 4)
    +-- ApiError               (exit 5)
    +-- ConnectionError_       (exit 6)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from yaoaic.exit_codes import (
    EXIT_API_ERROR,
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
    EXIT_PROMPT_ERROR,
)

if TYPE_CHECKING:
    from yaoaic.models import ApiErrorDetail


class YaoaicError(Exception):
    """Base exception for all yaoaic errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`yaoaic.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(YaoaicError):
    """Raised for invalid CLI arguments or missing input."""

    exit_code = EXIT_INVALID_USAGE


class ConfigError(YaoaicError):
    """Raised for configuration problems (invalid JSON, missing API key)."""

    exit_code = EXIT_GENERIC_FAILURE


# --- Cache ---


class CacheError(YaoaicError):
    """Base class for failures of the on-disk cache."""

    exit_code = EXIT_CACHE_ERROR


class CacheSetupError(CacheError):
    """Raised when the cache root exists but is not a directory, or cannot be created."""


class CacheNotFoundError(CacheError):
    """Raised by the durable store when an entry file does not exist.

    :meth:`~yaoaic.cache.Cache.load_cached` turns this into ``None``; it
    only reaches callers of :func:`yaoaic.cache.store.read` directly.
    """


class CacheFormatError(CacheError):
    """Raised when an entry exists but cannot be parsed or does not match the expected type."""


class CacheIOError(CacheError):
    """Raised when reading or writing an entry fails at the OS level (permissions, disk full)."""


# --- Prompts ---


class PromptError(YaoaicError):
    """Base class for prompt catalog failures."""

    exit_code = EXIT_PROMPT_ERROR


class PromptLoadError(PromptError):
    """Raised when a prompt source cannot be fetched or read."""


class PromptFormatError(PromptError):
    """Raised for a single CSV record that does not match the ``act,prompt`` layout."""


class PromptNotFoundError(PromptError):
    """Raised when a selection matches neither a catalog index nor an ``act``."""

    exit_code = EXIT_NOT_FOUND


# --- Chat API ---


class ApiError(YaoaicError):
    """Raised when the chat API returns an error body or a body that cannot be parsed.

    Args:
        message: Human-readable error description.
        status_code: HTTP status of the response, when one was received.
        detail: The structured error object returned by the API, if any.
    """

    exit_code = EXIT_API_ERROR

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        detail: Optional[ApiErrorDetail] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class ConnectionError_(YaoaicError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR
