"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~yaoaic.exceptions.YaoaicError` subclass.
Shell wrappers can inspect the exit code to determine the failure class
without parsing stderr.

Example::

    $ yaoaic prompt select "Linux Terminal" --stdin < input.txt
    $ echo $?
    5   # EXIT_API_ERROR -- the chat API rejected the request
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing input."""

EXIT_NOT_FOUND = 4
"""The requested prompt does not exist in the catalog."""

EXIT_API_ERROR = 5
"""The chat API returned an error response or an unreadable body."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CACHE_ERROR = 8
"""The on-disk cache could not be set up, read, or written."""

EXIT_PROMPT_ERROR = 9
"""The prompt catalog could not be loaded or parsed."""

EXIT_INTERRUPTED = 130
"""The command was cancelled with Ctrl-C."""
