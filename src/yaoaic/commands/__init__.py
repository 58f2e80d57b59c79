"""Built-in CLI sub-commands for yaoaic.

This package groups all Typer sub-command modules that form the CLI's
top-level command tree:

* :mod:`~yaoaic.commands.prompt` -- list, show, and select catalog prompts.
* :mod:`~yaoaic.commands.chat` -- send a message (``ask``) and review the
  last exchange (``last``).
* :mod:`~yaoaic.commands.cache` -- inspect and clear the response cache.
* :mod:`~yaoaic.commands.config` -- view and modify global settings.

Each module either exports a :class:`typer.Typer` sub-application (for
multi-command groups like ``prompt`` and ``cache``) or plain callback
functions registered directly on the root app (for single commands like
``ask``).
"""
