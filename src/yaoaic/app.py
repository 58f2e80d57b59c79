"""Typer application and CLI entry point for yaoaic.

This module wires together the top-level Typer application and registers
the sub-commands (``prompt``, ``ask``, ``last``, ``cache``, ``config``).
The root callback turns the global flags into an
:class:`~yaoaic.output.OutputManager`, routes the ``yaoaic`` logger to
stderr, and resolves the effective :class:`~yaoaic.models.GlobalConfig`
for the sub-commands.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
:class:`~yaoaic.exceptions.YaoaicError` ends the process with the error's
exit code; any other exception is written to a crash log under the data
directory.

See Also:
    :mod:`yaoaic.config`: Global configuration resolution.
    :mod:`yaoaic.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from yaoaic import __version__
from yaoaic.commands.cache import cache_app
from yaoaic.commands.chat import ask_command, last_command
from yaoaic.commands.config import config_app
from yaoaic.commands.prompt import prompt_app
from yaoaic.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="yaoaic",
    help="Chat with the OpenAI API using prompts from CSV catalogs.",
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.add_typer(prompt_app, name="prompt", help="Browse and use catalog prompts.")
app.command("ask")(ask_command)
app.command("last")(last_command)
app.add_typer(cache_app, name="cache", help="Inspect and clear the response cache.")
app.add_typer(config_app, name="config", help="Configuration management.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"yaoaic {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
    cache: Optional[bool] = typer.Option(
        None, "--cache/--no-cache", help="Enable or disable the response cache."
    ),
    cache_timeout_seconds: Optional[int] = typer.Option(
        None,
        "--cache-timeout-seconds",
        min=0,
        help="Maximum age of cache entries, in seconds.",
    ),
    cache_dir: Optional[str] = typer.Option(
        None, "--cache-dir", help="Cache directory (overrides the XDG default)."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~yaoaic.output.OutputManager` and the
    ``yaoaic`` log handler from CLI flags, and stores the resolved config
    in the Typer context so that sub-commands can read it via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
        cache: Override ``cache.enabled``.
        cache_timeout_seconds: Override ``cache.ttl_seconds``.
        cache_dir: Override ``cache.directory``.
    """
    from yaoaic.config import resolve_config
    from yaoaic.output import OutputFormat, OutputManager, configure_logging, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    output = OutputManager(
        format=fmt,
        no_color=no_color,
        quiet=quiet,
        verbose=verbose,
    )
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["config"] = resolve_config(
        cli_cache=cache,
        cli_ttl_seconds=cache_timeout_seconds,
        cli_cache_dir=cache_dir,
    )
    ctx.obj["verbose"] = verbose


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path.

    Args:
        exc: The unhandled exception to log.

    Returns:
        Absolute path to the written crash log file.
    """
    from yaoaic.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(
        "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    )
    return str(log_path)


def _next_step(exc: Exception) -> Optional[str]:
    """Return a follow-up hint for errors the user can act on, if any."""
    from yaoaic.exceptions import CacheSetupError, PromptLoadError, PromptNotFoundError

    if isinstance(exc, PromptNotFoundError):
        return "Run 'yaoaic prompt list' to see the available prompts."
    if isinstance(exc, PromptLoadError):
        return "Check your network connection or set YAOAIC_SOURCES to a local CSV file."
    if isinstance(exc, CacheSetupError):
        return "Pass --cache-dir with a writable directory, or use --no-cache."
    return None


def main() -> None:
    """CLI entry point invoked by the ``yaoaic`` console script.

    Unhandled :class:`~yaoaic.exceptions.YaoaicError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from yaoaic.exceptions import YaoaicError
        from yaoaic.output import error, suggest

        if isinstance(exc, YaoaicError):
            error(str(exc))
            hint = _next_step(exc)
            if hint:
                suggest(hint)
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
