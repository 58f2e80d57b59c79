"""Cache commands -- inspect and clear the on-disk cache.

Provides the ``yaoaic cache`` sub-command group. These commands work on
the configured cache directory even when caching is disabled for normal
commands, since they are explicit user requests.
"""

from __future__ import annotations

from datetime import datetime, timedelta

import typer

from yaoaic.output import info, print_data, print_table, success


cache_app = typer.Typer(no_args_is_help=True)


def _open(ctx: typer.Context):  # noqa: ANN202
    from yaoaic.cache import Cache
    from yaoaic.commands._common import get_config
    from yaoaic.config import resolve_cache_dir

    config = get_config(ctx)
    return Cache(resolve_cache_dir(config), config.cache.ttl_seconds)


def _format_age(age: timedelta) -> str:
    seconds = int(age.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    return f"{hours}h{minutes:02d}m{seconds:02d}s"


@cache_app.command("path")
def cache_path(ctx: typer.Context) -> None:
    """Print the cache directory."""
    from yaoaic.commands._common import get_config
    from yaoaic.config import resolve_cache_dir

    print_data(str(resolve_cache_dir(get_config(ctx))))


@cache_app.command("info")
def cache_info(ctx: typer.Context) -> None:
    """List cache entries with their age and freshness.

    Example::

        yaoaic cache info
        yaoaic --json cache info
    """
    cache = _open(ctx)
    info(f"Cache directory: {cache.directory} (max age {cache.max_age})")
    entries = cache.entries()
    if not entries:
        info("Cache is empty.")
        return

    rows = []
    for entry in entries:
        if entry.created is None or entry.age is None:
            rows.append([entry.name, "-", "-", "unreadable"])
            continue
        created = datetime.fromtimestamp(entry.created).isoformat(timespec="seconds")
        rows.append(
            [entry.name, created, _format_age(entry.age), "fresh" if entry.fresh else "stale"]
        )
    print_table(["name", "created", "age", "status"], rows, title="Cache entries")


@cache_app.command("clear")
def cache_clear(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Delete every cache entry.

    Example::

        yaoaic cache clear --yes
    """
    cache = _open(ctx)
    if not yes:
        confirmed = typer.confirm(f"Delete all entries in {cache.directory}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    removed = cache.clear()
    success(f"Removed {removed} cache file(s).")
