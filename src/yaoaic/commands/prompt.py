"""Prompt commands -- browse the catalog and start a chat from a prompt.

Provides the ``yaoaic prompt`` sub-command group. The catalog is loaded
through the session, so it comes from the cache while the ``prompts``
entry is fresh and is re-fetched from the configured sources otherwise.
"""

from __future__ import annotations

from typing import Optional

import typer

from yaoaic.commands.chat import (
    INPUT_FILE_ARGUMENT,
    MAX_TOKENS_OPTION,
    MODEL_OPTION,
    STDIN_OPTION,
    TOP_P_OPTION,
    run_exchange,
)
from yaoaic.models import ChatModel
from yaoaic.output import info, print_data, print_table


prompt_app = typer.Typer(no_args_is_help=True)


@prompt_app.command("list")
def prompt_list(
    ctx: typer.Context,
    filter: Optional[str] = typer.Argument(
        None, help="Only show prompts whose act or text contains this (case-insensitive)."
    ),
) -> None:
    """List catalog prompts with their index.

    Example::

        yaoaic prompt list
        yaoaic prompt list terminal
    """
    from yaoaic.commands._common import build_session, get_config

    session = build_session(get_config(ctx))
    matches = session.list_prompts(filter)
    if not matches:
        info("No prompts found.")
        return
    print_table(["index", "act"], [[str(i), p.act] for i, p in matches], title="Prompts")


@prompt_app.command("show")
def prompt_show(
    ctx: typer.Context,
    option: str = typer.Argument(help="Prompt index or exact act."),
) -> None:
    """Print the full text of a catalog prompt."""
    from yaoaic.commands._common import build_session, get_config

    session = build_session(get_config(ctx))
    index, prompt = session.select(option)
    info(f"{index}: {prompt.act}")
    print_data(prompt.prompt)


@prompt_app.command("select")
def prompt_select(
    ctx: typer.Context,
    option: str = typer.Argument(help="Prompt index or exact act."),
    input_file: Optional[str] = INPUT_FILE_ARGUMENT,
    stdin: bool = STDIN_OPTION,
    model: Optional[ChatModel] = MODEL_OPTION,
    top_p: Optional[float] = TOP_P_OPTION,
    max_tokens: Optional[int] = MAX_TOKENS_OPTION,
) -> None:
    """Start a chat with a catalog prompt.

    The prompt's opening exchange is cached per prompt index, so selecting
    the same prompt again within the cache TTL does not call the API for
    it. With input (a file or ``--stdin``) the message is sent after the
    opening exchange and the reply printed; without input the reply to the
    prompt itself is printed.

    Example::

        yaoaic prompt select "Linux Terminal"
        echo "pwd" | yaoaic prompt select 0 --stdin
    """
    run_exchange(
        ctx, option, input_file, stdin, model, top_p, max_tokens, require_input=False
    )
