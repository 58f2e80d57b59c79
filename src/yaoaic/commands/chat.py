"""Chat commands -- send input to the chat API and review the last exchange.

Implements the top-level ``yaoaic ask`` and ``yaoaic last`` commands.
``ask`` reads the user's message from a file or stdin, optionally primes
the conversation with a catalog prompt (reusing its cached transcript),
sends the request, and prints the first reply to stdout. ``last`` prints
the most recent recorded exchange without contacting the API.
"""

from __future__ import annotations

from typing import Optional

import typer

from yaoaic.models import ChatModel, Message
from yaoaic.output import OutputFormat, format_response, get_output, info, print_data, warning

MODEL_OPTION = typer.Option(
    None, "--model", "-m", case_sensitive=False, help="Chat model to use."
)
TOP_P_OPTION = typer.Option(None, "--top-p", help="Nucleus sampling value (0-1).")
MAX_TOKENS_OPTION = typer.Option(
    None, "--max-tokens", help="Maximum number of tokens to generate."
)
STDIN_OPTION = typer.Option(False, "--stdin", "-s", help="Read the message from stdin.")
INPUT_FILE_ARGUMENT = typer.Argument(
    None, help="File containing the message (used when --stdin is not given)."
)


def run_exchange(
    ctx: typer.Context,
    option: Optional[str],
    input_file: Optional[str],
    stdin: bool,
    model: Optional[ChatModel],
    top_p: Optional[float],
    max_tokens: Optional[int],
    require_input: bool = True,
) -> None:
    """Prime with prompt *option* (if any), send the user's input, print the reply.

    When *require_input* is ``False`` and no input is given, only the
    priming exchange runs and its reply is printed.
    """
    from yaoaic.commands._common import (
        build_session,
        chat_settings,
        get_config,
        open_client,
        read_input,
    )

    config = get_config(ctx)
    has_input = stdin or bool(input_file)
    text = read_input(input_file, stdin) if (has_input or require_input) else None
    chat = chat_settings(config, model, top_p, max_tokens)

    with open_client(chat) as client:
        session = build_session(config, client, chat)
        history: list[Message] = []
        if option is not None:
            index, prompt = session.select(option)
            info(f"using {index}: {prompt.act}")
            history = session.prime(index, prompt)

        if text is None:
            replies = [m for m in history[1:] if m.content]
            if replies:
                print_data(replies[0].content)
            return

        response = session.ask(text, history)

    reply = response.first_message()
    if reply is None:
        warning("The API returned no choices.")
        return
    print_data(reply.content)


def ask_command(
    ctx: typer.Context,
    input_file: Optional[str] = INPUT_FILE_ARGUMENT,
    stdin: bool = STDIN_OPTION,
    prompt: Optional[str] = typer.Option(
        None, "--prompt", "-p", help="Catalog prompt (index or act) to prime the chat with."
    ),
    model: Optional[ChatModel] = MODEL_OPTION,
    top_p: Optional[float] = TOP_P_OPTION,
    max_tokens: Optional[int] = MAX_TOKENS_OPTION,
) -> None:
    """Send a message to the chat API and print the reply.

    Example::

        echo "ls -la" | yaoaic ask --stdin --prompt "Linux Terminal"
        yaoaic ask question.txt --model code-davinci-002
    """
    run_exchange(ctx, prompt, input_file, stdin, model, top_p, max_tokens)


def last_command(ctx: typer.Context) -> None:
    """Show the most recent exchange recorded in the cache."""
    from yaoaic.commands._common import build_session, get_config

    session = build_session(get_config(ctx))
    messages = session.last_exchange()
    if messages is None:
        info("No recent exchange in the cache.")
        return

    if get_output().format == OutputFormat.JSON:
        format_response([m.model_dump(mode="json") for m in messages])
        return
    for message in messages:
        print_data(f"[{message.role}]")
        print_data(message.content)
