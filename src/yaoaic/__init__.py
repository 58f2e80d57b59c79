"""yaoaic -- a command-line chat client for the OpenAI chat API.

Prompts are taken from CSV catalogs (by default the awesome-chatgpt-prompts
list) and sent to the chat-completion endpoint. Catalogs, primed prompt
transcripts, and the last exchange are kept in a small on-disk TTL cache so
repeated invocations avoid redundant network calls.

Typical workflow::

    yaoaic prompt list terminal            # find a prompt
    echo "pwd" | yaoaic ask --stdin -p 0   # chat with it
    yaoaic last                            # review the exchange

Modules:
    app: Typer application and CLI entry point.
    cache: Generic disk-backed TTL cache.
    client: Chat-completion HTTP client.
    prompts: Prompt catalog loading and CSV parsing.
    session: Cached prompt catalog and chat workflow.
    models: Pydantic models shared across the package.
    config: XDG-aware configuration management.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.1.0"
