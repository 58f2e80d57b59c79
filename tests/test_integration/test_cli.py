"""Integration tests for the yaoaic command line.

Runs the real Typer application against a local prompt catalog (via
``YAOAIC_SOURCES``) and a mocked chat API (by patching
``yaoaic.commands._common.open_client``), with all config and cache
directories isolated under tmp_path.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import httpx
import pytest
from typer.testing import CliRunner

from yaoaic import __version__
from yaoaic.app import app, main
from yaoaic.client import ChatClient
from yaoaic.exceptions import InvalidUsageError, PromptLoadError, PromptNotFoundError


class FakeApi:
    """Chat API double: records request bodies and answers in turn."""

    def __init__(self, chat_body, *replies: str) -> None:
        self._chat_body = chat_body
        self._replies = list(replies)
        self.bodies: list[dict[str, Any]] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.bodies.append(json.loads(request.content))
        reply = self._replies.pop(0) if self._replies else "..."
        return httpx.Response(200, json=self._chat_body(reply))


@pytest.fixture
def env(isolated_config: Path, catalog_file: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated config with the sample catalog as the only prompt source."""
    monkeypatch.setenv("YAOAIC_SOURCES", str(catalog_file))
    return isolated_config


@pytest.fixture
def api(chat_body, monkeypatch: pytest.MonkeyPatch):
    """Route every chat client the commands open to a FakeApi."""

    def _install(*replies: str) -> FakeApi:
        fake = FakeApi(chat_body, *replies)
        monkeypatch.setattr(
            "yaoaic.commands._common.open_client",
            lambda chat: ChatClient(
                "sk-test", base_url=chat.base_url, transport=httpx.MockTransport(fake)
            ),
        )
        return fake

    return _install


def _cache_dir(env: Path) -> Path:
    return env / "cache" / "yaoaic"


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"yaoaic {__version__}" in result.output

    def test_help_lists_commands(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for name in ("prompt", "ask", "last", "cache", "config"):
            assert name in result.output


# ---------------------------------------------------------------------------
# prompt
# ---------------------------------------------------------------------------


class TestPromptCommands:
    def test_list(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["prompt", "list"])
        assert result.exit_code == 0, result.output
        assert "0\tLinux Terminal" in result.output
        assert "2\tPoet" in result.output
        assert (_cache_dir(env) / "prompts").is_file()

    def test_list_filter_json(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["--json", "-q", "prompt", "list", "translator"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [{"index": "1", "act": "English Translator"}]

    def test_list_uses_cached_catalog(
        self, cli_runner: CliRunner, env: Path, catalog_file: Path
    ) -> None:
        cli_runner.invoke(app, ["prompt", "list"])
        catalog_file.write_text('"act","prompt"\n"Other","x"\n')
        result = cli_runner.invoke(app, ["prompt", "list"])
        assert "Poet" in result.output
        assert "Other" not in result.output

    def test_list_with_expired_cache_reloads(
        self, cli_runner: CliRunner, env: Path, catalog_file: Path
    ) -> None:
        cli_runner.invoke(app, ["prompt", "list"])
        catalog_file.write_text('"act","prompt"\n"Other","x"\n')
        result = cli_runner.invoke(app, ["--cache-timeout-seconds", "0", "prompt", "list"])
        assert "Other" in result.output

    def test_list_no_cache_writes_nothing(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["--no-cache", "prompt", "list"])
        assert result.exit_code == 0, result.output
        assert not _cache_dir(env).exists()

    def test_show(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["prompt", "show", "Poet"])
        assert result.exit_code == 0, result.output
        assert "I want you to act as a poet." in result.stdout

    def test_show_unknown(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["prompt", "show", "42"])
        assert result.exit_code != 0
        assert isinstance(result.exception, PromptNotFoundError)

    def test_select_primes_once(self, cli_runner: CliRunner, env: Path, api) -> None:
        """The opening exchange is cached per prompt index."""
        fake = api("$ ")
        first = cli_runner.invoke(app, ["prompt", "select", "0"])
        assert first.exit_code == 0, first.output
        assert "$ " in first.stdout
        assert "using 0: Linux Terminal" in first.output

        second = cli_runner.invoke(app, ["prompt", "select", "Linux Terminal"])
        assert second.exit_code == 0, second.output
        assert "$ " in second.stdout
        assert len(fake.bodies) == 1
        assert (_cache_dir(env) / "0_messages").is_file()

    def test_select_with_input(
        self, cli_runner: CliRunner, env: Path, api, tmp_path: Path
    ) -> None:
        fake = api("$ ", "/home/user")
        message = tmp_path / "msg.txt"
        message.write_text("pwd\n")
        result = cli_runner.invoke(
            app, ["prompt", "select", "0", str(message), "--model", "code-davinci-002"]
        )
        assert result.exit_code == 0, result.output
        assert "/home/user" in result.stdout
        assert [b["model"] for b in fake.bodies] == ["code-davinci-002"] * 2
        assert fake.bodies[1]["messages"][-1] == {"role": "user", "content": "pwd"}


# ---------------------------------------------------------------------------
# ask / last
# ---------------------------------------------------------------------------


class TestAskAndLast:
    def test_ask_stdin(self, cli_runner: CliRunner, env: Path, api) -> None:
        fake = api("Hello!")
        result = cli_runner.invoke(app, ["ask", "--stdin", "--top-p", "0.9"], input="hi\n")
        assert result.exit_code == 0, result.output
        assert "Hello!" in result.stdout
        assert fake.bodies[0]["messages"] == [{"role": "user", "content": "hi"}]
        assert fake.bodies[0]["top_p"] == 0.9

    def test_ask_with_prompt(self, cli_runner: CliRunner, env: Path, api) -> None:
        fake = api("ready", "rhyme")
        result = cli_runner.invoke(
            app, ["ask", "--stdin", "-p", "Poet", "--max-tokens", "64"], input="roses\n"
        )
        assert result.exit_code == 0, result.output
        assert "rhyme" in result.stdout
        assert len(fake.bodies[1]["messages"]) == 3
        assert fake.bodies[1]["max_tokens"] == 64

    def test_ask_without_input(self, cli_runner: CliRunner, env: Path, api) -> None:
        api()
        result = cli_runner.invoke(app, ["ask"])
        assert result.exit_code != 0
        assert isinstance(result.exception, InvalidUsageError)

    def test_last(self, cli_runner: CliRunner, env: Path, api) -> None:
        api("Hello!")
        cli_runner.invoke(app, ["ask", "--stdin"], input="hi\n")
        result = cli_runner.invoke(app, ["last"])
        assert result.exit_code == 0, result.output
        assert "[user]" in result.stdout
        assert "[assistant]" in result.stdout
        assert "Hello!" in result.stdout

    def test_last_json(self, cli_runner: CliRunner, env: Path, api) -> None:
        api("Hello!")
        cli_runner.invoke(app, ["ask", "--stdin"], input="hi\n")
        result = cli_runner.invoke(app, ["--json", "-q", "last"])
        assert json.loads(result.stdout) == [
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello!"},
        ]

    def test_last_empty(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["last"])
        assert result.exit_code == 0
        assert "No recent exchange" in result.output

    def test_unusable_cache_dir_falls_back(
        self, cli_runner: CliRunner, env: Path, api
    ) -> None:
        blocker = env / "not-a-dir"
        blocker.write_text("x")
        api("still works")
        result = cli_runner.invoke(
            app, ["--cache-dir", str(blocker), "ask", "--stdin"], input="hi\n"
        )
        assert result.exit_code == 0, result.output
        assert "still works" in result.stdout
        assert "Continuing without cache" in result.output


# ---------------------------------------------------------------------------
# cache / config
# ---------------------------------------------------------------------------


class TestCacheCommands:
    def test_path(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["cache", "path"])
        assert result.exit_code == 0
        assert str(_cache_dir(env)) in result.stdout

    def test_info_and_clear(self, cli_runner: CliRunner, env: Path) -> None:
        cli_runner.invoke(app, ["prompt", "list"])

        info = cli_runner.invoke(app, ["cache", "info"])
        assert info.exit_code == 0, info.output
        assert "prompts" in info.stdout
        assert "fresh" in info.stdout

        cleared = cli_runner.invoke(app, ["cache", "clear", "--yes"])
        assert cleared.exit_code == 0, cleared.output
        assert "Removed 1 cache file(s)." in cleared.output
        assert list(_cache_dir(env).iterdir()) == []

    def test_clear_cancelled(self, cli_runner: CliRunner, env: Path) -> None:
        cli_runner.invoke(app, ["prompt", "list"])
        result = cli_runner.invoke(app, ["cache", "clear"], input="n\n")
        assert "Cancelled." in result.output
        assert (_cache_dir(env) / "prompts").exists()


class TestConfigCommands:
    def test_set_and_show(self, cli_runner: CliRunner, env: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "cache.ttl_seconds", "60"])
        assert result.exit_code == 0, result.output

        shown = cli_runner.invoke(app, ["--json", "-q", "config", "show"])
        assert json.loads(shown.stdout)["cache"]["ttl_seconds"] == 60

    def test_set_model_and_sources(self, cli_runner: CliRunner, env: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "chat.model", "code-davinci-002"])
        cli_runner.invoke(app, ["config", "set", "sources", "a.csv, b.csv"])
        shown = cli_runner.invoke(app, ["--json", "-q", "config", "show"])
        data = json.loads(shown.stdout)
        assert data["chat"]["model"] == "code-davinci-002"
        assert data["sources"] == ["a.csv", "b.csv"]

    @pytest.mark.parametrize(
        "args",
        [
            ["nope", "1"],
            ["cache.nope", "1"],
            ["cache", "1"],
            ["cache.ttl_seconds", "soon"],
            ["chat.model", "gpt-0"],
        ],
    )
    def test_set_invalid(self, cli_runner: CliRunner, env: Path, args: list[str]) -> None:
        result = cli_runner.invoke(app, ["config", "set", *args])
        assert result.exit_code == 2

    def test_reset(self, cli_runner: CliRunner, env: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "cache.enabled", "false"])
        result = cli_runner.invoke(app, ["config", "reset", "--yes"])
        assert result.exit_code == 0
        shown = cli_runner.invoke(app, ["--json", "-q", "config", "show"])
        assert json.loads(shown.stdout)["cache"]["enabled"] is True


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


class TestMain:
    def test_error_exit_code(
        self, env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        monkeypatch.setattr("yaoaic.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr(sys, "argv", ["yaoaic", "prompt", "show", "Nobody"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == PromptNotFoundError.exit_code
        err = capsys.readouterr().err
        assert "No prompt matches 'Nobody'" in err
        assert "yaoaic prompt list" in err

    def test_unreachable_catalog_is_reported_and_not_cached(
        self,
        isolated_config: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture,
    ) -> None:
        monkeypatch.setenv("YAOAIC_SOURCES", str(isolated_config / "missing.csv"))
        monkeypatch.setattr("yaoaic.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr(sys, "argv", ["yaoaic", "prompt", "list"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == PromptLoadError.exit_code
        assert "YAOAIC_SOURCES" in capsys.readouterr().err
        cache_dir = isolated_config / "cache" / "yaoaic"
        assert not (cache_dir / "prompts").exists()

    def test_crash_log(
        self, env: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture
    ) -> None:
        def boom(*args: Any, **kwargs: Any) -> None:
            raise RuntimeError("unexpected")

        monkeypatch.setattr("yaoaic.app._setup_signal_handlers", lambda: None)
        monkeypatch.setattr("yaoaic.commands._common.build_session", boom)
        monkeypatch.setattr(sys, "argv", ["yaoaic", "prompt", "list"])
        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "Debug log" in capsys.readouterr().err
        logs = list((env / "data" / "yaoaic" / "logs").iterdir())
        assert len(logs) == 1
        assert "RuntimeError: unexpected" in logs[0].read_text()
