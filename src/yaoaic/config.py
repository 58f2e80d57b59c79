"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles all persistent configuration for yaoaic:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.yaoaic/`` on macOS and Windows. See :func:`get_config_dir`,
  :func:`get_cache_dir`, :func:`get_data_dir`.
* **Global config** -- A single :class:`~yaoaic.models.GlobalConfig`
  JSON file storing defaults (cache TTL, chat model, prompt sources).
* **Precedence resolution** -- :func:`resolve_config` merges CLI flags,
  environment variables, and the global config into the effective
  configuration.
* **API key** -- :func:`resolve_api_key` reads ``OPENAI_API_KEY``.

Config writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from yaoaic.exceptions import ConfigError
from yaoaic.models import ChatModel, GlobalConfig

_APP_NAME = "yaoaic"
_CONFIG_FILENAME = "config.json"

API_KEY_ENV = "OPENAI_API_KEY"
CACHE_DIR_ENV = "YAOAIC_CACHE_DIR"
MODEL_ENV = "YAOAIC_MODEL"
BASE_URL_ENV = "YAOAIC_BASE_URL"
SOURCES_ENV = "YAOAIC_SOURCES"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/yaoaic/`` (default ``~/.config/yaoaic/``).
    On macOS/Windows: ``~/.yaoaic/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_cache_dir() -> Path:
    """Return the default cache directory.

    The prompt catalog and conversation transcripts live here. Cached data
    can be safely deleted at any time. Unlike the other directory helpers
    this one does **not** create the directory: :meth:`yaoaic.cache.Cache.init`
    owns creation and validation of the cache root.

    On Linux/BSD: ``$XDG_CACHE_HOME/yaoaic/`` (default ``~/.cache/yaoaic/``).
    On macOS/Windows: ``~/.yaoaic/cache/``.
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CACHE_HOME", (".cache",))
        return base / _APP_NAME
    return _fallback_base_dir() / "cache"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/yaoaic/`` (default ``~/.local/share/yaoaic/``).
    On macOS/Windows: ``~/.yaoaic/logs/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    On success the temp file is renamed over *path*; on any failure the temp
    file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~yaoaic.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk.

    Args:
        config: The configuration to save.
    """
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    cli_cache: Optional[bool] = None,
    cli_ttl_seconds: Optional[int] = None,
    cli_cache_dir: Optional[str] = None,
) -> GlobalConfig:
    """Resolve config with full precedence chain.

    Precedence (high to low):
        1. CLI flags (``--cache/--no-cache``, ``--cache-timeout-seconds``,
           ``--cache-dir``)
        2. Environment variables (``YAOAIC_CACHE_DIR``, ``YAOAIC_MODEL``,
           ``YAOAIC_BASE_URL``, ``YAOAIC_SOURCES``)
        3. User config (``~/.config/yaoaic/config.json``)
        4. Defaults

    Per-request chat options (``--model``, ``--top-p``, ``--max-tokens``)
    are applied by the commands themselves on top of ``config.chat``.

    Returns:
        The effective :class:`~yaoaic.models.GlobalConfig`.

    Raises:
        ConfigError: If the config file is invalid or ``YAOAIC_MODEL``
            names an unknown model.
    """
    # 4 + 3. Defaults and user config
    config = load_global_config()

    # 2. Environment variables
    env_cache_dir = os.environ.get(CACHE_DIR_ENV)
    if env_cache_dir:
        config.cache.directory = env_cache_dir
    env_model = os.environ.get(MODEL_ENV)
    if env_model:
        try:
            config.chat.model = ChatModel(env_model)
        except ValueError as exc:
            raise ConfigError(f"Unknown model in {MODEL_ENV}: {env_model}") from exc
    env_base_url = os.environ.get(BASE_URL_ENV)
    if env_base_url:
        config.chat.base_url = env_base_url
    env_sources = os.environ.get(SOURCES_ENV)
    if env_sources:
        config.sources = [s.strip() for s in env_sources.split(",") if s.strip()]

    # 1. CLI flags
    if cli_cache is not None:
        config.cache.enabled = cli_cache
    if cli_ttl_seconds is not None:
        config.cache.ttl_seconds = cli_ttl_seconds
    if cli_cache_dir is not None:
        config.cache.directory = cli_cache_dir

    return config


def resolve_cache_dir(config: GlobalConfig) -> Path:
    """Return the cache directory configured in *config*, or the XDG default."""
    if config.cache.directory:
        return Path(config.cache.directory).expanduser()
    return get_cache_dir()


def resolve_api_key() -> str:
    """Read the chat API key from ``OPENAI_API_KEY``.

    Raises:
        ConfigError: If the variable is unset or empty.
    """
    value = os.environ.get(API_KEY_ENV)
    if not value:
        raise ConfigError(f"Environment variable '{API_KEY_ENV}' is not set")
    return value
