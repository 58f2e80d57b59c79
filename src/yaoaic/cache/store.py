"""Durable store: typed values to and from human-readable YAML files.

This is the only module that touches cache files on disk. Values pass
through a Pydantic :class:`~pydantic.TypeAdapter` in JSON mode, so models,
lists, dicts and scalars all round-trip with structural equality, and the
resulting document is plain YAML that can be inspected or diffed by hand.

Writes replace the target atomically: the document is written to a
temporary file in the same directory, fsynced, then renamed over the
target with ``os.replace``. A crash mid-write leaves the previous content
(plus at worst a stray ``.<name>.*.tmp`` file), never a half-written entry.

Errors are reported, never defaulted:

* :class:`~yaoaic.exceptions.CacheNotFoundError` -- the file does not exist.
* :class:`~yaoaic.exceptions.CacheFormatError` -- the file is not valid
  YAML, is empty, or does not validate against the requested type; or a
  value cannot be serialised.
* :class:`~yaoaic.exceptions.CacheIOError` -- any other OS-level failure.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError

from yaoaic.exceptions import CacheFormatError, CacheIOError, CacheNotFoundError

TMP_SUFFIX = ".tmp"


def dumps(value: Any, value_type: Any = Any) -> str:
    """Serialise *value* to a YAML document.

    Raises:
        CacheFormatError: If the value cannot be converted to JSON-compatible data.
    """
    try:
        data = TypeAdapter(value_type).dump_python(value, mode="json")
    except (PydanticSerializationError, ValueError, TypeError) as exc:
        raise CacheFormatError(f"unable to serialise value: {exc}") from exc
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, default_flow_style=False)


def loads(text: str, value_type: Any = Any, source: str = "<string>") -> Any:
    """Parse a YAML document and validate it against *value_type*.

    Raises:
        CacheFormatError: If the text is not YAML or does not match the type.
    """
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise CacheFormatError(f"{source} has unknown format: {exc}") from exc
    try:
        return TypeAdapter(value_type).validate_python(data)
    except ValidationError as exc:
        raise CacheFormatError(f"{source} has unknown format: {exc}") from exc


def write(path: str | Path, value: Any, value_type: Any = Any) -> None:
    """Serialise *value* and replace the contents of *path* with it.

    The file is created if absent. The parent directory must already exist.

    Args:
        path: Target file.
        value: The value to persist.
        value_type: Type used to drive serialisation (``Any`` infers it
            from the runtime value).

    Raises:
        CacheFormatError: If the value cannot be serialised.
        CacheIOError: If the file cannot be written.
    """
    path = Path(path)
    text = dumps(value, value_type)
    try:
        _replace(path, text)
    except OSError as exc:
        raise CacheIOError(f"unable to write {path}: {exc}") from exc


def read(path: str | Path, value_type: Any = Any) -> Any:
    """Read *path* and deserialise its YAML content into *value_type*.

    Args:
        path: Source file.
        value_type: The expected type of the document.

    Returns:
        The validated value.

    Raises:
        CacheNotFoundError: If *path* does not exist.
        CacheFormatError: If the content cannot be parsed or validated.
        CacheIOError: On any other read failure.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CacheNotFoundError(f"{path} does not exist") from exc
    except UnicodeDecodeError as exc:
        raise CacheFormatError(f"{path} is not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise CacheIOError(f"unable to read {path}: {exc}") from exc
    return loads(text, value_type, source=str(path))


def is_temp_file(path: Path) -> bool:
    """Return True for leftovers of an interrupted :func:`write`."""
    return path.name.startswith(".") and path.name.endswith(TMP_SUFFIX)


def _replace(path: Path, text: str) -> None:
    """Atomically replace *path* with *text* (temp file + rename)."""
    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=TMP_SUFFIX,
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(text)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise
