"""File-backed cache with time-to-live semantics and a memoized-loader primitive.

:class:`Cache` owns a root directory and a maximum age. Every entry is one
file ``<directory>/<name>`` holding a single YAML-serialised
:class:`~yaoaic.cache.envelope.Envelope`. Staleness is evaluated lazily at
read time: an entry older than ``max_age`` is treated as absent, but it is
never deleted automatically. It stays on disk until a later store under the
same name overwrites it (or the user clears the cache).

The central operation is :meth:`Cache.with_cached`: return the fresh cached
value for a name, or run a loader, persist its result, and return it. A
corrupt or unreadable entry is handled exactly like a missing one, so a bad
file heals itself on the next successful load. A loader failure propagates
unchanged and leaves the entry untouched.

Concurrency: there is no single-flight guarantee. Two callers racing on
``with_cached`` for the same name may both miss and both run the loader; the
last store wins. Callers that need at most one loader per name must hold
their own lock (an in-memory mutex or a file lock keyed by name).

See Also:
    :mod:`yaoaic.cache.store` -- the durable store used for all file I/O.
    :mod:`yaoaic.session` -- the orchestrator deciding when to use the cache.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from yaoaic.cache import store
from yaoaic.cache.envelope import Envelope
from yaoaic.exceptions import (
    CacheError,
    CacheFormatError,
    CacheNotFoundError,
    CacheSetupError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")
I = TypeVar("I")  # noqa: E741


def _now() -> float:
    """Current wall-clock time in seconds since the epoch."""
    return time.time()


class LookupStatus(str, enum.Enum):
    """Outcome of a :meth:`Cache.lookup`."""

    FRESH = "fresh"
    MISSING = "missing"
    FAILED = "failed"


@dataclass(frozen=True)
class CacheLookup(Generic[T]):
    """Three-way result of reading a cache entry.

    ``FRESH`` carries the value, ``MISSING`` covers both absent and stale
    entries, ``FAILED`` carries the :class:`~yaoaic.exceptions.CacheError`
    raised while reading.
    """

    status: LookupStatus
    value: Optional[T] = None
    error: Optional[CacheError] = None

    @classmethod
    def fresh(cls, value: T) -> CacheLookup[T]:
        return cls(LookupStatus.FRESH, value=value)

    @classmethod
    def missing(cls) -> CacheLookup[T]:
        return cls(LookupStatus.MISSING)

    @classmethod
    def failed(cls, error: CacheError) -> CacheLookup[T]:
        return cls(LookupStatus.FAILED, error=error)

    @property
    def is_fresh(self) -> bool:
        return self.status is LookupStatus.FRESH


@dataclass(frozen=True)
class CacheEntryInfo:
    """Summary of one entry file, as reported by :meth:`Cache.entries`.

    ``created`` and ``age`` are ``None`` when the file cannot be read.
    """

    name: str
    path: Path
    created: Optional[float]
    age: Optional[timedelta]
    fresh: bool


def _check_or_create_dir(directory: Path) -> None:
    """Ensure *directory* exists and is a directory, creating it if absent."""
    if directory.exists():
        if not directory.is_dir():
            raise CacheSetupError(f"{directory} exists but it is not a directory.")
        return
    try:
        directory.mkdir(parents=True)
    except FileExistsError:
        # Created concurrently, or a dangling symlink sits at the path.
        if not directory.is_dir():
            raise CacheSetupError(f"{directory} exists but it is not a directory.") from None
    except OSError as exc:
        raise CacheSetupError(f"unable to create directory {directory}: {exc}") from exc


class Cache:
    """Named, timestamped cache entries under a single directory.

    The directory is validated on construction and created (with parents)
    when absent. Constructing a cache over a path that exists as a regular
    file raises :class:`~yaoaic.exceptions.CacheSetupError` and creates
    nothing.

    Args:
        directory: Cache root.
        max_age: How long an entry stays fresh. A :class:`~datetime.timedelta`
            or a number of seconds.

    Raises:
        CacheSetupError: If the directory is unusable.

    Example::

        cache = Cache("~/.cache/yaoaic", timedelta(days=1))
        prompts = cache.with_cached("prompts", sources, valid_prompts, list[Prompt])
    """

    def __init__(self, directory: str | Path, max_age: timedelta | float) -> None:
        if not isinstance(max_age, timedelta):
            max_age = timedelta(seconds=max_age)
        self._directory = Path(directory).expanduser()
        self._max_age = max_age
        _check_or_create_dir(self._directory)

    @classmethod
    def init(cls, directory: str | Path, max_age: timedelta | float) -> Cache:
        """Alternate constructor, same as calling the class."""
        return cls(directory, max_age)

    @property
    def directory(self) -> Path:
        """The cache root."""
        return self._directory

    @property
    def max_age(self) -> timedelta:
        """How long an entry stays fresh."""
        return self._max_age

    def path_for(self, name: str) -> Path:
        """Return the file backing entry *name*.

        Raises:
            CacheError: If *name* is empty, ``.``/``..``, or contains a path
                separator.
        """
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise CacheError(f"invalid cache entry name: {name!r}")
        return self._directory / name

    # ------------------------------------------------------------------ #
    # Reading
    # ------------------------------------------------------------------ #

    def is_fresh(self, created: float) -> bool:
        """Whether an entry created at *created* is still fresh.

        Fresh means the age is strictly below :attr:`max_age`, so a zero
        ``max_age`` never serves a hit. An entry whose creation time lies in
        the future (the clock went backwards) counts as fresh.
        """
        age = _now() - created
        return age < 0 or age < self._max_age.total_seconds()

    def lookup(self, name: str, value_type: Any = Any) -> CacheLookup[Any]:
        """Read entry *name* and classify the result.

        Never raises for read problems: not-found and stale entries give
        ``MISSING``, unreadable or mismatched entries give ``FAILED``.
        """
        path = self.path_for(name)
        try:
            envelope = store.read(path, Envelope[value_type])
        except CacheNotFoundError:
            return CacheLookup.missing()
        except CacheError as exc:
            return CacheLookup.failed(exc)
        if not self.is_fresh(envelope.created):
            return CacheLookup.missing()
        return CacheLookup.fresh(envelope.value)

    def load_cached(self, name: str, value_type: Any = Any) -> Optional[Any]:
        """Return the fresh value of entry *name*, or ``None``.

        ``None`` means the entry is absent or older than :attr:`max_age`.
        Stale entries are left on disk.

        Args:
            name: Entry name.
            value_type: Type to validate the stored value against.

        Raises:
            CacheFormatError: If the entry exists but cannot be parsed.
            CacheIOError: If the entry cannot be read.
        """
        result = self.lookup(name, value_type)
        if result.error is not None:
            raise result.error
        return result.value

    # ------------------------------------------------------------------ #
    # Writing
    # ------------------------------------------------------------------ #

    def store_cache(self, name: str, value: Any, value_type: Any = Any) -> None:
        """Wrap *value* in a freshly timestamped envelope and persist it.

        Any previous entry under *name* is overwritten.

        Raises:
            CacheFormatError: If the value cannot be serialised.
            CacheIOError: If the entry cannot be written.
        """
        envelope = Envelope[value_type](created=_now(), value=value)
        store.write(self.path_for(name), envelope, Envelope[value_type])

    # ------------------------------------------------------------------ #
    # Memoized loaders
    # ------------------------------------------------------------------ #

    def with_cached(
        self,
        name: str,
        input: I,
        loader: Callable[[I], T],
        value_type: Any = Any,
    ) -> T:
        """Return the fresh cached value for *name*, or compute and store it.

        On a fresh hit *loader* is not called. On a miss, a stale entry, or
        any read failure, ``loader(input)`` runs; its result is stored and
        returned. If the loader raises, the exception propagates unchanged
        and nothing is written. If storing the computed value fails, the
        :class:`~yaoaic.exceptions.CacheIOError` propagates.

        Args:
            name: Entry name.
            input: Argument handed to *loader*.
            loader: Computes the value on a miss.
            value_type: Type to validate and serialise the value with.
        """
        result = self.lookup(name, value_type)
        if result.is_fresh:
            logger.debug("cache hit for %s", name)
            return result.value
        self._log_miss(name, result)
        value = loader(input)
        self.store_cache(name, value, value_type)
        return value

    async def with_cached_async(
        self,
        name: str,
        input: I,
        loader: Callable[[I], Awaitable[T]],
        value_type: Any = Any,
    ) -> T:
        """Async counterpart of :meth:`with_cached` for coroutine loaders.

        File I/O runs in a worker thread so the event loop is not blocked.
        """
        result = await asyncio.to_thread(self.lookup, name, value_type)
        if result.is_fresh:
            logger.debug("cache hit for %s", name)
            return result.value
        self._log_miss(name, result)
        value = await loader(input)
        await asyncio.to_thread(self.store_cache, name, value, value_type)
        return value

    def _log_miss(self, name: str, result: CacheLookup[Any]) -> None:
        if isinstance(result.error, CacheFormatError):
            logger.warning("discarding corrupt cache entry %s: %s", name, result.error)
        elif result.error is not None:
            logger.warning("unable to read cache entry %s: %s", name, result.error)
        else:
            logger.debug("cache miss for %s", name)

    # ------------------------------------------------------------------ #
    # Housekeeping
    # ------------------------------------------------------------------ #

    def entries(self) -> list[CacheEntryInfo]:
        """List every entry file in the cache directory, sorted by name.

        Temp files left behind by interrupted writes are skipped.
        Unreadable entries are reported with ``created=None``.
        """
        infos: list[CacheEntryInfo] = []
        for path in sorted(self._directory.iterdir()):
            if not path.is_file() or store.is_temp_file(path):
                continue
            try:
                envelope = store.read(path, Envelope[Any])
            except CacheError:
                infos.append(CacheEntryInfo(path.name, path, None, None, False))
                continue
            age = timedelta(seconds=max(_now() - envelope.created, 0))
            infos.append(
                CacheEntryInfo(
                    name=path.name,
                    path=path,
                    created=envelope.created,
                    age=age,
                    fresh=self.is_fresh(envelope.created),
                )
            )
        return infos

    def invalidate(self, name: str) -> None:
        """Delete entry *name*. No-op if it does not exist."""
        self.path_for(name).unlink(missing_ok=True)

    def clear(self) -> int:
        """Delete every entry file and stray temp file. Returns the number removed.

        Files that do not parse as a cache entry are left alone, so pointing
        the cache at a directory shared with other files never deletes them.
        """
        removed = 0
        for path in self._directory.iterdir():
            if not path.is_file():
                continue
            if not store.is_temp_file(path):
                try:
                    store.read(path, Envelope[Any])
                except CacheError:
                    logger.debug("leaving %s in place: not a cache entry", path)
                    continue
            path.unlink()
            removed += 1
        return removed


def init(directory: str | Path, max_age: timedelta | float) -> Cache:
    """Create a :class:`Cache`, validating or creating *directory* first.

    Raises:
        CacheSetupError: If the directory exists as a non-directory or cannot be created.
    """
    return Cache.init(directory, max_age)
