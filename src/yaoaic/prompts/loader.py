"""Load prompt catalogs in the awesome-chatgpt-prompts CSV format.

A catalog is a CSV file with a header row naming at least the ``act`` and
``prompt`` columns::

    "act","prompt"
    "Linux Terminal","I want you to act as a linux terminal..."

Catalogs can come from a URL, a local file, or raw bytes (see
:class:`Source`). Several sources are loaded in order and their records
concatenated. Loading never aborts on bad data: each record becomes a
:class:`PromptResult` holding either a :class:`~yaoaic.models.Prompt` or
the error that prevented it, and a source that cannot be fetched at all
contributes a single error result.

:func:`valid_prompts` keeps only the successful records; it is the loader
the session hands to :meth:`yaoaic.cache.Cache.with_cached`.
"""

from __future__ import annotations

import asyncio
import csv
import enum
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import httpx

from yaoaic.exceptions import PromptError, PromptFormatError, PromptLoadError
from yaoaic.models import DEFAULT_PROMPTS_URL, Prompt

logger = logging.getLogger(__name__)

_REQUIRED_COLUMNS = ("act", "prompt")


class SourceKind(str, enum.Enum):
    """Where a catalog is read from."""

    HTTP = "http"
    FILE = "file"
    RAW = "raw"


@dataclass(frozen=True)
class Source:
    """A single prompt catalog location.

    Use the constructors rather than building instances directly::

        Source.http("https://example.com/prompts.csv")
        Source.file("~/prompts.csv")
        Source.raw(b'"act","prompt"\\n"1","1"\\n')
        Source.parse("https://example.com/prompts.csv")  # -> http
    """

    kind: SourceKind
    location: str | bytes

    @classmethod
    def http(cls, url: str) -> Source:
        return cls(SourceKind.HTTP, url)

    @classmethod
    def file(cls, path: str | Path) -> Source:
        return cls(SourceKind.FILE, str(path))

    @classmethod
    def raw(cls, data: bytes | str) -> Source:
        if isinstance(data, str):
            data = data.encode("utf-8")
        return cls(SourceKind.RAW, data)

    @classmethod
    def parse(cls, text: str) -> Source:
        """Build a source from a config string: URLs map to HTTP, anything else to a file."""
        if text.startswith(("http://", "https://")):
            return cls.http(text)
        return cls.file(text)

    def __str__(self) -> str:
        if isinstance(self.location, bytes):
            return self.location.decode("utf-8", errors="replace")
        return self.location


DEFAULT_SOURCES: tuple[Source, ...] = (Source.http(DEFAULT_PROMPTS_URL),)


@dataclass(frozen=True)
class PromptResult:
    """One parsed record: either a prompt or the error that replaced it."""

    prompt: Optional[Prompt] = None
    error: Optional[PromptError] = None

    @property
    def ok(self) -> bool:
        return self.prompt is not None


def parse_csv(data: bytes | str, origin: str = "<raw>") -> list[PromptResult]:
    """Parse a catalog CSV document into per-record results.

    Blank lines (including ones before the header) are ignored. A record
    whose field count differs from the header's is reported as a
    :class:`~yaoaic.exceptions.PromptFormatError` and skipped.

    Args:
        data: The CSV content.
        origin: Label used in error messages.

    Returns:
        One :class:`PromptResult` per record, in file order.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            return [PromptResult(error=PromptFormatError(f"{origin}: not valid UTF-8: {exc}"))]

    rows = csv.reader(io.StringIO(data))
    results: list[PromptResult] = []
    header: Optional[list[str]] = None
    try:
        for row in rows:
            if not row or all(not cell.strip() for cell in row):
                continue
            if header is None:
                header = [cell.strip().lower() for cell in row]
                missing = [c for c in _REQUIRED_COLUMNS if c not in header]
                if missing:
                    results.append(
                        PromptResult(
                            error=PromptFormatError(
                                f"{origin}: header is missing column(s): {', '.join(missing)}"
                            )
                        )
                    )
                    return results
                continue
            if len(row) != len(header):
                results.append(
                    PromptResult(
                        error=PromptFormatError(
                            f"{origin}, line {rows.line_num}: found record with "
                            f"{len(row)} fields, but the previous record has {len(header)} fields"
                        )
                    )
                )
                continue
            record = dict(zip(header, row))
            results.append(
                PromptResult(prompt=Prompt(act=record["act"], prompt=record["prompt"]))
            )
    except csv.Error as exc:
        results.append(
            PromptResult(error=PromptFormatError(f"{origin}, line {rows.line_num}: {exc}"))
        )
    return results


class PromptLoader:
    """Fetch and parse prompt catalogs from a list of sources.

    Args:
        timeout: HTTP timeout in seconds for remote sources.
        transport: Optional httpx transport (tests pass an
            :class:`httpx.MockTransport`).

    Example::

        loader = PromptLoader()
        results = loader.load([Source.http(url), Source.file("extra.csv")])
        prompts = [r.prompt for r in results if r.ok]
    """

    def __init__(
        self,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport | httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    def load(self, sources: Iterable[Source]) -> list[PromptResult]:
        """Load every source in order and concatenate their records."""
        results: list[PromptResult] = []
        with httpx.Client(
            timeout=self._timeout, follow_redirects=True, transport=self._transport
        ) as client:
            for source in sources:
                try:
                    data = self._read(client, source)
                except PromptLoadError as exc:
                    results.append(PromptResult(error=exc))
                    continue
                results.extend(parse_csv(data, origin=_origin(source)))
        return results

    async def load_async(self, sources: Iterable[Source]) -> list[PromptResult]:
        """Async counterpart of :meth:`load` backed by :class:`httpx.AsyncClient`."""
        results: list[PromptResult] = []
        async with httpx.AsyncClient(
            timeout=self._timeout, follow_redirects=True, transport=self._transport
        ) as client:
            for source in sources:
                try:
                    data = await self._read_async(client, source)
                except PromptLoadError as exc:
                    results.append(PromptResult(error=exc))
                    continue
                results.extend(parse_csv(data, origin=_origin(source)))
        return results

    def _read(self, client: httpx.Client, source: Source) -> bytes:
        if source.kind is SourceKind.RAW:
            return source.location  # type: ignore[return-value]
        if source.kind is SourceKind.FILE:
            return _read_file(str(source.location))
        try:
            response = client.get(str(source.location))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PromptLoadError(f"unable to fetch {source}: {exc}") from exc
        return response.content

    async def _read_async(self, client: httpx.AsyncClient, source: Source) -> bytes:
        if source.kind is SourceKind.RAW:
            return source.location  # type: ignore[return-value]
        if source.kind is SourceKind.FILE:
            return await asyncio.to_thread(_read_file, str(source.location))
        try:
            response = await client.get(str(source.location))
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise PromptLoadError(f"unable to fetch {source}: {exc}") from exc
        return response.content


def _read_file(path: str) -> bytes:
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as exc:
        raise PromptLoadError(f"unable to read {path}: {exc}") from exc


def _origin(source: Source) -> str:
    return "<raw>" if source.kind is SourceKind.RAW else str(source.location)


def valid_prompts(
    sources: Iterable[Source], loader: Optional[PromptLoader] = None
) -> list[Prompt]:
    """Load *sources* and return only the records that parsed.

    Skipped records are logged at DEBUG level.

    Raises:
        PromptLoadError: If no record parsed and a source could not be
            fetched, so that an outage is never cached as an empty catalog.
    """
    loader = loader or PromptLoader()
    prompts: list[Prompt] = []
    load_error: Optional[PromptLoadError] = None
    for result in loader.load(sources):
        if result.prompt is not None:
            prompts.append(result.prompt)
            continue
        if isinstance(result.error, PromptLoadError) and load_error is None:
            load_error = result.error
        logger.debug("skipping prompt record: %s", result.error)
    if not prompts and load_error is not None:
        raise load_error
    return prompts
