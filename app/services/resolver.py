"""Memoized resolution of opaque file references into fetchable URLs."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from ..utils import is_absolute_url
from .telegram import FileLookup

logger = logging.getLogger(__name__)


class TokenSource(Protocol):
    """Anything able to fetch the secret bot token."""

    async def fetch_token(self) -> str | None:  # pragma: no cover - protocol
        ...


class ReferenceLookup(Protocol):
    """Remote lookup turning an opaque identifier into a file path."""

    async def lookup(self, token: str, file_id: str) -> FileLookup:  # pragma: no cover
        ...

    def build_file_url(self, token: str, file_path: str) -> str:  # pragma: no cover
        ...


class StaticTokenSource:
    """Token source backed by a configured value."""

    def __init__(self, token: str | None):
        self._token = token

    async def fetch_token(self) -> str | None:
        return self._token


class RefKind(str, Enum):
    URL = "url"
    PATH = "path"
    IDENTIFIER = "identifier"


def classify_ref(ref: str) -> RefKind:
    """Classify a non-empty reference."""

    if is_absolute_url(ref):
        return RefKind.URL
    if "/" in ref:
        return RefKind.PATH
    return RefKind.IDENTIFIER


@dataclass(frozen=True, slots=True)
class Resolution:
    """Result of resolving one reference; ``url`` is ``None`` on failure."""

    ref: str
    url: str | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.url is not None

    def to_payload(self) -> dict[str, str | None]:
        return {"ref": self.ref, "url": self.url, "error": self.error}


class ReferenceResolver:
    """Resolve references once per session, sharing in-flight work.

    Results, failures included, are cached write-once per reference. The
    secret token is fetched at most once and shared by every resolution.
    """

    def __init__(self, token_source: TokenSource, lookup: ReferenceLookup):
        self._token_source = token_source
        self._lookup = lookup
        self._cache: dict[str, Resolution] = {}
        self._inflight: dict[str, asyncio.Task[Resolution]] = {}
        self._token_task: asyncio.Task[str | None] | None = None

    def cached(self, ref: str) -> Resolution | None:
        return self._cache.get(ref)

    async def resolve(self, ref: str | None) -> str | None:
        """Return the URL for ``ref`` or ``None`` when it cannot be resolved."""

        resolution = await self.resolve_detailed(ref)
        return resolution.url

    async def resolve_detailed(self, ref: str | None) -> Resolution:
        ref = (ref or "").strip()
        if not ref:
            return Resolution(ref="", url=None, error="empty reference")

        cached = self._cache.get(ref)
        if cached is not None:
            return cached

        task = self._inflight.get(ref)
        if task is None:
            task = asyncio.create_task(self._resolve_uncached(ref))
            self._inflight[ref] = task
            task.add_done_callback(lambda done: self._forget_inflight(ref, done))
        # A cancelled caller must not cancel the work other callers share.
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            return Resolution(ref=ref, url=None, error="resolution cancelled")

    async def token(self) -> str | None:
        """Return the secret token, fetching it on first use only."""

        if self._token_task is None:
            self._token_task = asyncio.create_task(self._fetch_token())
        return await asyncio.shield(self._token_task)

    def reset(self) -> None:
        """Forget cached results and the token, e.g. when the session ends."""

        for task in self._inflight.values():
            task.cancel()
        self._inflight.clear()
        self._cache.clear()
        if self._token_task is not None and not self._token_task.done():
            self._token_task.cancel()
        self._token_task = None

    def _forget_inflight(self, ref: str, task: asyncio.Task[Resolution]) -> None:
        if self._inflight.get(ref) is task:
            del self._inflight[ref]

    async def _fetch_token(self) -> str | None:
        try:
            token = await self._token_source.fetch_token()
        except Exception:  # pragma: no cover - defensive logging branch
            logger.exception("Fetching the secret token failed")
            return None
        if not token or not str(token).strip():
            logger.warning("Secret token is unavailable; references cannot be resolved")
            return None
        return str(token).strip()

    async def _resolve_uncached(self, ref: str) -> Resolution:
        resolution = await self._compute(ref)
        if not resolution.ok:
            logger.warning("Could not resolve reference %s: %s", ref, resolution.error)
        self._cache.setdefault(ref, resolution)
        return self._cache[ref]

    async def _compute(self, ref: str) -> Resolution:
        kind = classify_ref(ref)
        if kind is RefKind.URL:
            return Resolution(ref=ref, url=ref)

        token = await self.token()
        if not token:
            return Resolution(ref=ref, url=None, error="secret token unavailable")

        if kind is RefKind.PATH:
            return Resolution(ref=ref, url=self._lookup.build_file_url(token, ref))

        try:
            found = await self._lookup.lookup(token, ref)
        except Exception as exc:  # pragma: no cover - defensive logging branch
            logger.exception("Reference lookup raised for %s", ref)
            return Resolution(ref=ref, url=None, error=f"lookup failed: {exc}")
        if not found.ok or found.file_path is None:
            return Resolution(ref=ref, url=None, error=found.error or "lookup failed")
        return Resolution(ref=ref, url=self._lookup.build_file_url(token, found.file_path))
