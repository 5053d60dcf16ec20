"""Firebase Realtime Database REST adapter for catalog snapshots."""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import suppress
from typing import Any, Awaitable, Callable

import httpx

from ..models import CatalogRecord

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[CatalogRecord]], Awaitable[None] | None]
AuthProvider = Callable[[], str | None]

_MISSING = object()


class StoreError(RuntimeError):
    """Raised when the document store cannot be read."""


def parse_snapshot(payload: Any) -> list[CatalogRecord]:
    """Convert a raw store payload into records with unique ids.

    Object payloads keep their key order and lend their keys as ids; array
    payloads skip ``null`` holes left behind by deleted children.
    """

    if isinstance(payload, dict):
        items = [(str(key), value) for key, value in payload.items()]
    elif isinstance(payload, list):
        items = [(str(index), value) for index, value in enumerate(payload)]
    else:
        return []

    records: list[CatalogRecord] = []
    seen: set[str] = set()
    for index, (key, value) in enumerate(items):
        if not isinstance(value, dict):
            continue
        try:
            record = CatalogRecord.from_raw(key, value, index)
        except ValueError as exc:
            logger.warning("Skipping malformed catalog entry %s: %s", key, exc)
            continue
        if record.id in seen:
            record = record.model_copy(update={"id": _unused_id(record.id, index, seen)})
        seen.add(record.id)
        records.append(record)
    return records


def _unused_id(base_id: str, index: int, seen: set[str]) -> str:
    suffix = index
    candidate = f"{base_id}-{suffix}"
    while candidate in seen:
        suffix += 1
        candidate = f"{base_id}-{suffix}"
    return candidate


class FirebaseCatalogStore:
    """Reads and polls a Realtime Database location over its REST API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        catalog_path: str,
        *,
        auth: AuthProvider | None = None,
        poll_interval: float = 30.0,
    ) -> None:
        self._client = http_client
        self._catalog_path = catalog_path.strip("/")
        self._auth = auth
        self._poll_interval = poll_interval
        self._subscriptions: set[asyncio.Task[None]] = set()

    async def fetch_value(self, path: str) -> Any:
        """Return the JSON value stored at ``path``."""

        params: dict[str, str] = {}
        token = self._auth() if self._auth else None
        if token:
            params["auth"] = token
        try:
            response = await self._client.get(f"/{path.strip('/')}.json", params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StoreError(
                f"Reading {path} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise StoreError(f"Reading {path} failed: {exc.__class__.__name__}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise StoreError(f"Store returned invalid JSON for {path}") from exc

    async def fetch_snapshot(self) -> list[CatalogRecord]:
        payload = await self.fetch_value(self._catalog_path)
        return parse_snapshot(payload)

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        """Emit snapshots to ``callback`` whenever the catalog changes.

        Must be called from within a running event loop. The returned callable
        stops the subscription.
        """

        task = asyncio.create_task(self._poll(callback))
        self._subscriptions.add(task)
        task.add_done_callback(self._subscriptions.discard)

        def unsubscribe() -> None:
            task.cancel()

        return unsubscribe

    async def close(self) -> None:
        """Cancel every active subscription."""

        tasks = list(self._subscriptions)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

    async def _poll(self, callback: SnapshotCallback) -> None:
        last_payload: Any = _MISSING
        while True:
            try:
                payload = await self.fetch_value(self._catalog_path)
            except StoreError as exc:
                logger.warning("Catalog poll failed: %s", exc)
            else:
                if payload != last_payload:
                    last_payload = payload
                    try:
                        result = callback(parse_snapshot(payload))
                        if inspect.isawaitable(result):
                            await result
                    except Exception as exc:  # pragma: no cover - background safety net
                        logger.exception("Catalog snapshot handler failed: %s", exc)
            await asyncio.sleep(self._poll_interval)


class StoreTokenSource:
    """Reads the secret bot token from a single store location."""

    def __init__(self, store: FirebaseCatalogStore, path: str):
        self._store = store
        self._path = path

    async def fetch_token(self) -> str | None:
        try:
            value = await self._store.fetch_value(self._path)
        except StoreError as exc:
            logger.warning("Secret token fetch failed: %s", exc)
            return None
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None
