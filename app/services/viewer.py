"""Coordinates catalog snapshots, facet selection and reference resolution."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Callable, Literal, Protocol, Sequence

from ..catalog_index import CatalogIndex
from ..models import CatalogEntry, CatalogRecord, FacetOptionSet, FilterSelection
from ..session import SessionState
from .firebase import SnapshotCallback
from .resolver import ReferenceResolver, Resolution

logger = logging.getLogger(__name__)

RefField = Literal["video", "thumbnail"]


class CatalogUnavailableError(RuntimeError):
    """Raised when no catalog snapshot has been received yet."""


class CatalogStore(Protocol):
    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:  # pragma: no cover
        ...


class ViewListener(Protocol):
    """Receives every published view and every background resolution."""

    def on_view(self, view: "CatalogView") -> None:  # pragma: no cover - protocol
        ...

    def on_resolved(
        self, record_id: str, ref_field: RefField, resolution: Resolution
    ) -> None:  # pragma: no cover - protocol
        ...


@dataclass(slots=True)
class CatalogView:
    """Visible records for one selection of one snapshot."""

    version: int
    sequence: int
    selection: FilterSelection
    options: FacetOptionSet
    entries: list[CatalogEntry] = field(default_factory=list)
    total: int = 0

    def to_payload(self) -> dict[str, object]:
        return {
            "version": self.version,
            "selection": self.selection.model_dump(),
            "facets": {
                "contents": self.options.contents,
                "seasons": self.options.seasons_for(self.selection.content),
                "episodes": self.options.episodes_for(
                    self.selection.content, self.selection.season
                ),
            },
            "total": self.total,
            "count": len(self.entries),
            "records": [entry.to_payload() for entry in self.entries],
        }


class CatalogViewer:
    """Session-scoped catalog state driven by store snapshots and selections."""

    def __init__(
        self,
        session: SessionState,
        resolver: ReferenceResolver,
        store: CatalogStore | None = None,
        *,
        listener: ViewListener | None = None,
        prefetch_thumbnails: bool = True,
    ) -> None:
        self._session = session
        self._resolver = resolver
        self._store = store
        self._listener = listener
        self._prefetch_thumbnails = prefetch_thumbnails
        self._index: CatalogIndex | None = None
        self._selection = FilterSelection()
        self._version = 0
        self._sequence = 0
        self._current_view: CatalogView | None = None
        self._thumbnails: dict[str, Resolution] = {}
        self._enrichment: dict[str, asyncio.Task[None]] = {}
        self._unsubscribe: Callable[[], None] | None = None
        self._remove_session_listener: Callable[[], None] | None = None

    @property
    def version(self) -> int:
        return self._version

    @property
    def selection(self) -> FilterSelection:
        return self._selection

    @property
    def current_view(self) -> CatalogView | None:
        return self._current_view

    @property
    def thumbnails(self) -> dict[str, Resolution]:
        return dict(self._thumbnails)

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        """Follow the session and load the catalog once reads are authorized."""

        if self._remove_session_listener is None:
            self._remove_session_listener = self._session.add_listener(
                self._on_session_change
            )
        if self._session.catalog_read_authorized:
            self._subscribe()
        else:
            logger.info("Catalog reads are not authorized yet; waiting for sign-in")

    async def stop(self) -> None:
        if self._remove_session_listener is not None:
            self._remove_session_listener()
            self._remove_session_listener = None
        self._unsubscribe_store()
        await self._drain_enrichment()

    def handle_snapshot(self, records: Sequence[CatalogRecord]) -> CatalogView | None:
        """Rebuild the index for a new snapshot and publish the visible records."""

        if not self._session.catalog_read_authorized:
            logger.debug("Ignoring catalog snapshot received without authorization")
            return None

        self._version += 1
        index = CatalogIndex.build(records, version=self._version)
        self._index = index
        self._selection = index.reconcile(self._selection)
        self._cancel_enrichment()
        self._thumbnails.clear()
        logger.info(
            "Catalog snapshot %s loaded with %s records", self._version, len(index)
        )
        view = self._recompute()
        self._schedule_enrichment(view)
        return view

    def select(self, field_name: str, value: str) -> CatalogView:
        """Apply a facet change event and publish the recomputed view."""

        index = self._require_index()
        self._selection = index.cascade(self._selection, field_name, value)
        view = self._recompute()
        self._schedule_enrichment(view)
        return view

    def view(self, selection: FilterSelection | None = None) -> CatalogView:
        """Compute a view for ``selection`` without touching the current state."""

        index = self._require_index()
        chosen = selection if selection is not None else self._selection
        return self._build_view(index, chosen, self._sequence)

    def cascade(
        self, selection: FilterSelection, field_name: str, value: str
    ) -> FilterSelection:
        return self._require_index().cascade(selection, field_name, value)

    async def resolve(self, ref: str | None) -> Resolution:
        return await self._resolver.resolve_detailed(ref)

    async def resolve_record(self, record_id: str, ref_field: RefField) -> Resolution:
        """Resolve the video or thumbnail of a record in the current snapshot."""

        entry = self._require_index().get(record_id)
        if ref_field == "thumbnail":
            cached = self._thumbnails.get(record_id)
            if cached is not None:
                return cached
            ref = entry.record.thumbnail_ref
        else:
            ref = entry.record.video_ref
        if not ref:
            return Resolution(ref="", url=None, error=f"record has no {ref_field} reference")
        return await self._resolver.resolve_detailed(ref)

    def _require_index(self) -> CatalogIndex:
        if not self._session.catalog_read_authorized:
            raise PermissionError("Catalog reads are not authorized")
        if self._index is None:
            raise CatalogUnavailableError("Catalog has not been loaded yet")
        return self._index

    def _recompute(self) -> CatalogView:
        self._sequence += 1
        index = self._require_index()
        view = self._build_view(index, self._selection, self._sequence)
        self._publish(view)
        return view

    @staticmethod
    def _build_view(
        index: CatalogIndex, selection: FilterSelection, sequence: int
    ) -> CatalogView:
        return CatalogView(
            version=index.version,
            sequence=sequence,
            selection=selection,
            options=index.options,
            entries=index.filter(selection),
            total=len(index),
        )

    def _publish(self, view: CatalogView) -> None:
        if view.version != self._version or view.sequence != self._sequence:
            logger.debug(
                "Dropping stale view (version %s, sequence %s)",
                view.version,
                view.sequence,
            )
            return
        self._current_view = view
        if self._listener is not None:
            self._listener.on_view(view)

    def _schedule_enrichment(self, view: CatalogView) -> None:
        if not self._prefetch_thumbnails:
            return
        for entry in view.entries:
            ref = entry.record.thumbnail_ref
            if not ref or entry.id in self._thumbnails or entry.id in self._enrichment:
                continue
            task = asyncio.create_task(self._enrich(view.version, entry.id, ref))
            self._enrichment[entry.id] = task
            task.add_done_callback(
                lambda done, record_id=entry.id: self._forget_enrichment(record_id, done)
            )

    async def _enrich(self, version: int, record_id: str, ref: str) -> None:
        resolution = await self._resolver.resolve_detailed(ref)
        if version != self._version:
            logger.debug("Discarding thumbnail for %s from snapshot %s", record_id, version)
            return
        self._thumbnails[record_id] = resolution
        if self._listener is not None:
            self._listener.on_resolved(record_id, "thumbnail", resolution)

    def _forget_enrichment(self, record_id: str, task: asyncio.Task[None]) -> None:
        if self._enrichment.get(record_id) is task:
            del self._enrichment[record_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Thumbnail resolution for %s failed", record_id, exc_info=task.exception()
            )

    def _cancel_enrichment(self) -> None:
        for task in self._enrichment.values():
            task.cancel()
        self._enrichment.clear()

    async def _drain_enrichment(self) -> None:
        tasks = list(self._enrichment.values())
        self._cancel_enrichment()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task

    def _subscribe(self) -> None:
        if self._unsubscribe is not None:
            return
        if self._store is None:
            logger.warning("No catalog store configured; catalog stays empty")
            return
        self._unsubscribe = self._store.subscribe(self.handle_snapshot)

    def _unsubscribe_store(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_session_change(self, authorized: bool) -> None:
        if authorized:
            self._subscribe()
            return
        self._unsubscribe_store()
        self._cancel_enrichment()
        self._index = None
        self._current_view = None
        self._selection = FilterSelection()
        self._thumbnails.clear()
        self._version += 1
        self._resolver.reset()
