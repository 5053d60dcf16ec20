"""Snapshot-scoped catalog index with facet option sets."""

from __future__ import annotations

from typing import Iterable, Sequence

from .filters import apply_filters
from .metadata import extract
from .models import (
    ALL,
    CatalogEntry,
    CatalogRecord,
    FacetField,
    FacetOptionSet,
    FilterSelection,
    NormalizedMeta,
)
from .sorting import sort_entries

FACET_FIELDS: tuple[str, ...] = ("content", "season", "episode", "search")


def build_facets(entries: Iterable[CatalogEntry]) -> FacetOptionSet:
    """Collect distinct facet values in first-seen order."""

    # dicts double as insertion-ordered sets
    contents: dict[str, None] = {}
    seasons: dict[str, dict[str, None]] = {}
    episodes: dict[str, dict[str, dict[str, None]]] = {}

    for entry in entries:
        meta = entry.meta
        contents.setdefault(meta.content, None)
        seasons.setdefault(meta.content, {}).setdefault(meta.season, None)
        episodes.setdefault(meta.content, {}).setdefault(meta.season, {}).setdefault(
            meta.episode, None
        )

    return FacetOptionSet(
        contents=[ALL, *contents],
        seasons_by_content={
            content: [ALL, *values] for content, values in seasons.items()
        },
        episodes_by_content_season={
            content: {season: [ALL, *values] for season, values in by_season.items()}
            for content, by_season in episodes.items()
        },
    )


class CatalogIndex:
    """Owns the entries, metadata cache and facets of one catalog snapshot."""

    def __init__(self, *, version: int = 0) -> None:
        self.version = version
        self._meta_cache: dict[str, NormalizedMeta] = {}
        self._entries: tuple[CatalogEntry, ...] = ()
        self._by_id: dict[str, CatalogEntry] = {}
        self._options = FacetOptionSet()

    @classmethod
    def build(
        cls,
        records: Sequence[CatalogRecord],
        *,
        version: int = 0,
        sort: bool = True,
    ) -> "CatalogIndex":
        """Index ``records``, optionally putting them in display order first."""

        index = cls(version=version)
        entries = [CatalogEntry(record, index.meta_for(record)) for record in records]
        if sort:
            entries = sort_entries(entries)
        index._entries = tuple(entries)
        for entry in entries:
            index._by_id.setdefault(entry.id, entry)
        index._options = build_facets(entries)
        return index

    @property
    def entries(self) -> tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def options(self) -> FacetOptionSet:
        return self._options

    def __len__(self) -> int:
        return len(self._entries)

    def meta_for(self, record: CatalogRecord) -> NormalizedMeta:
        """Return the cached metadata for ``record``, extracting it once."""

        cached = self._meta_cache.get(record.id)
        if cached is None:
            cached = extract(record)
            self._meta_cache[record.id] = cached
        return cached

    def get(self, record_id: str) -> CatalogEntry:
        try:
            return self._by_id[record_id]
        except KeyError:
            raise KeyError(f"Record {record_id} not found") from None

    def filter(self, selection: FilterSelection) -> list[CatalogEntry]:
        return apply_filters(selection, self._entries)

    def cascade(
        self, selection: FilterSelection, field: FacetField | str, value: str
    ) -> FilterSelection:
        """Apply a single facet change and reset the facets that depend on it."""

        return cascade_selection(self._options, selection, field, value)

    def reconcile(self, selection: FilterSelection) -> FilterSelection:
        """Drop facet values that no longer exist in this snapshot."""

        options = self._options
        if selection.content not in options.contents:
            return cascade_selection(options, selection, "content", ALL)
        if selection.season not in options.seasons_for(selection.content):
            return cascade_selection(options, selection, "content", selection.content)
        episodes = options.episodes_for(selection.content, selection.season)
        if selection.episode not in episodes:
            return cascade_selection(options, selection, "season", selection.season)
        return selection


def cascade_selection(
    options: FacetOptionSet,
    selection: FilterSelection,
    field: FacetField | str,
    value: str,
) -> FilterSelection:
    """Return ``selection`` with ``field`` changed and dependents reset."""

    if field not in FACET_FIELDS:
        raise ValueError(f"Unknown facet field: {field}")

    if field == "content":
        season = options.seasons_for(value)[0]
        episode = options.episodes_for(value, season)[0]
        update = {"content": value, "season": season, "episode": episode}
    elif field == "season":
        episode = options.episodes_for(selection.content, value)[0]
        update = {"season": value, "episode": episode}
    else:
        update = {field: value}

    return FilterSelection.model_validate({**selection.model_dump(), **update})
