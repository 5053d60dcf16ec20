"""Facet and free-text filtering over catalog entries."""

from __future__ import annotations

from typing import Sequence

from .models import ALL, CatalogEntry, FilterSelection


def matches(selection: FilterSelection, entry: CatalogEntry) -> bool:
    """Return whether ``entry`` satisfies every active predicate."""

    meta = entry.meta
    if selection.content != ALL and meta.content != selection.content:
        return False
    if selection.season != ALL and meta.season != selection.season:
        return False
    if selection.episode != ALL and meta.episode != selection.episode:
        return False
    if selection.search and selection.search.lower() not in entry.search_text():
        return False
    return True


def apply_filters(
    selection: FilterSelection, entries: Sequence[CatalogEntry]
) -> list[CatalogEntry]:
    """Return the entries matching ``selection`` in catalog order."""

    if selection.is_identity():
        return list(entries)
    return [entry for entry in entries if matches(selection, entry)]
