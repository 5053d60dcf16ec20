"""Deterministic ordering of catalog entries for first display."""

from __future__ import annotations

from typing import Iterable

from .models import CatalogEntry
from .utils import numeric_key


def sort_key(entry: CatalogEntry) -> tuple[str, tuple[int, str], tuple[int, str]]:
    meta = entry.meta
    return (meta.content, numeric_key(meta.season), numeric_key(meta.episode))


def sort_entries(entries: Iterable[CatalogEntry]) -> list[CatalogEntry]:
    """Order entries by content, then season number, then episode number.

    ``sorted`` is stable, so entries with equal keys keep their input order.
    """

    return sorted(entries, key=sort_key)
