"""Shared builders for catalog test data."""

from __future__ import annotations

from app.catalog_index import CatalogIndex
from app.models import CatalogEntry, CatalogRecord


def make_record(record_id: str, description: str, **extra: object) -> CatalogRecord:
    payload: dict[str, object] = {"id": record_id, "description": description}
    payload.setdefault("title", f"Title {record_id}")
    payload.update(extra)
    return CatalogRecord.model_validate(payload)


def make_entries(*descriptions: str) -> list[CatalogEntry]:
    records = [
        make_record(f"r{index}", description)
        for index, description in enumerate(descriptions)
    ]
    return list(CatalogIndex.build(records, sort=False).entries)


SAMPLE_DESCRIPTIONS = (
    "ShowB/Season 1/Episode 2",
    "ShowA/Season 2/Episode 1",
    "ShowA/Season 10/Episode 1",
    "ShowA/Season 2/Episode 5",
    "ShowB/Season 1/Episode 1",
    "Movie Night",
)
