"""Derive content/season/episode metadata from free-text descriptions."""

from __future__ import annotations

import re

from .models import CatalogRecord, NormalizedMeta

LINE_SPLIT_RE = re.compile(r"\r?\n")


def split_description(description: str) -> list[str]:
    """Split a description into positional metadata parts.

    Newline-delimited descriptions take precedence and blank lines are
    skipped. A single remaining line falls back to ``/`` as the delimiter,
    where empty parts keep their position.
    """

    lines = [line.strip() for line in LINE_SPLIT_RE.split(description)]
    lines = [line for line in lines if line]
    if len(lines) != 1:
        return lines
    return [part.strip() for part in lines[0].split("/")]


def extract(record: CatalogRecord) -> NormalizedMeta:
    """Return the normalized metadata for ``record``.

    Metadata already attached to the record is trusted as-is. Malformed
    descriptions never raise; missing parts take the sentinel defaults.
    """

    if record.meta is not None:
        return record.meta

    parts = split_description(record.description)
    fields = dict(zip(("content", "season", "episode"), parts))
    return NormalizedMeta(**fields)
