"""Utility helpers for the ReelVault service."""

from __future__ import annotations

import re
import unicodedata


NON_DIGIT_RE = re.compile(r"\D+")
URL_SCHEMES: tuple[str, ...] = ("http://", "https://")


def slugify(value: str) -> str:
    """Return a URL-friendly slug."""

    value = unicodedata.normalize("NFKD", value)
    value = value.encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-zA-Z0-9]+", "-", value)
    value = value.strip("-")
    value = re.sub(r"-+", "-", value)
    return value.lower() or "video"


def ensure_record_id(base_id: str, fallback: str, index: int) -> str:
    """Generate a deterministic record identifier."""

    if base_id:
        return base_id
    slug = slugify(fallback)
    return f"{slug}-{index}"


def numeric_key(value: str | None) -> tuple[int, str]:
    """Return a key ordering ``value`` by the number its digits form.

    ``"Season 2"`` reads as ``2`` and ``"S01E03"`` as ``103``: every
    non-digit character is dropped. No digits at all reads as ``0``. The
    digits are compared by length, then lexically, so arbitrarily long
    numbers never go through ``int``.
    """

    digits = NON_DIGIT_RE.sub("", value or "").lstrip("0")
    return (len(digits), digits)


def is_absolute_url(value: str) -> bool:
    """Return whether ``value`` already points at a fetchable URL."""

    lowered = value.strip().lower()
    return lowered.startswith(URL_SCHEMES)
