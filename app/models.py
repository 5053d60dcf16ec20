"""Pydantic models describing catalog records, facets and selections."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
    model_validator,
)

from .utils import ensure_record_id

ALL = "All"
UNKNOWN_CONTENT = "Unknown"
DEFAULT_SEASON = "S0"
DEFAULT_EPISODE = "E0"
UNTITLED = "Untitled"

FacetField = Literal["content", "season", "episode", "search"]

_META_DEFAULTS = {
    "content": UNKNOWN_CONTENT,
    "season": DEFAULT_SEASON,
    "episode": DEFAULT_EPISODE,
}


class NormalizedMeta(BaseModel):
    """Content/season/episode triple derived from a record description."""

    model_config = ConfigDict(frozen=True)

    content: str = UNKNOWN_CONTENT
    season: str = DEFAULT_SEASON
    episode: str = DEFAULT_EPISODE

    @field_validator("content", "season", "episode", mode="before")
    @classmethod
    def _blank_uses_default(cls, value: object, info: ValidationInfo) -> object:
        if value is None or (isinstance(value, str) and not value.strip()):
            return _META_DEFAULTS[info.field_name]
        return str(value).strip()


class CatalogRecord(BaseModel):
    """A single video entry as stored in the document store."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str = UNTITLED
    description: str = ""
    video_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "video_ref", "videoRef", "videoId", "video_id", "fileId", "file_id"
        ),
    )
    thumbnail_ref: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "thumbnail_ref", "thumbnailRef", "thumbnailId", "thumbnail_id", "thumbId"
        ),
    )
    meta: NormalizedMeta | None = None

    @model_validator(mode="before")
    @classmethod
    def _structured_description_is_meta(cls, data: Any) -> Any:
        """Treat a ``{content, season, episode}`` description as the record meta."""

        if not isinstance(data, dict):
            return data
        description = data.get("description")
        if isinstance(description, dict) and data.get("meta") is None:
            data = {
                **data,
                "meta": {
                    key: description.get(key)
                    for key in ("content", "season", "episode")
                },
            }
        return data

    @field_validator("title", mode="before")
    @classmethod
    def _default_title(cls, value: object) -> str:
        if value is None:
            return UNTITLED
        text = str(value).strip()
        return text or UNTITLED

    @field_validator("description", mode="before")
    @classmethod
    def _flatten_description(cls, value: object) -> str:
        """Accept plain text or an already structured ``{content, season, episode}``."""

        if value is None:
            return ""
        if isinstance(value, dict):
            parts = [
                str(value.get(key) or "").strip()
                for key in ("content", "season", "episode")
            ]
            return "\n".join(parts)
        return str(value)

    @field_validator("video_ref", "thumbnail_ref", mode="before")
    @classmethod
    def _blank_ref_is_missing(cls, value: object) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @classmethod
    def from_raw(cls, key: str, data: dict[str, Any], index: int) -> "CatalogRecord":
        """Build a record from a raw store payload entry."""

        payload = {**data}
        record_id = str(payload.get("id") or key or "").strip()
        payload["id"] = ensure_record_id(
            record_id, str(payload.get("title") or "video"), index
        )
        return cls.model_validate(payload)


class FilterSelection(BaseModel):
    """Current facet values plus the free-text query."""

    content: str = ALL
    season: str = ALL
    episode: str = ALL
    search: str = ""

    @field_validator("content", "season", "episode", mode="before")
    @classmethod
    def _missing_facet_is_wildcard(cls, value: object) -> str:
        if value is None or (isinstance(value, str) and not value):
            return ALL
        return str(value)

    @field_validator("search", mode="before")
    @classmethod
    def _trim_search(cls, value: object) -> str:
        if value is None:
            return ""
        return str(value).strip()

    def is_identity(self) -> bool:
        return (
            self.content == ALL
            and self.season == ALL
            and self.episode == ALL
            and not self.search
        )


class FacetOptionSet(BaseModel):
    """Distinct facet values available for one catalog snapshot."""

    model_config = ConfigDict(frozen=True)

    contents: list[str] = Field(default_factory=lambda: [ALL])
    seasons_by_content: dict[str, list[str]] = Field(default_factory=dict)
    episodes_by_content_season: dict[str, dict[str, list[str]]] = Field(
        default_factory=dict
    )

    def seasons_for(self, content: str) -> list[str]:
        """Return the season options offered once ``content`` is selected."""

        return list(self.seasons_by_content.get(content) or [ALL])

    def episodes_for(self, content: str, season: str) -> list[str]:
        """Return the episode options for a (content, season) pair."""

        by_season = self.episodes_by_content_season.get(content) or {}
        return list(by_season.get(season) or [ALL])


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """A record paired with the metadata the catalog index derived for it."""

    record: CatalogRecord
    meta: NormalizedMeta

    @property
    def id(self) -> str:
        return self.record.id

    def search_text(self) -> str:
        return " ".join(
            (self.record.title, self.meta.content, self.record.description)
        ).lower()

    def to_payload(self) -> dict[str, object]:
        """Return the JSON shape handed to clients."""

        return {
            "id": self.record.id,
            "title": self.record.title,
            "description": self.record.description,
            "videoRef": self.record.video_ref,
            "thumbnailRef": self.record.thumbnail_ref,
            "meta": self.meta.model_dump(),
        }
