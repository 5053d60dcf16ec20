"""Client for resolving Telegram Bot API file identifiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..config import Settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FileLookup:
    """Outcome of a ``getFile`` call."""

    file_path: str | None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.file_path is not None


class TelegramFileClient:
    """Thin wrapper around the Bot API ``getFile`` method and file URLs."""

    _LOOKUP_PATH = "/bot{token}/getFile"
    _FILE_URL = "{base}/file/bot{token}/{path}"

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client
        self._base_url = str(settings.telegram_api_url).rstrip("/")

    def build_file_url(self, token: str, file_path: str) -> str:
        """Return the download URL for a resolved file path."""

        return self._FILE_URL.format(
            base=self._base_url, token=token, path=file_path.lstrip("/")
        )

    async def lookup(self, token: str, file_id: str) -> FileLookup:
        """Resolve ``file_id`` to a file path using the bot ``token``."""

        url = self._LOOKUP_PATH.format(token=token)
        try:
            response = await self._client.get(url, params={"file_id": file_id})
        except httpx.HTTPError as exc:
            logger.warning(
                "Telegram getFile request failed for %s: %s",
                file_id,
                exc.__class__.__name__,
            )
            return FileLookup(None, f"network error: {exc.__class__.__name__}")

        if response.status_code >= 400:
            logger.warning(
                "Telegram getFile for %s returned HTTP %s",
                file_id,
                response.status_code,
            )
            return FileLookup(None, f"HTTP {response.status_code}")

        try:
            payload: Any = response.json()
        except ValueError:
            return FileLookup(None, "invalid JSON response")

        return self._parse_lookup(payload)

    @staticmethod
    def _parse_lookup(payload: Any) -> FileLookup:
        if not isinstance(payload, dict) or payload.get("ok") is not True:
            description = (
                payload.get("description") if isinstance(payload, dict) else None
            )
            return FileLookup(None, str(description or "lookup was not successful"))
        result = payload.get("result")
        file_path = result.get("file_path") if isinstance(result, dict) else None
        if not isinstance(file_path, str) or not file_path.strip():
            return FileLookup(None, "response is missing file_path")
        return FileLookup(file_path.strip())
