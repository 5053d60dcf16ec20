"""Application configuration models."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="ReelVault", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=3000, alias="PORT")

    firebase_database_url: HttpUrl | None = Field(
        default=None, alias="FIREBASE_DATABASE_URL"
    )
    firebase_auth_token: str | None = Field(
        default=None, alias="FIREBASE_AUTH_TOKEN"
    )
    catalog_public_read: bool = Field(default=False, alias="CATALOG_PUBLIC_READ")
    catalog_path: str = Field(default="videos", alias="CATALOG_PATH")
    catalog_poll_interval_seconds: float = Field(
        default=30.0, alias="CATALOG_POLL_INTERVAL", ge=1.0, le=3_600.0
    )

    telegram_api_url: HttpUrl = Field(
        default="https://api.telegram.org", alias="TELEGRAM_API_URL"
    )
    telegram_bot_token: str | None = Field(default=None, alias="TELEGRAM_BOT_TOKEN")
    bot_token_path: str = Field(default="config/botToken", alias="BOT_TOKEN_PATH")

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("catalog_path", "bot_token_path", mode="before")
    @classmethod
    def _normalise_store_path(cls, value: object) -> str:
        """Strip surrounding slashes so paths can be joined onto the store URL."""

        if value is None:
            raise ValueError("Store paths must not be empty")
        cleaned = str(value).strip().strip("/")
        if cleaned.endswith(".json"):
            cleaned = cleaned[: -len(".json")].rstrip("/")
        if not cleaned:
            raise ValueError("Store paths must not be empty")
        return cleaned

    @field_validator("firebase_auth_token", "telegram_bot_token", mode="before")
    @classmethod
    def _blank_secret_is_missing(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        if isinstance(value, str):
            return value.strip()
        return value

    @property
    def catalog_configured(self) -> bool:
        """Return whether a document store has been configured."""

        return self.firebase_database_url is not None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
