"""Configuration settings behaviour tests."""

from __future__ import annotations

import pytest

from app.config import Settings


def test_defaults_without_environment() -> None:
    settings = Settings(_env_file=None)

    assert settings.catalog_path == "videos"
    assert settings.bot_token_path == "config/botToken"
    assert str(settings.telegram_api_url).startswith("https://api.telegram.org")
    assert settings.catalog_configured is False


def test_store_paths_are_normalised() -> None:
    """Leading/trailing slashes and a ``.json`` suffix are stripped."""

    settings = Settings(
        _env_file=None,
        CATALOG_PATH="/library/videos.json",
        BOT_TOKEN_PATH="/secrets/bot/",
    )

    assert settings.catalog_path == "library/videos"
    assert settings.bot_token_path == "secrets/bot"


def test_blank_store_path_is_rejected() -> None:
    with pytest.raises(ValueError, match="Store paths must not be empty"):
        Settings(_env_file=None, CATALOG_PATH=" / ")


def test_blank_secrets_are_treated_as_missing() -> None:
    settings = Settings(
        _env_file=None,
        TELEGRAM_BOT_TOKEN="  ",
        FIREBASE_AUTH_TOKEN=" id-token ",
        FIREBASE_DATABASE_URL="https://demo.firebaseio.com",
    )

    assert settings.telegram_bot_token is None
    assert settings.firebase_auth_token == "id-token"
    assert settings.catalog_configured is True


def test_poll_interval_bounds() -> None:
    with pytest.raises(ValueError):
        Settings(_env_file=None, CATALOG_POLL_INTERVAL=0)
