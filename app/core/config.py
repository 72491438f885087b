"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI app, the credential core and
the maintenance scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal, Optional

import os

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


def _split_csv(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    return tuple(item.strip() for item in value.split(",") if item.strip())


class SpotifySettings(BaseSettings):
    """Configuration required for interacting with the Spotify APIs.

    Client credentials are optional at load time; a missing value surfaces
    as a failed token refresh or exchange instead of a startup crash.
    """

    model_config = SettingsConfigDict(populate_by_name=True)

    client_id: Optional[str] = Field(None, validation_alias="SPOTIFY_CLIENT_ID")
    client_secret: Optional[str] = Field(
        None, validation_alias="SPOTIFY_CLIENT_SECRET"
    )
    redirect_uri: Optional[AnyHttpUrl] = Field(
        None, validation_alias="SPOTIFY_REDIRECT_URI"
    )
    scopes: Annotated[tuple[str, ...], NoDecode] = Field(
        ("user-read-playback-state", "user-modify-playback-state"),
        validation_alias="SPOTIFY_SCOPES",
    )
    api_base_url: str = Field(
        "https://api.spotify.com/v1", validation_alias="SPOTIFY_API_BASE_URL"
    )
    accounts_base_url: str = Field(
        "https://accounts.spotify.com", validation_alias="SPOTIFY_ACCOUNTS_BASE_URL"
    )
    http_timeout_seconds: float = Field(10.0, validation_alias="SPOTIFY_HTTP_TIMEOUT")

    @field_validator("scopes", mode="before")
    @classmethod
    def _split_scopes(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        """Support providing scopes as a comma-separated string."""
        return _split_csv(value)


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    automation_key: str = Field(
        ...,
        validation_alias="AUTOMATION_KEY",
        description="Shared secret expected in the X-Automation-Key header.",
    )
    token_encryption_secret: Optional[str] = Field(
        None,
        validation_alias="TOKEN_ENCRYPTION_SECRET",
        description=(
            "Secret used to derive the symmetric key for encrypting stored tokens."
        ),
    )


class OAuthSettings(BaseSettings):
    """OAuth flow configuration."""

    model_config = SettingsConfigDict(populate_by_name=True)

    state_ttl_seconds: int = Field(600, validation_alias="OAUTH_STATE_TTL")
    state_cookie_name: str = Field("oauth_state", validation_alias="OAUTH_STATE_COOKIE")


class StorageSettings(BaseSettings):
    """Where the single credential record lives."""

    model_config = SettingsConfigDict(populate_by_name=True)

    backend: Literal["sqlite", "dynamodb"] = Field(
        "sqlite", validation_alias="CREDENTIAL_STORE_BACKEND"
    )
    sqlite_path: str = Field(
        "data/credentials.db", validation_alias="CREDENTIAL_DB_PATH"
    )
    dynamodb_table_name: Optional[str] = Field(
        None, validation_alias="DYNAMODB_TABLE_NAME"
    )
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    record_key: str = Field("spotify_tokens", validation_alias="CREDENTIAL_RECORD_KEY")


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    cors_allow_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        ("*",), validation_alias="CORS_ALLOW_ORIGINS"
    )
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(
        cls, value: str | tuple[str, ...] | list[str]
    ) -> tuple[str, ...]:
        return _split_csv(value)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "OAuthSettings",
    "SecuritySettings",
    "SpotifySettings",
    "StorageSettings",
    "get_settings",
]
