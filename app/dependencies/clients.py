"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from app.clients import DynamoDBStore, SpotifyApiClient, SpotifyOAuthClient, SQLiteStore
from app.core.config import get_settings
from app.services import (
    CredentialManager,
    CredentialStore,
    PlaybackService,
    TokenCipherService,
)
from app.services.credential_store import KeyValueBackend


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_key_value_backend() -> KeyValueBackend:
    """Provide the configured durable key-value backend."""
    storage = _settings().storage
    if storage.backend == "dynamodb":
        return DynamoDBStore(storage)
    return SQLiteStore(storage.sqlite_path)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for credential storage."""
    security = _settings().security
    secret = security.token_encryption_secret or security.automation_key
    return TokenCipherService(secret=secret)


def get_credential_store() -> CredentialStore:
    """Bind the credential record key to the backend and cipher."""
    return CredentialStore(
        get_key_value_backend(),
        get_token_cipher_service(),
        key=_settings().storage.record_key,
    )


@lru_cache()
def get_spotify_oauth_client() -> SpotifyOAuthClient:
    """Create a singleton Spotify OAuth client."""
    return SpotifyOAuthClient(_settings().spotify)


def get_credential_manager() -> CredentialManager:
    """Build a credential manager over the shared store and OAuth client."""
    return CredentialManager(
        store=get_credential_store(),
        oauth_client=get_spotify_oauth_client(),
    )


def get_spotify_api_client() -> SpotifyApiClient:
    """Provide an authenticated Spotify Web API client."""
    spotify = _settings().spotify
    return SpotifyApiClient(
        get_credential_manager(),
        base_url=spotify.api_base_url,
        timeout=spotify.http_timeout_seconds,
    )


def get_playback_service() -> PlaybackService:
    """Build the playback service used by the /api routes."""
    return PlaybackService(get_spotify_api_client())


__all__ = [
    "get_credential_manager",
    "get_credential_store",
    "get_key_value_backend",
    "get_playback_service",
    "get_spotify_api_client",
    "get_spotify_oauth_client",
    "get_token_cipher_service",
]
