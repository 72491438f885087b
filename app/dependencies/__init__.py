"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_credential_manager,
    get_credential_store,
    get_key_value_backend,
    get_playback_service,
    get_spotify_api_client,
    get_spotify_oauth_client,
    get_token_cipher_service,
)
from .auth import require_automation_key, require_spotify_session
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_credential_manager",
    "get_credential_store",
    "get_key_value_backend",
    "get_playback_service",
    "get_spotify_api_client",
    "get_spotify_oauth_client",
    "get_token_cipher_service",
    "require_automation_key",
    "require_spotify_session",
]
