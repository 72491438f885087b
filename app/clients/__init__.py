"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBStore
from .spotify_api import SpotifyApiClient
from .spotify_auth import SpotifyOAuthClient
from .sqlite_store import SQLiteStore

__all__ = [
    "DynamoDBStore",
    "SQLiteStore",
    "SpotifyApiClient",
    "SpotifyOAuthClient",
]
