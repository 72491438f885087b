"""Service layer exports."""

from .credential_manager import CredentialManager
from .credential_store import CredentialStore
from .playback import PlaybackService
from .token_cipher import TokenCipherService

__all__ = [
    "CredentialManager",
    "CredentialStore",
    "PlaybackService",
    "TokenCipherService",
]
