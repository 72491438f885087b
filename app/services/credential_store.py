"""
Durable storage for the single connected Spotify credential.
"""

from __future__ import annotations

import json
import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from app.core.errors import CredentialStoreError
from app.models.credential import Credential
from app.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

DEFAULT_RECORD_KEY = "spotify_tokens"


class KeyValueBackend(Protocol):
    def get(self, key: str) -> Optional[str]:
        ...

    def put(self, key: str, value: str) -> None:
        ...


class CredentialStore:
    """Reads and writes the encrypted credential record.

    Reads never raise: a missing, undecryptable or incomplete record is
    reported as ``None``. Writes raise ``CredentialStoreError``.
    """

    def __init__(
        self,
        backend: KeyValueBackend,
        token_cipher: TokenCipherService,
        *,
        key: str = DEFAULT_RECORD_KEY,
    ) -> None:
        self._backend = backend
        self._cipher = token_cipher
        self._key = key

    def get(self) -> Optional[Credential]:
        try:
            raw = self._backend.get(self._key)
            if not raw:
                return None
            return Credential.model_validate(json.loads(self._cipher.decrypt(raw)))
        except (ValueError, ValidationError) as exc:
            logger.warning("Stored credential record is unreadable: %s", exc)
            return None
        except Exception:  # pylint: disable=broad-except
            logger.exception("Error reading credential record from storage")
            return None

    def put(self, credential: Credential) -> None:
        blob = json.dumps(credential.model_dump(), separators=(",", ":"))
        try:
            self._backend.put(self._key, self._cipher.encrypt(blob))
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Error writing credential record to storage")
            raise CredentialStoreError("Failed to save tokens") from exc


__all__ = ["CredentialStore", "DEFAULT_RECORD_KEY", "KeyValueBackend"]
