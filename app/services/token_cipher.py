"""Fernet protection for the credential record at rest."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class TokenDecryptionError(ValueError):
    """Stored ciphertext could not be decrypted with the configured secret."""


def derive_fernet_key(secret: str) -> bytes:
    """Stretch an arbitrary operator secret into a 32-byte urlsafe Fernet key."""
    if not secret:
        raise ValueError("Token encryption secret must be provided.")
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


class TokenCipherService:
    """Seal the serialized credential so the backend never holds raw tokens.

    Rotating the secret makes existing records unreadable; the store then
    reports them as absent and the user has to log in again.
    """

    def __init__(self, *, secret: str) -> None:
        self._fernet = Fernet(derive_fernet_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        try:
            return self._fernet.decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeEncodeError) as exc:
            raise TokenDecryptionError("Credential record could not be decrypted.") from exc


__all__ = ["TokenCipherService", "TokenDecryptionError", "derive_fernet_key"]
