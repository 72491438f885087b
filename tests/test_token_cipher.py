try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64

import pytest

from app.services.token_cipher import (
    TokenCipherService,
    TokenDecryptionError,
    derive_fernet_key,
)


def test_token_cipher_roundtrip() -> None:
    cipher = TokenCipherService(secret="super-secret-key")
    plaintext = '{"access_token":"a","refresh_token":"r","expires_at":1}'

    encrypted = cipher.encrypt(plaintext)
    assert encrypted != plaintext
    assert cipher.decrypt(encrypted) == plaintext


def test_token_cipher_rejects_bad_ciphertext() -> None:
    cipher = TokenCipherService(secret="another-secret")

    with pytest.raises(TokenDecryptionError):
        cipher.decrypt("not-valid")


def test_token_cipher_requires_secret() -> None:
    with pytest.raises(ValueError):
        TokenCipherService(secret="")


def test_derived_key_is_stable_per_secret() -> None:
    assert derive_fernet_key("gateway") == derive_fernet_key("gateway")
    assert derive_fernet_key("gateway") != derive_fernet_key("rotated")
    assert len(base64.urlsafe_b64decode(derive_fernet_key("gateway"))) == 32


def test_token_cipher_rejects_non_ascii_ciphertext() -> None:
    cipher = TokenCipherService(secret="gateway")

    with pytest.raises(TokenDecryptionError):
        cipher.decrypt("jeton-chiffré")
