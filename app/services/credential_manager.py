"""
Helpers for retrieving and refreshing the stored Spotify credential.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx
from pydantic import ValidationError

from app.clients.spotify_auth import (
    OAuthConfigurationError,
    OAuthTokenExchangeError,
    SpotifyOAuthClient,
)
from app.core.errors import CredentialStoreError
from app.models.credential import Credential
from app.services.credential_store import CredentialStore

logger = logging.getLogger(__name__)

_REFRESH_FAILURES = (
    OAuthConfigurationError,
    OAuthTokenExchangeError,
    CredentialStoreError,
    ValidationError,
    ValueError,
    httpx.HTTPError,
)


class CredentialManager:
    """Keeps one valid access token alive across expiry.

    The store is re-read on every call; no credential is cached on the
    instance. Concurrent refreshes are not coordinated and the last write
    wins, which is acceptable because either refreshed credential is valid.
    """

    def __init__(
        self,
        store: CredentialStore,
        oauth_client: SpotifyOAuthClient,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._oauth = oauth_client
        self._clock = clock

    def has_credential(self) -> bool:
        return self._store.get() is not None

    def load_credential(self) -> Optional[Credential]:
        return self._store.get()

    async def get_valid_access_token(self) -> Optional[str]:
        """Return a usable access token, refreshing when inside the expiry margin.

        ``None`` means the caller must send the user through login again.
        """
        credential = self._store.get()
        if credential is None:
            return None

        if not credential.needs_refresh(self._clock()):
            return credential.access_token

        refreshed = await self.refresh_credential(credential)
        if refreshed is None:
            return None
        return refreshed.access_token

    async def refresh_credential(self, credential: Credential) -> Optional[Credential]:
        """Unconditionally refresh ``credential`` and persist the result.

        Nothing is written on failure, so the next call starts from the same
        stale record.
        """
        now = self._clock()
        try:
            grant = await self._oauth.refresh_access_token(credential.refresh_token)
            refreshed = grant.to_credential(
                now=now, fallback_refresh_token=credential.refresh_token
            )
            self._store.put(refreshed)
        except _REFRESH_FAILURES as exc:
            logger.warning("Error refreshing Spotify access token: %s", exc)
            return None

        logger.info(
            "Refreshed Spotify access token (rotated_refresh_token=%s)",
            refreshed.refresh_token != credential.refresh_token,
        )
        return refreshed

    async def exchange_authorization_code(self, code: str, redirect_uri: str) -> Credential:
        """Trade a login callback code for a brand-new credential.

        Raises on any failure; there is no prior session to fall back to.
        """
        now = self._clock()
        grant = await self._oauth.exchange_authorization_code(code, redirect_uri)
        return grant.to_credential(now=now)


__all__ = ["CredentialManager"]
