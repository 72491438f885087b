"""
Authenticated access to the Spotify Web API.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

import httpx

from app.core.errors import NoAccessTokenError

if TYPE_CHECKING:
    from app.services.credential_manager import CredentialManager

logger = logging.getLogger(__name__)


class SpotifyApiClient:
    """Issue bearer-authenticated calls, re-authenticating once on a 401."""

    def __init__(
        self,
        credential_manager: CredentialManager,
        *,
        base_url: str = "https://api.spotify.com/v1",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._credentials = credential_manager
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self._base_url}{path}"

    async def _send(
        self,
        method: str,
        url: str,
        token: str,
        *,
        json: Any,
        params: Optional[Mapping[str, Any]],
        headers: Optional[Mapping[str, str]],
    ) -> httpx.Response:
        merged: Dict[str, str] = dict(headers or {})
        merged["Authorization"] = f"Bearer {token}"
        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            return await client.request(method, url, json=json, params=params, headers=merged)

    async def call(
        self,
        path: str,
        *,
        method: str = "GET",
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> httpx.Response:
        """Perform one API call and return the response unmodified.

        On a 401 the stored refresh token is used once, regardless of the
        local expiry, and the request is replayed with the new token. The
        refreshed credential is persisted as a side effect.
        """
        token = await self._credentials.get_valid_access_token()
        if not token:
            raise NoAccessTokenError("No access token available")

        url = self._url(path)
        response = await self._send(
            method, url, token, json=json, params=params, headers=headers
        )
        if response.status_code != HTTPStatus.UNAUTHORIZED:
            return response

        credential = self._credentials.load_credential()
        if credential is None:
            return response

        refreshed = await self._credentials.refresh_credential(credential)
        if refreshed is None:
            return response

        logger.info("Retrying %s %s after re-authentication", method, path)
        return await self._send(
            method, url, refreshed.access_token, json=json, params=params, headers=headers
        )


__all__ = ["SpotifyApiClient"]
