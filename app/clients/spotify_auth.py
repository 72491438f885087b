"""
Spotify OAuth utilities.

These helpers build the consent URL and talk to the accounts service token
endpoint for both the authorization-code and refresh-token grants.
"""

from __future__ import annotations

import secrets
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import ValidationError

from app.core.config import SpotifySettings
from app.models.credential import TokenGrant


class OAuthConfigurationError(Exception):
    """Raised when client id, secret or redirect URI are not configured."""


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint rejects a grant or returns garbage."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def generate_state() -> str:
    """Random base64url state value for CSRF protection."""
    return secrets.token_urlsafe(32)


class SpotifyOAuthClient:
    """Build Spotify authorization URLs and exchange grants for tokens."""

    AUTHORIZE_PATH = "/authorize"
    TOKEN_PATH = "/api/token"

    def __init__(
        self,
        settings: SpotifySettings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def token_url(self) -> str:
        return f"{self._settings.accounts_base_url.rstrip('/')}{self.TOKEN_PATH}"

    def _client_auth(self) -> tuple[str, str]:
        client_id = self._settings.client_id
        client_secret = self._settings.client_secret
        if not client_id or not client_secret:
            raise OAuthConfigurationError("Spotify client credentials not configured")
        return client_id, client_secret

    def build_authorization_url(self, state: str) -> str:
        """Construct the Spotify consent URL."""
        client_id, _ = self._client_auth()
        if not self._settings.redirect_uri:
            raise OAuthConfigurationError("Spotify redirect URI not configured")

        params = {
            "response_type": "code",
            "client_id": client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "scope": " ".join(self._settings.scopes),
            "state": state,
        }
        base = self._settings.accounts_base_url.rstrip("/")
        return f"{base}{self.AUTHORIZE_PATH}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str, redirect_uri: str) -> TokenGrant:
        """Exchange an authorization code for an access/refresh token pair."""
        grant = await self._request_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": redirect_uri,
            }
        )
        if not grant.refresh_token:
            raise OAuthTokenExchangeError("Token exchange response omitted refresh_token.")
        return grant

    async def refresh_access_token(self, refresh_token: str) -> TokenGrant:
        """Mint a new access token; the grant may or may not rotate the refresh token."""
        return await self._request_token(
            {
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
            }
        )

    async def _request_token(self, form: Dict[str, str]) -> TokenGrant:
        auth = self._client_auth()

        async with httpx.AsyncClient(
            timeout=self._settings.http_timeout_seconds, transport=self._transport
        ) as client:
            response = await client.post(
                self.token_url,
                data=form,
                auth=auth,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )

        if not response.is_success:
            raise OAuthTokenExchangeError(
                f"Token request failed: {response.status_code} {_error_detail(response)}",
                status_code=response.status_code,
            )

        try:
            return TokenGrant.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise OAuthTokenExchangeError(
                "Incomplete token payload returned from Spotify."
            ) from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        payload: Any = response.json()
    except ValueError:
        return response.text
    if isinstance(payload, dict):
        description = payload.get("error_description") or payload.get("error")
        if description:
            return str(description)
    return response.text


__all__ = [
    "OAuthConfigurationError",
    "OAuthTokenExchangeError",
    "SpotifyOAuthClient",
    "generate_state",
]
