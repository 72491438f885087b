"""Request gates applied to every ``/api`` route."""

from __future__ import annotations

import hmac
from http import HTTPStatus
from typing import Annotated, Optional

from fastapi import Depends, Header

from app.core.config import AppSettings
from app.core.errors import ErrorCode, GatewayError
from app.services.credential_manager import CredentialManager

from .clients import get_credential_manager
from .config import get_app_settings


def require_automation_key(
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    x_automation_key: Annotated[Optional[str], Header()] = None,
) -> None:
    """Reject callers that do not present the shared automation key."""
    expected = settings.security.automation_key
    if not x_automation_key or not hmac.compare_digest(
        x_automation_key.encode("utf-8"), expected.encode("utf-8")
    ):
        raise GatewayError(
            ErrorCode.INVALID_AUTOMATION_KEY,
            "Invalid or missing X-Automation-Key header",
            HTTPStatus.UNAUTHORIZED,
        )


async def require_spotify_session(
    credential_manager: Annotated[CredentialManager, Depends(get_credential_manager)],
) -> None:
    """Ensure a Spotify account is connected and a token can be obtained."""
    if not credential_manager.has_credential():
        raise GatewayError(
            ErrorCode.NOT_AUTHENTICATED,
            "Not connected. Visit /login to connect your Spotify account.",
            HTTPStatus.UNAUTHORIZED,
        )

    access_token = await credential_manager.get_valid_access_token()
    if not access_token:
        raise GatewayError(
            ErrorCode.TOKEN_REFRESH_FAILED,
            "Failed to refresh access token. Please visit /login to reconnect.",
            HTTPStatus.UNAUTHORIZED,
        )


__all__ = ["require_automation_key", "require_spotify_session"]
