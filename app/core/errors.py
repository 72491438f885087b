"""
Structured error taxonomy surfaced by the HTTP layer.

Every failure that reaches a route is expressed as a ``GatewayError`` with a
stable code so automation clients can branch on it.
"""

from __future__ import annotations

from enum import Enum
from http import HTTPStatus
from typing import Any, Dict, Optional

PREMIUM_REQUIRED_MESSAGE = "Spotify Premium is required for playback control."
NO_ACTIVE_DEVICE_MESSAGE = (
    "No active device found. Please start playing something on Spotify first."
)


class ErrorCode(str, Enum):
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    TOKEN_REFRESH_FAILED = "TOKEN_REFRESH_FAILED"
    NO_ACCESS_TOKEN = "NO_ACCESS_TOKEN"
    UPSTREAM_AUTH_EXPIRED = "UPSTREAM_AUTH_EXPIRED"
    PREMIUM_REQUIRED = "PREMIUM_REQUIRED"
    NO_ACTIVE_DEVICE = "NO_ACTIVE_DEVICE"
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"
    SPOTIFY_ERROR = "SPOTIFY_ERROR"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_AUTOMATION_KEY = "INVALID_AUTOMATION_KEY"
    NO_ECHO_DEVICE = "NO_ECHO_DEVICE"
    MULTIPLE_ECHO_DEVICES = "MULTIPLE_ECHO_DEVICES"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class GatewayError(Exception):
    """Raised by services and dependencies; rendered as a JSON error body."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = HTTPStatus.BAD_REQUEST,
        *,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = int(status_code)
        self.extra = extra or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "ok": False,
            "error": {"code": self.code.value, "message": self.message},
        }
        payload.update(self.extra)
        return payload


class NoAccessTokenError(Exception):
    """Raised when no access token could be obtained before an API call."""


class CredentialStoreError(Exception):
    """Raised when the credential record cannot be written."""


__all__ = [
    "CredentialStoreError",
    "ErrorCode",
    "GatewayError",
    "NO_ACTIVE_DEVICE_MESSAGE",
    "NoAccessTokenError",
    "PREMIUM_REQUIRED_MESSAGE",
]
