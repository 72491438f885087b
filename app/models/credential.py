"""
Domain models for Spotify credential persistence.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

DEFAULT_EXPIRES_IN = 3600
REFRESH_MARGIN_SECONDS = 60


class Credential(BaseModel):
    """The access/refresh token pair for the connected account."""

    access_token: str = Field(..., min_length=1)
    refresh_token: str = Field(..., min_length=1)
    expires_at: int = Field(..., gt=0, description="Unix timestamp in seconds.")

    def needs_refresh(self, now: float) -> bool:
        """True once fewer than sixty seconds of validity remain."""
        return self.expires_at <= now + REFRESH_MARGIN_SECONDS


class TokenGrant(BaseModel):
    """Token endpoint response for either grant type."""

    access_token: str = Field(..., min_length=1)
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None

    def to_credential(
        self, *, now: float, fallback_refresh_token: Optional[str] = None
    ) -> Credential:
        refresh_token = self.refresh_token or fallback_refresh_token
        if not refresh_token:
            raise ValueError("Token grant did not include a refresh token.")
        return Credential(
            access_token=self.access_token,
            refresh_token=refresh_token,
            expires_at=int(now) + (self.expires_in or DEFAULT_EXPIRES_IN),
        )


__all__ = ["Credential", "DEFAULT_EXPIRES_IN", "REFRESH_MARGIN_SECONDS", "TokenGrant"]
