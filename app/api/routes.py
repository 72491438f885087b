"""
FastAPI routes for the Spotify shortcut gateway.
"""

from __future__ import annotations

import hmac
import html
import logging
from http import HTTPStatus
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import HTMLResponse, RedirectResponse
from pydantic import ValidationError

from app.clients.spotify_auth import (
    OAuthConfigurationError,
    OAuthTokenExchangeError,
    generate_state,
)
from app.core.errors import CredentialStoreError, ErrorCode, GatewayError
from app.dependencies import (
    get_app_settings,
    get_credential_manager,
    get_credential_store,
    get_playback_service,
    get_spotify_oauth_client,
    require_automation_key,
    require_spotify_session,
)
from app.schemas import DeviceSummary, TransferRequest, TransferResponse

router = APIRouter()
api_router = APIRouter(
    prefix="/api",
    dependencies=[Depends(require_automation_key), Depends(require_spotify_session)],
)
logger = logging.getLogger(__name__)

_PAGE_STYLE = """
    body {
      font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
      display: flex; align-items: center; justify-content: center;
      min-height: 100vh; margin: 0; background-color: #f5f5f5;
    }
    .container {
      background: white; padding: 40px; border-radius: 8px;
      box-shadow: 0 2px 8px rgba(0,0,0,0.1); text-align: center;
    }
    h1 { color: #1db954; }
"""


def _html_page(title: str, heading: str, paragraphs: list[str], *, retry_link: bool) -> str:
    body = "".join(f"<p>{html.escape(text)}</p>" for text in paragraphs)
    if retry_link:
        body += '<p><a href="/login">Try again</a></p>'
    return (
        f"<html><head><title>{html.escape(title)}</title>"
        f"<style>{_PAGE_STYLE}</style></head>"
        f'<body><div class="container"><h1>{html.escape(heading)}</h1>{body}</div></body>'
        "</html>"
    )


def _failure_page(message: str, status_code: int = HTTPStatus.BAD_REQUEST) -> HTMLResponse:
    return HTMLResponse(
        _html_page("Authorization Failed", "Authorization Failed", [message], retry_link=True),
        status_code=status_code,
    )


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"ok": True}


@router.get("/login")
async def start_spotify_login(
    oauth_client: Annotated[Any, Depends(get_spotify_oauth_client)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> Response:
    """Redirect to the Spotify consent screen and remember the state in a cookie."""
    state = generate_state()
    try:
        authorization_url = oauth_client.build_authorization_url(state=state)
    except OAuthConfigurationError as exc:
        logger.error("Cannot start Spotify login: %s", exc)
        return _failure_page(str(exc), HTTPStatus.INTERNAL_SERVER_ERROR)

    response = RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)
    response.set_cookie(
        settings.oauth.state_cookie_name,
        state,
        max_age=settings.oauth.state_ttl_seconds,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/callback")
async def handle_spotify_callback(
    request: Request,
    credential_manager: Annotated[Any, Depends(get_credential_manager)],
    credential_store: Annotated[Any, Depends(get_credential_store)],
    settings: Annotated[Any, Depends(get_app_settings)],
) -> HTMLResponse:
    """Complete the OAuth exchange and persist the first credential."""
    params = request.query_params
    error = params.get("error")
    code = params.get("code")
    state = params.get("state")

    if error:
        return _failure_page(f"Error: {error}")
    if not code or not state:
        return _failure_page("Missing authorization code or state parameter.")

    stored_state = request.cookies.get(settings.oauth.state_cookie_name)
    if not stored_state or not hmac.compare_digest(stored_state, state):
        return _failure_page("Invalid state parameter. Please try again.")

    redirect_uri = settings.spotify.redirect_uri
    try:
        if not redirect_uri:
            raise OAuthConfigurationError("Spotify redirect URI not configured")
        credential = await credential_manager.exchange_authorization_code(
            code, str(redirect_uri)
        )
        credential_store.put(credential)
    except (
        OAuthConfigurationError,
        OAuthTokenExchangeError,
        CredentialStoreError,
        ValueError,
        httpx.HTTPError,
    ) as exc:
        logger.error("Failed to complete Spotify login: %s", exc)
        return HTMLResponse(
            _html_page(
                "Error",
                "Error",
                [
                    "Failed to exchange authorization code for tokens.",
                    f"Error: {exc}",
                ],
                retry_link=True,
            ),
            status_code=HTTPStatus.INTERNAL_SERVER_ERROR,
        )

    logger.info("Spotify account connected")
    response = HTMLResponse(
        _html_page(
            "Success!",
            "Successfully Connected!",
            [
                "Your Spotify account has been connected successfully.",
                "You can now use the API endpoints to control playback.",
                "You can close this window.",
            ],
            retry_link=False,
        ),
        status_code=HTTPStatus.OK,
    )
    response.delete_cookie(
        settings.oauth.state_cookie_name,
        path="/",
        secure=True,
        httponly=True,
        samesite="lax",
    )
    return response


@api_router.get("/devices", status_code=HTTPStatus.OK)
async def list_devices(
    playback: Annotated[Any, Depends(get_playback_service)],
) -> dict:
    """Return available Spotify Connect devices."""
    devices = await playback.list_devices()
    return {"devices": [device.model_dump() for device in devices]}


@api_router.post(
    "/transfer", response_model=TransferResponse, response_model_exclude_none=True
)
async def transfer_playback(
    request: Request,
    playback: Annotated[Any, Depends(get_playback_service)],
) -> TransferResponse:
    """Transfer playback to the device named in the body."""
    try:
        body = await request.json()
    except ValueError:
        body = {}

    try:
        payload = TransferRequest.model_validate(body if isinstance(body, dict) else {})
    except ValidationError as exc:
        raise GatewayError(
            ErrorCode.INVALID_REQUEST, "deviceId is required", HTTPStatus.BAD_REQUEST
        ) from exc

    await playback.transfer(payload.device_id, play=payload.play)
    return TransferResponse(message="Playback transferred successfully")


@api_router.post(
    "/transfer/echo", response_model=TransferResponse, response_model_exclude_none=True
)
async def transfer_playback_to_echo(
    playback: Annotated[Any, Depends(get_playback_service)],
) -> TransferResponse:
    """Transfer playback to the only Echo device on the account."""
    device = await playback.transfer_to_echo()
    return TransferResponse(
        message=f"Playback transferred to {device.name}",
        device=DeviceSummary(id=device.id, name=device.name),
    )


__all__ = ["api_router", "router"]
