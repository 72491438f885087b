"""
Playback control on top of the authenticated Spotify client.

Translates upstream responses into ``GatewayError`` codes so routes only deal
with the happy path.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Awaitable, Callable, List, Optional

import httpx

from app.clients.spotify_api import SpotifyApiClient
from app.core.errors import (
    NO_ACTIVE_DEVICE_MESSAGE,
    PREMIUM_REQUIRED_MESSAGE,
    ErrorCode,
    GatewayError,
)
from app.schemas.playback import Device, DevicesResponse
from app.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

ECHO_NAME_MARKERS = ("echo", "dot")


def spotify_error_message(response: httpx.Response) -> str:
    """Best human-readable message for a failed Spotify response."""
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        error = payload["error"]
        if error.get("message"):
            return str(error["message"])
        if error.get("status") == HTTPStatus.FORBIDDEN:
            return PREMIUM_REQUIRED_MESSAGE
    return f"Spotify API error: {response.status_code} {response.reason_phrase}".rstrip()


def error_from_response(
    response: httpx.Response, *, retry_config: Optional[RetryConfig] = None
) -> GatewayError:
    """Map a non-success upstream response onto the error taxonomy.

    ``retry_config`` is given for calls that went through the retry wrapper,
    so their transient statuses are reported as such.
    """
    status_code = response.status_code
    if status_code == HTTPStatus.FORBIDDEN:
        return GatewayError(
            ErrorCode.PREMIUM_REQUIRED, PREMIUM_REQUIRED_MESSAGE, HTTPStatus.FORBIDDEN
        )
    if status_code == HTTPStatus.UNAUTHORIZED:
        return GatewayError(
            ErrorCode.UPSTREAM_AUTH_EXPIRED,
            "Spotify rejected the access token. Please visit /login to reconnect.",
            HTTPStatus.UNAUTHORIZED,
        )
    if retry_config is not None and retry_config.should_retry(response):
        if status_code == HTTPStatus.NOT_FOUND:
            return GatewayError(
                ErrorCode.NO_ACTIVE_DEVICE, NO_ACTIVE_DEVICE_MESSAGE, HTTPStatus.NOT_FOUND
            )
        return GatewayError(
            ErrorCode.UPSTREAM_UNAVAILABLE, spotify_error_message(response), status_code
        )
    return GatewayError(ErrorCode.SPOTIFY_ERROR, spotify_error_message(response), status_code)


def find_echo_devices(devices: List[Device]) -> List[Device]:
    return [
        device
        for device in devices
        if any(marker in device.name.lower() for marker in ECHO_NAME_MARKERS)
    ]


class PlaybackService:
    """List devices and move playback between them."""

    def __init__(
        self,
        api_client: SpotifyApiClient,
        *,
        retry_config: Optional[RetryConfig] = None,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        self._api = api_client
        self._retry_config = retry_config or RetryConfig()
        self._sleep = sleep

    async def list_devices(self) -> List[Device]:
        try:
            response = await self._api.call("/me/player/devices", method="GET")
        except httpx.HTTPError as exc:
            logger.error("Error fetching devices: %s", exc)
            raise GatewayError(
                ErrorCode.INTERNAL_ERROR,
                "Failed to fetch devices",
                HTTPStatus.INTERNAL_SERVER_ERROR,
            ) from exc

        if not response.is_success:
            raise error_from_response(response)

        payload = response.json() if response.content else {}
        return DevicesResponse.model_validate(payload or {}).devices

    async def transfer(self, device_id: str, *, play: bool = True) -> None:
        """Transfer playback, retrying transient upstream failures."""

        async def make_request() -> httpx.Response:
            return await self._api.call(
                "/me/player",
                method="PUT",
                json={"device_ids": [device_id], "play": play},
            )

        retry_kwargs = {"retry_config": self._retry_config}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep

        try:
            response = await request_with_retry(make_request, **retry_kwargs)
        except httpx.HTTPError as exc:
            logger.error("Error transferring playback: %s", exc)
            raise GatewayError(
                ErrorCode.INTERNAL_ERROR,
                "Failed to transfer playback",
                HTTPStatus.INTERNAL_SERVER_ERROR,
            ) from exc

        if not response.is_success:
            raise error_from_response(response, retry_config=self._retry_config)

        logger.info("Transferred playback to device %s (play=%s)", device_id, play)

    async def transfer_to_echo(self) -> Device:
        """Find the single Echo device and move playback to it."""
        echo_devices = find_echo_devices(await self.list_devices())

        if not echo_devices:
            raise GatewayError(
                ErrorCode.NO_ECHO_DEVICE,
                "Wake your Echo, open Spotify, start playback once.",
                HTTPStatus.NOT_FOUND,
            )
        if len(echo_devices) > 1:
            raise GatewayError(
                ErrorCode.MULTIPLE_ECHO_DEVICES,
                "Multiple Echo devices found. Please specify which device to use.",
                HTTPStatus.CONFLICT,
                extra={
                    "devices": [
                        {"id": device.id, "name": device.name} for device in echo_devices
                    ]
                },
            )

        target = echo_devices[0]
        if not target.id:
            raise GatewayError(
                ErrorCode.NO_ECHO_DEVICE,
                f"{target.name} is restricted and cannot be controlled via the Web API.",
                HTTPStatus.NOT_FOUND,
            )
        await self.transfer(target.id, play=True)
        return target


__all__ = [
    "PlaybackService",
    "error_from_response",
    "find_echo_devices",
    "spotify_error_message",
]
