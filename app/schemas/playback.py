"""Schemas for device listing and playback transfer."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Device(BaseModel):
    """Spotify Connect device as reported by ``/me/player/devices``."""

    model_config = ConfigDict(extra="ignore")

    id: Optional[str] = None
    name: str = ""
    type: str = ""
    is_active: bool = False
    is_private_session: bool = False
    is_restricted: bool = False
    volume_percent: Optional[int] = None


class DeviceSummary(BaseModel):
    id: Optional[str]
    name: str


class DevicesResponse(BaseModel):
    devices: List[Device] = Field(default_factory=list)

    @field_validator("devices", mode="before")
    @classmethod
    def _null_devices_as_empty(cls, value: object) -> object:
        return [] if value is None else value


class TransferRequest(BaseModel):
    """Body accepted by ``POST /api/transfer``."""

    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(..., alias="deviceId", min_length=1, strict=True)
    play: bool = True


class TransferResponse(BaseModel):
    success: bool = True
    message: str
    device: Optional[DeviceSummary] = None


__all__ = [
    "Device",
    "DeviceSummary",
    "DevicesResponse",
    "TransferRequest",
    "TransferResponse",
]
