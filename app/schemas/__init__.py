"""Public schema exports."""

from .playback import (
    Device,
    DeviceSummary,
    DevicesResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "Device",
    "DeviceSummary",
    "DevicesResponse",
    "TransferRequest",
    "TransferResponse",
]
