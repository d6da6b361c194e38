"""Exception hierarchy raised by the scale core."""

from __future__ import annotations

from typing import Optional


class ScaleError(Exception):
    """Base class for every error raised by the scale core."""


class InvalidCoefficientsError(ScaleError, ValueError):
    """Calibration values supplied by the caller are malformed."""


class InvalidIdentifierError(ScaleError):
    """The device serial number could not be bound to a channel."""

    def __init__(self, phidget_id: Optional[int], description: str = "") -> None:
        self.phidget_id = phidget_id
        self.description = description
        message = f"Phidget ID inválido: {phidget_id!r}"
        if description:
            message += f" ({description})"
        super().__init__(message)


class DeviceFaultError(ScaleError):
    """A single channel reported a hardware or driver fault."""

    def __init__(self, channel_index: int, code: Optional[int] = None, description: str = "") -> None:
        self.channel_index = channel_index
        self.code = code
        self.description = description
        message = f"Fallo del dispositivo en canal {channel_index}"
        if code is not None:
            message += f" (código {code})"
        if description:
            message += f": {description}"
        super().__init__(message)


class ScaleIOError(ScaleError):
    """Transport failure that cannot be attributed to a single channel."""


__all__ = [
    "DeviceFaultError",
    "InvalidCoefficientsError",
    "InvalidIdentifierError",
    "ScaleError",
    "ScaleIOError",
]
