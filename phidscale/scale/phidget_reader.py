"""Helpers to interface with Phidget VoltageRatioInput channels."""

from __future__ import annotations

from typing import Callable, TypeVar

from Phidget22.Devices.VoltageRatioInput import VoltageRatioInput
from Phidget22.PhidgetException import PhidgetException

from .channels import ChannelFault


T = TypeVar("T")


def _seconds_to_ms(value: float) -> int:
    return max(0, int(round(float(value) * 1000.0)))


def _call(operation: Callable[..., T], *args) -> T:
    try:
        return operation(*args)
    except PhidgetException as exc:
        raise ChannelFault(code=exc.code, description=exc.description) from exc


class PhidgetChannel:
    """ChannelHandle backed by a Phidget22 ``VoltageRatioInput``."""

    def __init__(self, device: VoltageRatioInput | None = None) -> None:
        self._device = device if device is not None else VoltageRatioInput()

    def set_device_serial_number(self, serial_number: int) -> None:
        _call(self._device.setDeviceSerialNumber, int(serial_number))

    def set_channel(self, channel_index: int) -> None:
        _call(self._device.setChannel, int(channel_index))

    def open_wait_for_attachment(self, timeout_s: float) -> None:
        _call(self._device.openWaitForAttachment, _seconds_to_ms(timeout_s))

    def min_data_interval(self) -> float:
        # La librería reporta milisegundos.
        return _call(self._device.getMinDataInterval) / 1000.0

    def set_data_interval(self, interval_s: float) -> None:
        _call(self._device.setDataInterval, _seconds_to_ms(interval_s))

    def voltage_ratio(self) -> float:
        return float(_call(self._device.getVoltageRatio))

    def device_serial_number(self) -> int:
        return int(_call(self._device.getDeviceSerialNumber))

    def close(self) -> None:
        _call(self._device.close)

    def __repr__(self) -> str:
        return f"PhidgetChannel({self._device!r})"


def open_phidget_channel() -> PhidgetChannel:
    """Default channel factory used when no backend is injected."""

    return PhidgetChannel()
