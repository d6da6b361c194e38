"""Channel driver boundary and the fixed-size set of open channels."""

from __future__ import annotations

import logging
from typing import Callable, Iterator, Optional, Protocol, Sequence, Tuple, runtime_checkable

logger = logging.getLogger(__name__)

NUMBER_OF_INPUTS = 4


class ChannelFault(Exception):
    """Fault reported by a channel driver for a single operation."""

    def __init__(self, code: Optional[int] = None, description: str = "") -> None:
        self.code = code
        self.description = description
        super().__init__(description or f"channel fault (code {code})")


@runtime_checkable
class ChannelHandle(Protocol):
    """Minimal contract every voltage-ratio channel backend must honour.

    Every method raises :class:`ChannelFault` when the hardware rejects the
    operation. Durations are expressed in seconds.
    """

    def set_device_serial_number(self, serial_number: int) -> None:
        """Bind the handle to a physical device."""

    def set_channel(self, channel_index: int) -> None:
        """Bind the handle to one input of the device."""

    def open_wait_for_attachment(self, timeout_s: float) -> None:
        """Open the channel and block until attached or the timeout expires."""

    def min_data_interval(self) -> float:
        """Fastest sampling interval supported by the hardware."""

    def set_data_interval(self, interval_s: float) -> None:
        """Program the sampling interval."""

    def voltage_ratio(self) -> float:
        """Return the latest raw ratio."""

    def device_serial_number(self) -> int:
        """Serial number of the attached device."""

    def close(self) -> None:
        """Release the channel."""


ChannelFactory = Callable[[], ChannelHandle]


class ChannelSet:
    """Exactly ``NUMBER_OF_INPUTS`` open channels, indexed 0..N-1."""

    def __init__(self, handles: Sequence[ChannelHandle], intervals_s: Sequence[float]) -> None:
        if len(handles) != NUMBER_OF_INPUTS:
            raise ValueError(
                f"Se requieren {NUMBER_OF_INPUTS} canales abiertos; se recibieron {len(handles)}"
            )
        if len(intervals_s) != len(handles):
            raise ValueError("Cada canal debe declarar su intervalo de muestreo")
        self._handles: Tuple[ChannelHandle, ...] = tuple(handles)
        self._intervals_s: Tuple[float, ...] = tuple(float(value) for value in intervals_s)
        self._closed = False

    def __len__(self) -> int:
        return len(self._handles)

    def __iter__(self) -> Iterator[ChannelHandle]:
        return iter(self._handles)

    def __getitem__(self, index: int) -> ChannelHandle:
        return self._handles[index]

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def intervals_s(self) -> Tuple[float, ...]:
        return self._intervals_s

    @property
    def data_interval_s(self) -> float:
        """Slowest configured interval; the rate at which every channel has fresh data."""

        return max(self._intervals_s)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close_handles(self._handles)


def close_handles(handles: Sequence[ChannelHandle]) -> None:
    """Close every handle, logging failures instead of aborting the release."""

    for index, handle in enumerate(handles):
        try:
            handle.close()
        except Exception:  # pragma: no cover - mantenimiento
            logger.exception("Error al cerrar canal %d", index)
