"""Scale connection lifecycle, calibrated weights and paced median sampling."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
import logging
import math
import time
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

from .channels import (
    NUMBER_OF_INPUTS,
    ChannelFactory,
    ChannelFault,
    ChannelHandle,
    ChannelSet,
    close_handles,
)
from .errors import (
    DeviceFaultError,
    InvalidCoefficientsError,
    InvalidIdentifierError,
    ScaleIOError,
)
from .filters import dot_product, median
from .metrics import ScaleMetrics

logger = logging.getLogger(__name__)

# Same default as PHIDGET_TIMEOUT_DEFAULT in libphidget22.
DEFAULT_TIMEOUT_S = 1.0

Clock = Callable[[], float]
Sleeper = Callable[[float], None]
T = TypeVar("T")


def _default_channel_factory() -> ChannelFactory:
    from .phidget_reader import open_phidget_channel

    return open_phidget_channel


@dataclass(frozen=True)
class Calibration:
    """Offset and per-channel coefficients mapping raw ratios to a weight."""

    offset: float = 0.0
    coefficients: Tuple[float, ...] = (0.0,) * NUMBER_OF_INPUTS

    def __post_init__(self) -> None:
        if isinstance(self.coefficients, (str, bytes)):
            raise InvalidCoefficientsError("coefficients debe ser una secuencia de números")
        try:
            offset = float(self.offset)
            coefficients = tuple(float(value) for value in self.coefficients)
        except (TypeError, ValueError) as exc:
            raise InvalidCoefficientsError("La calibración debe ser numérica") from exc
        if len(coefficients) != NUMBER_OF_INPUTS:
            raise InvalidCoefficientsError(
                f"Se requieren {NUMBER_OF_INPUTS} coeficientes; se recibieron {len(coefficients)}"
            )
        if not all(math.isfinite(value) for value in (offset, *coefficients)):
            raise InvalidCoefficientsError("offset y coeficientes deben ser finitos")
        object.__setattr__(self, "offset", offset)
        object.__setattr__(self, "coefficients", coefficients)

    def with_offset(self, offset: float) -> "Calibration":
        return replace(self, offset=offset)

    def with_coefficients(self, coefficients: Sequence[float]) -> "Calibration":
        return replace(self, coefficients=coefficients)

    def apply(self, readings: Sequence[float]) -> float:
        return dot_product(readings, self.coefficients) - self.offset


def wait_until_elapsed(
    last_s: float,
    interval_s: float,
    *,
    clock: Clock = time.monotonic,
    sleep: Sleeper = time.sleep,
) -> None:
    """Block until ``interval_s`` seconds have passed since ``last_s``."""

    while True:
        remaining = last_s + interval_s - clock()
        if remaining <= 0:
            return
        sleep(remaining)


def _validate_samples(samples: int) -> int:
    if isinstance(samples, bool) or not isinstance(samples, int):
        raise TypeError(f"samples debe ser entero, no {type(samples).__name__}")
    if samples < 1:
        raise ValueError("samples debe ser >= 1")
    return samples


def _open_channels(
    factory: ChannelFactory,
    timeout_s: float,
    phidget_id: Optional[int] = None,
) -> ChannelSet:
    """Open every input in index order; either all of them open or none stay open."""

    opened: List[ChannelHandle] = []
    intervals: List[float] = []
    try:
        for index in range(NUMBER_OF_INPUTS):
            handle = factory()
            if phidget_id is not None:
                try:
                    handle.set_device_serial_number(phidget_id)
                except ChannelFault as exc:
                    raise InvalidIdentifierError(phidget_id, exc.description) from exc
            try:
                handle.set_channel(index)
                handle.open_wait_for_attachment(timeout_s)
                opened.append(handle)
                interval = handle.min_data_interval()
                handle.set_data_interval(interval)
            except ChannelFault as exc:
                logger.warning("Canal %d no pudo abrirse: %s", index, exc)
                raise DeviceFaultError(index, exc.code, exc.description) from exc
            logger.debug("Canal %d abierto con intervalo %.3f s", index, interval)
            intervals.append(interval)
    except BaseException:
        close_handles(opened)
        raise
    return ChannelSet(opened, intervals)


class DisconnectedScale:
    """A scale known only by its device serial number."""

    def __init__(
        self,
        phidget_id: int,
        *,
        channel_factory: Optional[ChannelFactory] = None,
        metrics: Optional[ScaleMetrics] = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> None:
        self._phidget_id = int(phidget_id)
        self._channel_factory = channel_factory
        self._metrics = metrics
        self._clock = clock
        self._sleep = sleep

    @property
    def phidget_id(self) -> int:
        return self._phidget_id

    def connect(
        self,
        offset: float,
        coefficients: Sequence[float],
        timeout: float = DEFAULT_TIMEOUT_S,
    ) -> "ConnectedScale":
        """Open all four channels bound to this device and attach the calibration."""

        calibration = Calibration(offset=offset, coefficients=coefficients)
        factory = self._channel_factory or _default_channel_factory()
        channels = _open_channels(factory, timeout, self._phidget_id)
        logger.info(
            "Balanza %d conectada (%d canales, intervalo %.3f s)",
            self._phidget_id,
            len(channels),
            channels.data_interval_s,
        )
        return ConnectedScale(
            phidget_id=self._phidget_id,
            calibration=calibration,
            channels=channels,
            metrics=self._metrics,
            clock=self._clock,
            sleep=self._sleep,
        )

    def __repr__(self) -> str:
        return f"DisconnectedScale(phidget_id={self._phidget_id})"


@dataclass(frozen=True)
class ConnectedScale:
    """Four open channels plus an immutable calibration.

    Calibration updates return a new value that shares the same open channels,
    so a reader never observes a half-updated offset/coefficient pair. Closing
    any value derived from the same connection releases the shared channels.
    """

    phidget_id: int
    calibration: Calibration
    channels: ChannelSet = field(repr=False)
    metrics: Optional[ScaleMetrics] = field(default=None, repr=False, compare=False)
    clock: Clock = field(default=time.monotonic, repr=False, compare=False)
    sleep: Sleeper = field(default=time.sleep, repr=False, compare=False)

    @classmethod
    def without_id(
        cls,
        timeout: float = DEFAULT_TIMEOUT_S,
        *,
        channel_factory: Optional[ChannelFactory] = None,
        metrics: Optional[ScaleMetrics] = None,
        clock: Clock = time.monotonic,
        sleep: Sleeper = time.sleep,
    ) -> "ConnectedScale":
        """Open the first available device and adopt the serial reported by channel 0."""

        factory = channel_factory or _default_channel_factory()
        channels = _open_channels(factory, timeout)
        try:
            phidget_id = channels[0].device_serial_number()
        except ChannelFault as exc:
            channels.close()
            raise DeviceFaultError(0, exc.code, exc.description) from exc
        except BaseException:
            channels.close()
            raise
        logger.info("Balanza descubierta con Phidget ID %d", phidget_id)
        return cls(
            phidget_id=int(phidget_id),
            calibration=Calibration(),
            channels=channels,
            metrics=metrics,
            clock=clock,
            sleep=sleep,
        )

    # Accessors ---------------------------------------------------------------
    def get_phidget_id(self) -> int:
        return self.phidget_id

    @property
    def offset(self) -> float:
        return self.calibration.offset

    @property
    def coefficients(self) -> Tuple[float, ...]:
        return self.calibration.coefficients

    @property
    def channel_count(self) -> int:
        return len(self.channels)

    @property
    def data_interval(self) -> float:
        return self.channels.data_interval_s

    @property
    def closed(self) -> bool:
        return self.channels.closed

    # Calibration updates -----------------------------------------------------
    def update_coefficients(self, coefficients: Sequence[float]) -> "ConnectedScale":
        return replace(self, calibration=self.calibration.with_coefficients(coefficients))

    def update_offset(self, offset: float) -> "ConnectedScale":
        return replace(self, calibration=self.calibration.with_offset(offset))

    def update_calibration(self, calibration: Calibration) -> "ConnectedScale":
        return replace(self, calibration=calibration)

    # Readings ----------------------------------------------------------------
    def get_raw_readings(self) -> List[float]:
        """Read every channel in index order; the first fault aborts the read."""

        if self.channels.closed:
            raise ScaleIOError(f"Los canales de la balanza {self.phidget_id} están cerrados")
        readings = [self._read_channel(index, handle) for index, handle in enumerate(self.channels)]
        if self.metrics is not None:
            self.metrics.record_raw_read(len(readings))
        return readings

    def get_weight(self) -> float:
        calibration = self.calibration
        weight = calibration.apply(self.get_raw_readings())
        if self.metrics is not None:
            self.metrics.record_weight()
        return weight

    def get_median_weight(self, samples: int, min_interval: Optional[float] = None) -> float:
        """Lower median of ``samples`` weights, each at least ``min_interval`` apart.

        Spacing is measured between the start times of accepted reads, so the
        read itself counts toward the interval and no fixed phase is kept.

        ``min_interval=None`` paces at the channels' configured data interval.
        Any failure while collecting aborts the whole call.
        """

        _validate_samples(samples)
        if self.metrics is not None:
            self.metrics.record_median_request()
        weights = self._collect(samples, min_interval, self.get_weight)
        result = median(weights)
        logger.debug("Mediana de %d pesos: %.6f", samples, result)
        return result

    def get_raw_medians(self, samples: int, min_interval: Optional[float] = None) -> List[float]:
        """Per-channel lower medians of raw ratios, before calibration."""

        _validate_samples(samples)
        if self.metrics is not None:
            self.metrics.record_median_request()
        rows = self._collect(samples, min_interval, self.get_raw_readings)
        return [median(column) for column in zip(*rows)]

    # Lifecycle ---------------------------------------------------------------
    def close(self) -> None:
        if self.channels.closed:
            return
        self.channels.close()
        logger.info("Canales de la balanza %d liberados", self.phidget_id)

    def __enter__(self) -> "ConnectedScale":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # Internal helpers --------------------------------------------------------
    def _read_channel(self, index: int, handle: ChannelHandle) -> float:
        try:
            return handle.voltage_ratio()
        except ChannelFault as exc:
            if self.metrics is not None:
                self.metrics.record_device_fault(index)
            logger.warning("Fallo de lectura en canal %d: %s", index, exc)
            raise DeviceFaultError(index, exc.code, exc.description) from exc
        except OSError as exc:
            raise ScaleIOError(f"Error de transporte leyendo la balanza {self.phidget_id}") from exc

    def _collect(self, samples: int, min_interval: Optional[float], read: Callable[[], T]) -> List[T]:
        interval = self.data_interval if min_interval is None else float(min_interval)
        if interval < 0:
            raise ValueError("min_interval debe ser >= 0")
        values: List[T] = []
        last_accepted: Optional[float] = None
        while len(values) < samples:
            if last_accepted is not None and interval > 0:
                wait_until_elapsed(last_accepted, interval, clock=self.clock, sleep=self.sleep)
            started = self.clock()
            values.append(read())
            last_accepted = started
        return values
