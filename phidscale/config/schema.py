"""Typed configuration models implemented with dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Any, Dict, List, Mapping, Optional

from phidscale.scale import DEFAULT_TIMEOUT_S, NUMBER_OF_INPUTS, Calibration


def _as_int(value: Any, field_name: str) -> int:
    if value is None:
        raise ValueError(f"'{field_name}' es obligatorio")
    if isinstance(value, bool):
        raise ValueError(f"'{field_name}' debe ser un entero válido")
    try:
        result = int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' debe ser un entero válido") from exc
    return result


def _as_optional_int(value: Any, field_name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    return _as_int(value, field_name)


def _as_float(value: Any, field_name: str) -> float:
    if value is None:
        raise ValueError(f"'{field_name}' es obligatorio")
    try:
        result = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"'{field_name}' debe ser numérico") from exc
    return result


def _as_optional_float(value: Any, field_name: str) -> Optional[float]:
    if value is None or value == "":
        return None
    result = _as_float(value, field_name)
    return result


def _as_float_list(value: Any, field_name: str) -> List[float]:
    if isinstance(value, str):
        value = [item for item in value.split(",") if item.strip()]
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"'{field_name}' debe ser una lista")
    return [_as_float(item, f"{field_name}[{i}]") for i, item in enumerate(value)]


@dataclass
class CalibrationSettings:
    offset: float = 0.0
    coefficients: List[float] = field(default_factory=lambda: [0.0] * NUMBER_OF_INPUTS)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "CalibrationSettings":
        if not data:
            return cls()
        offset = _as_float(data.get("offset", 0.0), "calibration.offset")
        raw_coefficients = data.get("coefficients")
        if raw_coefficients is None:
            coefficients = [0.0] * NUMBER_OF_INPUTS
        else:
            coefficients = _as_float_list(raw_coefficients, "calibration.coefficients")
        if len(coefficients) != NUMBER_OF_INPUTS:
            raise ValueError(
                f"calibration.coefficients debe tener {NUMBER_OF_INPUTS} valores; tiene {len(coefficients)}"
            )
        if not math.isfinite(offset):
            raise ValueError("calibration.offset debe ser finito")
        for i, value in enumerate(coefficients):
            if not math.isfinite(value):
                raise ValueError(f"calibration.coefficients[{i}] debe ser finito")
        return cls(offset=offset, coefficients=coefficients)

    def to_calibration(self) -> Calibration:
        return Calibration(offset=self.offset, coefficients=tuple(self.coefficients))

    def to_dict(self) -> Dict[str, Any]:
        return {"offset": self.offset, "coefficients": list(self.coefficients)}


@dataclass
class SamplingSettings:
    median_samples: int = 5
    min_interval_s: Optional[float] = None  # None: intervalo configurado en los canales

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "SamplingSettings":
        if not data:
            return cls()
        samples = _as_int(data.get("median_samples", 5), "sampling.median_samples")
        if samples < 1:
            raise ValueError("sampling.median_samples debe ser >= 1")
        interval = _as_optional_float(data.get("min_interval_s"), "sampling.min_interval_s")
        if interval is not None and interval < 0:
            raise ValueError("sampling.min_interval_s debe ser >= 0")
        return cls(median_samples=samples, min_interval_s=interval)

    def to_dict(self) -> Dict[str, Any]:
        return {"median_samples": self.median_samples, "min_interval_s": self.min_interval_s}


@dataclass
class ScaleConfig:
    phidget_id: Optional[int] = None
    timeout_s: float = DEFAULT_TIMEOUT_S
    calibration: CalibrationSettings = field(default_factory=CalibrationSettings)
    sampling: SamplingSettings = field(default_factory=SamplingSettings)
    metrics_log_interval_s: float = 30.0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any] | None) -> "ScaleConfig":
        if not data:
            return cls()
        phidget_id = _as_optional_int(data.get("phidget_id", data.get("serial_number")), "phidget_id")
        if phidget_id is not None and phidget_id <= 0:
            raise ValueError("phidget_id debe ser > 0")
        timeout = _as_float(data.get("timeout_s", DEFAULT_TIMEOUT_S), "timeout_s")
        if timeout <= 0:
            raise ValueError("timeout_s debe ser > 0")
        calibration = CalibrationSettings.from_mapping(data.get("calibration"))
        sampling = SamplingSettings.from_mapping(data.get("sampling"))
        metrics_interval = _as_float(
            data.get("metrics_log_interval_s", 30.0), "metrics_log_interval_s"
        )
        if metrics_interval < 0:
            raise ValueError("metrics_log_interval_s debe ser >= 0")
        return cls(
            phidget_id=phidget_id,
            timeout_s=timeout,
            calibration=calibration,
            sampling=sampling,
            metrics_log_interval_s=metrics_interval,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "phidget_id": self.phidget_id,
            "timeout_s": self.timeout_s,
            "calibration": self.calibration.to_dict(),
            "sampling": self.sampling.to_dict(),
            "metrics_log_interval_s": self.metrics_log_interval_s,
        }
