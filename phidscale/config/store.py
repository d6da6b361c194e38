"""Helpers to load and validate the scale configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .schema import ScaleConfig

CONFIG_DIR = Path(__file__).resolve().parent

ENV_KEYS = {
    "SCALE_PHIDGET_ID": ("phidget_id",),
    "SCALE_TIMEOUT_S": ("timeout_s",),
    "SCALE_OFFSET": ("calibration", "offset"),
    "SCALE_COEFFICIENTS": ("calibration", "coefficients"),
    "SCALE_MEDIAN_SAMPLES": ("sampling", "median_samples"),
    "SCALE_MIN_INTERVAL_S": ("sampling", "min_interval_s"),
    "SCALE_METRICS_LOG_INTERVAL_S": ("metrics_log_interval_s",),
}


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected a mapping at {path}, found {type(data).__name__}")
    return data


def load_scale_config(path: Optional[Path] = None) -> ScaleConfig:
    """Read and validate the scale configuration from scale.yaml."""

    cfg_path = path or CONFIG_DIR / "scale.yaml"
    return ScaleConfig.from_mapping(_read_yaml(cfg_path))


def scale_config_from_env(env: Mapping[str, Any], base: Optional[ScaleConfig] = None) -> ScaleConfig:
    """Overlay ``SCALE_*`` environment variables on top of ``base``."""

    payload = (base or ScaleConfig()).to_dict()
    for key, path in ENV_KEYS.items():
        value = env.get(key)
        if value is None or value == "":
            continue
        target = payload
        for part in path[:-1]:
            target = target.setdefault(part, {})
        target[path[-1]] = value
    return ScaleConfig.from_mapping(payload)
