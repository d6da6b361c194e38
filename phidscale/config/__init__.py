"""Configuration schema and loading helpers for the scale."""

from .schema import CalibrationSettings, SamplingSettings, ScaleConfig
from .store import CONFIG_DIR, load_scale_config, scale_config_from_env

__all__ = [
    "CONFIG_DIR",
    "CalibrationSettings",
    "SamplingSettings",
    "ScaleConfig",
    "load_scale_config",
    "scale_config_from_env",
]
