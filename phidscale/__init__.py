"""Four-channel Phidget load-cell scale with calibrated, median-filtered weights."""

__all__ = ["cli", "config", "scale"]
