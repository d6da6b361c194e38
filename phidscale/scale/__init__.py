"""Scale core: channel lifecycle, calibration and median filtering."""

from .channels import NUMBER_OF_INPUTS, ChannelFactory, ChannelFault, ChannelHandle, ChannelSet
from .errors import (
    DeviceFaultError,
    InvalidCoefficientsError,
    InvalidIdentifierError,
    ScaleError,
    ScaleIOError,
)
from .filters import dot_product, median
from .metrics import ScaleMetrics
from .scale import DEFAULT_TIMEOUT_S, Calibration, ConnectedScale, DisconnectedScale, wait_until_elapsed

__all__ = [
    "DEFAULT_TIMEOUT_S",
    "NUMBER_OF_INPUTS",
    "Calibration",
    "ChannelFactory",
    "ChannelFault",
    "ChannelHandle",
    "ChannelSet",
    "ConnectedScale",
    "DeviceFaultError",
    "DisconnectedScale",
    "InvalidCoefficientsError",
    "InvalidIdentifierError",
    "ScaleError",
    "ScaleIOError",
    "ScaleMetrics",
    "dot_product",
    "median",
    "wait_until_elapsed",
]
