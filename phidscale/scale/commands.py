"""Serializable command set answered by a connected scale."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .errors import DeviceFaultError, ScaleError
from .scale import ConnectedScale

logger = logging.getLogger(__name__)


class GetWeight(BaseModel):
    """Request a single calibrated weight."""

    type: Literal["get_weight"] = "get_weight"


class GetMedianWeight(BaseModel):
    """Request the lower median of several paced weights."""

    type: Literal["get_median_weight"] = "get_median_weight"
    samples: int = Field(..., ge=1, description="Número de pesos a muestrear")
    min_interval_s: Optional[float] = Field(
        None,
        ge=0,
        description="Separación mínima entre muestras; None usa el intervalo del canal",
    )


class Shutdown(BaseModel):
    """Release the scale channels."""

    type: Literal["shutdown"] = "shutdown"


ScaleCommand = Annotated[Union[GetWeight, GetMedianWeight, Shutdown], Field(discriminator="type")]

_COMMAND_ADAPTER: TypeAdapter = TypeAdapter(ScaleCommand)


class CommandResponse(BaseModel):
    """Outcome of a command; errors are reported as values."""

    command: str
    ok: bool
    weight: Optional[float] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None
    channel_index: Optional[int] = None


def parse_command(payload: Union[str, bytes, Mapping[str, Any]]) -> ScaleCommand:
    """Decode a command from JSON text or an already parsed mapping."""

    if isinstance(payload, (str, bytes)):
        return _COMMAND_ADAPTER.validate_json(payload)
    return _COMMAND_ADAPTER.validate_python(dict(payload))


def dump_command(command: ScaleCommand) -> str:
    return command.model_dump_json()


class CommandHandler:
    """Answer scale commands against one connected scale."""

    def __init__(self, scale: ConnectedScale) -> None:
        self.scale = scale
        self.shutdown_requested = False

    def handle(self, command: ScaleCommand) -> CommandResponse:
        logger.info("Comando recibido: %s", command.type)
        try:
            if isinstance(command, GetWeight):
                return CommandResponse(command=command.type, ok=True, weight=self.scale.get_weight())
            if isinstance(command, GetMedianWeight):
                weight = self.scale.get_median_weight(command.samples, command.min_interval_s)
                return CommandResponse(command=command.type, ok=True, weight=weight)
            if isinstance(command, Shutdown):
                self.scale.close()
                self.shutdown_requested = True
                return CommandResponse(command=command.type, ok=True)
        except ScaleError as exc:
            logger.error("Comando %s falló: %s", command.type, exc)
            return CommandResponse(
                command=command.type,
                ok=False,
                error=str(exc),
                error_kind=type(exc).__name__,
                channel_index=exc.channel_index if isinstance(exc, DeviceFaultError) else None,
            )
        raise TypeError(f"Comando no soportado: {command!r}")
