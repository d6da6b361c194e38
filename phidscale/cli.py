"""Command line entry point: connect the scale and print weights as JSON."""

from __future__ import annotations

import argparse
from dataclasses import replace
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from phidscale.config import ScaleConfig, load_scale_config, scale_config_from_env
from phidscale.scale import (
    ChannelFactory,
    ConnectedScale,
    DisconnectedScale,
    ScaleError,
    ScaleMetrics,
)
from phidscale.scale.commands import CommandHandler, parse_command

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_SCALE_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phidscale", description=__doc__)
    parser.add_argument("--config", type=Path, help="Ruta a scale.yaml")
    parser.add_argument("--phidget-id", type=int, help="Número de serie del Phidget")
    parser.add_argument("--timeout", type=float, help="Tiempo máximo de conexión por canal (s)")
    parser.add_argument("--log-level", default="INFO", help="Nivel de logging")

    sub = parser.add_subparsers(dest="action", required=True)
    sub.add_parser("weight", help="Peso calibrado instantáneo")
    median = sub.add_parser("median", help="Mediana de varios pesos")
    median.add_argument("--samples", type=int)
    median.add_argument("--min-interval", type=float)
    sub.add_parser("raw", help="Lecturas crudas por canal")
    raw_medians = sub.add_parser("raw-medians", help="Mediana cruda por canal")
    raw_medians.add_argument("--samples", type=int)
    raw_medians.add_argument("--min-interval", type=float)
    command = sub.add_parser("command", help="Ejecuta un comando serializado en JSON")
    command.add_argument("payload")
    return parser


def resolve_config(args: argparse.Namespace, env=os.environ) -> ScaleConfig:
    config = load_scale_config(args.config)
    config = scale_config_from_env(env, config)
    if args.phidget_id is not None:
        config = replace(config, phidget_id=args.phidget_id)
    if args.timeout is not None:
        if args.timeout <= 0:
            raise ValueError("timeout_s debe ser > 0")
        config = replace(config, timeout_s=args.timeout)
    return config


def connect_scale(
    config: ScaleConfig,
    *,
    channel_factory: Optional[ChannelFactory] = None,
    metrics: Optional[ScaleMetrics] = None,
) -> ConnectedScale:
    """Connect by serial number when known, otherwise adopt the first device found."""

    # Validated before any channel is opened.
    calibration = config.calibration.to_calibration()
    if config.phidget_id is None:
        scale = ConnectedScale.without_id(
            config.timeout_s, channel_factory=channel_factory, metrics=metrics
        )
        return scale.update_calibration(calibration)
    disconnected = DisconnectedScale(
        config.phidget_id, channel_factory=channel_factory, metrics=metrics
    )
    return disconnected.connect(calibration.offset, calibration.coefficients, config.timeout_s)


def _run_action(args: argparse.Namespace, scale: ConnectedScale, config: ScaleConfig, command=None) -> Dict[str, Any]:
    result: Dict[str, Any] = {"phidget_id": scale.get_phidget_id()}
    if args.action == "weight":
        result["weight"] = scale.get_weight()
    elif args.action == "median":
        samples = args.samples if args.samples is not None else config.sampling.median_samples
        interval = args.min_interval if args.min_interval is not None else config.sampling.min_interval_s
        result["samples"] = samples
        result["weight"] = scale.get_median_weight(samples, interval)
    elif args.action == "raw":
        result["readings"] = scale.get_raw_readings()
    elif args.action == "raw-medians":
        samples = args.samples if args.samples is not None else config.sampling.median_samples
        interval = args.min_interval if args.min_interval is not None else config.sampling.min_interval_s
        result["samples"] = samples
        result["medians"] = scale.get_raw_medians(samples, interval)
    elif args.action == "command":
        response = CommandHandler(scale).handle(command)
        result.update(response.model_dump())
    return result


def main(argv: Optional[Sequence[str]] = None, *, channel_factory: Optional[ChannelFactory] = None) -> int:
    args = build_parser().parse_args(argv)
    if not logging.getLogger().hasHandlers():
        logging.basicConfig(
            level=getattr(logging, str(args.log_level).upper(), logging.INFO),
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    try:
        config = resolve_config(args)
        config.calibration.to_calibration()
        command = parse_command(args.payload) if args.action == "command" else None
        if args.action in {"median", "raw-medians"} and args.samples is not None and args.samples < 1:
            raise ValueError("--samples debe ser >= 1")
    except (OSError, ValueError) as exc:
        logger.error("Configuración inválida: %s", exc)
        return EXIT_CONFIG_ERROR

    metrics = ScaleMetrics(config.metrics_log_interval_s)
    try:
        with connect_scale(config, channel_factory=channel_factory, metrics=metrics) as scale:
            result = _run_action(args, scale, config, command)
    except ScaleError as exc:
        logger.error("Error de balanza: %s", exc)
        return EXIT_SCALE_ERROR
    except KeyboardInterrupt:
        logger.info("Lectura interrumpida por el usuario.")
        return EXIT_SCALE_ERROR
    finally:
        metrics.maybe_log(force=True)

    print(json.dumps(result))
    if result.get("ok") is False:
        return EXIT_SCALE_ERROR
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
