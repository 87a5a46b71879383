from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.training import TrainingConfig, load_config
from ..core.constants import DEFAULT_TOUR_SPEED_OPTIONS, PACKAGE_VERSION
from ..envs.kinematic import KinematicVehicle
from ..logging.loguru_bootstrap import setup_logging
from ..runner.training import train
from ..tasks.base import EpisodeTask
from ..tasks.parameter_tuning import Maneuver, ParameterSpace, ParameterSpec, ParameterTuningTask
from ..tasks.waypoint_tour import WaypointTourTask
from ..telemetry.sinks import InMemoryTelemetrySink, LoggingTelemetrySink, MultiSink
from ..utils.exceptions import ConfigurationError, StateError

logger = logging.getLogger(__name__)

TASK_CHOICES = ("tour", "tour-time", "tour-speed", "altitude")

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2

# Tours that never arrive must still end; altitude trials end by duration.
DEFAULT_TOUR_RUN_TIMEOUT_S = 120.0


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        prog="episodic-tuner",
        description="Tune a simulated vehicle with episodic tabular Q-learning",
    )
    p.add_argument("--task", choices=TASK_CHOICES, default="tour", help="Tuning problem")
    p.add_argument(
        "--episodes", type=int, default=None, help="Stop after this many episodes"
    )
    p.add_argument("--seed", type=int, default=None, help="Exploration RNG seed")
    p.add_argument(
        "--config", type=str, default=None, help="JSON file with TrainingConfig fields"
    )
    p.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console and file log level",
    )
    p.add_argument("--log-file", type=str, default=None, help="Also log to this file")
    p.add_argument(
        "--plot", type=str, default=None, help="Save a learning-curve PNG to this path"
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {PACKAGE_VERSION}")
    return p.parse_args(argv)


def _build_config(args: argparse.Namespace) -> TrainingConfig:
    config = load_config(args.config) if args.config else TrainingConfig.from_env()
    overrides: Dict[str, Any] = {}
    if args.episodes is not None:
        overrides["max_episodes"] = args.episodes
    if args.seed is not None:
        overrides["seed"] = args.seed
    if args.task != "altitude" and config.run_timeout_s is None:
        overrides["run_timeout_s"] = DEFAULT_TOUR_RUN_TIMEOUT_S
    return config.clone_with_overrides(**overrides) if overrides else config


def build_task(name: str) -> EpisodeTask:
    if name == "tour":
        return WaypointTourTask(metric="energy")
    if name == "tour-time":
        return WaypointTourTask(metric="time")
    if name == "tour-speed":
        return WaypointTourTask(metric="time", speed_options=DEFAULT_TOUR_SPEED_OPTIONS)
    if name == "altitude":
        space = ParameterSpace(
            [
                ParameterSpec("ALT_KP", initial=1.0, lower=0.2, upper=4.0, step=0.2),
                ParameterSpec("ALT_KD", initial=0.8, lower=0.2, upper=4.0, step=0.2),
            ]
        )
        return ParameterTuningTask(
            space, Maneuver.step(10.0, 15.0), state_source="metrics"
        )
    raise ConfigurationError(
        f"Unknown task {name!r}", config_parameter="task", parameter_value=name
    )


def main(argv: Optional[List[str]] = None) -> int:
    """Run a training session against the kinematic vehicle."""
    args = _parse_args(argv)
    setup_logging(
        level=args.log_level,
        file_path=args.log_file,
        context={"task": args.task, "seed": args.seed},
    )

    try:
        config = _build_config(args)
        task = build_task(args.task)
        memory = InMemoryTelemetrySink()
        sink = MultiSink(
            [
                memory,
                LoggingTelemetrySink(
                    logging.getLogger("episodic_tuner.telemetry"), logging.DEBUG
                ),
            ]
        )
        vehicle = KinematicVehicle()
        summary = train(config, vehicle, task, sink)
    except ConfigurationError as exc:
        logger.error("Fatal configuration error: %s", exc.format_for_user())
        return EXIT_CONFIG_ERROR
    except StateError as exc:
        logger.error("Run failed: %s", exc.format_for_user())
        return EXIT_RUNTIME_ERROR

    if args.plot:
        from ..utils.plotting import plot_learning_curve

        plot_learning_curve(memory.records, Path(args.plot), title=f"{task.name} learning curve")
        logger.info("Saved learning curve to %s", args.plot)

    print(json.dumps(summary.to_dict(), indent=2, default=str))
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
