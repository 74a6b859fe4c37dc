#!/usr/bin/env python3
"""
ULA Beamformer - Command Line Interface

Runs beamforming evaluation scenarios and prints their reports.
"""

import argparse
import logging
import math
import sys
from typing import Optional

from . import __version__
from .core.config import (
    ScenarioConfig,
    get_scenario_preset,
    list_scenario_presets,
)
from .core.errors import BeamformerError, ConfigValidationError
from .sensor_array.beamformer import calibration_gain


def cmd_info(args: argparse.Namespace) -> int:
    """Display module information."""
    print(f"ULA Beamformer v{__version__}")
    print()
    print("Delay-and-Sum Beamforming for Uniform Linear Arrays")
    print("===================================================")
    print()
    print("Features:")
    print("  - ULA steering vectors and Rayleigh bandwidth")
    print("  - Fractional-delay sensor signal synthesis")
    print("  - Spatial covariance and three spatial power estimators")
    print("  - Beam pattern and power-vs-angle scans")
    print("  - SDR / SIR / SAR separation metrics (global and local)")
    print()
    print(f"Scenario presets: {', '.join(list_scenario_presets())}")
    return 0


def _load_config(args: argparse.Namespace) -> Optional[ScenarioConfig]:
    """Build the scenario configuration from a file or preset plus overrides."""
    if args.config:
        config = ScenarioConfig.load(args.config)
        if config is None:
            print(f"Error: could not load configuration from {args.config}")
            return None
    else:
        config = get_scenario_preset(args.preset)
        if config is None:
            print(f"Unknown preset: {args.preset}")
            print(f"Available: {', '.join(list_scenario_presets())}")
            return None

    data = config.to_dict()
    if args.sensors is not None:
        # Keep the 2/sqrt(M) calibration when it was derived from the sensor count
        if math.isclose(config.output_gain, calibration_gain(config.num_sensors)):
            data["output_gain"] = float(calibration_gain(args.sensors))
        data["num_sensors"] = args.sensors
    if args.samples is not None:
        data["num_samples"] = args.samples
    if args.target is not None:
        data["target_index"] = args.target
    if args.seed is not None:
        data["seed"] = args.seed
    if args.no_local:
        data["local"] = None

    return ScenarioConfig.from_dict(data)


def cmd_run(args: argparse.Namespace) -> int:
    """Run a beamforming scenario and print the evaluation report."""
    from .evaluation.scenario import run_scenario

    try:
        config = _load_config(args)
        if config is None:
            return 1
        result = run_scenario(config)
    except BeamformerError as e:
        print(f"Error: {e}")
        return 1
    except ConfigValidationError as e:
        print(f"Invalid configuration: {e}")
        return 1

    print(f"Sensors: {config.num_sensors}, samples: {config.num_samples}, "
          f"target source: {config.target_index} "
          f"({config.target.frequency:.1f} Hz at {config.target.doa_deg:.1f} deg)")
    print()
    print(result.summary())

    if args.save_config:
        if config.save(args.save_config):
            print(f"Saved configuration to: {args.save_config}")
        else:
            print(f"Warning: failed to save configuration to {args.save_config}")

    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser."""
    parser = argparse.ArgumentParser(
        prog="ula-beamformer",
        description="ULA Beamformer - delay-and-sum beamforming evaluation",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Enable debug logging"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Info command
    info_parser = subparsers.add_parser("info", help="Display module information")
    info_parser.set_defaults(func=cmd_info)

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a beamforming scenario")
    run_parser.add_argument(
        "--preset",
        type=str,
        default="reference",
        help="Scenario preset to run (default: reference)",
    )
    run_parser.add_argument(
        "--config", "-c", type=str, help="JSON scenario configuration file"
    )
    run_parser.add_argument(
        "--sensors", "-m", type=int, help="Override number of sensors"
    )
    run_parser.add_argument(
        "--samples", "-n", type=int, help="Override signal length in samples"
    )
    run_parser.add_argument(
        "--target", "-k", type=int, help="Override target source index (0-based)"
    )
    run_parser.add_argument(
        "--seed", type=int, help="Seed for random source phases"
    )
    run_parser.add_argument(
        "--no-local", action="store_true", help="Skip time-localized metrics"
    )
    run_parser.add_argument(
        "--save-config", type=str, help="Write the effective configuration to a file"
    )
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point.

    Args:
        argv: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        # No command specified - show info
        return cmd_info(args)

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
