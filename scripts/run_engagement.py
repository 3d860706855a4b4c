#!/usr/bin/env python3
"""
Run a simulated missile engagement against the guidance controller.

Usage:
    python scripts/run_engagement.py --verbose
    python scripts/run_engagement.py --preset mk1 --missiles 6 --targets 4 --seed 3
    python scripts/run_engagement.py --calibrate
"""

import argparse
import logging
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from missile_guidance.config import ConfigError, GuidanceConfig
from missile_guidance.simulation import EngagementSimulation, SimulationEventType


def build_config(args: argparse.Namespace) -> GuidanceConfig:
    """Resolve the guidance config from the command line options."""
    if args.config:
        config = GuidanceConfig.from_json(args.config)
    elif args.preset == "mk1":
        config = GuidanceConfig.mk1()
    else:
        config = GuidanceConfig.mk2()

    if args.env:
        config = GuidanceConfig.from_env(base=config.to_dict())

    if args.calibrate:
        settings = config.to_dict()
        settings["calibration_mode"] = True
        config = GuidanceConfig.from_dict(settings)

    return config


def main():
    parser = argparse.ArgumentParser(
        description="Run a simulated missile engagement",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_engagement.py --verbose
    python scripts/run_engagement.py --config guidance.json --duration 40
    python scripts/run_engagement.py --calibrate
        """,
    )

    # Guidance settings
    parser.add_argument(
        "--config",
        help="JSON file of guidance settings (overrides --preset)",
    )
    parser.add_argument(
        "--preset",
        choices=["mk1", "mk2"],
        default="mk2",
        help="Built-in guidance profile (default: mk2)",
    )
    parser.add_argument(
        "--env",
        action="store_true",
        help="Apply GUIDANCE_* environment variables (and .env) on top",
    )

    # Scenario settings
    parser.add_argument(
        "--missiles",
        type=int,
        default=4,
        help="Number of missiles to launch (default: 4)",
    )
    parser.add_argument(
        "--targets",
        type=int,
        default=3,
        help="Number of targets (default: 3)",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=30.0,
        help="Simulated time in seconds (default: 30)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for the scenario",
    )

    # Modes
    parser.add_argument(
        "--calibrate",
        action="store_true",
        help="Measurement mode: fly one missile through a turn and report turn rate and speed",
    )

    # Output
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
    except (ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    missiles = 1 if args.calibrate else args.missiles
    targets = 0 if args.calibrate else args.targets
    simulation = EngagementSimulation.create_scenario(
        config, missiles=missiles, targets=targets, seed=args.seed
    )
    simulation.run(duration_s=args.duration)

    if args.calibrate:
        results = simulation.controller.calibration.results
        if not results:
            print("Measurement did not complete; try a longer --duration")
            return 1
        print("Measurement mode results:")
        for key, value in results[-1].as_config_overrides().items():
            print(f"  {key:12s} = {value:g}")
        print(f"  (missile took {results[-1].elapsed:g}s to complete turn)")
        return 0

    print("\n=== ENGAGEMENT SUMMARY ===")
    for key, value in simulation.summary().items():
        print(f"  {key:12s} {value}")

    if args.verbose:
        print("\n--- Events ---")
        for event in simulation.events:
            if event.event_type is SimulationEventType.HOST_LOG:
                continue
            detail = f" {event.message}" if event.message else ""
            print(f"  t={event.time:6.2f}s {event.event_type.name:18s} "
                  f"missile={event.missile_id} target={event.target_id}{detail}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
