"""
CLI - Command-line interface.

Thin wrapper over the config and the headless simulation.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys


def main(args: list[str] | None = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="immersion",
        description="Mode transitions for spatial interactive experiences",
    )
    parser.add_argument(
        "--log-level",
        choices=["debug", "info", "warning", "error"],
        default="warning",
        help="Transition log level (default: warning)",
    )
    parser.add_argument(
        "--log-format",
        choices=["json", "human"],
        default="human",
        help="Transition log format (default: human)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # simulate command
    simulate_parser = subparsers.add_parser("simulate", help="Run a headless walkthrough")
    simulate_parser.add_argument("-c", "--config", help="Experience config (JSON)")
    simulate_parser.add_argument(
        "--distance",
        type=float,
        default=4.0,
        help="Starting distance from the hotspot in meters (default: 4.0)",
    )
    simulate_parser.add_argument(
        "--speed",
        type=float,
        default=1.4,
        help="Walking speed in m/s (default: 1.4)",
    )
    simulate_parser.add_argument(
        "--media-length",
        type=float,
        default=5.0,
        help="Seconds of media before it ends (default: 5.0)",
    )
    simulate_parser.add_argument(
        "--duration",
        type=float,
        default=20.0,
        help="Virtual seconds to simulate (default: 20.0)",
    )
    simulate_parser.add_argument(
        "--fail-media",
        action="store_true",
        help="Make media playback fail to load",
    )
    simulate_parser.add_argument(
        "--block-autoplay",
        action="store_true",
        help="Refuse ambient autoplay until the first interaction",
    )
    simulate_parser.add_argument(
        "--force-trigger",
        type=float,
        metavar="SECONDS",
        help="Force a transition to the first hotspot at this virtual time",
    )
    simulate_parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    # config command
    config_parser = subparsers.add_parser("config", help="Print the default config")
    config_parser.add_argument("-o", "--output", help="Write to this file instead of stdout")

    # version command
    subparsers.add_parser("version", help="Show version")

    parsed = parser.parse_args(args)

    if parsed.command is None:
        parser.print_help()
        return 0

    if parsed.command == "version":
        from immersion import __version__
        print(f"immersion {__version__}")
        return 0

    if parsed.command == "config":
        return _cmd_config(parsed)

    if parsed.command == "simulate":
        return _cmd_simulate(parsed)

    return 1


def _cmd_config(args: argparse.Namespace) -> int:
    """Print or save the default config."""
    from immersion.config import ExperienceConfig

    config = ExperienceConfig.default()
    if args.output:
        path = config.save(args.output)
        print(f"Config written to: {path}")
    else:
        print(json.dumps(config.to_dict(), indent=2))
    return 0


def _cmd_simulate(args: argparse.Namespace) -> int:
    """Handle simulate command."""
    from immersion.config import ExperienceConfig
    from immersion.monitoring import configure_logging
    from immersion.simulation import SimulationSettings, simulate

    logging.basicConfig(level=args.log_level.upper())
    event_log = configure_logging(
        level=args.log_level,
        json_format=args.log_format == "json",
    )

    try:
        config = ExperienceConfig.load(args.config) if args.config else ExperienceConfig.default()
        settings = SimulationSettings(
            start_distance=args.distance,
            walk_speed=args.speed,
            media_length=args.media_length,
            duration=args.duration,
            fail_media=args.fail_media,
            block_autoplay=args.block_autoplay,
            force_trigger_at=args.force_trigger,
        )
    except (OSError, ValueError, TypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report = simulate(config, settings, event_log=event_log)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2, default=str))
        return 0

    print(f"Simulated {report.duration:.1f}s ({report.frames} frames)")
    print()
    print("Mode timeline:")
    print(report.format_timeline())
    if report.notifications:
        print()
        print("Notifications:")
        for message in report.notifications:
            print(f"  {message}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
