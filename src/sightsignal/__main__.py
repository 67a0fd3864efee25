#!/usr/bin/env python3
"""
SightSignal CLI Entry Point

Provides a command-line interface over YAML datasets.
Run with: python -m sightsignal <command> [args]
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from .core.errors import SightSignalError
from .core.logging import set_log_level


def output_json(data: dict, indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent, default=str))


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="sightsignal",
        description="SightSignal - signal matching and ranking over sighting datasets",
        epilog=(
            "examples:\n"
            "  sightsignal evaluate --data demo.yaml --sighting s-1\n"
            "  sightsignal rank --data demo.yaml --user u-1 --lat 40.7 --lng -74.0\n"
            "  sightsignal area --tier paid -- 40.70,-74.02 40.72,-74.02 40.72,-74.00\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    from .commands import signals

    signals.register_parsers(subparsers)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    if args.verbose:
        set_log_level(logging.DEBUG)

    try:
        result = args.func(args)

        if isinstance(result, dict) and result:
            output_json(result)

            # Return non-zero exit code if result contains error
            if "error" in result:
                return 1

        return 0

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except SightSignalError as e:
        output_json(e.to_dict())
        return 1


if __name__ == "__main__":
    sys.exit(main())
