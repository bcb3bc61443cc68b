"""
Shadow Risk CLI entry point.

This module provides the command-line interface for Shadow Risk.
"""

from __future__ import annotations

import argparse
import sys

from shadowrisk import __version__
from shadowrisk.cli_commands import (
    cmd_assess,
    cmd_findings,
    cmd_score,
    cmd_timeline,
)
from shadowrisk.observability import configure_logging


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "snapshot",
        help="Identity snapshot file (JSON or YAML)",
    )
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--now",
        help="Run time as ISO-8601 timestamp (default: current time)",
    )
    parser.add_argument(
        "--config",
        help="Engine configuration file (JSON or YAML)",
    )


def _add_score_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--mode",
        choices=["points", "weighted"],
        help="Aggregation mode (default: from configuration)",
    )
    parser.add_argument(
        "--previous-score",
        type=float,
        help="Previous overall score, used to compute the trend",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="shadowrisk",
        description="Shadow Risk - identity risk scoring and shadow permission analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"shadowrisk {__version__}",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )

    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default="human",
        help="Log format (default: human)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # assess command
    assess_parser = subparsers.add_parser(
        "assess", help="Score every entity and the organization posture"
    )
    _add_common_arguments(assess_parser)
    _add_score_arguments(assess_parser)

    # findings command
    findings_parser = subparsers.add_parser(
        "findings", help="List organization-level shadow permission findings"
    )
    _add_common_arguments(findings_parser)
    findings_parser.add_argument(
        "--severity",
        choices=["high", "medium", "low"],
        help="Only show findings of this severity",
    )

    # score command
    score_parser = subparsers.add_parser(
        "score", help="Show the security posture score"
    )
    _add_common_arguments(score_parser)
    _add_score_arguments(score_parser)

    # timeline command
    timeline_parser = subparsers.add_parser(
        "timeline", help="Project when entities become shadow risks"
    )
    _add_common_arguments(timeline_parser)
    timeline_parser.add_argument(
        "--severity",
        choices=["critical", "high", "medium", "low"],
        help="Only show events of this severity",
    )
    timeline_parser.add_argument(
        "--horizon",
        type=int,
        choices=[7, 30, 90, 180],
        help="Only show events within this many days",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, format=args.log_format)

    if args.command is None:
        parser.print_help()
        return 0

    # Route to command handlers
    command_handlers = {
        "assess": cmd_assess,
        "findings": cmd_findings,
        "score": cmd_score,
        "timeline": cmd_timeline,
    }

    handler = command_handlers.get(args.command)
    if handler:
        return handler(args)

    print(f"Unknown command: {args.command}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
