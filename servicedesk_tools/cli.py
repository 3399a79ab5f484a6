"""Command-line entry point for Service Desk Tools.

Usage:
    servicedesk-tools correlate [--timeout SECONDS]
    servicedesk-tools issues
    servicedesk-tools stats
    servicedesk-tools check [freshdesk|jira]
    servicedesk-tools statuses

Every command prints the service response as JSON on stdout.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import TextIO

from . import __version__, service
from .config import load_config
from .desk_logging import setup_logging
from .exceptions import ConfigurationError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="servicedesk-tools",
        description="Correlate Freshdesk tickets with the Jira issues they reference.",
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "--settings",
        type=Path,
        default=None,
        help="KEY=VALUE settings file (environment variables take precedence)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--compact", action="store_true", help="Single-line JSON output")

    commands = parser.add_subparsers(dest="command", required=True)

    correlate = commands.add_parser(
        "correlate", help="Helpdesk tickets with development, joined to Jira"
    )
    correlate.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds allowed for the correlation pass",
    )

    commands.add_parser("issues", help="Unresolved Jira issues in the project")
    commands.add_parser("stats", help="Jira issue counts by status/assignee/priority")

    check = commands.add_parser("check", help="Test API credentials")
    check.add_argument(
        "system", nargs="?", choices=["freshdesk", "jira", "all"], default="all"
    )

    commands.add_parser("statuses", help="Helpdesk status picklist")
    return parser


def _emit(payload: dict, stream: TextIO, compact: bool) -> None:
    json.dump(payload, stream, indent=None if compact else 2, default=str)
    stream.write("\n")


def main(argv: list[str] | None = None, stream: TextIO | None = None) -> int:
    """Run the CLI and return the process exit code."""
    stream = stream or sys.stdout
    args = build_parser().parse_args(argv)

    try:
        config = load_config(settings_file=args.settings)
    except ConfigurationError as e:
        _emit({"success": False, "error": str(e)}, stream, args.compact)
        return 1

    setup_logging(config.log_level, verbose=args.verbose)

    if args.command == "correlate":
        responses = [service.get_support_dev_items(config, timeout=args.timeout)]
    elif args.command == "issues":
        responses = [service.get_outstanding_issues(config)]
    elif args.command == "stats":
        responses = [service.get_issue_stats(config)]
    elif args.command == "statuses":
        responses = [service.get_helpdesk_statuses(config)]
    else:
        responses = []
        if args.system in ("freshdesk", "all"):
            responses.append(service.check_freshdesk_connection(config))
        if args.system in ("jira", "all"):
            responses.append(service.check_jira_connection(config))

    if len(responses) == 1:
        _emit(responses[0].to_dict(), stream, args.compact)
    else:
        _emit({"results": [r.to_dict() for r in responses]}, stream, args.compact)

    return 0 if all(r.success for r in responses) else 1


if __name__ == "__main__":
    sys.exit(main())
