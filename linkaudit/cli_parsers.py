"""Argument parser construction for the linkaudit command."""

from __future__ import annotations

import argparse
from typing import List, Optional

AUDIT_EPILOG = """\
Examples:
  # Audit a MongoDB collection, choosing database and collection interactively
  linkaudit

  # Skip the prompts
  linkaudit --database cms --collection articles

  # Audit a JSON or JSON Lines export
  linkaudit export.jsonl

  # JSON summary written to a file
  linkaudit export.json --json -o report.json

  # Check four links at a time with a 5 second timeout
  linkaudit export.json --concurrency 4 --timeout 5
"""


def _add_source_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="JSON array or JSON Lines file to audit (default: MongoDB via MONGODB_URI)",
    )
    parser.add_argument(
        "--database",
        type=str,
        default=None,
        help="MongoDB database name or 1-based number (skips the prompt)",
    )
    parser.add_argument(
        "--collection",
        type=str,
        default=None,
        help="MongoDB collection name or 1-based number (skips the prompt)",
    )
    parser.add_argument(
        "--id-field",
        type=str,
        default="_id",
        help="Field holding the document identifier (default: _id)",
    )


def _add_audit_args(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("Audit")
    group.add_argument(
        "--sample-size",
        type=int,
        default=None,
        help="Documents inspected to detect link fields (default: 10)",
    )
    group.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Links checked at the same time (default: 1)",
    )
    group.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Per-request timeout in seconds (default: 15)",
    )
    group.add_argument(
        "--user-agent",
        type=str,
        default=None,
        help="User-Agent header sent with every request",
    )


def _add_output_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        help="Write the final summary to this file",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Summary as JSON instead of markdown",
    )
    parser.add_argument(
        "--fail-on-broken",
        action="store_true",
        help="Exit with status 2 when broken links are found",
    )
    parser.add_argument(
        "--no-progress",
        action="store_true",
        help="Do not print the transient progress line",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def build_audit_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="linkaudit",
        description="Find broken links in a document collection.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=AUDIT_EPILOG,
    )
    _add_source_args(parser)
    _add_audit_args(parser)
    _add_output_args(parser)
    return parser


def parse_audit_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    return build_audit_parser().parse_args(argv)
