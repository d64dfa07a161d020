"""Command-line argument parsing for the ADO completed pull request report."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import DEFAULT_PAGE_SIZE
from .report import OUTPUT_FORMATS


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for the report.

    Returns:
        Parsed CLI arguments containing organization, project, optional
        repository, window bounds, paging and output options.
    """
    parser = argparse.ArgumentParser(
        prog="ado-pr-report",
        description=(
            "List Azure DevOps pull requests completed within an inclusive "
            "date window."
        ),
    )

    parser.add_argument(
        "--org",
        required=True,
        help="Azure DevOps organization name.",
    )
    parser.add_argument(
        "--project",
        required=True,
        help="Azure DevOps project name.",
    )
    parser.add_argument(
        "--repo-name",
        default=None,
        help="Repository name; omit to report on every repository in the project.",
    )
    parser.add_argument(
        "--start",
        default=None,
        help="First completion date to include, YYYY-MM-DD (default: --end).",
    )
    parser.add_argument(
        "--end",
        default=None,
        help="Last completion date to include, YYYY-MM-DD (default: today, UTC).",
    )
    parser.add_argument(
        "--page-size",
        type=_positive_int,
        default=DEFAULT_PAGE_SIZE,
        help=f"Pull requests requested per page (default: {DEFAULT_PAGE_SIZE}).",
    )
    parser.add_argument(
        "--target-branch",
        default=None,
        help="Only include pull requests targeting this branch.",
    )
    parser.add_argument(
        "--format",
        dest="output_format",
        choices=OUTPUT_FORMATS,
        default="table",
        help="Output format (default: table).",
    )
    parser.add_argument(
        "--max-attempts",
        type=_positive_int,
        default=1,
        help="Attempts per page request; values above 1 retry throttled or failed requests (default: 1).",
    )
    parser.add_argument(
        "--scan-all-pages",
        action="store_true",
        help="Do not assume newest-first ordering; scan every page instead of stopping early.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging on stderr.",
    )

    return parser.parse_args(argv)
