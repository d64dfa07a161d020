"""Report rendering for completed pull requests.

This module provides utilities for:
- Rendering an aligned text table with a total count.
- Rendering CSV output suitable for spreadsheets.
"""

from __future__ import annotations

import csv
import io
from typing import Iterable, List, Sequence

from .errors import ConfigurationError
from .models import PullRequestSummary, to_utc

OUTPUT_FORMATS = ("table", "csv")

_TABLE_HEADERS = ("ID", "Closed", "Target", "Title", "Link")
_CSV_HEADERS = ("id", "closed_at", "target_branch", "title", "link")


def _table_row(pr: PullRequestSummary) -> List[str]:
    return [str(pr.id), pr.closed_on.isoformat(), pr.target_branch, pr.title, pr.link]


def render_table(pull_requests: Sequence[PullRequestSummary]) -> str:
    """Render pull requests as an aligned text table followed by a total line.

    Args:
        pull_requests: Pull requests in display order.

    Returns:
        Formatted multi-line text report.
    """
    if not pull_requests:
        return "\n".join(["No completed pull requests in the requested window.", "Total: 0"])

    rows = [_table_row(pr) for pr in pull_requests]
    widths = [
        max(len(header), *(len(row[index]) for row in rows))
        for index, header in enumerate(_TABLE_HEADERS)
    ]

    def _format(values: Iterable[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths)).rstrip()

    lines = [
        _format(_TABLE_HEADERS),
        _format("-" * width for width in widths),
    ]
    lines.extend(_format(row) for row in rows)
    lines.append("")
    lines.append(f"Total: {len(pull_requests)}")
    return "\n".join(lines)


def render_csv(pull_requests: Sequence[PullRequestSummary]) -> str:
    """Render pull requests as CSV with an ISO-8601 UTC ``closed_at`` column."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(_CSV_HEADERS)
    for pr in pull_requests:
        closed_at = to_utc(pr.closed_at).isoformat().replace("+00:00", "Z")
        writer.writerow([pr.id, closed_at, pr.target_branch, pr.title, pr.link])
    return buffer.getvalue()


def render_report(pull_requests: Sequence[PullRequestSummary], output_format: str) -> str:
    """Render pull requests in the requested output format.

    Raises:
        ConfigurationError: If ``output_format`` is not supported.
    """
    if output_format == "table":
        return render_table(pull_requests)
    if output_format == "csv":
        return render_csv(pull_requests)
    raise ConfigurationError(
        f"Unsupported output format '{output_format}': expected one of {', '.join(OUTPUT_FORMATS)}."
    )
