"""Configuration parsing and validation for the ADO completed pull request report."""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional

from .errors import AuthenticationError, ConfigurationError
from .models import DateWindow, PullRequestEndpoint
from .report import OUTPUT_FORMATS

DEFAULT_PAGE_SIZE = 100
MAX_PAGE_SIZE = 1000


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the report."""

    endpoint: PullRequestEndpoint
    window: DateWindow
    page_size: int
    pat: str
    target_branch: Optional[str] = None
    output_format: str = "table"


def parse_date(value: str, name: str) -> date:
    """Parse an ISO ``YYYY-MM-DD`` date.

    Raises:
        ConfigurationError: If ``value`` is not a valid ISO date.
    """
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid value for '{name}': expected a date as YYYY-MM-DD, got '{value}'."
        ) from exc


def load_config(
    organization: str,
    project: str,
    repo_name: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    page_size: int = DEFAULT_PAGE_SIZE,
    target_branch: Optional[str] = None,
    output_format: str = "table",
    today: Optional[date] = None,
) -> Config:
    """Build and validate application configuration.

    Args:
        organization: Azure DevOps organization name.
        project: Azure DevOps project name.
        repo_name: Optional repository name; the whole project is listed without it.
        start: First day of the window (inclusive); defaults to ``end``.
        end: Last day of the window (inclusive); defaults to today in UTC.
        page_size: Pull requests requested per page.
        target_branch: Optional target branch filter.
        output_format: ``table`` or ``csv``.
        today: Reference date used when ``end`` is omitted.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If a value is missing or out of range.
        InvalidWindowError: If ``start`` is after ``end``.
        AuthenticationError: If ``ADO_PAT`` is not configured.
    """
    if not organization.strip() or not project.strip():
        raise ConfigurationError("Organization and project names must not be empty.")

    if not 1 <= page_size <= MAX_PAGE_SIZE:
        raise ConfigurationError(
            f"Invalid value for 'page_size': expected an integer between 1 and {MAX_PAGE_SIZE}."
        )

    if output_format not in OUTPUT_FORMATS:
        raise ConfigurationError(
            f"Invalid value for 'format': expected one of {', '.join(OUTPUT_FORMATS)}."
        )

    end_date = parse_date(end, "end") if end else (today or datetime.now(timezone.utc).date())
    start_date = parse_date(start, "start") if start else end_date
    window = DateWindow(start=start_date, end=end_date)

    pat: str = os.getenv("ADO_PAT", "").strip()
    if not pat:
        raise AuthenticationError(
            "Missing required Azure DevOps Personal Access Token. "
            "Set the 'ADO_PAT' environment variable before running the report."
        )

    return Config(
        endpoint=PullRequestEndpoint(
            organization=organization.strip(),
            project=project.strip(),
            repository=(repo_name or "").strip() or None,
        ),
        window=window,
        page_size=page_size,
        pat=pat,
        target_branch=(target_branch or "").strip() or None,
        output_format=output_format,
    )
