"""Domain models for completed pull request range retrieval.

These dataclasses intentionally model only the subset of API payload fields that
the range report needs.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Iterator, Optional, Tuple, overload

from .errors import InvalidWindowError

_ADO_BASE_URL = "https://dev.azure.com"


class DatePosition(enum.Enum):
    """Where a calendar date falls relative to a ``DateWindow``."""

    NEWER = "newer"
    WITHIN = "within"
    OLDER = "older"


class StopReason(enum.Enum):
    """Why a range fetch stopped requesting pages."""

    EXHAUSTED = "exhausted"
    PAST_WINDOW = "past_window"
    SHORT_PAGE = "short_page"


@dataclass(frozen=True, slots=True)
class PullRequestEndpoint:
    """Identifies the Azure DevOps pull request listing to page through.

    Without ``repository`` the project-wide listing is used.
    """

    organization: str
    project: str
    repository: Optional[str] = None

    @property
    def listing_path(self) -> str:
        if self.repository:
            return f"git/repositories/{self.repository}/pullrequests"
        return "git/pullrequests"

    def pull_request_link(self, pr_id: int, repository: Optional[str] = None) -> str:
        """Build the browser URL of a pull request."""
        repo = repository or self.repository
        return (
            f"{_ADO_BASE_URL}/{self.organization}/{self.project}"
            f"/_git/{repo}/pullrequest/{pr_id}"
        )


@dataclass(frozen=True, slots=True)
class DateWindow:
    """Inclusive calendar-date window ``[start, end]``."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise InvalidWindowError(
                f"Invalid date window: start {self.start.isoformat()} is after "
                f"end {self.end.isoformat()}."
            )

    def classify(self, day: date) -> DatePosition:
        if day > self.end:
            return DatePosition.NEWER
        if day < self.start:
            return DatePosition.OLDER
        return DatePosition.WITHIN

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end


@dataclass(frozen=True, slots=True)
class PageRequest:
    """Offset/size pair for one listing request."""

    offset: int
    page_size: int

    def next(self) -> PageRequest:
        return PageRequest(offset=self.offset + self.page_size, page_size=self.page_size)


@dataclass(frozen=True, slots=True)
class PullRequestSummary:
    """A completed pull request as reported to the user."""

    id: int
    target_branch: str
    closed_at: datetime
    title: str
    link: str

    @property
    def closed_on(self) -> date:
        """Completion date used for window comparisons.

        The timestamp is normalized to UTC and its time of day dropped, so two
        pull requests closed on the same UTC day always compare equal.
        """
        return to_utc_date(self.closed_at)


@dataclass(frozen=True, slots=True)
class FetchResult(Sequence[PullRequestSummary]):
    """Ordered, newest-first pull requests found inside a window."""

    pull_requests: Tuple[PullRequestSummary, ...] = ()
    stop_reason: StopReason = StopReason.EXHAUSTED
    pages_fetched: int = field(default=0, compare=False)

    def __len__(self) -> int:
        return len(self.pull_requests)

    def __iter__(self) -> Iterator[PullRequestSummary]:
        return iter(self.pull_requests)

    @overload
    def __getitem__(self, index: int) -> PullRequestSummary: ...

    @overload
    def __getitem__(self, index: slice) -> Tuple[PullRequestSummary, ...]: ...

    def __getitem__(self, index):
        return self.pull_requests[index]


def to_utc(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware UTC datetime.

    Naive datetimes are treated as UTC.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_utc_date(value: datetime) -> date:
    """Truncate a timestamp to its UTC calendar date."""
    return to_utc(value).date()
