"""Completed pull request retrieval within an inclusive date window.

The listing is paged newest-closed first. Pages are scanned in order and only
pull requests whose UTC completion date lies inside the window are kept:
- Items closed after ``window.end`` are skipped; paging continues.
- The first item closed before ``window.start`` ends the scan, since every
  later item is older still.
- An empty page or a page shorter than the page size ends paging.

The operation is all-or-nothing: any transport failure or cancellation
propagates and the partially accumulated results are discarded.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from .errors import ConfigurationError, FetchCancelledError
from .models import (
    DatePosition,
    DateWindow,
    FetchResult,
    PageRequest,
    PullRequestEndpoint,
    PullRequestSummary,
    StopReason,
)

logger = logging.getLogger(__name__)


class PageSource(Protocol):
    """Transport returning one page of completed pull requests."""

    def fetch_page(
        self,
        endpoint: PullRequestEndpoint,
        credentials: str,
        page: PageRequest,
    ) -> List[PullRequestSummary]: ...


class CancelSignal(Protocol):
    """Anything exposing ``is_set()``, such as ``threading.Event``."""

    def is_set(self) -> bool: ...


class RangeFetcher:
    """Pages through completed pull requests and keeps those inside a window."""

    def __init__(self, page_source: PageSource, assume_newest_first: bool = True) -> None:
        """Create a fetcher over a page source.

        Args:
            page_source: Transport used for every page request.
            assume_newest_first: When ``False`` the listing order is not
                trusted, so an item older than the window no longer stops
                paging and every page is scanned.
        """
        self._page_source = page_source
        self._assume_newest_first = assume_newest_first

    def fetch(
        self,
        endpoint: PullRequestEndpoint,
        credentials: str,
        window: DateWindow,
        page_size: int,
        cancel: Optional[CancelSignal] = None,
    ) -> FetchResult:
        """Return the completed pull requests closed inside ``window``.

        Raises:
            ConfigurationError: If ``page_size`` is not a positive integer.
            FetchCancelledError: If ``cancel`` is set before a page request.
            TransportError: If any page request fails.
        """
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
            raise ConfigurationError("Invalid value for 'page_size': expected an integer greater than 0.")

        page = PageRequest(offset=0, page_size=page_size)
        results: List[PullRequestSummary] = []
        pages_fetched = 0

        while True:
            if cancel is not None and cancel.is_set():
                raise FetchCancelledError(
                    f"Pull request fetch cancelled before offset {page.offset}."
                )

            items = self._page_source.fetch_page(endpoint, credentials, page)
            pages_fetched += 1
            logger.debug(
                "Fetched pull request page",
                extra={"offset": page.offset, "page_size": page_size, "items": len(items)},
            )

            if not items:
                stop_reason = StopReason.EXHAUSTED
                break

            if self._scan_page(items, window, results):
                stop_reason = StopReason.PAST_WINDOW
                break

            page = page.next()

            if len(items) < page_size:
                stop_reason = StopReason.SHORT_PAGE
                break

        logger.info(
            "Fetched completed pull requests in window",
            extra={
                "window_start": window.start.isoformat(),
                "window_end": window.end.isoformat(),
                "stop_reason": stop_reason.value,
                "pages_fetched": pages_fetched,
                "matches": len(results),
            },
        )

        return FetchResult(
            pull_requests=tuple(results),
            stop_reason=stop_reason,
            pages_fetched=pages_fetched,
        )

    def _scan_page(
        self,
        items: List[PullRequestSummary],
        window: DateWindow,
        results: List[PullRequestSummary],
    ) -> bool:
        """Append in-window items to ``results``; return ``True`` once past the window."""
        for item in items:
            position = window.classify(item.closed_on)
            if position is DatePosition.WITHIN:
                results.append(item)
            elif position is DatePosition.OLDER and self._assume_newest_first:
                return True
        return False


def fetch_in_range(
    endpoint: PullRequestEndpoint,
    credentials: str,
    window: DateWindow,
    page_size: int,
    page_source: PageSource,
    cancel: Optional[CancelSignal] = None,
) -> FetchResult:
    """Fetch completed pull requests closed inside ``window`` from ``page_source``."""
    return RangeFetcher(page_source).fetch(endpoint, credentials, window, page_size, cancel=cancel)
