"""Azure DevOps REST API client for completed pull request pages."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import requests
from requests.auth import HTTPBasicAuth

from .errors import ConfigurationError, MalformedPayloadError, TransportError
from .models import PageRequest, PullRequestEndpoint, PullRequestSummary

logger = logging.getLogger(__name__)

_BRANCH_PREFIX = "refs/heads/"
_FRACTION_PATTERN = re.compile(r"\.(\d+)")


class AdoClient:
    """Page source over the Azure DevOps Git pull request listing API."""

    _API_VERSION = "7.1"
    _MAX_BACKOFF_SECONDS = 30

    def __init__(
        self,
        timeout_seconds: int = 30,
        max_attempts: int = 1,
        target_branch: Optional[str] = None,
    ) -> None:
        """Initialize an Azure DevOps API client.

        Args:
            timeout_seconds: Per-request timeout in seconds.
            max_attempts: Total attempts per page request. The default of ``1``
                disables retries; higher values retry 429/5xx responses and
                connection errors with exponential backoff.
            target_branch: Optional branch name restricting the listing to pull
                requests targeting that branch.
        """
        if max_attempts < 1:
            raise ConfigurationError("Invalid value for 'max_attempts': expected at least 1.")

        self._timeout_seconds = timeout_seconds
        self._max_attempts = max_attempts
        self._target_branch = target_branch

        self._session = requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def _build_url(self, endpoint: PullRequestEndpoint) -> str:
        """Build the fully qualified listing URL for an endpoint."""
        return (
            f"https://dev.azure.com/{endpoint.organization}/{endpoint.project}"
            f"/_apis/{endpoint.listing_path}"
        )

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _get_json(self, url: str, credentials: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GET request, retrying 429/5xx only when attempts allow it.

        Raises:
            TransportError: If the request fails, returns HTTP >= 400,
                or does not return a JSON object.
        """
        query = dict(params)
        query["api-version"] = self._API_VERSION
        auth = HTTPBasicAuth("", credentials)

        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._session.get(
                    url, params=query, auth=auth, timeout=self._timeout_seconds
                )
            except requests.RequestException as exc:
                if attempt == self._max_attempts:
                    raise TransportError(f"Azure DevOps request failed: GET {url}") from exc
                logger.warning(
                    "Request error, retrying",
                    extra={"url": url, "attempt": attempt, "error": str(exc)},
                )
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._max_attempts:
                logger.warning(
                    "Retryable response, backing off",
                    extra={"url": url, "attempt": attempt, "status_code": status_code},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise TransportError(
                    "Azure DevOps API request failed: "
                    f"GET {url} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise TransportError(f"Azure DevOps API returned invalid JSON: GET {url}") from exc

            if not isinstance(payload, dict):
                raise TransportError(f"Azure DevOps API returned unexpected payload shape: GET {url}")

            return payload

    def fetch_page(
        self,
        endpoint: PullRequestEndpoint,
        credentials: str,
        page: PageRequest,
    ) -> List[PullRequestSummary]:
        """Fetch one page of completed pull requests, newest-closed first.

        Uses ``searchCriteria.status=completed`` with ``$top``/``$skip`` offset
        pagination.
        """
        params: Dict[str, Any] = {
            "searchCriteria.status": "completed",
            "$top": page.page_size,
            "$skip": page.offset,
        }
        if self._target_branch:
            params["searchCriteria.targetRefName"] = _qualify_branch(self._target_branch)

        url = self._build_url(endpoint)
        payload = self._get_json(url, credentials, params)

        items = payload.get("value")
        if not isinstance(items, list):
            raise TransportError(f"Azure DevOps API response has no 'value' list: GET {url}")

        return [parse_pull_request(endpoint, item) for item in items]


def parse_pull_request(endpoint: PullRequestEndpoint, item: Any) -> PullRequestSummary:
    """Build a ``PullRequestSummary`` from one listing item.

    Raises:
        MalformedPayloadError: If a required field is missing or has the
            wrong type, or the ``closedDate`` cannot be parsed.
    """
    if not isinstance(item, dict):
        raise MalformedPayloadError(f"Azure DevOps pull request item is not an object: {item!r}")

    pr_id = item.get("pullRequestId")
    closed_date = item.get("closedDate")
    target_ref = item.get("targetRefName")
    title = item.get("title")
    repository = item.get("repository") or {}

    if pr_id is None or not closed_date or not target_ref or title is None:
        raise MalformedPayloadError(
            f"Azure DevOps pull request payload is missing required fields: payload={item}"
        )
    if isinstance(pr_id, bool):
        raise MalformedPayloadError(f"Azure DevOps pull request id is not an integer: {pr_id!r}")
    try:
        pr_id = int(pr_id)
    except (TypeError, ValueError) as exc:
        raise MalformedPayloadError(
            f"Azure DevOps pull request id is not an integer: {pr_id!r}"
        ) from exc
    if not isinstance(repository, dict):
        raise MalformedPayloadError(
            f"Azure DevOps pull request {pr_id} has a non-object repository: {repository!r}"
        )

    repository_name = repository.get("name")
    if not endpoint.repository and not repository_name:
        raise MalformedPayloadError(
            f"Azure DevOps pull request payload has no repository name: pr_id={pr_id}"
        )

    try:
        closed_at = parse_ado_datetime(str(closed_date))
    except ValueError as exc:
        raise MalformedPayloadError(
            f"Azure DevOps pull request {pr_id} has an unparseable closedDate: {closed_date!r}"
        ) from exc

    return PullRequestSummary(
        id=pr_id,
        target_branch=_short_branch(str(target_ref)),
        closed_at=closed_at,
        title=str(title),
        link=endpoint.pull_request_link(pr_id, repository_name),
    )


def parse_ado_datetime(value: str) -> datetime:
    """Parse Azure DevOps ISO8601 timestamps into timezone-aware UTC datetimes.

    Fractional seconds longer than microsecond precision are truncated.
    """
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    normalized = _FRACTION_PATTERN.sub(
        lambda match: "." + match.group(1)[:6].ljust(6, "0"), normalized, count=1
    )

    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _qualify_branch(branch: str) -> str:
    return branch if branch.startswith("refs/") else f"{_BRANCH_PREFIX}{branch}"


def _short_branch(ref_name: str) -> str:
    if ref_name.startswith(_BRANCH_PREFIX):
        return ref_name[len(_BRANCH_PREFIX):]
    return ref_name
