"""Tests for Azure DevOps API client behavior with mocked HTTP."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ado_pr_report.ado_client import AdoClient, parse_ado_datetime, parse_pull_request
from ado_pr_report.errors import ConfigurationError, MalformedPayloadError, TransportError
from ado_pr_report.models import PageRequest, PullRequestEndpoint

ENDPOINT = PullRequestEndpoint(organization="org", project="proj", repository="repo")


def _response(status_code: int, payload=None, text: str = "", headers: dict | None = None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _pr_item(pr_id: int, closed: str = "2026-01-01T01:00:00Z", **overrides) -> dict:
    item = {
        "pullRequestId": pr_id,
        "closedDate": closed,
        "targetRefName": "refs/heads/main",
        "title": f"Change {pr_id}",
        "status": "completed",
        "repository": {"name": "repo"},
    }
    item.update(overrides)
    return item


def test_fetch_page_sends_completed_status_and_offset_params():
    """Verify page requests filter completed PRs and page with $top/$skip."""
    client = AdoClient()
    client._session.get = Mock(return_value=_response(200, payload={"value": [_pr_item(1)]}))

    prs = client.fetch_page(ENDPOINT, "pat-token", PageRequest(offset=200, page_size=100))

    assert [pr.id for pr in prs] == [1]
    call = client._session.get.call_args
    assert call.args[0] == "https://dev.azure.com/org/proj/_apis/git/repositories/repo/pullrequests"
    params = call.kwargs["params"]
    assert params["searchCriteria.status"] == "completed"
    assert params["$top"] == 100
    assert params["$skip"] == 200
    assert params["api-version"] == "7.1"
    assert "searchCriteria.targetRefName" not in params
    assert call.kwargs["auth"].username == ""
    assert call.kwargs["auth"].password == "pat-token"
    assert call.kwargs["timeout"] == 30


def test_fetch_page_uses_project_listing_without_repository():
    """Verify project-wide listings use the project pull request endpoint."""
    client = AdoClient()
    client._session.get = Mock(return_value=_response(200, payload={"value": []}))

    client.fetch_page(PullRequestEndpoint("org", "proj"), "pat", PageRequest(0, 10))

    assert client._session.get.call_args.args[0] == "https://dev.azure.com/org/proj/_apis/git/pullrequests"


def test_fetch_page_adds_qualified_target_branch_filter():
    """Verify target branch filters are sent as full ref names."""
    client = AdoClient(target_branch="release/1.0")
    client._session.get = Mock(return_value=_response(200, payload={"value": []}))

    client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))

    params = client._session.get.call_args.kwargs["params"]
    assert params["searchCriteria.targetRefName"] == "refs/heads/release/1.0"


def test_fetch_page_http_error_raises_transport_error_without_retry():
    """Verify HTTP failures surface immediately when retries are disabled."""
    client = AdoClient()
    client._session.get = Mock(return_value=_response(503, text="service unavailable"))

    with patch("ado_pr_report.ado_client.time.sleep") as sleep_mock:
        with pytest.raises(TransportError):
            client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))

    assert client._session.get.call_count == 1
    sleep_mock.assert_not_called()


def test_fetch_page_connection_error_raises_transport_error():
    """Verify connection failures are wrapped in TransportError."""
    client = AdoClient()
    client._session.get = Mock(side_effect=requests.ConnectionError("unreachable"))

    with pytest.raises(TransportError):
        client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))


def test_fetch_page_invalid_json_raises_transport_error():
    """Verify non-JSON bodies are reported as transport failures."""
    client = AdoClient()
    response = _response(200)
    response.json.side_effect = ValueError("not json")
    client._session.get = Mock(return_value=response)

    with pytest.raises(TransportError):
        client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))


def test_fetch_page_missing_value_list_raises_transport_error():
    """Verify payloads without a 'value' list are rejected."""
    client = AdoClient()
    client._session.get = Mock(return_value=_response(200, payload={"count": 0}))

    with pytest.raises(TransportError):
        client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))


def test_get_json_retries_on_429_when_attempts_allow():
    """Verify opted-in retries back off after HTTP 429 and then succeed."""
    client = AdoClient(max_attempts=3)
    first = _response(429, payload={"value": []}, headers={"Retry-After": "2"})
    second = _response(200, payload={"value": [_pr_item(1)]})
    client._session.get = Mock(side_effect=[first, second])

    with patch("ado_pr_report.ado_client.time.sleep") as sleep_mock:
        prs = client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))

    assert [pr.id for pr in prs] == [1]
    assert client._session.get.call_count == 2
    sleep_mock.assert_called_once_with(2)


def test_get_json_retries_on_5xx_and_raises_after_max_attempts():
    """Verify retryable server errors raise TransportError once attempts are exhausted."""
    client = AdoClient(max_attempts=3)
    server_error = _response(503, text="service unavailable")
    client._session.get = Mock(side_effect=[server_error] * 3)

    with patch("ado_pr_report.ado_client.time.sleep") as sleep_mock:
        with pytest.raises(TransportError):
            client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))

    assert client._session.get.call_count == 3
    assert sleep_mock.call_count == 2


def test_client_rejects_non_positive_attempts():
    """Verify at least one attempt is required."""
    with pytest.raises(ConfigurationError):
        AdoClient(max_attempts=0)


def test_parse_pull_request_builds_summary():
    """Verify listing items map to summaries with short branch and link."""
    pr = parse_pull_request(ENDPOINT, _pr_item(12, closed="2026-01-05T10:20:30.1234567Z"))

    assert pr.id == 12
    assert pr.target_branch == "main"
    assert pr.title == "Change 12"
    assert pr.closed_at == datetime(2026, 1, 5, 10, 20, 30, 123456, tzinfo=timezone.utc)
    assert pr.link == "https://dev.azure.com/org/proj/_git/repo/pullrequest/12"


def test_parse_pull_request_project_listing_links_item_repository():
    """Verify project-wide items link through their own repository."""
    endpoint = PullRequestEndpoint("org", "proj")

    pr = parse_pull_request(endpoint, _pr_item(3, repository={"name": "svc"}))

    assert pr.link == "https://dev.azure.com/org/proj/_git/svc/pullrequest/3"


@pytest.mark.parametrize("missing", ["pullRequestId", "closedDate", "targetRefName", "title"])
def test_parse_pull_request_missing_field_raises_malformed_payload(missing):
    """Verify items missing required fields are never silently dropped."""
    item = _pr_item(1)
    del item[missing]

    with pytest.raises(MalformedPayloadError):
        parse_pull_request(ENDPOINT, item)


@pytest.mark.parametrize(
    "overrides",
    [
        {"pullRequestId": "abc"},
        {"pullRequestId": {"x": 1}},
        {"pullRequestId": True},
        {"repository": "repo-as-string"},
    ],
)
def test_parse_pull_request_wrong_field_types_raise_malformed_payload(overrides):
    """Verify badly typed ids and repositories surface as transport failures."""
    with pytest.raises(MalformedPayloadError):
        parse_pull_request(ENDPOINT, _pr_item(1, **overrides))


def test_fetch_page_with_malformed_item_raises_transport_error():
    """Verify a malformed item on a page aborts the page as a transport failure."""
    client = AdoClient()
    payload = {"value": [_pr_item(1), _pr_item(2, pullRequestId="abc")]}
    client._session.get = Mock(return_value=_response(200, payload=payload))

    with pytest.raises(TransportError):
        client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))


def test_parse_pull_request_bad_timestamp_raises_transport_class_error():
    """Verify unparseable completion timestamps surface as transport failures."""
    with pytest.raises(TransportError):
        parse_pull_request(ENDPOINT, _pr_item(1, closed="yesterday"))


def test_parse_ado_datetime_handles_offsets_and_naive_values():
    """Verify timestamps are normalized to timezone-aware UTC."""
    assert parse_ado_datetime("2026-01-01T05:00:00+05:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert parse_ado_datetime("2026-01-01T00:00:00") == datetime(2026, 1, 1, tzinfo=timezone.utc)
    assert parse_ado_datetime("2026-01-01T00:00:00.5Z") == datetime(
        2026, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc
    )


def test_get_json_connection_errors_raise_after_last_attempt():
    """Verify repeated connection failures stop after the configured attempts."""
    client = AdoClient(max_attempts=2)
    client._session.get = Mock(side_effect=requests.ConnectionError("unreachable"))

    with patch("ado_pr_report.ado_client.time.sleep") as sleep_mock:
        with pytest.raises(TransportError):
            client.fetch_page(ENDPOINT, "pat", PageRequest(0, 10))

    assert client._session.get.call_count == 2
    sleep_mock.assert_called_once_with(1)
