"""
Integration tests for the correlation flow.

Runs the service operation end to end against both real clients, with
HTTP answered by an in-process router instead of the network.
"""

import json
from unittest.mock import patch

import pytest
import requests

from servicedesk_tools import service
from servicedesk_tools.config import load_config

ENV = {
    "FRESHDESK_DOMAIN": "acme",
    "FRESHDESK_API_KEY": "fd-key",
    "JIRA_URL": "https://acme.atlassian.net",
    "JIRA_USERNAME": "bot@acme.test",
    "JIRA_API_TOKEN": "jira-token",
    "JIRA_PROJECT_KEY": "SUP",
    "CORRELATION_MAX_WORKERS": "3",
}

HELPDESK_TICKETS = [
    {
        "id": 1,
        "subject": "Oldest, see SUP-1",
        "status": 6,
        "created_at": "2024-01-01T09:00:00Z",
    },
    {
        "id": 2,
        "subject": "Middle",
        "description": "Tracked in SUP-2",
        "status": 6,
        "created_at": "2024-01-02T09:00:00Z",
    },
    {
        "id": 3,
        "subject": "Newest",
        "custom_fields": {"cf_jira": "SUP-3"},
        "status": 6,
        "created_at": "2024-01-03T09:00:00Z",
    },
]

TICKET_FIELDS = [
    {"id": 10, "name": "status", "label": "Status", "choices": {"6": ["With Development"]}}
]


def _response(status_code, payload=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = "OK" if status_code < 400 else "Error"
    response._content = json.dumps(payload).encode("utf-8") if payload is not None else b""
    response.encoding = "utf-8"
    return response


class FakeServices:
    """Answers Freshdesk and Jira requests by URL."""

    def __init__(self, search_status=400, jira_failures=None):
        self.search_status = search_status
        self.jira_failures = jira_failures or {}
        self.calls = []

    def __call__(self, session, method, url, params=None, json=None, timeout=None):
        self.calls.append((method, url, params))

        if "/search/tickets" in url:
            if self.search_status != 200:
                return _response(self.search_status, {"errors": "invalid query"})
            return _response(200, {"results": HELPDESK_TICKETS, "total": 3})
        if url.endswith("/ticket_fields"):
            return _response(200, TICKET_FIELDS)
        if url.endswith("/api/v2/tickets"):
            if params and params.get("status") == "6":
                return _response(200, HELPDESK_TICKETS)
            return _response(200, [])

        if "/rest/api/3/issue/" in url:
            key = url.rsplit("/", 1)[-1]
            if key in self.jira_failures:
                return _response(self.jira_failures[key], {"errorMessages": ["nope"]})
            return _response(
                200,
                {
                    "key": key,
                    "fields": {
                        "summary": f"Work for {key}",
                        "status": {"name": "In Progress"},
                        "fixVersions": [{"name": "5.0"}],
                    },
                },
            )

        return _response(404, {"error": "unexpected"})


@pytest.fixture
def config():
    return load_config(env=ENV)


class TestCorrelationFlow:
    """End-to-end correlation through the service layer."""

    def test_search_rejected_falls_back_to_status_codes(self, config):
        """Test fallback acquisition and mixed lookup outcomes."""
        fake = FakeServices(search_status=400, jira_failures={"SUP-2": 500, "SUP-1": 404})

        with patch.object(requests.Session, "request", autospec=True, side_effect=fake):
            response = service.get_support_dev_items(config)

        assert response.success
        body = response.to_dict()
        items = body["data"]

        assert [i["helpdesk_ticket"]["id"] for i in items] == [3, 2, 1]

        newest, middle, oldest = items
        assert newest["issue_info"] == {
            "key": "SUP-3",
            "status": "In Progress",
            "fix_version": "5.0",
            "summary": "Work for SUP-3",
        }
        assert middle["issue_info"] is None
        assert "SUP-2" in middle["error"]
        assert oldest["issue_info"] is None
        assert "error" not in oldest

        status_calls = [c for c in fake.calls if c[1].endswith("/api/v2/tickets")]
        assert status_calls[0][2]["status"] == "6"

    def test_search_success_skips_other_tiers(self, config):
        fake = FakeServices(search_status=200)

        with patch.object(requests.Session, "request", autospec=True, side_effect=fake):
            response = service.get_support_dev_items(config)

        assert len(response.data) == 3
        assert not any(c[1].endswith("/ticket_fields") for c in fake.calls)

    def test_every_tier_failing(self, config):
        def down(session, method, url, **kwargs):
            raise requests.ConnectionError("connection refused")

        with patch.object(requests.Session, "request", autospec=True, side_effect=down):
            response = service.get_support_dev_items(config)

        assert not response.success
        assert response.status_code == 500
        assert "status_search" in response.error
        assert "recent_tickets" in response.error
