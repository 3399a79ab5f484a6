"""Shared fixtures for Service Desk Tools tests."""

import json

import pytest
import requests

from servicedesk_tools.integrations.freshdesk import HelpdeskClient
from servicedesk_tools.integrations.jira import IssueTrackerClient
from servicedesk_tools.integrations.models import HelpdeskTicket, IssueTrackerTicket


def _make_response(status_code=200, json_data=None, text=None, reason=None):
    response = requests.Response()
    response.status_code = status_code
    response.reason = reason or ("OK" if status_code < 400 else "Error")
    if json_data is not None:
        response._content = json.dumps(json_data).encode("utf-8")
    else:
        response._content = (text or "").encode("utf-8")
    response.encoding = "utf-8"
    response.url = "https://example.test/api"
    return response


def _make_ticket(
    ticket_id=1,
    subject="",
    description="",
    custom_fields=None,
    created_at="2024-01-01T00:00:00Z",
    status=2,
):
    return HelpdeskTicket.from_api(
        {
            "id": ticket_id,
            "subject": subject,
            "description": description,
            "status": status,
            "priority": 1,
            "custom_fields": custom_fields or {},
            "created_at": created_at,
            "updated_at": created_at,
        }
    )


def _make_issue(key="SUP-1", status="In Progress", summary="Fix it", fix_version=None):
    return IssueTrackerTicket(
        key=key,
        summary=summary,
        status=status,
        priority="High",
        fix_version=fix_version,
    )


@pytest.fixture
def make_response():
    """Factory for real requests.Response objects."""
    return _make_response


@pytest.fixture
def make_ticket():
    """Factory for parsed helpdesk tickets."""
    return _make_ticket


@pytest.fixture
def make_issue():
    """Factory for Jira tickets."""
    return _make_issue


@pytest.fixture
def helpdesk_client():
    """Freshdesk client with explicit credentials."""
    return HelpdeskClient(domain="acme", api_key="fd-key")


@pytest.fixture
def jira_client():
    """Jira client with explicit credentials."""
    return IssueTrackerClient(
        base_url="https://acme.atlassian.net",
        username="bot@acme.test",
        api_token="jira-token",
        project_key="SUP",
    )
