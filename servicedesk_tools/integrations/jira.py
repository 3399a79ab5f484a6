"""Jira issue tracker integration.

This module provides a client for the Jira Cloud REST API (v3),
enabling outstanding-issue queries, status counts and lookups by key.
"""

from __future__ import annotations

import os
from typing import Any

import requests

from ..desk_logging import get_logger
from ..exceptions import ConfigurationError, IssueTrackerError
from .base import IntegrationClient
from .models import IssueTrackerTicket, TicketCountSummary, TicketSource

logger = get_logger("jira")

CONNECTION_ERROR_MESSAGE = (
    "Unable to connect to JIRA. Please check the JIRA URL and network connection."
)
CERTIFICATE_ERROR_MESSAGE = (
    "SSL certificate error. This may be a development environment issue."
)

_CERTIFICATE_MARKERS = ("certificate", "ssl")
_CONNECTION_MARKERS = (
    "fetch failed",
    "connection",
    "failed to establish",
    "name or service not known",
    "nodename nor servname",
    "max retries exceeded",
)


class IssueTrackerClient(IntegrationClient):
    """Client for the Jira Cloud REST API.

    Unlike the helpdesk client this one raises ``IssueTrackerError``;
    a missing issue is reported as None rather than as an error.
    """

    SEARCH_ENDPOINT = "/rest/api/3/search/jql"
    ISSUE_ENDPOINT = "/rest/api/3/issue/{key}"
    MYSELF_ENDPOINT = "/rest/api/3/myself"

    MAX_RESULTS = 100
    SEARCH_FIELDS = ["key", "summary", "status", "assignee", "priority", "created", "updated"]
    ISSUE_FIELDS = [
        "summary",
        "status",
        "fixVersions",
        "assignee",
        "priority",
        "created",
        "updated",
    ]

    def __init__(
        self,
        base_url: str | None = None,
        username: str | None = None,
        api_token: str | None = None,
        project_key: str | None = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        max_retries: int = 0,
    ):
        """Initialize Jira client.

        Args:
            base_url: Jira site URL (defaults to JIRA_URL env var)
            username: Account email (defaults to JIRA_USERNAME env var)
            api_token: API token (defaults to JIRA_API_TOKEN env var)
            project_key: Project scoping every query (defaults to JIRA_PROJECT_KEY)
            verify_ssl: Verify TLS certificates for this client
            timeout: Per-request timeout in seconds
            max_retries: Retries for transient failures (0 disables)
        """
        values = {
            "url": base_url or os.environ.get("JIRA_URL", ""),
            "username": username or os.environ.get("JIRA_USERNAME", ""),
            "api_token": api_token or os.environ.get("JIRA_API_TOKEN", ""),
            "project_key": project_key or os.environ.get("JIRA_PROJECT_KEY", ""),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ConfigurationError(
                "JIRA configuration missing. Set JIRA_URL, JIRA_USERNAME, "
                "JIRA_API_TOKEN and JIRA_PROJECT_KEY environment variables.",
                missing=missing,
            )

        self.username = values["username"]
        self.project_key = values["project_key"]

        super().__init__(
            base_url=values["url"],
            auth=(values["username"], values["api_token"]),
            verify_ssl=verify_ssl,
            timeout=timeout,
            max_retries=max_retries,
            requests_per_minute=300,
        )

    @property
    def source(self) -> TicketSource:
        """Return the ticket source."""
        return TicketSource.JIRA

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Make a request to the Jira API.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to base)
            params: Query parameters
            payload: JSON body

        Returns:
            Decoded JSON response

        Raises:
            requests.HTTPError: On a non-2xx response
            IssueTrackerError: On transport failure
        """

        def _do_request() -> dict[str, Any]:
            response = self._session.request(
                method,
                self._url(endpoint),
                params=params,
                json=payload,
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json() if response.content else {}

        try:
            return self._execute_with_retry(_do_request)
        except requests.HTTPError:
            raise
        except requests.RequestException as e:
            raise self._classify_transport_error(e) from e

    @staticmethod
    def _classify_transport_error(error: Exception) -> IssueTrackerError:
        """Turn a transport failure into a readable error."""
        text = str(error).lower()
        if any(marker in text for marker in _CERTIFICATE_MARKERS):
            return IssueTrackerError(CERTIFICATE_ERROR_MESSAGE)
        if any(marker in text for marker in _CONNECTION_MARKERS):
            return IssueTrackerError(CONNECTION_ERROR_MESSAGE)
        return IssueTrackerError(f"JIRA request failed: {error}")

    def _search_error(self, error: requests.HTTPError) -> IssueTrackerError:
        """Map a failed search response to a specific error."""
        response = error.response
        status = response.status_code if response is not None else None
        body = response.text if response is not None else ""
        logger.error(f"JIRA API Error - Status: {status}, Response: {body}")

        if status == 401:
            message = "Authentication failed. Please check your JIRA credentials."
        elif status == 403:
            message = (
                "Access denied. Check your permissions for the "
                f"{self.project_key} project."
            )
        elif status == 404:
            message = (
                f'JIRA project "{self.project_key}" not found. '
                "Please verify the project key."
            )
        else:
            reason = response.reason if response is not None else ""
            message = f"JIRA API error: {status} {reason} - {body}"
        return IssueTrackerError(message, status_code=status)

    def get_outstanding_tickets(self) -> list[IssueTrackerTicket]:
        """Get unresolved issues in the configured project, newest first.

        Returns:
            Up to 100 issues

        Raises:
            IssueTrackerError: If the query fails
        """
        payload = {
            "jql": (
                f"project={self.project_key} AND resolution=unresolved "
                "ORDER BY created DESC"
            ),
            "maxResults": self.MAX_RESULTS,
            "fields": self.SEARCH_FIELDS,
        }

        try:
            data = self._request("POST", self.SEARCH_ENDPOINT, payload=payload)
        except requests.HTTPError as e:
            raise self._search_error(e) from e

        issues = data.get("issues") if isinstance(data, dict) else None
        if not isinstance(issues, list):
            return []
        return [
            IssueTrackerTicket.from_api(issue)
            for issue in issues
            if isinstance(issue, dict)
        ]

    def get_ticket_counts(self) -> TicketCountSummary:
        """Count outstanding issues by status, assignee and priority.

        Raises:
            IssueTrackerError: If the underlying query fails
        """
        return TicketCountSummary.from_tickets(self.get_outstanding_tickets())

    def get_ticket_by_key(self, key: str) -> IssueTrackerTicket | None:
        """Get a single issue by its key.

        Args:
            key: Issue key, e.g. "SUP-123"

        Returns:
            The issue, or None if it does not exist

        Raises:
            IssueTrackerError: If the lookup fails for any other reason
        """
        try:
            data = self._request(
                "GET",
                self.ISSUE_ENDPOINT.format(key=key),
                params={"fields": ",".join(self.ISSUE_FIELDS)},
            )
        except requests.HTTPError as e:
            response = e.response
            status = response.status_code if response is not None else None
            if status == 404:
                logger.debug(f"JIRA issue {key} not found")
                return None
            body = response.text if response is not None else ""
            raise IssueTrackerError(
                f"JIRA API error fetching {key}: {status} - {body}",
                status_code=status,
            ) from e

        if not isinstance(data, dict) or not data.get("key"):
            return None
        return IssueTrackerTicket.from_api(data)

    def get_current_user(self) -> dict[str, Any]:
        """Get the authenticated account.

        Raises:
            IssueTrackerError: If authentication or transport fails
        """
        try:
            return self._request("GET", self.MYSELF_ENDPOINT)
        except requests.HTTPError as e:
            response = e.response
            status = response.status_code if response is not None else None
            reason = response.reason if response is not None else ""
            raise IssueTrackerError(
                f"JIRA Authentication Failed: {status} {reason}", status_code=status
            ) from e

    def check_connection(self) -> dict[str, Any]:
        """Test credentials against the current-user endpoint."""
        try:
            user = self.get_current_user()
        except IssueTrackerError as e:
            return {"success": False, "error": str(e), "status": e.status_code}
        return {
            "success": True,
            "message": "JIRA connection successful",
            "user": user.get("displayName"),
            "jira_url": self.base_url,
            "project_key": self.project_key,
        }
