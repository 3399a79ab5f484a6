"""Freshdesk helpdesk integration.

This module provides a client for the Freshdesk REST API (v2).
Every call returns an ``ApiResponse`` instead of raising, so callers
can fall back to another strategy when a request fails.
"""

from __future__ import annotations

import os
from typing import Any
from urllib.parse import quote

import requests

from ..desk_logging import get_logger
from ..exceptions import ConfigurationError
from .base import IntegrationClient
from .models import ApiResponse, HelpdeskTicket, StatusChoice, TicketSource

logger = get_logger("freshdesk")

# Freshdesk ignores the password part when authenticating with an API key
API_KEY_PASSWORD = "X"

SLA_OVERRIDE_NOTE = "SLA has been overridden as per Service Analytics review."
DEFAULT_SLA_FIELD = "review_for_sla"


def find_status_field(fields: list[dict[str, Any]]) -> dict[str, Any] | None:
    """Find the status field in a ticket field schema."""
    for field in fields:
        if not isinstance(field, dict):
            continue
        if field.get("name") == "status" or field.get("label") == "Status":
            return field
    return None


def status_choices(field: dict[str, Any]) -> list[StatusChoice]:
    """Extract the picklist choices of the status field.

    Freshdesk returns status choices as ``{"2": ["Open", "Being Processed"]}``
    (agent label first); other deployments return a list of
    ``{"id", "value", "label"}`` objects. Both shapes are accepted.
    """
    choices = field.get("choices")
    result: list[StatusChoice] = []

    if isinstance(choices, dict):
        for raw_id, labels in choices.items():
            try:
                choice_id = int(raw_id)
            except (TypeError, ValueError):
                continue
            if isinstance(labels, list) and labels:
                label = str(labels[0])
            else:
                label = str(labels)
            result.append(StatusChoice(id=choice_id, label=label))

    elif isinstance(choices, list):
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            try:
                choice_id = int(choice.get("id"))
            except (TypeError, ValueError):
                continue
            label = choice.get("label") or choice.get("value") or ""
            result.append(StatusChoice(id=choice_id, label=str(label)))

    return result


class HelpdeskClient(IntegrationClient):
    """Client for the Freshdesk REST API.

    Ordinary HTTP failures come back as ``ApiResponse.error``; retry
    policy belongs to the caller, so this client never retries.
    """

    def __init__(
        self,
        domain: str | None = None,
        api_key: str | None = None,
        verify_ssl: bool = True,
        timeout: float = 30.0,
        requests_per_minute: int = 200,
    ):
        """Initialize Freshdesk client.

        Args:
            domain: Freshdesk subdomain (defaults to FRESHDESK_DOMAIN env var)
            api_key: Freshdesk API key (defaults to FRESHDESK_API_KEY env var)
            verify_ssl: Verify TLS certificates for this client
            timeout: Per-request timeout in seconds
            requests_per_minute: Client-side rate limit
        """
        domain = domain or os.environ.get("FRESHDESK_DOMAIN", "")
        api_key = api_key or os.environ.get("FRESHDESK_API_KEY", "")

        missing = [
            name
            for name, value in (("domain", domain), ("api_key", api_key))
            if not value
        ]
        if missing:
            raise ConfigurationError(
                "Freshdesk configuration missing. Set FRESHDESK_DOMAIN and "
                "FRESHDESK_API_KEY environment variables or pass them explicitly.",
                missing=missing,
            )

        self.domain = domain
        self.api_key = api_key

        super().__init__(
            base_url=f"https://{self._host(domain)}/api/v2",
            auth=(api_key, API_KEY_PASSWORD),
            verify_ssl=verify_ssl,
            timeout=timeout,
            max_retries=0,
            requests_per_minute=requests_per_minute,
        )

    @staticmethod
    def _host(domain: str) -> str:
        domain = domain.strip().rstrip("/")
        if domain.startswith("https://"):
            domain = domain[len("https://") :]
        if domain.endswith(".freshdesk.com"):
            return domain
        return f"{domain}.freshdesk.com"

    @property
    def source(self) -> TicketSource:
        """Return the ticket source."""
        return TicketSource.FRESHDESK

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        payload: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """Make a request to the Freshdesk API.

        Args:
            method: HTTP method
            endpoint: API endpoint (relative to base)
            params: Query parameters
            payload: JSON body

        Returns:
            ApiResponse with the decoded JSON body or an error message
        """
        url = self._url(endpoint)
        logger.debug(f"{method} {url}")

        try:
            response = self._execute_with_retry(
                self._session.request,
                method,
                url,
                params=params,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.warning(f"Freshdesk request {method} {endpoint} failed: {e}")
            return ApiResponse(status=0, error=f"Network error: {e}")

        if not response.ok:
            logger.warning(
                f"Freshdesk request {method} {endpoint} returned {response.status_code}"
            )
            return ApiResponse(
                status=response.status_code,
                error=f"Freshdesk API error: {response.status_code} - {response.text}",
            )

        if not response.content:
            return ApiResponse(status=response.status_code)

        try:
            data = response.json()
        except ValueError:
            return ApiResponse(
                status=response.status_code,
                error=f"Freshdesk API error: invalid JSON in response - {response.text}",
            )
        return ApiResponse(status=response.status_code, data=data)

    @staticmethod
    def _parse_ticket_list(response: ApiResponse) -> ApiResponse:
        """Replace a raw ticket list payload with parsed tickets."""
        if not response.success:
            return response

        data = response.data
        if isinstance(data, dict):
            # The search endpoint wraps matches in {"results": [...], "total": n}
            data = data.get("results", [])
        if not isinstance(data, list):
            data = []

        tickets = [HelpdeskTicket.from_api(item) for item in data]
        return ApiResponse(status=response.status, data=tickets)

    @staticmethod
    def _parse_single_ticket(response: ApiResponse) -> ApiResponse:
        if not response.success:
            return response
        return ApiResponse(
            status=response.status, data=HelpdeskTicket.from_api(response.data)
        )

    def get_ticket(self, ticket_id: int | str) -> ApiResponse:
        """Get a single ticket.

        Args:
            ticket_id: Freshdesk ticket ID

        Returns:
            ApiResponse carrying a HelpdeskTicket
        """
        return self._parse_single_ticket(self._request("GET", f"/tickets/{ticket_id}"))

    def get_ticket_fields(self) -> ApiResponse:
        """Get the ticket field schema (used to discover status choices).

        Returns:
            ApiResponse carrying a list of field objects
        """
        return self._request("GET", "/ticket_fields")

    def get_status_choices(self) -> list[StatusChoice]:
        """Discover the status picklist through the field schema.

        Returns:
            Status choices, or an empty list if the schema is unavailable
        """
        response = self.get_ticket_fields()
        if not response.success or not isinstance(response.data, list):
            logger.warning(f"Could not load ticket fields: {response.error}")
            return []

        field = find_status_field(response.data)
        if field is None:
            logger.warning("Ticket field schema has no status field")
            return []
        return status_choices(field)

    def search_tickets(self, query: str) -> ApiResponse:
        """Search tickets with the Freshdesk filter grammar.

        Args:
            query: Filter expression, e.g. 'status:"With Development"'

        Returns:
            ApiResponse carrying a list of HelpdeskTicket
        """
        encoded = quote(query, safe="!~*'()")
        return self._parse_ticket_list(
            self._request("GET", f'/search/tickets?query="{encoded}"')
        )

    def get_tickets(
        self,
        page: int = 1,
        per_page: int = 100,
        filters: dict[str, Any] | None = None,
    ) -> ApiResponse:
        """List tickets one page at a time.

        Args:
            page: 1-based page number
            per_page: Page size
            filters: Extra query parameters; None values are skipped

        Returns:
            ApiResponse carrying a list of HelpdeskTicket
        """
        params: dict[str, Any] = {"page": str(page), "per_page": str(per_page)}

        for key, value in (filters or {}).items():
            if value is None:
                continue
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            else:
                params[key] = str(value)

        return self._parse_ticket_list(self._request("GET", "/tickets", params=params))

    def add_private_note(self, ticket_id: int | str, body: str) -> ApiResponse:
        """Add an agent-only note to a ticket.

        Args:
            ticket_id: Freshdesk ticket ID
            body: Note body (HTML allowed)

        Returns:
            ApiResponse carrying the created note
        """
        logger.info(f"Adding private note to ticket {ticket_id}")
        return self._request(
            "POST",
            f"/tickets/{ticket_id}/notes",
            payload={"body": body, "private": True},
        )

    def update_ticket_custom_field(
        self, ticket_id: int | str, field_name: str, value: Any
    ) -> ApiResponse:
        """Update exactly one custom field on a ticket.

        Args:
            ticket_id: Freshdesk ticket ID
            field_name: Custom field API name
            value: New value

        Returns:
            ApiResponse carrying the updated HelpdeskTicket
        """
        return self._parse_single_ticket(
            self._request(
                "PUT",
                f"/tickets/{ticket_id}",
                payload={"custom_fields": {field_name: value}},
            )
        )

    def update_sla_status(
        self,
        ticket_id: int | str,
        within_sla: bool,
        field_name: str = DEFAULT_SLA_FIELD,
    ) -> ApiResponse:
        """Set the SLA review override on a ticket.

        Marking a ticket as within SLA also leaves a private note. The
        note is best effort: its failure is logged and does not change
        the returned update result.

        Args:
            ticket_id: Freshdesk ticket ID
            within_sla: True to override the ticket as within SLA
            field_name: Checkbox custom field holding the override

        Returns:
            ApiResponse of the field update
        """
        result = self.update_ticket_custom_field(ticket_id, field_name, within_sla)

        if result.status == 200 and within_sla:
            note = self.add_private_note(ticket_id, SLA_OVERRIDE_NOTE)
            if note.error:
                logger.warning(
                    f"Failed to add SLA override note to ticket {ticket_id}: {note.error}"
                )

        return result

    def check_connection(self) -> dict[str, Any]:
        """Test credentials by loading the ticket field schema."""
        response = self.get_ticket_fields()
        if not response.success:
            return {
                "success": False,
                "error": response.error,
                "status": response.status,
            }
        fields = response.data if isinstance(response.data, list) else []
        return {"success": True, "domain": self.domain, "fields_count": len(fields)}
