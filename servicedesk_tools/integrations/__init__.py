"""Ticketing system integrations for Service Desk Tools.

This package provides clients for the Freshdesk helpdesk and the
Jira issue tracker, plus the data models shared by both.
"""

from .base import IntegrationClient
from .freshdesk import HelpdeskClient, find_status_field, status_choices
from .jira import IssueTrackerClient
from .models import (
    UNASSIGNED,
    ApiResponse,
    CorrelatedItem,
    CustomFieldValue,
    HelpdeskTicket,
    IssueSummary,
    IssueTrackerTicket,
    Resolution,
    ResolutionOutcome,
    StatusChoice,
    TicketCountSummary,
    TicketSource,
    parse_timestamp,
)

__all__ = [
    # Clients
    "IntegrationClient",
    "HelpdeskClient",
    "IssueTrackerClient",
    # Models
    "ApiResponse",
    "CorrelatedItem",
    "CustomFieldValue",
    "HelpdeskTicket",
    "IssueSummary",
    "IssueTrackerTicket",
    "Resolution",
    "ResolutionOutcome",
    "StatusChoice",
    "TicketCountSummary",
    "TicketSource",
    "UNASSIGNED",
    # Utilities
    "find_status_field",
    "status_choices",
    "parse_timestamp",
]
