"""Service Desk Tools - Freshdesk and Jira ticket correlation

Talks to the Freshdesk helpdesk and the Jira issue tracker, finds Jira
keys mentioned in helpdesk tickets and merges both views for support staff.
"""

__version__ = "1.0.0"
__description__ = "Cross-system ticket correlation for Freshdesk and Jira"

from .config import ServiceDeskConfig, load_config
from .correlation import CorrelationEngine, extract_references
from .integrations import (
    CorrelatedItem,
    HelpdeskClient,
    HelpdeskTicket,
    IssueTrackerClient,
    IssueTrackerTicket,
    TicketCountSummary,
)

__all__ = [
    "ServiceDeskConfig",
    "load_config",
    "CorrelationEngine",
    "extract_references",
    "HelpdeskClient",
    "IssueTrackerClient",
    "HelpdeskTicket",
    "IssueTrackerTicket",
    "CorrelatedItem",
    "TicketCountSummary",
]
