"""Data models for the helpdesk and issue tracker integrations.

This module defines the ticket shapes read from Freshdesk and Jira,
the typed result of resolving a cross reference, and the merged
records produced by a correlation pass.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Union

# Scalar values a helpdesk custom field may hold
CustomFieldValue = Union[str, int, float, bool, None]

UNASSIGNED = "Unassigned"

_COMPACT_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


class TicketSource(Enum):
    """Source systems for tickets."""

    FRESHDESK = "freshdesk"
    JIRA = "jira"


class ResolutionOutcome(Enum):
    """Outcome of looking up one issue key."""

    RESOLVED = "resolved"
    NOT_FOUND = "not_found"
    ERROR = "error"


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO 8601 timestamp from either API.

    Handles the trailing "Z" used by Freshdesk and the "+0000" offsets
    used by Jira. Anything unparseable becomes None.
    """
    if not isinstance(value, str) or not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    text = _COMPACT_OFFSET.sub(r"\1:\2", text)
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_custom_fields(raw: Any) -> dict[str, CustomFieldValue]:
    """Coerce a raw custom field mapping into scalar values.

    Nested lists and objects are not part of the closed value set and
    are stored as None; the key itself is kept.
    """
    if not isinstance(raw, dict):
        return {}
    fields: dict[str, CustomFieldValue] = {}
    for key, value in raw.items():
        if isinstance(value, (str, int, float, bool)) or value is None:
            fields[str(key)] = value
        else:
            fields[str(key)] = None
    return fields


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_str(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _named(obj: Any, attribute: str) -> str | None:
    """Read a string attribute of a nested Jira object such as status."""
    if isinstance(obj, dict) and isinstance(obj.get(attribute), str):
        return obj[attribute]
    return None


@dataclass(frozen=True)
class ApiResponse:
    """Outcome of one helpdesk API call.

    ``status`` is the HTTP status code, or 0 when no response arrived.
    """

    status: int
    data: Any = None
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the call succeeded."""
        return self.error is None and 200 <= self.status < 300


@dataclass(frozen=True)
class StatusChoice:
    """One entry of the helpdesk status picklist."""

    id: int
    label: str


@dataclass(frozen=True)
class HelpdeskTicket:
    """A Freshdesk ticket, read-only from this system's point of view."""

    id: int
    subject: str = ""
    description: str = ""
    status: int = 0
    priority: int = 0
    custom_fields: dict[str, CustomFieldValue] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    requester_name: str | None = None
    company_name: str | None = None
    tags: tuple[str, ...] = field(default_factory=tuple)

    # Untouched upstream payload
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_api(cls, data: Any) -> HelpdeskTicket:
        """Parse a Freshdesk ticket payload.

        Args:
            data: Raw ticket object from the API

        Returns:
            Parsed HelpdeskTicket (missing fields get neutral defaults)
        """
        if not isinstance(data, dict):
            data = {}

        description = _as_str(data.get("description")) or _as_str(
            data.get("description_text")
        )
        tags = data.get("tags")

        return cls(
            id=_as_int(data.get("id")),
            subject=_as_str(data.get("subject")),
            description=description,
            status=_as_int(data.get("status")),
            priority=_as_int(data.get("priority")),
            custom_fields=normalize_custom_fields(data.get("custom_fields")),
            created_at=parse_timestamp(data.get("created_at")),
            updated_at=parse_timestamp(data.get("updated_at")),
            requester_name=data.get("requester_name") or None,
            company_name=data.get("company_name") or None,
            tags=tuple(t for t in tags if isinstance(t, str))
            if isinstance(tags, list)
            else (),
            raw=dict(data),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "subject": self.subject,
            "description": self.description,
            "status": self.status,
            "priority": self.priority,
            "custom_fields": dict(self.custom_fields),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
            "requester_name": self.requester_name,
            "company_name": self.company_name,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class IssueSummary:
    """The slice of a Jira issue shown next to a helpdesk ticket."""

    key: str
    status: str
    summary: str
    fix_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": self.key,
            "status": self.status,
            "fix_version": self.fix_version,
            "summary": self.summary,
        }


@dataclass(frozen=True)
class IssueTrackerTicket:
    """A Jira issue, read-only from this system's point of view."""

    key: str
    summary: str = ""
    status: str = ""
    priority: str = ""
    assignee: str | None = None
    fix_version: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_api(cls, issue: Any) -> IssueTrackerTicket:
        """Parse a Jira issue object.

        Args:
            issue: Raw issue with a "fields" object

        Returns:
            Parsed IssueTrackerTicket (malformed parts get neutral defaults)
        """
        if not isinstance(issue, dict):
            issue = {}
        fields = issue.get("fields")
        if not isinstance(fields, dict):
            fields = {}

        status = _named(fields.get("status"), "name") or ""
        priority = _named(fields.get("priority"), "name") or ""
        assignee = _named(fields.get("assignee"), "displayName")

        fix_version = None
        versions = fields.get("fixVersions")
        if isinstance(versions, list) and versions:
            fix_version = _named(versions[0], "name")

        return cls(
            key=_as_str(issue.get("key")),
            summary=_as_str(fields.get("summary")),
            status=status,
            priority=priority,
            assignee=assignee,
            fix_version=fix_version,
            created_at=parse_timestamp(fields.get("created")),
            updated_at=parse_timestamp(fields.get("updated")),
        )

    def to_summary(self) -> IssueSummary:
        """Reduce to the fields used in correlated output."""
        return IssueSummary(
            key=self.key,
            status=self.status,
            summary=self.summary,
            fix_version=self.fix_version,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": self.key,
            "summary": self.summary,
            "status": self.status,
            "priority": self.priority,
            "assignee": self.assignee,
            "fix_version": self.fix_version,
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


@dataclass(frozen=True)
class TicketCountSummary:
    """Counts of outstanding issues, grouped three ways."""

    total: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_assignee: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)

    @classmethod
    def from_tickets(cls, tickets: list[IssueTrackerTicket]) -> TicketCountSummary:
        """Build the summary in a single pass over the tickets."""
        by_status: dict[str, int] = {}
        by_assignee: dict[str, int] = {}
        by_priority: dict[str, int] = {}

        for ticket in tickets:
            by_status[ticket.status] = by_status.get(ticket.status, 0) + 1
            assignee = ticket.assignee or UNASSIGNED
            by_assignee[assignee] = by_assignee.get(assignee, 0) + 1
            by_priority[ticket.priority] = by_priority.get(ticket.priority, 0) + 1

        return cls(
            total=len(tickets),
            by_status=by_status,
            by_assignee=by_assignee,
            by_priority=by_priority,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "total": self.total,
            "by_status": dict(self.by_status),
            "by_assignee": dict(self.by_assignee),
            "by_priority": dict(self.by_priority),
        }


@dataclass(frozen=True)
class Resolution:
    """Typed result of resolving one issue key.

    Exactly one of ``issue`` (RESOLVED) or ``error`` (ERROR) is set;
    NOT_FOUND carries neither.
    """

    key: str
    outcome: ResolutionOutcome
    issue: IssueSummary | None = None
    error: str | None = None

    @classmethod
    def resolved(cls, key: str, issue: IssueSummary) -> Resolution:
        return cls(key=key, outcome=ResolutionOutcome.RESOLVED, issue=issue)

    @classmethod
    def not_found(cls, key: str) -> Resolution:
        return cls(key=key, outcome=ResolutionOutcome.NOT_FOUND)

    @classmethod
    def failed(cls, key: str, error: str) -> Resolution:
        return cls(key=key, outcome=ResolutionOutcome.ERROR, error=error)


@dataclass(frozen=True)
class CorrelatedItem:
    """A helpdesk ticket merged with the issue it references.

    ``issue_info`` is None when no reference was found or when the lookup
    failed; ``error`` is only set in the latter case.
    """

    helpdesk_ticket: HelpdeskTicket
    issue_info: IssueSummary | None = None
    error: str | None = None
    reference: str | None = None

    @classmethod
    def from_resolution(
        cls, ticket: HelpdeskTicket, resolution: Resolution | None
    ) -> CorrelatedItem:
        """Build an item from a ticket and its (optional) resolution."""
        if resolution is None:
            return cls(helpdesk_ticket=ticket)
        return cls(
            helpdesk_ticket=ticket,
            issue_info=resolution.issue,
            error=resolution.error,
            reference=resolution.key,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: dict[str, Any] = {
            "helpdesk_ticket": self.helpdesk_ticket.to_dict(),
            "issue_info": self.issue_info.to_dict() if self.issue_info else None,
            "reference": self.reference,
        }
        if self.error is not None:
            data["error"] = self.error
        return data
