"""Extraction of Jira issue keys from helpdesk ticket text."""

from __future__ import annotations

import re
from collections.abc import Iterator
from typing import Any

# Project-key style identifier, e.g. "SUP-123"
ISSUE_KEY_PATTERN = re.compile(r"\b[A-Z]+-\d+\b")


def _text_sources(ticket: Any) -> Iterator[str]:
    """Yield scannable text in scan order: subject, description, custom fields."""
    subject = getattr(ticket, "subject", None)
    if isinstance(subject, str):
        yield subject

    description = getattr(ticket, "description", None)
    if isinstance(description, str) and description:
        yield description

    custom_fields = getattr(ticket, "custom_fields", None)
    if isinstance(custom_fields, dict):
        for value in custom_fields.values():
            # bool and numbers never hold a key
            if isinstance(value, str):
                yield value


def extract_references(ticket: Any) -> tuple[str, ...]:
    """Find issue keys referenced by a helpdesk ticket.

    Keys are returned in first-seen order without duplicates. Missing or
    oddly typed fields are skipped, so this never raises.

    Args:
        ticket: A HelpdeskTicket (or anything with the same attributes)

    Returns:
        Tuple of issue keys, empty if none were found
    """
    seen: dict[str, None] = {}
    for text in _text_sources(ticket):
        for match in ISSUE_KEY_PATTERN.findall(text):
            seen.setdefault(match, None)
    return tuple(seen)


def first_reference(ticket: Any) -> str | None:
    """Return the first referenced issue key, or None."""
    references = extract_references(ticket)
    return references[0] if references else None
