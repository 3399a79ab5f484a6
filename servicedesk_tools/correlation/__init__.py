"""Correlation of helpdesk tickets with the Jira issues they reference."""

from .acquisition import (
    AcquisitionStrategy,
    Batch,
    TierResult,
    acquire_batch,
    default_strategies,
    matching_status_codes,
    recent_tickets,
    status_codes,
    status_search,
)
from .engine import CorrelationEngine, creation_sort_key, resolve_reference
from .references import ISSUE_KEY_PATTERN, extract_references, first_reference

__all__ = [
    "CorrelationEngine",
    "resolve_reference",
    "creation_sort_key",
    # Acquisition
    "AcquisitionStrategy",
    "Batch",
    "TierResult",
    "acquire_batch",
    "default_strategies",
    "matching_status_codes",
    "status_search",
    "status_codes",
    "recent_tickets",
    # References
    "ISSUE_KEY_PATTERN",
    "extract_references",
    "first_reference",
]
