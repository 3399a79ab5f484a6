"""Exception hierarchy for Service Desk Tools.

Only configuration problems, exhausted batch acquisition and timeouts are
meant to escape a correlation call. Everything else is reported as data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .correlation.acquisition import TierResult


class ServiceDeskError(Exception):
    """Base class for all Service Desk Tools errors."""


class ConfigurationError(ServiceDeskError, ValueError):
    """Required configuration is missing or invalid."""

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class IssueTrackerError(ServiceDeskError):
    """The issue tracker rejected a request or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class BatchAcquisitionError(ServiceDeskError):
    """Every acquisition tier failed with a hard error."""

    def __init__(self, attempts: list[TierResult]):
        self.attempts = list(attempts)
        details = "; ".join(f"{a.tier}: {a.error}" for a in self.attempts)
        super().__init__(f"All ticket acquisition tiers failed ({details})")


class CorrelationTimeoutError(ServiceDeskError):
    """The correlation pass did not finish within the allotted time."""
