"""Batch acquisition strategies for the correlation engine.

Helpdesk search support for custom statuses is unreliable, so the batch
of tickets to correlate is fetched through an ordered list of strategies.
Each strategy takes no input and reports a ``TierResult``; ``acquire_batch``
tries them in order and stops at the first acceptable result.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from ..desk_logging import get_logger
from ..exceptions import BatchAcquisitionError
from ..integrations.freshdesk import HelpdeskClient
from ..integrations.models import ApiResponse, HelpdeskTicket, StatusChoice

logger = get_logger("acquisition")


@dataclass(frozen=True)
class TierResult:
    """What one acquisition strategy produced."""

    tier: str
    tickets: tuple[HelpdeskTicket, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def success(self) -> bool:
        """Check if the tier completed without a hard error."""
        return self.error is None

    @classmethod
    def from_response(cls, tier: str, response: ApiResponse) -> TierResult:
        if not response.success:
            return cls(tier=tier, error=response.error or f"HTTP {response.status}")
        return cls(tier=tier, tickets=tuple(response.data or ()))


@dataclass(frozen=True)
class AcquisitionStrategy:
    """A named way of fetching the ticket batch.

    ``accept_empty`` decides whether an empty but successful result ends
    acquisition or lets the next strategy run.
    """

    name: str
    fetch: Callable[[], TierResult]
    accept_empty: bool = True


@dataclass(frozen=True)
class Batch:
    """The acquired tickets and how they were obtained."""

    tickets: tuple[HelpdeskTicket, ...]
    tier: str | None
    attempts: tuple[TierResult, ...] = field(default_factory=tuple)


def acquire_batch(strategies: Sequence[AcquisitionStrategy]) -> Batch:
    """Run strategies in order until one yields an acceptable batch.

    Args:
        strategies: Ordered acquisition strategies

    Returns:
        The winning batch. If no strategy produced tickets but at least one
        succeeded, an empty batch.

    Raises:
        BatchAcquisitionError: If every strategy failed with an error
    """
    attempts: list[TierResult] = []
    empty_success: str | None = None

    for strategy in strategies:
        try:
            result = strategy.fetch()
        except Exception as e:
            logger.warning(f"Acquisition tier {strategy.name} raised: {e}")
            result = TierResult(tier=strategy.name, error=str(e) or type(e).__name__)
        attempts.append(result)

        if not result.success:
            logger.warning(f"Acquisition tier {strategy.name} failed: {result.error}")
            continue

        if result.tickets:
            logger.info(
                f"Acquired {len(result.tickets)} tickets via tier {strategy.name}"
            )
            return Batch(tickets=result.tickets, tier=strategy.name, attempts=tuple(attempts))

        if strategy.accept_empty:
            logger.info(f"Tier {strategy.name} found no tickets")
            return Batch(tickets=(), tier=strategy.name, attempts=tuple(attempts))

        logger.info(f"Tier {strategy.name} found no tickets, trying next tier")
        if empty_success is None:
            empty_success = strategy.name

    if empty_success is not None:
        return Batch(tickets=(), tier=empty_success, attempts=tuple(attempts))

    raise BatchAcquisitionError(attempts)


def matching_status_codes(choices: Sequence[StatusChoice], label: str) -> list[int]:
    """Find status codes whose label matches the target label.

    Exact (case-insensitive) matches come first, then labels that merely
    contain the target.
    """
    wanted = label.strip().lower()
    if not wanted:
        return []

    exact = [c.id for c in choices if c.label.strip().lower() == wanted]
    partial = [
        c.id
        for c in choices
        if wanted in c.label.lower() and c.id not in exact
    ]
    return exact + partial


def status_search(helpdesk: HelpdeskClient, label: str) -> AcquisitionStrategy:
    """Tier 1: search for tickets whose status label matches."""

    def fetch() -> TierResult:
        query = f'status:"{label}"'
        logger.debug(f"Searching tickets with {query}")
        return TierResult.from_response("status_search", helpdesk.search_tickets(query))

    return AcquisitionStrategy(name="status_search", fetch=fetch, accept_empty=True)


def status_codes(
    helpdesk: HelpdeskClient,
    label: str,
    fallback_codes: Sequence[int] = (),
    per_page: int = 100,
) -> AcquisitionStrategy:
    """Tier 2: list tickets by numeric status code.

    Candidate codes come from the status picklist in the field schema,
    followed by the configured fallback codes.
    """

    def fetch() -> TierResult:
        discovered = matching_status_codes(helpdesk.get_status_choices(), label)
        candidates = list(dict.fromkeys([*discovered, *fallback_codes]))
        if not candidates:
            return TierResult(tier="status_codes", error="No candidate status codes")

        logger.debug(f"Trying status codes {candidates} for {label!r}")
        errors: list[str] = []
        any_success = False

        for code in candidates:
            response = helpdesk.get_tickets(1, per_page, {"status": code})
            if not response.success:
                errors.append(f"status {code}: {response.error}")
                continue
            any_success = True
            if response.data:
                logger.info(f"Found tickets with status code {code}")
                return TierResult(tier="status_codes", tickets=tuple(response.data))

        if any_success:
            return TierResult(tier="status_codes")
        return TierResult(tier="status_codes", error="; ".join(errors))

    return AcquisitionStrategy(name="status_codes", fetch=fetch, accept_empty=False)


def recent_tickets(helpdesk: HelpdeskClient, page_size: int = 30) -> AcquisitionStrategy:
    """Tier 3: the most recently created tickets, unfiltered."""

    def fetch() -> TierResult:
        response = helpdesk.get_tickets(
            1, page_size, {"order_by": "created_at", "order_type": "desc"}
        )
        return TierResult.from_response("recent_tickets", response)

    return AcquisitionStrategy(name="recent_tickets", fetch=fetch, accept_empty=True)


def default_strategies(
    helpdesk: HelpdeskClient,
    target_status: str,
    fallback_codes: Sequence[int] = (),
    per_page: int = 100,
    recent_page_size: int = 30,
) -> list[AcquisitionStrategy]:
    """Build the standard three-tier acquisition order."""
    return [
        status_search(helpdesk, target_status),
        status_codes(helpdesk, target_status, fallback_codes, per_page),
        recent_tickets(helpdesk, recent_page_size),
    ]
