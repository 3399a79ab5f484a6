"""Cross-system ticket correlation.

The engine fetches a batch of helpdesk tickets, pulls the first Jira key
out of each one, looks those keys up concurrently and merges the results
into a list ordered by ticket creation time, newest first.

A single ticket can never fail the batch: every lookup returns a typed
``Resolution`` and anything unexpected is recorded on that ticket's item.
"""

from __future__ import annotations

from collections.abc import Sequence
import time
from concurrent.futures import ALL_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from ..desk_logging import get_logger
from ..exceptions import CorrelationTimeoutError
from ..integrations.freshdesk import HelpdeskClient
from ..integrations.jira import IssueTrackerClient
from ..integrations.models import CorrelatedItem, HelpdeskTicket, Resolution
from .acquisition import AcquisitionStrategy, Batch, acquire_batch, default_strategies
from .references import extract_references

if TYPE_CHECKING:
    from ..config.models import CorrelationSettings, ServiceDeskConfig

logger = get_logger("correlation")

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def resolve_reference(issue_tracker: IssueTrackerClient, key: str) -> Resolution:
    """Look up one issue key without ever raising.

    Args:
        issue_tracker: Jira client
        key: Issue key to resolve

    Returns:
        RESOLVED with the issue summary, NOT_FOUND when the issue does not
        exist, or ERROR with a description of what went wrong
    """
    try:
        issue = issue_tracker.get_ticket_by_key(key)
    except Exception as e:
        logger.warning(f"Error fetching JIRA ticket {key}: {e}")
        reason = str(e) or type(e).__name__
        return Resolution.failed(key, f"Failed to resolve {key}: {reason}")

    if issue is None:
        return Resolution.not_found(key)
    return Resolution.resolved(key, issue.to_summary())


def creation_sort_key(item: CorrelatedItem) -> datetime:
    """Sort key placing tickets without a timestamp last."""
    created = item.helpdesk_ticket.created_at
    if created is None:
        return _OLDEST
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


class CorrelationEngine:
    """Correlates helpdesk tickets with the Jira issues they mention.

    The engine keeps no state between calls; each ``fetch_correlated``
    starts from a fresh acquisition.
    """

    def __init__(
        self,
        helpdesk: HelpdeskClient,
        issue_tracker: IssueTrackerClient,
        settings: CorrelationSettings | None = None,
        strategies: Sequence[AcquisitionStrategy] | None = None,
    ):
        """Initialize the engine.

        Args:
            helpdesk: Freshdesk client
            issue_tracker: Jira client
            settings: Correlation settings (defaults apply when omitted)
            strategies: Acquisition strategies overriding the default tiers
        """
        if settings is None:
            from ..config.models import CorrelationSettings

            settings = CorrelationSettings()

        self.helpdesk = helpdesk
        self.issue_tracker = issue_tracker
        self.settings = settings
        self._strategies = list(strategies) if strategies is not None else None

    @classmethod
    def from_config(cls, config: ServiceDeskConfig) -> CorrelationEngine:
        """Build an engine and both clients from configuration.

        Raises:
            ConfigurationError: If either system is not configured
        """
        config.require_freshdesk()
        config.require_jira()

        helpdesk = HelpdeskClient(
            domain=config.freshdesk.domain,
            api_key=config.freshdesk.api_key,
            verify_ssl=config.freshdesk.verify_ssl,
            timeout=config.freshdesk.timeout,
        )
        issue_tracker = IssueTrackerClient(
            base_url=config.jira.url,
            username=config.jira.username,
            api_token=config.jira.api_token,
            project_key=config.jira.project_key,
            verify_ssl=config.jira.verify_ssl,
            timeout=config.jira.timeout,
            max_retries=config.jira.max_retries,
        )
        return cls(helpdesk, issue_tracker, settings=config.correlation)

    def acquisition_strategies(self) -> list[AcquisitionStrategy]:
        """Return the ordered acquisition tiers for this engine."""
        if self._strategies is not None:
            return list(self._strategies)
        return default_strategies(
            self.helpdesk,
            self.settings.target_status,
            fallback_codes=self.settings.status_candidates,
            per_page=self.settings.per_page,
            recent_page_size=self.settings.recent_page_size,
        )

    def acquire(self) -> Batch:
        """Fetch the ticket batch.

        Raises:
            BatchAcquisitionError: If every tier failed
        """
        return acquire_batch(self.acquisition_strategies())

    def fetch_correlated(self, timeout: float | None = None) -> list[CorrelatedItem]:
        """Produce the full correlated dataset.

        The timeout is one budget for the whole pass. Acquisition is not
        interrupted (each request is bounded by the helpdesk client timeout),
        but its elapsed time is taken out of what the lookups may use.

        Args:
            timeout: Seconds allowed for the pass (defaults to the configured
                value; None waits indefinitely)

        Returns:
            Correlated items, newest helpdesk ticket first

        Raises:
            BatchAcquisitionError: If no acquisition tier succeeded
            CorrelationTimeoutError: If the pass did not finish in time
        """
        if timeout is None:
            timeout = self.settings.timeout_seconds

        started = time.monotonic()
        batch = self.acquire()
        if not batch.tickets:
            logger.info("No tickets to correlate")
            return []

        if timeout is not None:
            remaining = timeout - (time.monotonic() - started)
            if remaining <= 0:
                raise CorrelationTimeoutError(
                    f"Ticket acquisition used the whole {timeout}s budget "
                    f"before {len(batch.tickets)} tickets could be correlated"
                )
            timeout = remaining
        return self.correlate(batch.tickets, timeout=timeout)

    def correlate_ticket(self, ticket: HelpdeskTicket) -> CorrelatedItem:
        """Correlate one ticket; failures end up on the returned item."""
        try:
            references = extract_references(ticket)
            if not references:
                return CorrelatedItem.from_resolution(ticket, None)
            resolution = resolve_reference(self.issue_tracker, references[0])
            return CorrelatedItem.from_resolution(ticket, resolution)
        except Exception as e:
            logger.error(f"Error processing ticket {ticket.id}: {e}")
            return CorrelatedItem(
                helpdesk_ticket=ticket,
                error=str(e) or "Unknown error processing ticket",
            )

    def correlate(
        self,
        tickets: Sequence[HelpdeskTicket],
        timeout: float | None = None,
    ) -> list[CorrelatedItem]:
        """Correlate a batch of tickets concurrently.

        Results are gathered per ticket and merged once every lookup has
        finished, then sorted by creation time, newest first.

        Args:
            tickets: Helpdesk tickets to correlate
            timeout: Seconds to wait for all lookups (None waits indefinitely)

        Returns:
            Sorted correlated items, one per ticket

        Raises:
            CorrelationTimeoutError: If the lookups did not finish in time
        """
        if not tickets:
            return []

        workers = max(1, min(self.settings.max_workers, len(tickets)))
        executor = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="correlate"
        )
        futures: list[Future[CorrelatedItem]] = [
            executor.submit(self.correlate_ticket, ticket) for ticket in tickets
        ]

        try:
            _, pending = wait(futures, timeout=timeout, return_when=ALL_COMPLETED)
            if pending:
                for future in pending:
                    future.cancel()
                raise CorrelationTimeoutError(
                    f"Correlation of {len(tickets)} tickets did not finish "
                    f"within {timeout}s ({len(pending)} still pending)"
                )
            items = [future.result() for future in futures]
        finally:
            # Abandon in-flight lookups instead of waiting for them
            executor.shutdown(wait=False, cancel_futures=True)

        items.sort(key=creation_sort_key, reverse=True)

        failed = sum(1 for item in items if item.error)
        logger.info(f"Correlated {len(items)} tickets ({failed} with lookup errors)")
        return items
