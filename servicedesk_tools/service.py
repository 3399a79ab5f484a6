"""Read and write operations exposed to the presentation layer.

Each operation returns a ``ServiceResponse`` carrying an HTTP-style status
code, so a web layer can pass results straight through. Operations take an
optional ``is_authenticated`` capability check supplied by the session
layer; when it reports False nothing else is attempted.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .config import ServiceDeskConfig, load_config
from .correlation import CorrelationEngine
from .desk_logging import get_logger
from .exceptions import (
    BatchAcquisitionError,
    ConfigurationError,
    IssueTrackerError,
)
from .integrations import HelpdeskClient, IssueTrackerClient
from .integrations.freshdesk import find_status_field, status_choices

logger = get_logger("service")

AuthCheck = Callable[[], bool]


@dataclass
class ServiceResponse:
    """Result of one service operation."""

    success: bool
    data: Any = None
    error: str | None = None
    status_code: int = 200
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON body returned to callers."""
        body: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            body["data"] = _serialize(self.data)
        if self.error is not None:
            body["error"] = self.error
        if self.message is not None:
            body["message"] = self.message
        return body


def _serialize(value: Any) -> Any:
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, list):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def _unauthorized(is_authenticated: AuthCheck | None) -> ServiceResponse | None:
    if is_authenticated is not None and not is_authenticated():
        return ServiceResponse(success=False, error="Unauthorized", status_code=401)
    return None


def _config(config: ServiceDeskConfig | None) -> ServiceDeskConfig:
    return config if config is not None else load_config()


def _helpdesk(config: ServiceDeskConfig) -> HelpdeskClient:
    settings = config.require_freshdesk()
    return HelpdeskClient(
        domain=settings.domain,
        api_key=settings.api_key,
        verify_ssl=settings.verify_ssl,
        timeout=settings.timeout,
    )


def _issue_tracker(config: ServiceDeskConfig) -> IssueTrackerClient:
    settings = config.require_jira()
    return IssueTrackerClient(
        base_url=settings.url,
        username=settings.username,
        api_token=settings.api_token,
        project_key=settings.project_key,
        verify_ssl=settings.verify_ssl,
        timeout=settings.timeout,
        max_retries=settings.max_retries,
    )


def _from_api_response(response: Any) -> ServiceResponse:
    """Pass a helpdesk ApiResponse through, keeping its status code."""
    if response.error:
        return ServiceResponse(
            success=False, error=response.error, status_code=response.status or 500
        )
    return ServiceResponse(success=True, data=response.data, status_code=200)


def get_support_dev_items(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
    timeout: float | None = None,
    engine: CorrelationEngine | None = None,
) -> ServiceResponse:
    """Helpdesk tickets waiting on development, with their Jira issues.

    Returns 500 when configuration is missing or no acquisition tier
    worked, 200 with ``success=False`` for any other failure, and 200 with
    the (possibly empty) correlated items otherwise.
    """
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        if engine is None:
            engine = CorrelationEngine.from_config(_config(config))
        items = engine.fetch_correlated(timeout=timeout)
    except ConfigurationError as e:
        logger.error(f"Support dev items unavailable: {e}")
        return ServiceResponse(success=False, error=str(e), status_code=500)
    except BatchAcquisitionError as e:
        logger.error(f"All attempts to acquire helpdesk tickets failed: {e}")
        return ServiceResponse(
            success=False,
            error=f"Could not find tickets to correlate: {e}",
            status_code=500,
        )
    except Exception as e:
        logger.error(f"Support dev items error: {e}")
        return ServiceResponse(success=False, error=str(e) or "Unknown error")

    if not items:
        return ServiceResponse(
            success=True,
            data=[],
            message=f'No tickets found with "{engine.settings.target_status}" status',
        )
    return ServiceResponse(success=True, data=items)


def get_outstanding_issues(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Unresolved Jira issues in the configured project."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        tickets = _issue_tracker(_config(config)).get_outstanding_tickets()
    except (ConfigurationError, IssueTrackerError) as e:
        logger.error(f"JIRA API error: {e}")
        return ServiceResponse(success=False, error=str(e), status_code=500)
    except Exception as e:
        logger.error(f"Outstanding issues error: {e}")
        return ServiceResponse(success=False, error=str(e) or "Unknown error")
    return ServiceResponse(success=True, data=tickets)


def get_issue_stats(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Outstanding Jira issue counts by status, assignee and priority."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        counts = _issue_tracker(_config(config)).get_ticket_counts()
    except (ConfigurationError, IssueTrackerError) as e:
        logger.error(f"JIRA Stats API error: {e}")
        return ServiceResponse(success=False, error=str(e), status_code=500)
    except Exception as e:
        logger.error(f"JIRA Stats error: {e}")
        return ServiceResponse(success=False, error=str(e) or "Unknown error")
    return ServiceResponse(success=True, data=counts)


def check_jira_connection(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Verify Jira credentials against the current-user endpoint."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        config = _config(config)
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)

    missing = config.missing_jira()
    if missing:
        return ServiceResponse(
            success=False,
            error="Missing JIRA configuration. Please check environment variables.",
            data={"missing": missing},
        )

    result = _issue_tracker(config).check_connection()
    if not result["success"]:
        return ServiceResponse(success=False, error=result["error"])
    return ServiceResponse(success=True, data=result, message=result["message"])


def check_freshdesk_connection(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Verify Freshdesk credentials by loading the field schema."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        config = _config(config)
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)

    missing = config.missing_freshdesk()
    if missing:
        return ServiceResponse(
            success=False,
            error="Missing Freshdesk configuration. Please check environment variables.",
            data={"missing": missing},
        )

    result = _helpdesk(config).check_connection()
    if not result["success"]:
        return ServiceResponse(success=False, error=result["error"], data=result)
    return ServiceResponse(success=True, data=result)


def get_helpdesk_statuses(
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """The helpdesk status picklist, discovered through the field schema."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        response = _helpdesk(_config(config)).get_ticket_fields()
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)

    if response.error:
        return ServiceResponse(success=False, error=response.error)

    fields = response.data if isinstance(response.data, list) else []
    field = find_status_field(fields)
    if field is None or not field.get("choices"):
        return ServiceResponse(
            success=False,
            error="Could not find status field or choices",
            data={
                "fields": [
                    {k: f.get(k) for k in ("id", "name", "label", "type")}
                    for f in fields
                    if isinstance(f, dict)
                ]
            },
        )

    return ServiceResponse(
        success=True,
        data={
            "statuses": [
                {"id": choice.id, "label": choice.label}
                for choice in status_choices(field)
            ],
            "status_field": {
                "id": field.get("id"),
                "name": field.get("name"),
                "label": field.get("label"),
            },
        },
    )


def get_helpdesk_ticket(
    ticket_id: int | str,
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """A single helpdesk ticket."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        client = _helpdesk(_config(config))
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)
    return _from_api_response(client.get_ticket(ticket_id))


def update_helpdesk_ticket_field(
    ticket_id: int | str,
    field_name: str,
    value: Any,
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Update one custom field on a helpdesk ticket."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    if not field_name:
        return ServiceResponse(
            success=False,
            error="fieldName and fieldValue are required",
            status_code=400,
        )

    try:
        client = _helpdesk(_config(config))
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)
    return _from_api_response(
        client.update_ticket_custom_field(ticket_id, field_name, value)
    )


def add_helpdesk_note(
    ticket_id: int | str,
    body: str,
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Add a private note to a helpdesk ticket."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    if not body:
        return ServiceResponse(
            success=False, error="Note body is required", status_code=400
        )

    try:
        client = _helpdesk(_config(config))
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)

    response = client.add_private_note(ticket_id, body)
    if response.error:
        logger.error(f"Failed to create note for ticket {ticket_id}: {response.error}")
    return _from_api_response(response)


def override_sla_status(
    ticket_id: int | str,
    within_sla: bool,
    config: ServiceDeskConfig | None = None,
    is_authenticated: AuthCheck | None = None,
) -> ServiceResponse:
    """Record the SLA review outcome on a helpdesk ticket."""
    denied = _unauthorized(is_authenticated)
    if denied:
        return denied

    try:
        config = _config(config)
        client = _helpdesk(config)
    except ConfigurationError as e:
        return ServiceResponse(success=False, error=str(e), status_code=500)

    return _from_api_response(
        client.update_sla_status(
            ticket_id, within_sla, field_name=config.freshdesk.sla_field_name
        )
    )


def health() -> ServiceResponse:
    """Liveness probe; touches neither API."""
    return ServiceResponse(
        success=True,
        data={
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
        message="Service Desk Tools API is running",
    )
