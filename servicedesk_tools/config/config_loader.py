"""Configuration loading for Service Desk Tools.

Precedence (highest to lowest):
1. Explicit overrides
2. Environment variables
3. Settings file (KEY=VALUE lines)
4. Defaults
"""

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from ..desk_logging import get_logger
from ..exceptions import ConfigurationError
from .models import ServiceDeskConfig

logger = get_logger("config")

# Environment variable -> dot-notation config path. Later entries for the
# same path win, so the plain names override the legacy NEXT_PUBLIC_ ones.
ENV_MAPPINGS: list[tuple[str, str]] = [
    ("NEXT_PUBLIC_FRESHDESK_DOMAIN", "freshdesk.domain"),
    ("FRESHDESK_DOMAIN", "freshdesk.domain"),
    ("FRESHDESK_API_KEY", "freshdesk.api_key"),
    ("FRESHDESK_VERIFY_SSL", "freshdesk.verify_ssl"),
    ("FRESHDESK_TIMEOUT", "freshdesk.timeout"),
    ("NEXT_PUBLIC_FRESHDESK_SLA_FIELD_NAME", "freshdesk.sla_field_name"),
    ("FRESHDESK_SLA_FIELD_NAME", "freshdesk.sla_field_name"),
    ("JIRA_URL", "jira.url"),
    ("JIRA_USERNAME", "jira.username"),
    ("JIRA_API_TOKEN", "jira.api_token"),
    ("JIRA_PROJECT_KEY", "jira.project_key"),
    ("JIRA_VERIFY_SSL", "jira.verify_ssl"),
    ("JIRA_TIMEOUT", "jira.timeout"),
    ("JIRA_MAX_RETRIES", "jira.max_retries"),
    ("CORRELATION_TARGET_STATUS", "correlation.target_status"),
    ("CORRELATION_STATUS_CANDIDATES", "correlation.status_candidates"),
    ("CORRELATION_PER_PAGE", "correlation.per_page"),
    ("CORRELATION_RECENT_PAGE_SIZE", "correlation.recent_page_size"),
    ("CORRELATION_MAX_WORKERS", "correlation.max_workers"),
    ("CORRELATION_TIMEOUT_SECONDS", "correlation.timeout_seconds"),
    ("SERVICEDESK_LOG_LEVEL", "log_level"),
]

# Flat keyword overrides accepted by load_config()
OVERRIDE_MAPPINGS: dict[str, str] = {
    "freshdesk_domain": "freshdesk.domain",
    "freshdesk_api_key": "freshdesk.api_key",
    "freshdesk_verify_ssl": "freshdesk.verify_ssl",
    "sla_field_name": "freshdesk.sla_field_name",
    "jira_url": "jira.url",
    "jira_username": "jira.username",
    "jira_api_token": "jira.api_token",
    "jira_project_key": "jira.project_key",
    "jira_verify_ssl": "jira.verify_ssl",
    "jira_max_retries": "jira.max_retries",
    "target_status": "correlation.target_status",
    "status_candidates": "correlation.status_candidates",
    "max_workers": "correlation.max_workers",
    "timeout_seconds": "correlation.timeout_seconds",
    "log_level": "log_level",
}


def load_settings_file(path: Path) -> dict[str, str]:
    """Read KEY=VALUE lines, ignoring blanks and # comments.

    Values may be wrapped in single or double quotes.
    """
    settings: dict[str, str] = {}
    with open(path, encoding="utf-8") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            if "=" not in line:
                logger.debug(f"Ignoring malformed line {line_number} in {path}")
                continue
            key, value = line.split("=", 1)
            value = value.strip()
            if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
                value = value[1:-1]
            settings[key.strip()] = value
    return settings


def _parse_codes(value: Any) -> Any:
    """Accept "6, 7,8" as well as a list of codes."""
    if isinstance(value, str):
        return [int(part) for part in value.replace(";", ",").split(",") if part.strip()]
    return value


def _set_path(target: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    node = target
    for part in parts[:-1]:
        node = node.setdefault(part, {})
    node[parts[-1]] = value


def _apply_variables(target: dict[str, Any], variables: Mapping[str, str]) -> int:
    applied = 0
    for name, path in ENV_MAPPINGS:
        value = variables.get(name)
        if value is None or value == "":
            continue
        _set_path(target, path, value)
        applied += 1
    return applied


def load_config(
    settings_file: Path | None = None,
    env: Mapping[str, str] | None = None,
    **overrides: Any,
) -> ServiceDeskConfig:
    """Load configuration from all sources.

    Args:
        settings_file: Optional KEY=VALUE file (e.g. a .env file)
        env: Environment mapping (defaults to os.environ)
        **overrides: Flat (``jira_project_key=...``) or dotted-path overrides

    Returns:
        Validated ServiceDeskConfig

    Raises:
        ConfigurationError: If a value cannot be parsed
    """
    if env is None:
        env = os.environ

    data: dict[str, Any] = {}

    if settings_file is not None:
        settings_file = Path(settings_file)
        if settings_file.exists():
            applied = _apply_variables(data, load_settings_file(settings_file))
            logger.debug(f"Applied {applied} settings from {settings_file}")
        else:
            logger.debug(f"No settings file at {settings_file}")

    _apply_variables(data, env)

    for key, value in overrides.items():
        if value is None:
            continue
        _set_path(data, OVERRIDE_MAPPINGS.get(key, key), value)

    correlation = data.get("correlation", {})
    try:
        if "status_candidates" in correlation:
            correlation["status_candidates"] = _parse_codes(
                correlation["status_candidates"]
            )
        return ServiceDeskConfig(**data)
    except (ValidationError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        raise ConfigurationError(f"Invalid configuration: {e}") from None
