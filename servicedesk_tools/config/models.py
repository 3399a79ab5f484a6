"""Configuration models for Service Desk Tools.

This module provides the Pydantic models describing how to reach
Freshdesk and Jira and how a correlation pass behaves.
"""

from pydantic import BaseModel, Field

from ..exceptions import ConfigurationError


class FreshdeskSettings(BaseModel):
    """Connection settings for the Freshdesk helpdesk."""

    domain: str = Field(default="", description="Freshdesk subdomain")
    api_key: str = Field(default="", description="Freshdesk API key")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout (s)")
    sla_field_name: str = Field(
        default="review_for_sla",
        description="Checkbox custom field holding the SLA override",
    )

    class Config:
        extra = "allow"

    def missing(self) -> list[str]:
        """Return the names of required settings that are empty."""
        return [name for name in ("domain", "api_key") if not getattr(self, name)]


class JiraSettings(BaseModel):
    """Connection settings for the Jira issue tracker."""

    url: str = Field(default="", description="Jira site URL")
    username: str = Field(default="", description="Account email")
    api_token: str = Field(default="", description="API token")
    project_key: str = Field(default="", description="Project scoping all queries")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    timeout: float = Field(default=30.0, gt=0, description="Request timeout (s)")
    max_retries: int = Field(
        default=0, ge=0, le=5, description="Retries for transient failures"
    )

    class Config:
        extra = "allow"

    def missing(self) -> list[str]:
        """Return the names of required settings that are empty."""
        required = ("url", "username", "api_token", "project_key")
        return [name for name in required if not getattr(self, name)]


class CorrelationSettings(BaseModel):
    """Behaviour of a correlation pass."""

    target_status: str = Field(
        default="With Development",
        description="Helpdesk status label of tickets waiting on development",
    )
    status_candidates: list[int] = Field(
        default_factory=lambda: [6, 7, 8],
        description="Status codes tried when the label cannot be resolved",
    )
    per_page: int = Field(
        default=100, ge=1, le=100, description="Page size for status code listing"
    )
    recent_page_size: int = Field(
        default=30, ge=1, le=100, description="Page size of the recent-tickets tier"
    )
    max_workers: int = Field(
        default=8, ge=1, le=64, description="Concurrent Jira lookups"
    )
    timeout_seconds: float | None = Field(
        default=None, gt=0, description="Time allowed for a correlation pass"
    )

    class Config:
        extra = "allow"


class ServiceDeskConfig(BaseModel):
    """Top-level configuration."""

    freshdesk: FreshdeskSettings = Field(default_factory=FreshdeskSettings)
    jira: JiraSettings = Field(default_factory=JiraSettings)
    correlation: CorrelationSettings = Field(default_factory=CorrelationSettings)
    log_level: str = Field(default="INFO", description="Package log level")

    class Config:
        extra = "allow"

    def missing_freshdesk(self) -> list[str]:
        return self.freshdesk.missing()

    def missing_jira(self) -> list[str]:
        return self.jira.missing()

    def require_freshdesk(self) -> FreshdeskSettings:
        """Return Freshdesk settings, or raise if any are missing.

        Raises:
            ConfigurationError: Listing the missing settings
        """
        missing = self.missing_freshdesk()
        if missing:
            raise ConfigurationError(
                "Freshdesk configuration missing", missing=[f"freshdesk.{m}" for m in missing]
            )
        return self.freshdesk

    def require_jira(self) -> JiraSettings:
        """Return Jira settings, or raise if any are missing.

        Raises:
            ConfigurationError: Listing the missing settings
        """
        missing = self.missing_jira()
        if missing:
            raise ConfigurationError(
                "JIRA configuration missing", missing=[f"jira.{m}" for m in missing]
            )
        return self.jira


__all__ = [
    "CorrelationSettings",
    "FreshdeskSettings",
    "JiraSettings",
    "ServiceDeskConfig",
]
