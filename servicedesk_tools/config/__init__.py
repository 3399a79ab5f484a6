"""Configuration package for Service Desk Tools."""

from .config_loader import load_config, load_settings_file
from .models import (
    CorrelationSettings,
    FreshdeskSettings,
    JiraSettings,
    ServiceDeskConfig,
)

__all__ = [
    "ServiceDeskConfig",
    "FreshdeskSettings",
    "JiraSettings",
    "CorrelationSettings",
    "load_config",
    "load_settings_file",
]
