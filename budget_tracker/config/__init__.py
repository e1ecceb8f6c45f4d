"""Configuration package."""

from budget_tracker.config.settings import (
    AppSettings,
    CosmosSettings,
    Settings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "CosmosSettings",
    "Settings",
    "get_settings",
    "validate_all_settings",
]
