"""
Configuration Management for Budget Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
The storage backend is chosen once at startup from `use_in_memory_db`;
nothing below the application factory branches on it.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class CosmosSettings(BaseSettings):
    """Cosmos DB storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="COSMOS_DB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    endpoint: str = Field(
        ...,
        description="Cosmos DB account endpoint URL"
    )
    key: str = Field(
        ...,
        description="Cosmos DB account key"
    )
    database_name: str = Field(
        default="BudgetTrackerDB",
        description="Database holding the record containers"
    )

    # Containers are partitioned on /userId
    budgets_container: str = Field(
        default="Budgets",
        description="Container for budgets"
    )
    expenses_container: str = Field(
        default="Expenses",
        description="Container for expenses"
    )

    request_timeout_seconds: int = Field(
        default=10,
        ge=1,
        le=120,
        description="Timeout applied to every Cosmos request"
    )

    @field_validator('endpoint', 'key')
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Blank connection settings are as bad as missing ones."""
        if not v.strip():
            raise ValueError("must not be blank")
        return v.strip()


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Storage
    use_in_memory_db: bool = Field(
        default=True,
        description="Keep records in process memory instead of Cosmos DB"
    )

    # Identity
    auth_required: bool = Field(
        default=False,
        description="Reject requests without a bearer token"
    )

    # CORS
    frontend_url: Optional[str] = Field(
        default=None,
        description="Deployed frontend origin allowed by CORS"
    )

    @property
    def cors_origins(self) -> list[str]:
        """Origins allowed to call the API."""
        origins = ["http://localhost:3000", "http://localhost:5173"]
        if self.frontend_url:
            origins.append(self.frontend_url.rstrip("/"))
        return origins


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Loaded lazily so the in-memory backend runs without Cosmos settings

    @property
    def cosmos(self) -> CosmosSettings:
        return CosmosSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}, with an
    "<name>_error" entry for each failure. Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("app", "cosmos"):
        try:
            getattr(settings, name)
            results[name] = True
        except ValueError as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
