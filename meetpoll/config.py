"""Centralized configuration management using Pydantic Settings.

This module provides typed configuration for all application settings,
loaded from environment variables with sensible defaults.

Usage:
    from meetpoll.config import get_settings
    settings = get_settings()
    backend = settings.store.backend
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from meetpoll.errors import StoreNotConfiguredError


class StoreSettings(BaseSettings):
    """Record store selection and fixed read limits."""

    model_config = SettingsConfigDict(env_prefix="STORE_", extra="ignore")

    backend: Literal["postgres", "data_api", "memory"] = Field(
        default="postgres", description="Record store backend"
    )
    schedule_list_limit: int = Field(default=200, description="Max schedules per list")
    response_list_limit: int = Field(default=500, description="Max responses per schedule read")
    eager_init: bool = Field(default=True, description="Open the store during startup")

    @field_validator("eager_init", mode="before")
    @classmethod
    def parse_eager_init(cls, v):
        if isinstance(v, str):
            return v.lower() in ("1", "true", "yes")
        return bool(v)


class PostgresSettings(BaseSettings):
    """PostgreSQL connection configuration."""

    model_config = SettingsConfigDict(
        env_prefix="POSTGRES_",
        extra="ignore",
        populate_by_name=True,
    )

    host: str = Field(default="postgres", description="PostgreSQL host")
    port: int = Field(default=5432, description="PostgreSQL port")
    user: str = Field(default="meetpoll", description="PostgreSQL user")
    password: str = Field(default="", description="PostgreSQL password")
    database: str = Field(
        default="meetpoll",
        validation_alias="POSTGRES_DB",
        description="Database name",
    )
    pool_min_size: int = Field(default=1, description="Minimum pool size")
    pool_max_size: int = Field(default=10, description="Maximum pool size")
    pool_timeout: int = Field(default=30, description="Timeout for acquiring connections")
    pool_max_lifetime: int = Field(
        default=1800, description="Maximum connection lifetime in seconds"
    )
    pool_max_idle: int = Field(
        default=300, description="Maximum idle time before closing connection"
    )

    def get_dsn(self) -> str:
        """Generate PostgreSQL DSN connection string."""
        return (
            f"host={self.host} port={self.port} user={self.user} "
            f"password={self.password} dbname={self.database} sslmode=disable"
        )


class DataApiSettings(BaseSettings):
    """Hosted GraphQL data API configuration."""

    model_config = SettingsConfigDict(env_prefix="AMPLIFY_DATA_", extra="ignore")

    graphql_endpoint: str = Field(default="", description="GraphQL endpoint URL")
    region: str = Field(default="", description="Region hosting the API")
    api_key: str = Field(default="", description="Shared public API key")
    auth_mode: str = Field(default="apiKey", description="Authorization mode")
    timeout_sec: float = Field(default=10.0, description="HTTP request timeout")

    def missing(self) -> list[str]:
        """Names of required environment variables that are unset or empty."""
        required = {
            "AMPLIFY_DATA_GRAPHQL_ENDPOINT": self.graphql_endpoint,
            "AMPLIFY_DATA_REGION": self.region,
            "AMPLIFY_DATA_API_KEY": self.api_key,
        }
        return [name for name, value in required.items() if not value]

    def require(self) -> None:
        """Raise StoreNotConfiguredError if any required setting is missing."""
        missing = self.missing()
        if missing:
            raise StoreNotConfiguredError(
                detail=(
                    f"Data API env vars missing: {', '.join(missing)}. "
                    "Set them to enable persistent storage."
                ),
                missing=missing,
            )


class CorsSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    origins_raw: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )
    origins_regex: str = Field(
        default="",
        validation_alias="CORS_ORIGINS_REGEX",
        description="Regex pattern for origins",
    )

    @property
    def origins(self) -> list[str]:
        """Parse comma-separated origins into list."""
        return [o.strip() for o in self.origins_raw.split(",") if o.strip()]

    @property
    def allow_credentials(self) -> bool:
        """Credentials not allowed with wildcard origins."""
        return self.origins != ["*"] and not self.origins_regex


class DebugSettings(BaseSettings):
    """Debug flags configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    request: bool = Field(default=False, alias="request_debug")

    @field_validator("*", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower() in ("1", "true", "yes")
        return bool(v)


class Settings:
    """Main application settings combining all configuration sections.

    This is not a BaseSettings subclass to avoid env var conflicts.
    Each subsetting is loaded independently with its own prefix.
    """

    def __init__(self) -> None:
        self.store = StoreSettings()
        self.postgres = PostgresSettings()
        self.data_api = DataApiSettings()
        self.cors = CorsSettings()
        self.debug = DebugSettings()


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance (singleton pattern)."""
    return Settings()


def clear_settings_cache() -> None:
    """Clear cached settings (useful for testing)."""
    get_settings.cache_clear()
