# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

This module provides centralized configuration management for the profile
service. Settings are loaded from environment variables with sensible defaults.

The Settings class is the main entry point and aggregates all subsettings.
A singleton instance is provided via get_settings() for dependency injection.

Example:
    >>> from src.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.identity_service.base_url)
    'http://auth-service:3001'
"""

from functools import lru_cache
from typing import Literal, Self

from pydantic import Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DB_PASSWORD = "profile_service_password"


class ProfileDatabaseSettings(BaseSettings):
    """Relational profile store configuration.

    Attributes:
        user: PostgreSQL username.
        password: PostgreSQL password.
        host: Database host address.
        port: Database port number.
        database: Database name.
        pool_size: Connection pool size.
        max_overflow: Maximum overflow connections.
        statement_timeout: Per-statement timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROFILE_DB_",
        extra="ignore",
    )

    user: str = "profile"
    password: SecretStr = SecretStr(DEFAULT_DB_PASSWORD)
    host: str = "localhost"
    port: int = 5432
    database: str = "profile_db"
    pool_size: int = 10
    max_overflow: int = 20
    statement_timeout: float = 15.0

    @property
    def url(self) -> str:
        """Build the async database URL from components."""
        pwd = self.password.get_secret_value()
        return f"postgresql+asyncpg://{self.user}:{pwd}@{self.host}:{self.port}/{self.database}"


class IdentityServiceSettings(BaseSettings):
    """External identity (auth) service configuration.

    Attributes:
        base_url: Base URL of the identity service.
        timeout: Request timeout in seconds for every call.
        internal_header: Name of the internal-request marker header.
        internal_header_value: Value sent in the marker header.
    """

    model_config = SettingsConfigDict(
        env_prefix="IDENTITY_SERVICE_",
        extra="ignore",
    )

    base_url: str = "http://auth-service:3001"
    timeout: float = 10.0
    internal_header: str = "X-Internal-Request"
    internal_header_value: str = "true"

    @property
    def internal_api_url(self) -> str:
        """Build the internal API root used for service-to-service calls."""
        return f"{self.base_url.rstrip('/')}/api/v1/internal"

    @property
    def internal_headers(self) -> dict[str, str]:
        """Build headers attached to every internal request."""
        return {
            "Content-Type": "application/json",
            self.internal_header: self.internal_header_value,
        }


class NotificationSettings(BaseSettings):
    """Credentials notification configuration.

    Credentials e-mails are relayed through the identity service, which owns
    the mail templates and delivery.

    Attributes:
        enabled: Whether credential e-mails are sent at all.
        base_url: Base URL of the relaying service.
        timeout: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTIFICATION_",
        extra="ignore",
    )

    enabled: bool = True
    base_url: str = "http://auth-service:3001"
    timeout: float = 10.0


class ProvisioningSettings(BaseSettings):
    """Rules for generated credentials and enrollment defaults.

    Attributes:
        current_academic_year: Academic year used when an enrollment omits it.
        username_base_length: Maximum length of the name-derived username part.
        username_suffix_modulus: Upper bound (exclusive) of the numeric suffix.
        temporary_password_length: Length of the generated temporary password.
    """

    model_config = SettingsConfigDict(
        env_prefix="PROVISIONING_",
        extra="ignore",
    )

    current_academic_year: str = "2025-26"
    username_base_length: int = 15
    username_suffix_modulus: int = 999
    temporary_password_length: int = 8


class CORSSettings(BaseSettings):
    """CORS configuration for API.

    Attributes:
        origins: Comma-separated list of allowed origins.
        allow_credentials: Whether to allow credentials.
    """

    model_config = SettingsConfigDict(
        env_prefix="CORS_",
        extra="ignore",
    )

    origins: str = "http://localhost:3000"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [origin.strip() for origin in self.origins.split(",") if origin.strip()]


class APISettings(BaseSettings):
    """API server configuration.

    Attributes:
        host: Server bind host.
        port: Server bind port.
        prefix: Route prefix for versioned endpoints.
    """

    model_config = SettingsConfigDict(
        env_prefix="API_",
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3003
    prefix: str = "/api/v1"


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        profile_db: Profile database settings.
        identity_service: Identity service client settings.
        notifications: Credentials notification settings.
        provisioning: Credential generation and enrollment defaults.
        cors: CORS settings.
        api: API server settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"

    # Subsettings - loaded with their own env prefixes
    profile_db: ProfileDatabaseSettings = Field(default_factory=ProfileDatabaseSettings)
    identity_service: IdentityServiceSettings = Field(default_factory=IdentityServiceSettings)
    notifications: NotificationSettings = Field(default_factory=NotificationSettings)
    provisioning: ProvisioningSettings = Field(default_factory=ProvisioningSettings)
    cors: CORSSettings = Field(default_factory=CORSSettings)
    api: APISettings = Field(default_factory=APISettings)

    @model_validator(mode="after")
    def validate_production_settings(self) -> Self:
        """Validate that production settings are properly configured.

        Raises:
            ValueError: If running in production with insecure defaults.
        """
        if self.environment == "production":
            if self.profile_db.password.get_secret_value() == DEFAULT_DB_PASSWORD:
                raise ValueError(
                    "Profile database password must be changed from default in production. "
                    "Set PROFILE_DB_PASSWORD environment variable."
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    Call clear_settings_cache() if you need to reload settings.

    Returns:
        Cached Settings instance.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Call this if you need to reload settings from environment.
    Useful for testing or dynamic configuration updates.
    """
    get_settings.cache_clear()
