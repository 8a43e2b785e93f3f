# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Application configuration settings using Pydantic Settings.

Settings are loaded from environment variables with defaults that point at
the public NEMIS deployment. Each client receives its own settings object at
construction; nothing here is read implicitly at import time.

Example:
    >>> from nemis_bridge.core.config.settings import get_settings
    >>> settings = get_settings()
    >>> print(settings.sync.concurrency)
    5
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/113.0.0.0 Safari/537.36"
)


class PortalSettings(BaseSettings):
    """Connection settings for the NEMIS web portal.

    The portal is only served over plain http.

    Attributes:
        base_url: Root URL of the portal.
        timeout: Per-request timeout in seconds.
        user_agent: Browser user agent presented to the portal.
        records_per_page: Page size requested on listing pages. Large enough
            that every listing fits on one page.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEMIS_PORTAL_",
        extra="ignore",
    )

    base_url: str = "http://nemis.education.go.ke"
    timeout: float = 60.0
    user_agent: str = DEFAULT_USER_AGENT
    records_per_page: str = "10000"

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the base URL so paths can be joined with a leading slash."""
        return value.rstrip("/")


class LookupApiSettings(BaseSettings):
    """Settings for the read-only NEMIS lookup API.

    Attributes:
        base_url: Root URL of the lookup API.
        auth: Value sent verbatim in the Authorization header.
        timeout: Per-request timeout in seconds.
        user_agent: User agent presented to the API.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEMIS_API_",
        extra="ignore",
    )

    base_url: str = "http://nemis.education.go.ke/generic2/api"
    auth: SecretStr = SecretStr("")
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT

    @property
    def is_configured(self) -> bool:
        """Check if an authorization value has been provided."""
        return bool(self.auth.get_secret_value())


class SyncSettings(BaseSettings):
    """Bulk synchronization settings.

    Attributes:
        concurrency: Default number of learners processed in parallel, each
            with its own portal session.
        transfer_in: Whether bulk sync requests transfers for learners found
            at another institution of the same level.
        verify_joiners: Whether joiner requests and admissions are first
            checked against the lookup API, so a joiner already reported to
            the institution is not submitted again.
    """

    model_config = SettingsConfigDict(
        env_prefix="NEMIS_SYNC_",
        extra="ignore",
    )

    concurrency: int = Field(default=5, ge=1, le=50)
    transfer_in: bool = False
    verify_joiners: bool = True


class Settings(BaseSettings):
    """Main application settings aggregating all subsettings.

    Use get_settings() to obtain a cached singleton instance.

    Attributes:
        environment: Current environment (development, staging, production).
        debug: Enable debug mode.
        log_level: Logging level.
        portal: Web portal settings.
        lookup_api: Lookup API settings.
        sync: Bulk synchronization settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Subsettings - loaded with their own env prefixes
    portal: PortalSettings = Field(default_factory=PortalSettings)
    lookup_api: LookupApiSettings = Field(default_factory=LookupApiSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)

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

    Useful for testing or when the environment changes at runtime.
    """
    get_settings.cache_clear()
