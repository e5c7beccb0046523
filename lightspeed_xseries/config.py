"""Configuration management for the Lightspeed client."""

from dataclasses import dataclass, replace
from typing import Dict, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import InvalidVersionFormat
from .versions import validate_version

USER_AGENT = "lightspeed-xseries-python/0.3.0"


class Settings(BaseSettings):
    """Client configuration loaded from LIGHTSPEED_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="LIGHTSPEED_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Versioning
    # Update default_version when migrating an application to a new API release
    default_version: str = "2026-01"
    default_legacy_version: str = "2.0"

    # Endpoints
    platform_host: str = "retail.lightspeed.app"

    # Timeouts (seconds)
    request_timeout: float = 120.0
    oauth_timeout: float = 30.0

    # Rate limiting
    allow_time_slip: bool = False
    rate_limit_fallback_seconds: float = 60.0
    rate_limit_poll_interval: float = 1.0
    rate_limit_max_wait: Optional[float] = None  # None waits forever

    user_agent: str = USER_AGENT

    @field_validator("default_version")
    @classmethod
    def check_default_version(cls, value: str) -> str:
        try:
            return validate_version(value)
        except InvalidVersionFormat as e:
            raise ValueError(e.message) from e

    def set_default_version(self, version: str) -> None:
        """Change the default date version for every client using these settings.

        Raises:
            InvalidVersionFormat: If the version is not YYYY-MM
        """
        self.default_version = validate_version(version)

    def get_default_version(self) -> str:
        return self.default_version


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance."""
    return settings


@dataclass
class TransportConfig:
    """Timeout and header settings for the HTTP transport."""

    # Timeout settings (in seconds)
    connection_timeout: float = 30.0
    read_timeout: float = 120.0

    default_headers: Optional[Dict[str, str]] = None

    def __post_init__(self):
        if self.default_headers is None:
            self.default_headers = {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            }

    @classmethod
    def from_settings(cls, settings: Settings) -> "TransportConfig":
        """Build a transport config from client settings."""
        return (
            cls()
            .with_headers({"User-Agent": settings.user_agent})
            .with_timeout(settings.request_timeout)
        )

    @property
    def timeout(self) -> tuple[float, float]:
        """Get timeout tuple (connection, read)."""
        return (self.connection_timeout, self.read_timeout)

    def with_headers(self, headers: Dict[str, str]) -> "TransportConfig":
        """Create a new config with additional headers."""
        new_headers = self.default_headers.copy() if self.default_headers else {}
        new_headers.update(headers)
        return replace(self, default_headers=new_headers)

    def with_timeout(self, read_timeout: float) -> "TransportConfig":
        """Create a new config with a different read timeout."""
        return replace(
            self,
            read_timeout=read_timeout,
            default_headers=self.default_headers.copy() if self.default_headers else None,
        )
