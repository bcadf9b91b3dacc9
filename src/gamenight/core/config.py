"""Configuration management for gamenight.

This module uses Pydantic Settings to load and validate configuration from
environment variables and .env files. Configuration is loaded once per
process and is immutable during runtime.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client configuration settings.

    Settings are loaded from environment variables and .env files.
    All configuration values are validated at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GAMENIGHT_",
        case_sensitive=False,
        extra="ignore",
    )

    # Application Settings
    app_name: str = "Game Night"
    app_version: str = "0.1.0"
    environment: Literal["development", "production", "testing"] = "development"
    debug: bool = False

    # Backend Settings
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = Field(
        default="",
        description="Public anon key sent as the apikey header on every request",
    )
    request_timeout: float = 10.0

    # Realtime Settings
    realtime_heartbeat_interval: float = 25.0
    realtime_join_timeout: float = 10.0

    # Auth Settings
    oauth_provider: str = "discord"
    oauth_redirect_url: str = Field(
        default="http://localhost:5173/",
        description="URL the OAuth provider redirects back to after sign-in",
    )
    session_file: Path = Path.home() / ".gamenight" / "session.json"

    # Schedule Settings
    active_event_mode: Literal["day", "interval"] = "day"

    # Logging Settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    @field_validator("supabase_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize the backend URL so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing environment."""
        return self.environment == "testing"

    @property
    def rest_url(self) -> str:
        return f"{self.supabase_url}/rest/v1"

    @property
    def auth_url(self) -> str:
        return f"{self.supabase_url}/auth/v1"

    @property
    def realtime_url(self) -> str:
        """Websocket endpoint derived from the backend URL."""
        if self.supabase_url.startswith("https://"):
            base = "wss://" + self.supabase_url[len("https://"):]
        elif self.supabase_url.startswith("http://"):
            base = "ws://" + self.supabase_url[len("http://"):]
        else:
            base = self.supabase_url
        return f"{base}/realtime/v1/websocket"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Cached client settings instance.
    """
    return Settings()
