"""Application settings and configuration management."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Betfair API
    betfair_app_key: str = Field(default="", description="Betfair application key")
    betfair_username: str = Field(default="", description="Betfair username")
    betfair_password: str = Field(default="", description="Betfair password")
    betfair_cert_path: str = Field(
        default="", description="Path to Betfair SSL certificate"
    )
    betfair_cert_key_path: str = Field(
        default="", description="Path to Betfair SSL certificate key"
    )

    # Session cache
    session_dir: Path = Field(
        default=Path.home() / ".betfair",
        description="Directory holding the cached session token",
    )
    session_ttl_hours: float = Field(
        default=4.0, description="Hours a cached session token is reused for"
    )

    # Timeouts
    auth_timeout_seconds: float = Field(
        default=30.0, description="Deadline for the authentication step"
    )
    request_timeout_seconds: float = Field(
        default=30.0, description="Timeout for a single betting API request"
    )

    # Application
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(
        default="console", description="Log renderer: console or json"
    )

    # Paths
    config_path: Path = Field(
        default=Path(__file__).parent / "defaults.yaml",
        description="Path to defaults.yaml configuration",
    )

    def load_defaults_config(self) -> dict[str, Any]:
        """Load the defaults.yaml configuration file."""
        if self.config_path.exists():
            with open(self.config_path) as f:
                return yaml.safe_load(f) or {}
        return {}


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
