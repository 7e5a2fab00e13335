"""Incident bot configuration using Pydantic Settings."""

from __future__ import annotations

from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class IncidentBotConfig(BaseSettings):
    """Main configuration class. Loads from .env file and environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "incident-response-bot"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3000
    cors_origins: str = "*"

    # Logging
    log_dir: str = "logs"
    log_max_bytes: int = 10_000_000
    log_backup_count: int = 5

    # Slack
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None
    slack_invite_on_call: bool = True

    # On-call
    default_team: str = "default"
    oncall_roster_path: Optional[str] = None

    # Incidents
    enforce_status_transitions: bool = False
    incident_list_limit: int = 10

    @field_validator("incident_list_limit")
    @classmethod
    def validate_list_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("incident_list_limit must be at least 1")
        return v


def get_config() -> IncidentBotConfig:
    """Factory function to create config instance."""
    return IncidentBotConfig()
