"""Configuration via pydantic-settings with .env support."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class LifeOSIngestorSettings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="LIFEOS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OAuth client
    client_id: str = ""
    client_secret: str = ""

    # Calendar API settings
    calendar_id: str = "primary"
    calendar_max_results: int = 50

    # Gmail API settings
    user_id: str = "me"
    thread_query: str = "category:primary"
    thread_max_results: int = 15

    # Transport retries are off unless explicitly enabled
    num_retries: int = 0

    # Library detection poll
    library_poll_interval_seconds: float = 0.1
    library_poll_max_interval_seconds: float = 2.0
    library_poll_timeout_seconds: float = 10.0

    # Consent flow
    consent_port: int = 0
    consent_timeout_seconds: float = 300.0
    open_browser: bool = True

    # Summarizer input limits
    description_preview_chars: int = 500
    body_preview_chars: int = 1000

    # Body extraction
    html_extractor: Literal["tags", "trafilatura"] = "tags"

    # Logging
    log_level: str = "INFO"
