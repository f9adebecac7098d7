"""Process settings for sydneyqt.

This module provides typed settings classes using pydantic-settings.
Settings are loaded from environment variables with optional .env file
support. The persisted user document lives in ``sydneyqt.models.config``.
"""

from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

__all__ = [
    "AppSettings",
    "SydneySettings",
]


class SydneySettings(BaseSettings):
    """Sydney web API connection settings."""

    model_config = SettingsConfigDict(
        env_prefix="SYDNEYQT_SYDNEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = "http://localhost:8080"
    cookies: SecretStr | None = None
    auth_token: SecretStr | None = None
    remote_image_upload: bool = True  # Upload attached images for a bing_url


class AppSettings(BaseSettings):
    """Main settings aggregating all process-level options.

    Example usage:
        settings = AppSettings()
        path = settings.config_path
    """

    model_config = SettingsConfigDict(
        env_prefix="SYDNEYQT_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sydney: SydneySettings = SydneySettings()

    config_path: Path = Path("config.json")

    # Ask settings
    ask_timeout_seconds: float = 120.0
    rate_limit_retries: int = 2
    retry_backoff_seconds: float = 1.0

    # Ingestion settings
    fetch_timeout_seconds: float = 15.0

    # Logging
    json_logs: bool = False
    log_dir: Path | None = None  # Log to monthly files instead of stdout
