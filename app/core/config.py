"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ first
if _env_file and not os.getenv("TESTING"):
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_store_settings() -> "StoreSettings":
    return StoreSettings()


def _build_app_settings() -> "AppSettings":
    return AppSettings()


def _build_log_settings() -> "LogSettings":
    return LogSettings()


class StoreSettings(BaseSettings):
    """Session store, rate limiter and analytics batching configuration.

    Read once when the store facade is constructed.
    """

    backend: Literal["memory", "sqlite"] = Field(
        "memory",
        description="Backing medium for the TTL store",
    )
    sqlite_path: str = Field(
        "data/store.db",
        description="SQLite file used when backend=sqlite",
    )
    key_prefix: str = Field(
        "store:",
        description="Namespace prepended to every key written to the medium",
    )

    rate_limit_max: int = Field(
        10,
        description="Maximum number of requests allowed per window (per identifier)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        60,
        description="Sliding window length in seconds",
        ge=1,
    )
    form_cache_ttl_seconds: int = Field(
        60,
        description="TTL for cached form state",
        ge=1,
    )
    analytics_ttl_seconds: int = Field(
        300,
        description="TTL applied to the per-day analytics batch key on every flush",
        ge=1,
    )
    batch_max_size: int = Field(
        5,
        description="Number of buffered analytics events that triggers a flush",
        ge=1,
    )
    batch_max_wait_seconds: float = Field(
        30.0,
        description="Staleness of the buffer (since last flush) that triggers a flush",
        ge=0,
    )
    queue_name: str = Field(
        "refund_forms",
        description="List key receiving queued form submissions",
    )

    activity_gate_enabled: bool = Field(
        True,
        description="Skip rate limiting while fewer than threshold sessions are active",
    )
    activity_gate_threshold: int = Field(
        2,
        description="Pre-increment active session count at which limiting starts",
        ge=0,
    )
    active_sessions_ttl_seconds: int = Field(
        300,
        description="TTL of the shared active sessions counter",
        ge=1,
    )
    stale_window_seconds: int = Field(
        300,
        description="Inactivity after which cleanup removes a rate limit record",
        ge=1,
    )
    cleanup_interval_seconds: int = Field(
        300,
        description="Period of the background cleanup task (0 disables it)",
        ge=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="STORE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """HTTP surface configuration."""

    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )
    rate_limit_enabled: bool = Field(
        True,
        description="Guard submission routes with the session rate limiter",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )
    session_header: str = Field(
        "X-Session-ID",
        description="Header carrying the form session identifier",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file when output=file")
    max_bytes: int = Field(
        0,
        description="Rotate the log file at this size (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to propagate the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if a setting is malformed.
    """

    app_env: str = APP_ENV
    store: StoreSettings = Field(default_factory=_build_store_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
