"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_log_settings() -> "LogSettings":
    """Build logging settings from environment."""

    return LogSettings()


def _build_runner_settings() -> "RunnerSettings":
    """Build job runner settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return RunnerSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_runner_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field(
        "json",
        description="Log line format: structured JSON or plain text",
    )
    output: Literal["stdout", "file"] = Field(
        "stdout",
        description="Where logs are written",
    )
    file_path: str | None = Field(
        None,
        description="Log file path when output=file (defaults to logs/app.log)",
    )
    max_bytes: int = Field(
        10_000_000,
        description="Rotate the log file after this many bytes (0 disables rotation)",
        ge=0,
    )
    backup_count: int = Field(5, description="Rotated log files to keep", ge=0)
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class RunnerSettings(BaseSettings):
    """External job runner (Replicate predictions API) configuration.

    Model parameters are payload data: they are sent as-is in the job input
    and never interpreted by the service.
    """

    api_token: str | None = Field(
        None,
        description="Static credential sent as 'Authorization: Token <token>'",
    )
    base_url: str = Field(
        "https://api.replicate.com/v1",
        description="Runner API root; jobs are submitted to {base_url}/predictions",
    )
    model_version: str = Field(
        "a07f252abbbd832009640b27f063ea52d87d7a23a185ca165bec23b5adc8deaf",
        description="Model version hash submitted with every job",
    )
    style: str = Field("Clay", description="Style passed to the model")
    prompt: str = Field(
        "a person in a post apocalyptic war game",
        description="Prompt passed to the model",
    )
    instant_id_strength: float = Field(
        0.8,
        description="Identity preservation strength passed to the model",
        ge=0.0,
        le=1.0,
    )
    extra_input: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional model input fields (JSON object)",
    )
    request_timeout_seconds: float = Field(
        30.0,
        description="Timeout for each HTTP call to the runner",
        gt=0,
    )
    poll_interval_seconds: float = Field(
        1.0,
        description="Wait between two status checks",
        gt=0,
    )
    job_timeout_seconds: float = Field(
        120.0,
        description="Deadline for a job to reach a terminal state",
        gt=0,
    )
    max_polls: int | None = Field(
        None,
        description="Optional upper bound on status checks per job",
        ge=1,
    )
    cancel_on_timeout: bool = Field(
        True,
        description="Ask the runner to cancel a job that exceeded its deadline",
    )

    model_config = SettingsConfigDict(
        env_prefix="REPLICATE_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    debug: bool = Field(
        False,
        description="Force DEBUG log level regardless of LOG_LEVEL",
    )
    api_key_required: bool = Field(
        True,
        description="Whether API key authentication is required",
    )
    api_keys: str | None = Field(
        None,
        description=(
            "Comma-separated API keys, optionally bound to an identity "
            "(e.g. 'key1=alice@example.com,key2')"
        ),
    )

    rate_limit_enabled: bool = Field(
        True,
        description="Enable the per-identity generation quota",
    )
    rate_limit_backend: Literal["redis", "memory"] = Field(
        "redis",
        description="Counter store: shared Redis or per-process memory (dev only)",
    )
    rate_limit_redis_url: str | None = Field(
        None,
        description="Redis URL; when unset with backend=redis, rate limiting is off",
    )
    rate_limit_requests: int = Field(
        2,
        description="Maximum number of generations allowed per window (per identity)",
        ge=1,
    )
    rate_limit_window_seconds: int = Field(
        86400,
        description="Fixed window size in seconds",
        ge=1,
    )
    rate_limit_prefix: str = Field(
        "restore:ratelimit",
        description="Key prefix used in the counter store",
    )
    rate_limit_fail_open: bool = Field(
        False,
        description="Allow requests when the counter store is unreachable",
    )
    rate_limit_include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers",
    )
    support_contact: str | None = Field(
        None,
        description="Contact appended to the quota renewal message",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.

    Environments:
    - development: Local development (DEBUG=true)
    - testing: Automated tests (uses .env.testing)
    - staging: Pre-production (uses .env.staging)
    - production: Production deployment (uses .env.production)
    """

    app_env: str = APP_ENV
    log: LogSettings = Field(default_factory=_build_log_settings)
    runner: RunnerSettings = Field(default_factory=_build_runner_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
