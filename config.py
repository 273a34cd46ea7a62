"""Configuration management using Pydantic settings."""

from datetime import date, datetime, timezone
import logging
import os
from pathlib import Path

from pydantic_settings import BaseSettings


def to_iso8601(dt: datetime | date | None) -> str | None:
    """
    Format datetime/date to ISO8601 string for JSON responses.

    Naive datetimes are assumed to be UTC. Aware datetimes are converted
    to UTC. Both get millisecond precision and a 'Z' suffix.
    Date-only values get no timezone suffix.

    Usage:
        "timestamp": to_iso8601(activity_date)
    """
    if dt is None:
        return None
    if isinstance(dt, datetime):
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        return f"{dt.isoformat(timespec='milliseconds')}Z"
    # date only - no timezone
    return dt.isoformat()

# Find .env file - check current dir, then parent
_env_file = Path(".env")
if not _env_file.exists():
    _env_file = Path("../.env")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    ENVIRONMENT: str = "development"
    FRONTEND_URL: str = "http://localhost:5173"
    LOG_LEVEL: str = "INFO"

    # Where the CRM credentials survive process restarts
    CREDENTIALS_FILE: str = ".activity_feed/credentials.json"

    # Polling cadence for subscribed clients
    POLL_INTERVAL_SECONDS: float = 30.0

    # Upstream CRM
    CONNECTION_TEST_TIMEOUT_SECONDS: float = 5.0
    CRM_REQUEST_TIMEOUT_SECONDS: float = 30.0
    CRM_VIEW_PAGE: int = 1
    # Upper bound on simultaneous order-row requests per cycle
    CRM_MAX_CONCURRENT_REQUESTS: int = 5

    class Config:
        env_file = str(_env_file)
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars from shared .env files


settings = Settings()

EXPECTED_ENV_VARS: tuple[str, ...] = (
    "ENVIRONMENT",
    "FRONTEND_URL",
    "CREDENTIALS_FILE",
)


def log_missing_env_vars(logger: logging.Logger) -> None:
    """Log debug warnings for expected environment variables that are unset."""
    for var_name in EXPECTED_ENV_VARS:
        value = os.environ.get(var_name)
        if value is None or value == "":
            logger.debug(
                "Warning: expected environment variable %s is not set.",
                var_name,
            )
