"""Configuration helpers for the Slack attendance service."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .timeutils import DEFAULT_TIMEZONE, ReportingClock


@dataclass(slots=True)
class Settings:
    """Runtime configuration values loaded from environment variables."""

    slack_bot_token: str
    api_key: str
    database_path: Path
    reporting_timezone: str = DEFAULT_TIMEZONE
    slack_signing_secret: Optional[str] = None
    channel_id: Optional[str] = None
    log_level: str = "info"

    @property
    def clock(self) -> ReportingClock:
        return ReportingClock.from_name(self.reporting_timezone)


def load_settings(env_file: str | None = None) -> Settings:
    """Load settings from the environment, optionally from a specific file."""

    if env_file:
        load_dotenv(env_file)
    else:
        load_dotenv()

    db_path = Path(os.getenv("DATABASE_PATH", "slack_attendance.db")).expanduser()

    slack_token = os.getenv("SLACK_BOT_TOKEN")
    api_key = os.getenv("API_KEY")

    if not slack_token:
        raise RuntimeError("SLACK_BOT_TOKEN must be configured")
    if not api_key:
        raise RuntimeError("API_KEY must be configured")

    tz_name = os.getenv("REPORTING_TIMEZONE", DEFAULT_TIMEZONE)
    # fail at startup rather than on the first request
    ReportingClock.from_name(tz_name)

    return Settings(
        slack_bot_token=slack_token,
        api_key=api_key,
        database_path=db_path,
        reporting_timezone=tz_name,
        slack_signing_secret=os.getenv("SLACK_SIGNING_SECRET") or None,
        channel_id=os.getenv("CHANNEL_ID") or None,
        log_level=os.getenv("LOG_LEVEL", "info"),
    )


__all__ = ["Settings", "load_settings"]
