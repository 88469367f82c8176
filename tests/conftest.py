from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Optional

import pytest

from slack_attendance.config import Settings
from slack_attendance.db import Database
from slack_attendance.models import SlackMessage
from slack_attendance.service import AttendanceService
from slack_attendance.slack_client import SlackApiError
from slack_attendance.timeutils import ReportingClock

TZ_NAME = "Asia/Karachi"
CLOCK = ReportingClock.from_name(TZ_NAME)


def ts_at(day: str, hhmm: str) -> str:
    """Slack-style timestamp for a wall-clock time in the reporting zone."""
    local = datetime.strptime(f"{day} {hhmm}", "%Y-%m-%d %H:%M").replace(tzinfo=CLOCK.tz)
    return f"{local.timestamp():.6f}"


def make_event(
    message_type: str,
    day: str,
    hhmm: str,
    user_id: str = "U1",
    user_name: Optional[str] = "Alice",
) -> SlackMessage:
    timestamp = ts_at(day, hhmm)
    return SlackMessage(
        message_id=f"C1-{timestamp}-{user_id}",
        channel_id="C1",
        user_id=user_id,
        user_name=user_name,
        message_text=message_type,
        message_type=message_type,
        timestamp=timestamp,
    )


@pytest.fixture
def clock() -> ReportingClock:
    return CLOCK


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        slack_bot_token="xoxb-test",
        api_key="secret",
        database_path=tmp_path / "attendance.db",
        reporting_timezone=TZ_NAME,
        slack_signing_secret="signing-secret",
        channel_id="C1",
    )


@pytest.fixture
def database(settings: Settings) -> Database:
    return Database(settings.database_path)


class FakeSlackClient:
    """In-memory stand-in for SlackClient."""

    def __init__(self, users=None, channels=None, history=None, fail=False):
        self.users = users or {}
        self.channels = channels or {}
        self.history = history or []
        self.fail = fail
        self.closed = False

    async def fetch_users(self):
        return list(self.users.values())

    async def fetch_user_info(self, user_id):
        if self.fail:
            raise SlackApiError("users.info", "user_not_found")
        return self.users.get(user_id, {})

    async def fetch_channel_info(self, channel_id):
        if self.fail:
            raise SlackApiError("conversations.info", "channel_not_found")
        return self.channels.get(channel_id, {})

    async def fetch_channel_history(self, channel_id, *, oldest=None, latest=None, limit=200):
        for message in self.history:
            ts = float(message["ts"])
            if oldest and ts < float(oldest):
                continue
            if latest and ts >= float(latest):
                continue
            yield message

    async def close(self):
        self.closed = True


@pytest.fixture
def slack_client() -> FakeSlackClient:
    return FakeSlackClient(
        users={"U1": {"id": "U1", "name": "alice", "real_name": "Alice"}},
        channels={"C1": {"id": "C1", "name": "attendance"}},
    )


@pytest.fixture
def service(settings: Settings, database: Database, slack_client: FakeSlackClient) -> AttendanceService:
    return AttendanceService(settings, database, slack_client)
