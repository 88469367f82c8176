"""Core orchestration logic for Slack attendance."""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

import httpx

from .attendance import build_attendance, build_user_attendance, summarize
from .classifier import classify_message
from .config import Settings
from .db import Database
from .models import (
    CHECKIN,
    CHECKOUT,
    MESSAGE_TYPES,
    AttendanceSummary,
    SlackMessage,
    UserAttendance,
)
from .slack_client import SlackApiError, SlackClient, display_name

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_NAME = "general"


class AttendanceService:
    """High-level service that ingests Slack messages and reports attendance."""

    def __init__(self, settings: Settings, database: Database, client: SlackClient) -> None:
        self.settings = settings
        self.database = database
        self.client = client
        self.clock = settings.clock

    # region Attendance
    def get_attendance_records(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> List[UserAttendance]:
        oldest, latest = self.clock.attendance_window(start, end)
        events = self.database.get_checkin_checkout_messages(oldest, latest)
        return build_attendance(events, self.clock, start, end)

    def get_user_attendance(
        self, user_id: str, start: Optional[date] = None, end: Optional[date] = None
    ) -> Optional[UserAttendance]:
        oldest, latest = self.clock.attendance_window(start, end)
        events = [
            event
            for event in self.database.get_checkin_checkout_messages(oldest, latest)
            if event.user_id == user_id
        ]
        if not events:
            return None
        attendance = build_user_attendance(user_id, events, self.clock, start, end)
        return attendance if attendance.records else None

    def get_attendance_summary(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> AttendanceSummary:
        return summarize(self.get_attendance_records(start, end))

    # endregion

    # region Ingestion
    async def handle_event(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Process a Slack Events API callback body."""

        if payload.get("type") == "url_verification":
            return {"challenge": payload.get("challenge")}

        event = payload.get("event") or {}
        if event.get("type") != "message":
            return {"status": "ignored"}
        if not event.get("text") or not event.get("user") or event.get("subtype"):
            logger.info("Skipping message event (bot, edit or no text)")
            return {"status": "ok"}

        channel_id = event.get("channel", "")
        channel_name = await self._channel_name(channel_id)
        user_name = await self._user_name(event["user"])
        message, stored = self._store(event, channel_id, channel_name, user_name)
        logger.info(
            "Received %s from %s in %s (stored=%s)",
            message.message_type,
            message.display_name,
            channel_name,
            stored,
        )
        return {"status": "ok", "message_type": message.message_type, "stored": stored}

    async def sync_day(self, day: date) -> int:
        """Backfill one reporting-zone day of channel history; returns new rows."""

        channel_id = self.settings.channel_id
        if not channel_id:
            logger.warning("CHANNEL_ID is not set; skipping Slack history sync")
            return 0

        roster = {member["id"]: display_name(member) for member in await self.client.fetch_users()}
        channel_name = await self._channel_name(channel_id)
        oldest, latest = self.clock.day_window(day, day)

        stored = 0
        async for message in self.client.fetch_channel_history(
            channel_id, oldest=f"{oldest:.6f}", latest=f"{latest:.6f}"
        ):
            if message.get("subtype"):
                continue
            user_id = message.get("user")
            if not user_id or not (message.get("text") or "").strip():
                continue
            _, inserted = self._store(message, channel_id, channel_name, roster.get(user_id))
            stored += int(inserted)

        logger.info("Slack sync for %s complete: %s new messages", day.isoformat(), stored)
        return stored

    async def sync_recent(self, days: int = 1) -> int:
        today = datetime.now(self.clock.tz).date()
        total = 0
        for offset in range(days):
            total += await self.sync_day(today - timedelta(days=offset))
        return total

    def add_manual_entry(
        self,
        user_name: str,
        message_type: str,
        timestamp: str,
        message_text: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> SlackMessage:
        if not user_name:
            raise ValueError("user_name is required")
        if message_type not in (CHECKIN, CHECKOUT):
            raise ValueError('message_type must be either "checkin" or "checkout"')
        try:
            ts_value = float(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("Invalid timestamp format. Expected Unix timestamp in seconds.") from exc
        if ts_value <= 0:
            raise ValueError("Invalid timestamp format. Expected Unix timestamp in seconds.")

        resolved_id = user_id or self._known_user_id(user_name) or _manual_user_id(user_name)
        logger.info("Saving manual %s for %s at %s", message_type, user_name, timestamp)
        return self.database.save_manual_entry(
            resolved_id, user_name, message_type, str(timestamp), message_text
        )

    def delete_entry(self, entry_id: int) -> Optional[SlackMessage]:
        """Delete a stored message and return it, or ``None`` if it did not exist."""

        entry = self.database.get_message(entry_id)
        if entry is None or not self.database.delete_message(entry_id):
            return None
        logger.info("Deleted %s entry %s for %s", entry.message_type, entry_id, entry.display_name)
        return entry

    # endregion

    # region Query helpers
    def list_messages(
        self,
        message_type: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        channel_id: Optional[str] = None,
        user_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[SlackMessage]:
        if message_type == "all":
            message_type = None
        if message_type is not None and message_type not in MESSAGE_TYPES:
            raise ValueError(f"Unknown message type: {message_type}")

        if channel_id:
            messages = self.database.get_messages_by_channel(channel_id, limit)
        elif user_id:
            messages = self.database.get_messages_by_user(user_id, limit)
        else:
            oldest, latest = self.clock.day_window(start, end)
            messages = self.database.get_checkin_checkout_messages(oldest, latest)

        if message_type:
            messages = [message for message in messages if message.message_type == message_type]
        if start or end:
            messages = [message for message in messages if self._within(message, start, end)]
        return messages[:limit]

    def list_users(self) -> List[Dict[str, Any]]:
        return self.database.get_unique_users()

    # endregion

    def _within(self, message: SlackMessage, start: Optional[date], end: Optional[date]) -> bool:
        day = self.clock.date_of(message.timestamp)
        if start and day < start.isoformat():
            return False
        if end and day > end.isoformat():
            return False
        return True

    def _store(
        self,
        message: Dict[str, Any],
        channel_id: str,
        channel_name: Optional[str],
        user_name: Optional[str],
    ) -> Tuple[SlackMessage, bool]:
        text = message["text"].strip()
        record = SlackMessage(
            message_id=f"{channel_id}-{message['ts']}",
            channel_id=channel_id,
            channel_name=channel_name,
            user_id=message["user"],
            user_name=user_name,
            message_text=text,
            message_type=classify_message(text),
            timestamp=str(message["ts"]),
        )
        return record, self.database.save_message(record)

    async def _channel_name(self, channel_id: Optional[str]) -> str:
        if not channel_id:
            return DEFAULT_CHANNEL_NAME
        try:
            channel = await self.client.fetch_channel_info(channel_id)
        except (SlackApiError, httpx.HTTPError) as exc:
            logger.warning("Could not fetch channel info for %s: %s", channel_id, exc)
            return DEFAULT_CHANNEL_NAME
        return channel.get("name") or DEFAULT_CHANNEL_NAME

    async def _user_name(self, user_id: str) -> Optional[str]:
        try:
            user = await self.client.fetch_user_info(user_id)
        except (SlackApiError, httpx.HTTPError) as exc:
            logger.warning("Could not fetch user info for %s: %s", user_id, exc)
            return None
        return display_name(user)

    def _known_user_id(self, user_name: str) -> Optional[str]:
        for user in self.database.get_unique_users():
            if user["user_name"] == user_name:
                return user["user_id"]
        return None


def _manual_user_id(user_name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", user_name.strip().lower()).strip("-")
    return f"manual-{slug or 'user'}"


__all__ = ["AttendanceService"]
