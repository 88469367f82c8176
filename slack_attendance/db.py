"""SQLite persistence layer for Slack messages."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .models import CHECKIN, CHECKOUT, SlackMessage

Connection = sqlite3.Connection
Row = sqlite3.Row

logger = logging.getLogger(__name__)

MESSAGE_COLUMNS = (
    "id",
    "message_id",
    "channel_id",
    "channel_name",
    "user_id",
    "user_name",
    "message_text",
    "message_type",
    "timestamp",
    "created_at",
)


def _to_message(row: Row) -> SlackMessage:
    return SlackMessage(**{column: row[column] for column in MESSAGE_COLUMNS})


class Database:
    """Lightweight wrapper around SQLite operations."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._initialize()

    @contextmanager
    def connect(self) -> Iterator[Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _initialize(self) -> None:
        with self.connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS slack_messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    message_id TEXT UNIQUE NOT NULL,
                    channel_id TEXT NOT NULL,
                    channel_name TEXT,
                    user_id TEXT NOT NULL,
                    user_name TEXT,
                    message_text TEXT NOT NULL,
                    message_type TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    ts REAL NOT NULL,
                    created_at TEXT DEFAULT CURRENT_TIMESTAMP
                )
                """
            )
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_channel_id ON slack_messages(channel_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_user_id ON slack_messages(user_id)")
            cursor.execute("CREATE INDEX IF NOT EXISTS idx_ts ON slack_messages(ts)")
            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_message_type ON slack_messages(message_type)"
            )
            conn.commit()

    # region Writes
    def save_message(self, message: SlackMessage) -> bool:
        """Insert a message; returns False when it was already stored."""

        with self.connect() as conn:
            cursor = conn.execute(
                """
                INSERT OR IGNORE INTO slack_messages
                    (message_id, channel_id, channel_name, user_id, user_name,
                     message_text, message_type, timestamp, ts)
                VALUES (:message_id, :channel_id, :channel_name, :user_id, :user_name,
                        :message_text, :message_type, :timestamp, :ts)
                """,
                {
                    "message_id": message.message_id,
                    "channel_id": message.channel_id,
                    "channel_name": message.channel_name,
                    "user_id": message.user_id,
                    "user_name": message.user_name,
                    "message_text": message.message_text,
                    "message_type": message.message_type,
                    "timestamp": message.timestamp,
                    "ts": message.ts,
                },
            )
            conn.commit()
            inserted = cursor.rowcount > 0
        if not inserted:
            logger.debug("Message %s already stored", message.message_id)
        return inserted

    def save_manual_entry(
        self,
        user_id: str,
        user_name: str,
        message_type: str,
        timestamp: str,
        message_text: Optional[str] = None,
    ) -> SlackMessage:
        message = SlackMessage(
            message_id=f"manual-{user_id}-{timestamp}",
            channel_id="manual",
            channel_name="manual",
            user_id=user_id,
            user_name=user_name,
            message_text=message_text or f"Manual {message_type}",
            message_type=message_type,
            timestamp=timestamp,
        )
        self.save_message(message)
        return message

    def delete_message(self, entry_id: int) -> bool:
        with self.connect() as conn:
            cursor = conn.execute("DELETE FROM slack_messages WHERE id = ?", (entry_id,))
            conn.commit()
            return cursor.rowcount > 0

    # endregion

    # region Reads
    def get_checkin_checkout_messages(
        self, oldest: Optional[float] = None, latest: Optional[float] = None
    ) -> List[SlackMessage]:
        """Return check-in/check-out messages with ``oldest <= ts < latest``, newest first."""

        query = "SELECT * FROM slack_messages WHERE message_type IN (?, ?)"
        params: List[Any] = [CHECKIN, CHECKOUT]
        if oldest is not None:
            query += " AND ts >= ?"
            params.append(oldest)
        if latest is not None:
            query += " AND ts < ?"
            params.append(latest)
        query += " ORDER BY ts DESC"

        with self.connect() as conn:
            cursor = conn.execute(query, params)
            return [_to_message(row) for row in cursor.fetchall()]

    def get_messages_by_channel(self, channel_id: str, limit: int = 100) -> List[SlackMessage]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM slack_messages WHERE channel_id = ? ORDER BY ts DESC LIMIT ?",
                (channel_id, limit),
            )
            return [_to_message(row) for row in cursor.fetchall()]

    def get_messages_by_user(self, user_id: str, limit: int = 100) -> List[SlackMessage]:
        with self.connect() as conn:
            cursor = conn.execute(
                "SELECT * FROM slack_messages WHERE user_id = ? ORDER BY ts DESC LIMIT ?",
                (user_id, limit),
            )
            return [_to_message(row) for row in cursor.fetchall()]

    def get_message(self, entry_id: int) -> Optional[SlackMessage]:
        with self.connect() as conn:
            cursor = conn.execute("SELECT * FROM slack_messages WHERE id = ?", (entry_id,))
            row = cursor.fetchone()
            return _to_message(row) if row else None

    def get_unique_users(self) -> List[Dict[str, Any]]:
        with self.connect() as conn:
            cursor = conn.execute(
                """
                SELECT user_id, MAX(user_name) AS user_name, COUNT(*) AS message_count
                FROM slack_messages
                GROUP BY user_id
                ORDER BY user_name
                """
            )
            return [dict(row) for row in cursor.fetchall()]

    # endregion


__all__ = ["Database"]
