"""MCP server exposing Slack attendance tools."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .service import AttendanceService
from .slack_client import SlackClient
from .timeutils import parse_date

logger = logging.getLogger(__name__)


def _ensure_date(day_str: Optional[str] = None) -> Optional[date]:
    if not day_str:
        return None
    try:
        return parse_date(day_str)
    except ValueError as exc:
        raise ValueError("Invalid date format. Use YYYY-MM-DD.") from exc


class AttendanceTools:
    """Tool implementations, kept separate from registration so they stay callable."""

    def __init__(self, service: AttendanceService) -> None:
        self.service = service

    async def get_attendance_summary(
        self, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> dict[str, Any]:
        """Return attendance totals and per-user records for a date range."""

        summary = self.service.get_attendance_summary(
            _ensure_date(start_date), _ensure_date(end_date)
        )
        return summary.to_dict()

    async def get_user_attendance(
        self, user_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None
    ) -> dict[str, Any]:
        """Return one user's daily attendance records for a date range."""

        attendance = self.service.get_user_attendance(
            user_id, _ensure_date(start_date), _ensure_date(end_date)
        )
        if attendance is None:
            raise ValueError("No attendance found for user")
        return attendance.to_dict()

    async def list_users(self) -> dict[str, Any]:
        """Return every user that has posted a tracked message."""

        return {"users": self.service.list_users()}


def create_server(service: AttendanceService) -> FastMCP:
    tools = AttendanceTools(service)
    mcp = FastMCP("slack-attendance")
    mcp.tool(name="get_attendance_summary")(tools.get_attendance_summary)
    mcp.tool(name="get_user_attendance")(tools.get_user_attendance)
    mcp.tool(name="list_users")(tools.list_users)
    return mcp


def run() -> None:  # pragma: no cover - io bound
    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper(), handlers=[logging.StreamHandler()])
    service = AttendanceService(
        settings, Database(settings.database_path), SlackClient(settings.slack_bot_token)
    )
    logger.info("Starting MCP server (timezone %s)", settings.reporting_timezone)
    create_server(service).run()


if __name__ == "__main__":  # pragma: no cover
    run()


__all__ = ["AttendanceTools", "create_server", "run"]
