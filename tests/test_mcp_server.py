import asyncio

import pytest

from conftest import make_event
from slack_attendance.mcp_server import AttendanceTools, create_server
from slack_attendance.models import CHECKIN, CHECKOUT


def test_tools_are_registered(service):
    server = create_server(service)

    tools = asyncio.run(server.list_tools())

    assert {tool.name for tool in tools} == {
        "get_attendance_summary",
        "get_user_attendance",
        "list_users",
    }


def test_summary_tool(service, database):
    database.save_message(make_event(CHECKIN, "2024-01-01", "09:00"))
    database.save_message(make_event(CHECKOUT, "2024-01-01", "17:00"))
    tools = AttendanceTools(service)

    summary = asyncio.run(tools.get_attendance_summary("2024-01-01", "2024-01-01"))

    assert summary["total_full_days"] == 1
    assert summary["users"][0]["records"][0]["work_duration_hours"] == 8.0


def test_user_tool_rejects_bad_date_and_unknown_user(service):
    tools = AttendanceTools(service)

    with pytest.raises(ValueError):
        asyncio.run(tools.get_user_attendance("U1", start_date="yesterday"))
    with pytest.raises(ValueError):
        asyncio.run(tools.get_user_attendance("U404"))
