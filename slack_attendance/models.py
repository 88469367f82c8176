"""Dataclasses representing Slack attendance domain models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

CHECKIN = "checkin"
CHECKOUT = "checkout"
OTHER = "other"
MESSAGE_TYPES = (CHECKIN, CHECKOUT, OTHER)

FULL_DAY = "full_day"
HALF_DAY = "half_day"
DAY_OFF = "day_off"
MISSING_CHECKOUT = "missing_checkout"
MISSING_CHECKIN = "missing_checkin"
INCOMPLETE_STATUSES = (MISSING_CHECKOUT, MISSING_CHECKIN)


@dataclass(slots=True)
class SlackMessage:
    """A stored Slack message; check-in and check-out rows are attendance events."""

    message_id: str
    channel_id: str
    user_id: str
    message_text: str
    message_type: str
    timestamp: str
    channel_name: Optional[str] = None
    user_name: Optional[str] = None
    id: Optional[int] = None
    created_at: Optional[str] = None

    @property
    def ts(self) -> float:
        return float(self.timestamp)

    @property
    def display_name(self) -> str:
        return self.user_name or self.user_id

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class WorkSession:
    check_in: SlackMessage
    check_out: Optional[SlackMessage] = None
    checkout_next_day: bool = False


@dataclass(slots=True)
class AttendanceRecord:
    date: str
    user_id: str
    user_name: str
    check_in_time: Optional[str]
    check_out_time: Optional[str]
    work_duration_hours: float
    status: str
    checkout_next_day: bool = False
    notes: List[str] = field(default_factory=list)


@dataclass(slots=True)
class UserAttendance:
    user_id: str
    user_name: str
    records: List[AttendanceRecord]
    total_days: int = 0
    full_days: int = 0
    half_days: int = 0
    days_off: int = 0
    incomplete_days: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(slots=True)
class AttendanceSummary:
    total_users: int
    total_days_tracked: int
    total_full_days: int
    total_half_days: int
    total_days_off: int
    total_incomplete_days: int
    users: List[UserAttendance]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = [
    "AttendanceRecord",
    "AttendanceSummary",
    "CHECKIN",
    "CHECKOUT",
    "DAY_OFF",
    "FULL_DAY",
    "HALF_DAY",
    "INCOMPLETE_STATUSES",
    "MESSAGE_TYPES",
    "MISSING_CHECKIN",
    "MISSING_CHECKOUT",
    "OTHER",
    "SlackMessage",
    "UserAttendance",
    "WorkSession",
]
