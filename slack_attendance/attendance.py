"""Reconstruct per-user, per-day attendance from Slack check-in/check-out events.

Everything here is a pure function of the events it is given: no I/O and no
module-level state. Check-ins are paired greedily with the earliest unclaimed
later check-out, sessions are folded into one record per calendar date, and
check-outs left over after pairing are used to close the previous day's open
session when they happen before noon (overnight shifts).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    CHECKIN,
    CHECKOUT,
    DAY_OFF,
    FULL_DAY,
    HALF_DAY,
    MISSING_CHECKIN,
    MISSING_CHECKOUT,
    AttendanceRecord,
    AttendanceSummary,
    SlackMessage,
    UserAttendance,
    WorkSession,
)
from .timeutils import LOOKAHEAD_HOUR, ReportingClock, parse_date

FULL_DAY_HOURS = 6.0
HALF_DAY_HOURS = 3.0

MISSING_CHECKOUT_NOTE = "Check-out missing but check-in recorded"
MISSING_CHECKIN_NOTE = "Check-in missing but check-out recorded"
MULTIPLE_SESSIONS_NOTE = "Multiple work sessions"
NEXT_DAY_NOTE = "Checked out on the next day"


def hours_between(check_in_ts: str, check_out_ts: str) -> float:
    return round((float(check_out_ts) - float(check_in_ts)) / 3600, 2)


def classify_hours(hours: float) -> str:
    """Map a worked duration to an attendance status."""

    if hours < HALF_DAY_HOURS:
        return DAY_OFF
    if hours < FULL_DAY_HOURS:
        return HALF_DAY
    return FULL_DAY


def duration_note(hours: float, status: str) -> str:
    if status == DAY_OFF:
        return f"Worked only {hours} hours"
    if status == HALF_DAY:
        return f"Worked {hours} hours (less than {FULL_DAY_HOURS:g} hours)"
    return f"Worked {hours} hours"


def pair_sessions(
    checkins: Iterable[SlackMessage],
    checkouts: Iterable[SlackMessage],
    clock: ReportingClock,
) -> Tuple[List[WorkSession], List[SlackMessage]]:
    """Pair check-ins with check-outs, first come first served.

    Each check-in, in ascending order, claims the earliest check-out that is
    strictly later than it and not yet claimed. Returns the sessions and the
    check-outs nobody claimed, both in ascending order.
    """

    ordered_ins = sorted(checkins, key=lambda message: message.ts)
    ordered_outs = sorted(checkouts, key=lambda message: message.ts)
    claimed = [False] * len(ordered_outs)

    sessions: List[WorkSession] = []
    for check_in in ordered_ins:
        match: Optional[SlackMessage] = None
        for index, check_out in enumerate(ordered_outs):
            if not claimed[index] and check_out.ts > check_in.ts:
                claimed[index] = True
                match = check_out
                break
        next_day = match is not None and clock.date_of(match.timestamp) != clock.date_of(
            check_in.timestamp
        )
        sessions.append(WorkSession(check_in=check_in, check_out=match, checkout_next_day=next_day))

    orphans = [check_out for index, check_out in enumerate(ordered_outs) if not claimed[index]]
    return sessions, orphans


@dataclass
class _Day:
    """Working state for one calendar date of one user."""

    date: str
    check_in: Optional[SlackMessage] = None
    check_out: Optional[SlackMessage] = None
    checkout_next_day: bool = False
    sessions: int = 0
    checkouts: int = 0
    overnight_repair: bool = False
    unmatched: List[str] = field(default_factory=list)

    @property
    def missing_checkout(self) -> bool:
        return self.check_in is not None and self.check_out is None

    def absorb(self, session: WorkSession) -> None:
        self.sessions += 1
        candidate = session.check_out
        if candidate is None:
            return
        if (
            self.check_out is None
            or candidate.ts > self.check_out.ts
            or (session.checkout_next_day and not self.checkout_next_day)
        ):
            self.check_out = candidate
            self.checkout_next_day = session.checkout_next_day


def _previous_date(day: str) -> str:
    return (parse_date(day) - timedelta(days=1)).isoformat()


def _collect_days(
    sessions: Sequence[WorkSession],
    orphans: Sequence[SlackMessage],
    clock: ReportingClock,
) -> Dict[str, _Day]:
    days: Dict[str, _Day] = {}

    for session in sessions:
        key = clock.date_of(session.check_in.timestamp)
        day = days.get(key)
        if day is None:
            day = days[key] = _Day(date=key, check_in=session.check_in)
        day.absorb(session)

    for orphan in orphans:
        key = clock.date_of(orphan.timestamp)
        if clock.hour_of(orphan.timestamp) < LOOKAHEAD_HOUR:
            previous = days.get(_previous_date(key))
            if previous is not None and previous.missing_checkout:
                previous.check_out = orphan
                previous.checkout_next_day = True
                previous.overnight_repair = True
                continue

        day = days.get(key)
        if day is None:
            days[key] = _Day(date=key, check_out=orphan, checkouts=1)
        elif day.check_in is None:
            # orphans arrive in ascending order, keep the latest
            day.check_out = orphan
            day.checkouts += 1
        else:
            day.unmatched.append(clock.time_of(orphan.timestamp))

    return days


def _render(day: _Day, user_id: str, user_name: str, clock: ReportingClock) -> AttendanceRecord:
    if day.check_in is None:
        notes = [MISSING_CHECKIN_NOTE]
        if day.checkouts > 1:
            notes.append(f"Multiple check-outs ({day.checkouts})")
        return AttendanceRecord(
            date=day.date,
            user_id=user_id,
            user_name=user_name,
            check_in_time=None,
            check_out_time=clock.time_of(day.check_out.timestamp),
            work_duration_hours=0.0,
            status=MISSING_CHECKIN,
            notes=notes,
        )

    check_in_time = clock.time_of(day.check_in.timestamp)
    if day.check_out is None:
        notes = [MISSING_CHECKOUT_NOTE]
        if day.sessions > 1:
            notes.append(MULTIPLE_SESSIONS_NOTE)
        notes.extend(f"Unmatched check-out at {value}" for value in day.unmatched)
        return AttendanceRecord(
            date=day.date,
            user_id=user_id,
            user_name=user_name,
            check_in_time=check_in_time,
            check_out_time=None,
            work_duration_hours=0.0,
            status=MISSING_CHECKOUT,
            notes=notes,
        )

    hours = hours_between(day.check_in.timestamp, day.check_out.timestamp)
    status = classify_hours(hours)
    check_out_time = clock.time_of(day.check_out.timestamp)
    if day.overnight_repair:
        notes = [f"Overnight shift: checked out next day at {check_out_time} after {hours} hours"]
    else:
        notes = [duration_note(hours, status)]
        if day.checkout_next_day:
            notes.append(NEXT_DAY_NOTE)
        if day.sessions > 1:
            notes.append(MULTIPLE_SESSIONS_NOTE)
    notes.extend(f"Unmatched check-out at {value}" for value in day.unmatched)

    return AttendanceRecord(
        date=day.date,
        user_id=user_id,
        user_name=user_name,
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        work_duration_hours=hours,
        status=status,
        checkout_next_day=day.checkout_next_day,
        notes=notes,
    )


def build_records(
    user_id: str,
    user_name: str,
    sessions: Sequence[WorkSession],
    orphans: Sequence[SlackMessage],
    clock: ReportingClock,
) -> List[AttendanceRecord]:
    """Fold paired sessions and leftover check-outs into one record per date.

    Records come back sorted by date, newest first.
    """

    days = _collect_days(sessions, orphans, clock)
    records = [_render(day, user_id, user_name, clock) for day in days.values()]
    records.sort(key=lambda record: record.date, reverse=True)
    return records


def _in_range(record_date: str, start: Optional[date], end: Optional[date]) -> bool:
    if start and record_date < start.isoformat():
        return False
    if end and record_date > end.isoformat():
        return False
    return True


def build_user_attendance(
    user_id: str,
    events: Iterable[SlackMessage],
    clock: ReportingClock,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> UserAttendance:
    """Reconstruct one user's attendance.

    ``start``/``end`` limit which dates are reported; events outside them
    still take part in pairing, so a check-out fetched from the look-ahead
    window can close the last requested day.
    """

    events = list(events)
    checkins = [event for event in events if event.message_type == CHECKIN]
    checkouts = [event for event in events if event.message_type == CHECKOUT]
    user_name = next((event.user_name for event in events if event.user_name), user_id)

    sessions, orphans = pair_sessions(checkins, checkouts, clock)
    records = [
        record
        for record in build_records(user_id, user_name, sessions, orphans, clock)
        if _in_range(record.date, start, end)
    ]

    statuses = [record.status for record in records]
    return UserAttendance(
        user_id=user_id,
        user_name=user_name,
        records=records,
        total_days=len(records),
        full_days=statuses.count(FULL_DAY),
        half_days=statuses.count(HALF_DAY),
        days_off=statuses.count(DAY_OFF),
        incomplete_days=statuses.count(MISSING_CHECKOUT) + statuses.count(MISSING_CHECKIN),
    )


def build_attendance(
    events: Iterable[SlackMessage],
    clock: ReportingClock,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> List[UserAttendance]:
    """Group events by user and reconstruct each user's attendance.

    Users appear in the order their first event appears in ``events``. A user
    whose events produce no record inside the range is left out entirely.
    """

    by_user: Dict[str, List[SlackMessage]] = {}
    for event in events:
        if event.message_type not in (CHECKIN, CHECKOUT):
            continue
        by_user.setdefault(event.user_id, []).append(event)

    users: List[UserAttendance] = []
    for user_id, user_events in by_user.items():
        attendance = build_user_attendance(user_id, user_events, clock, start, end)
        if attendance.records:
            users.append(attendance)
    return users


def summarize(users: Sequence[UserAttendance]) -> AttendanceSummary:
    return AttendanceSummary(
        total_users=len(users),
        total_days_tracked=sum(user.total_days for user in users),
        total_full_days=sum(user.full_days for user in users),
        total_half_days=sum(user.half_days for user in users),
        total_days_off=sum(user.days_off for user in users),
        total_incomplete_days=sum(user.incomplete_days for user in users),
        users=list(users),
    )


__all__ = [
    "FULL_DAY_HOURS",
    "HALF_DAY_HOURS",
    "build_attendance",
    "build_records",
    "build_user_attendance",
    "classify_hours",
    "duration_note",
    "hours_between",
    "pair_sessions",
    "summarize",
]
