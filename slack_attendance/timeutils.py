"""Date and time derivations in the reporting timezone.

Every calendar date and hour-of-day used for attendance is derived through a
single :class:`ReportingClock`, so the query window and the reconstruction
agree on where a day starts and ends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

DEFAULT_TIMEZONE = "Asia/Karachi"

# Overnight check-outs are looked for up to this hour of the day after the
# requested end date.
LOOKAHEAD_HOUR = 12

Timestamp = Union[str, float]


class ConfigurationError(RuntimeError):
    """Raised when the deployment configuration is unusable."""


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


@dataclass(frozen=True, slots=True)
class ReportingClock:
    """Converts Slack timestamps to wall-clock values in one fixed zone."""

    tz: ZoneInfo

    @classmethod
    def from_name(cls, name: str) -> "ReportingClock":
        try:
            return cls(ZoneInfo(name))
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ConfigurationError(f"Unknown reporting timezone: {name!r}") from exc

    @property
    def name(self) -> str:
        return self.tz.key

    def localize(self, ts: Timestamp) -> datetime:
        return datetime.fromtimestamp(float(ts), tz=self.tz)

    def date_of(self, ts: Timestamp) -> str:
        return self.localize(ts).strftime("%Y-%m-%d")

    def time_of(self, ts: Timestamp) -> str:
        return self.localize(ts).strftime("%H:%M")

    def hour_of(self, ts: Timestamp) -> int:
        return self.localize(ts).hour

    def start_of(self, day: date) -> datetime:
        return datetime.combine(day, time.min, tzinfo=self.tz)

    def attendance_window(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> Tuple[Optional[float], Optional[float]]:
        """Return ``(oldest, latest)`` bounds for an attendance query.

        The end bound is pushed to noon of the following day so that
        early-morning check-outs of an overnight shift are still fetched.
        """

        oldest = self.start_of(start).timestamp() if start else None
        latest = None
        if end:
            lookahead = datetime.combine(
                end + timedelta(days=1), time(hour=LOOKAHEAD_HOUR), tzinfo=self.tz
            )
            latest = lookahead.timestamp()
        return oldest, latest

    def day_window(
        self, start: Optional[date] = None, end: Optional[date] = None
    ) -> Tuple[Optional[float], Optional[float]]:
        """Return bounds covering whole calendar days, without look-ahead.

        The upper bound is exclusive; callers compare with ``<``.
        """

        oldest = self.start_of(start).timestamp() if start else None
        latest = self.start_of(end + timedelta(days=1)).timestamp() if end else None
        return oldest, latest


__all__ = [
    "ConfigurationError",
    "DEFAULT_TIMEZONE",
    "LOOKAHEAD_HOUR",
    "ReportingClock",
    "parse_date",
]
