"""
apps/leaderboard/windows.py
============================
The four leaderboard windows and their UTC bounds.

Every window resolves to a half-open [start, end) range:

  today    — midnight UTC → next midnight
  month    — 1st of the month → 1st of the next month
  year     — Jan 1 → next Jan 1
  all_time — unbounded, (None, None)

Bounds are computed for the instant passed in, so the same code answers
"this month" and "the month of 2024-03".

A period is one concrete day, month or year, named by its label:

  today    — YYYY-MM-DD
  month    — YYYY-MM
  year     — YYYY
  all_time — no periods
"""

from datetime import datetime, timedelta, timezone as dt_timezone
from enum import Enum


class Window(str, Enum):
    TODAY = "today"
    MONTH = "month"
    YEAR = "year"
    ALL_TIME = "all_time"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value) -> "Window":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(w.value for w in cls)
            raise ValueError(f"Unknown window {value!r} (expected one of: {valid})") from None

    def bounds(self, at: datetime) -> tuple[datetime | None, datetime | None]:
        if self is Window.ALL_TIME:
            return None, None

        at = _as_utc(at)
        if self is Window.TODAY:
            start = at.replace(hour=0, minute=0, second=0, microsecond=0)
            return start, start + timedelta(days=1)

        if self is Window.MONTH:
            start = at.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
            if start.month == 12:
                end = start.replace(year=start.year + 1, month=1)
            else:
                end = start.replace(month=start.month + 1)
            return start, end

        start = at.replace(month=1, day=1, hour=0, minute=0, second=0, microsecond=0)
        return start, start.replace(year=start.year + 1)

    # ── Periods ───────────────────────────────────────────────────────────────

    def period_label(self, at: datetime) -> str | None:
        """Label of the period containing `at`, e.g. "2024-03" for month."""
        if self is Window.ALL_TIME:
            return None
        return _as_utc(at).strftime(_PERIOD_FORMATS[self.value][0])

    def parse_period(self, label: str) -> datetime:
        """Start of the period named by `label`. Raises ValueError if it does not fit the window."""
        if self is Window.ALL_TIME:
            raise ValueError("all_time has no periods")
        fmt, shape = _PERIOD_FORMATS[self.value]
        try:
            start = datetime.strptime(str(label).strip(), fmt)
        except ValueError:
            raise ValueError(f"Period {label!r} does not name a {self.value} period (expected {shape})") from None
        return start.replace(tzinfo=dt_timezone.utc)


_PERIOD_FORMATS = {
    "today": ("%Y-%m-%d", "YYYY-MM-DD"),
    "month": ("%Y-%m",    "YYYY-MM"),
    "year":  ("%Y",       "YYYY"),
}


def _as_utc(at: datetime) -> datetime:
    # Naive datetimes are taken to already be UTC.
    if at.tzinfo is None:
        return at.replace(tzinfo=dt_timezone.utc)
    return at.astimezone(dt_timezone.utc)
