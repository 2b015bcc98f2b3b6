"""Shared date and time utilities.

Provides date keys, Sunday-based week math, weekday parsing, month keys and
reporting windows used by the recurrence expander, the aggregator and the
CLI. Weekday indices follow the stored records: 0=Sunday .. 6=Saturday.
"""
from __future__ import annotations

import datetime as _dt
import math
import re
from typing import Any, Optional, Tuple

__all__ = [
    "DAY_MAP",
    "FMT_DATE_KEY",
    "UTC",
    "add_months",
    "combine_date_and_time",
    "day_range",
    "duration_parts",
    "end_of_day",
    "hours_label",
    "label_ym",
    "month_range",
    "normalize_weekday",
    "parse_date_key",
    "parse_instant",
    "parse_ym",
    "start_of_week",
    "to_date_key",
    "to_utc_iso",
    "week_range",
    "weekday_index",
    "ym_key",
]

FMT_DATE_KEY = "%Y-%m-%d"
UTC = _dt.timezone.utc

# Day-of-week name/abbreviation/RRULE code to 0=Sunday index
DAY_MAP = {
    "sunday": 0,
    "sun": 0,
    "su": 0,
    "monday": 1,
    "mon": 1,
    "mo": 1,
    "tuesday": 2,
    "tue": 2,
    "tues": 2,
    "tu": 2,
    "wednesday": 3,
    "wed": 3,
    "we": 3,
    "thursday": 4,
    "thu": 4,
    "thur": 4,
    "thurs": 4,
    "th": 4,
    "friday": 5,
    "fri": 5,
    "fr": 5,
    "saturday": 6,
    "sat": 6,
    "sa": 6,
}


_YM_RE = re.compile(r"^\s*(\d{1,4})\D(\d{1,2})")


def _as_date(d: Any) -> _dt.date:
    if isinstance(d, _dt.datetime):
        return d.date()
    if isinstance(d, _dt.date):
        return d
    parsed = parse_date_key(d)
    if parsed is None:
        raise ValueError(f"Invalid date: {d!r}")
    return parsed


def to_date_key(d: _dt.date) -> str:
    """Return the local calendar date of ``d`` as 'YYYY-MM-DD'."""
    return _as_date(d).strftime(FMT_DATE_KEY)


def parse_date_key(v: Any) -> Optional[_dt.date]:
    """Parse 'YYYY-MM-DD' (or the date part of an ISO timestamp); None if invalid."""
    if v is None:
        return None
    if isinstance(v, _dt.datetime):
        return v.date()
    if isinstance(v, _dt.date):
        return v
    s = str(v).strip()
    if not s:
        return None
    try:
        return _dt.date.fromisoformat(s.split("T", 1)[0][:10])
    except ValueError:
        return None


def weekday_index(d: _dt.date) -> int:
    """Weekday with Sunday as 0 (Python's weekday() has Monday as 0)."""
    return (d.weekday() + 1) % 7


def start_of_week(d: _dt.date) -> _dt.date:
    """Return the Sunday on or before ``d``."""
    day = _as_date(d)
    return day - _dt.timedelta(days=weekday_index(day))


def normalize_weekday(v: Any) -> Optional[int]:
    """Convert a weekday spec to a 0=Sunday index.

    Examples:
        0 -> 0
        'MO' -> 1
        'Wednesday' -> 3
        'sat' -> 6
    """
    if isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v if 0 <= v <= 6 else None
    s = str(v or "").strip().lower()
    if s.isdigit():
        n = int(s)
        return n if 0 <= n <= 6 else None
    return DAY_MAP.get(s)


def end_of_day(d: Any, tz: _dt.tzinfo) -> _dt.datetime:
    """Last representable instant of date ``d`` in ``tz``."""
    return _dt.datetime.combine(_as_date(d), _dt.time.max, tzinfo=tz)


def combine_date_and_time(d: _dt.date, base: _dt.datetime, tz: _dt.tzinfo) -> _dt.datetime:
    """Put the wall-clock time of ``base`` (seen in ``tz``) on date ``d``."""
    return _dt.datetime.combine(d, base.astimezone(tz).time(), tzinfo=tz)


def parse_instant(v: Any, tz: _dt.tzinfo) -> Optional[_dt.datetime]:
    """Best-effort convert a value to an aware datetime.

    Naive values are read as wall-clock time in ``tz``. Anything that cannot
    be parsed returns None so a bad record never aborts a whole batch.
    """
    if v is None:
        return None
    if isinstance(v, _dt.datetime):
        dt = v
    elif isinstance(v, _dt.date):
        dt = _dt.datetime.combine(v, _dt.time.min)
    else:
        s = str(v).strip()
        if not s:
            return None
        if s.endswith(("Z", "z")):
            s = s[:-1] + "+00:00"
        try:
            dt = _dt.datetime.fromisoformat(s)
        except ValueError:
            return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz)
    return dt


def to_utc_iso(dt: _dt.datetime) -> str:
    """ISO-8601 UTC string with millisecond precision and a 'Z' suffix."""
    u = dt.astimezone(UTC)
    return u.strftime("%Y-%m-%dT%H:%M:%S.") + f"{u.microsecond // 1000:03d}Z"


# -----------------------------------------------------------------------------
# Month keys and reporting windows
# -----------------------------------------------------------------------------

def ym_key(d: _dt.date) -> str:
    """Return 'YYYY-MM' for a date."""
    return f"{d.year:04d}-{d.month:02d}"


def parse_ym(key: str) -> Tuple[int, int]:
    """Parse 'YYYY-MM'; malformed parts fall back to the current year/month."""
    today = _dt.date.today()
    m = _YM_RE.match(str(key or ""))
    if not m:
        return today.year, today.month
    y, mo = int(m.group(1)), int(m.group(2))
    return (y or today.year), (mo if 1 <= mo <= 12 else today.month)


def add_months(key: str, delta: int) -> str:
    y, m = parse_ym(key)
    idx = y * 12 + (m - 1) + delta
    return f"{idx // 12:04d}-{idx % 12 + 1:02d}"


def label_ym(key: str) -> str:
    y, m = parse_ym(key)
    return f"{y}/{m}"


def _midnight(d: _dt.date, tz: _dt.tzinfo) -> _dt.datetime:
    return _dt.datetime.combine(d, _dt.time.min, tzinfo=tz)


def day_range(d: Any, tz: _dt.tzinfo) -> Tuple[_dt.datetime, _dt.datetime]:
    """Half-open window covering one local calendar day."""
    day = _as_date(d)
    return _midnight(day, tz), _midnight(day + _dt.timedelta(days=1), tz)


def week_range(d: Any, tz: _dt.tzinfo) -> Tuple[_dt.datetime, _dt.datetime]:
    """Half-open window covering the Sunday..Saturday week containing ``d``."""
    first = start_of_week(_as_date(d))
    return _midnight(first, tz), _midnight(first + _dt.timedelta(days=7), tz)


def month_range(key: str, tz: _dt.tzinfo) -> Tuple[_dt.datetime, _dt.datetime]:
    """Half-open window covering the calendar month 'YYYY-MM'."""
    y, m = parse_ym(key)
    ny, nm = parse_ym(add_months(f"{y:04d}-{m:02d}", 1))
    return _midnight(_dt.date(y, m, 1), tz), _midnight(_dt.date(ny, nm, 1), tz)


# -----------------------------------------------------------------------------
# Presentation helpers
# -----------------------------------------------------------------------------

def hours_label(hours: float) -> str:
    """Format hours with one decimal, e.g. 1234.5 -> '1,234.5h'."""
    try:
        n = float(hours)
    except (TypeError, ValueError):
        n = 0.0
    if not math.isfinite(n):
        n = 0.0
    return f"{n:,.1f}h"


def duration_parts(start: _dt.datetime, end: _dt.datetime) -> Tuple[int, int, int]:
    """Split an interval into (hours, minutes, total_minutes); negative spans are 0."""
    seconds = (end.astimezone(UTC) - start.astimezone(UTC)).total_seconds()
    total_minutes = max(0, int(seconds // 60))
    return total_minutes // 60, total_minutes % 60, total_minutes
