"""
modules/temporal/time_model.py
-------------------------------
Canonical wall-clock arithmetic for one trip day.

All values are integer minutes. Within a trip day, times earlier than
config.DAY_ROLLOVER_TIME (04:00) are read as "after midnight" and sit at
1440 + m on the day timeline, so the night slot (21:00-00:00) and a stop
ending at 00:30 sort after everything else on the same day. The trip-day
counter itself never increments.

Intervals are closed-open [start, end): a stop ending 10:00 and one starting
10:00 do not overlap.

Opening hours accepted:
    "09:00-17:00"                    single window
    "06:00-12:00, 16:00-21:00"       several windows (',' or ';')
    "18:00-02:00"                    window spanning midnight
    "24 hours" / "open 24 hours"     always open
    "closed"                         never open
Anything else (or an empty value) cannot be verified → OpeningStatus.UNKNOWN.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Iterable, Optional

from tripslot import config
from tripslot.errors import InvalidInputError

MINUTES_PER_DAY: int = 24 * 60

_HHMM_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*$")
_RANGE_RE = re.compile(r"^\s*(\d{1,2}:\d{2})\s*[-–]\s*(\d{1,2}:\d{2})\s*$")
_ALWAYS_OPEN = frozenset({"24 hours", "open 24 hours", "24/7", "00:00-24:00", "always open"})

WEEKDAYS: tuple[str, ...] = (
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
)


# ── Parsing / formatting ──────────────────────────────────────────────────────

def parse_hhmm(value: str) -> int:
    """Parse "HH:MM" into minutes from midnight. Raises InvalidInputError."""
    if not isinstance(value, str):
        raise InvalidInputError(f"time must be an 'HH:MM' string, got {value!r}")
    m = _HHMM_RE.match(value)
    if not m:
        raise InvalidInputError(f"time {value!r} is not in 'HH:MM' format")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise InvalidInputError(f"time {value!r} is out of range 00:00-23:59")
    return hours * 60 + minutes


def format_hhmm(minutes: int) -> str:
    """Minutes on the day timeline → wall-clock "HH:MM" (wraps past midnight)."""
    minutes = int(minutes) % MINUTES_PER_DAY
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def _rollover_minutes() -> int:
    return parse_hhmm(config.DAY_ROLLOVER_TIME)


def day_minutes(value: str | int) -> int:
    """Place a wall-clock time on the trip-day timeline (after-midnight → +1440)."""
    mins = parse_hhmm(value) if isinstance(value, str) else int(value)
    if mins < _rollover_minutes():
        mins += MINUTES_PER_DAY
    return mins


def duration_minutes(start: str | int, end: str | int) -> int:
    """
    Length of [start, end). An end earlier than the start spans into the next
    calendar day (duration only; no day counter changes).
    """
    s = parse_hhmm(start) if isinstance(start, str) else int(start) % MINUTES_PER_DAY
    e = parse_hhmm(end) if isinstance(end, str) else int(end) % MINUTES_PER_DAY
    return (e - s) % MINUTES_PER_DAY


# ── TimeRange ─────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TimeRange:
    """Closed-open interval on the trip-day timeline (minutes, end may exceed 1440)."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise InvalidInputError(
                f"range end {self.end} precedes start {self.start}"
            )

    @classmethod
    def from_hhmm(cls, start: str, end: str) -> "TimeRange":
        s = day_minutes(start)
        return cls(s, s + duration_minutes(start, end))

    @classmethod
    def from_start(cls, start: int, length: int) -> "TimeRange":
        return cls(start, start + int(length))

    @property
    def minutes(self) -> int:
        return self.end - self.start

    @property
    def start_hhmm(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_hhmm(self) -> str:
        return format_hhmm(self.end)

    def overlaps(self, other: "TimeRange") -> bool:
        return overlaps(self, other)

    def shift(self, delta_minutes: int) -> "TimeRange":
        return shift(self, delta_minutes)

    def contains(self, other: "TimeRange") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(a: TimeRange, b: TimeRange) -> bool:
    """True when the closed-open ranges share at least one minute."""
    if a.minutes == 0 or b.minutes == 0:
        return False
    return a.start < b.end and b.start < a.end


def shift(r: TimeRange, delta_minutes: int) -> TimeRange:
    return TimeRange(r.start + int(delta_minutes), r.end + int(delta_minutes))


def subtract(window: TimeRange, blocked: Iterable[TimeRange]) -> list[TimeRange]:
    """Free sub-ranges of *window* once every *blocked* range is carved out."""
    free = [window]
    for b in sorted(blocked, key=lambda r: r.start):
        nxt: list[TimeRange] = []
        for seg in free:
            if not overlaps(seg, b):
                nxt.append(seg)
                continue
            if seg.start < b.start:
                nxt.append(TimeRange(seg.start, b.start))
            if b.end < seg.end:
                nxt.append(TimeRange(b.end, seg.end))
        free = nxt
    return [seg for seg in free if seg.minutes > 0]


# ── Opening hours ─────────────────────────────────────────────────────────────

class OpeningStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    UNKNOWN = "unknown"


def parse_opening_hours(hours: Optional[str]) -> Optional[list[TimeRange]]:
    """
    Returns the list of open windows, [] for "closed", or None when the string
    is absent or cannot be read.
    """
    if hours is None or not str(hours).strip():
        return None
    text = str(hours).strip().lower()
    if text in _ALWAYS_OPEN:
        return [TimeRange(0, 2 * MINUTES_PER_DAY)]
    if text == "closed":
        return []
    windows: list[TimeRange] = []
    for part in re.split(r"[,;]", text):
        m = _RANGE_RE.match(part)
        if not m:
            return None
        try:
            s = parse_hhmm(m.group(1))
            length = duration_minutes(m.group(1), m.group(2))
        except InvalidInputError:
            return None
        windows.append(TimeRange.from_start(s, length or MINUTES_PER_DAY))
    return windows


def _normalise_weekday(value: str) -> Optional[str]:
    v = str(value).strip().lower()
    for day in WEEKDAYS:
        if v == day or (len(v) >= 3 and day.startswith(v)):
            return day
    return None


def within_opening_hours(
    window: TimeRange,
    opening_hours: Optional[str],
    closed_on: Optional[list[str]] = None,
    weekday: Optional[str] = None,
) -> OpeningStatus:
    """
    Check a visit window against an opening-hours string and closed weekdays.

    *weekday* is the visit day's name ("monday"...) or None when the trip has
    no dates. A non-empty closed_on with an unknown weekday cannot be verified.
    """
    closed_days = {d for d in (_normalise_weekday(x) for x in (closed_on or [])) if d}
    day = _normalise_weekday(weekday) if weekday else None
    if day and day in closed_days:
        return OpeningStatus.CLOSED

    windows = parse_opening_hours(opening_hours)
    if windows is None:
        return OpeningStatus.UNKNOWN

    covered = False
    for w in windows:
        # a window may belong to the previous or next calendar day
        for offset in (-MINUTES_PER_DAY, 0, MINUTES_PER_DAY):
            if w.shift(offset).contains(window):
                covered = True
                break
        if covered:
            break
    if not covered:
        return OpeningStatus.CLOSED

    if closed_days and day is None:
        return OpeningStatus.UNKNOWN
    return OpeningStatus.OPEN


# ── Dates ─────────────────────────────────────────────────────────────────────

def parse_date(value: Optional[str | date]) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as exc:
        raise InvalidInputError(f"date {value!r} is not ISO-8601 (YYYY-MM-DD)") from exc


def date_for_day(start: Optional[date], day: int) -> Optional[date]:
    """Calendar date of 1-based trip *day*, or None when the trip is undated."""
    if start is None:
        return None
    return start + timedelta(days=day - 1)


def weekday_for(start: Optional[date], day: int) -> Optional[str]:
    d = date_for_day(start, day)
    return WEEKDAYS[d.weekday()] if d else None
