"""modules/temporal — wall-clock arithmetic and the per-day slot grid."""

from tripslot.modules.temporal.time_model import (
    MINUTES_PER_DAY,
    OpeningStatus,
    TimeRange,
    day_minutes,
    duration_minutes,
    format_hhmm,
    overlaps,
    parse_hhmm,
    shift,
    within_opening_hours,
)

__all__ = [
    "MINUTES_PER_DAY",
    "OpeningStatus",
    "TimeRange",
    "day_minutes",
    "duration_minutes",
    "format_hhmm",
    "overlaps",
    "parse_hhmm",
    "shift",
    "within_opening_hours",
]
