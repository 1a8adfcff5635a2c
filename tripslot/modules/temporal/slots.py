"""
modules/temporal/slots.py
--------------------------
The slot grid: four named windows per trip day, read from config.SLOT_WINDOWS.
The slot name decides the canonical time-of-day range used for opening-hours
matching; every branch on slot names goes through the SlotName enum.
"""

from __future__ import annotations

from tripslot import config
from tripslot.errors import InvalidInputError
from tripslot.modules.temporal.time_model import TimeRange
from tripslot.schemas.itinerary import SLOT_SEQUENCE, SlotName, TimeSlot, make_slot_id


def canonical_window(slot_name: SlotName) -> TimeRange:
    """Configured wall-clock window for *slot_name* on the day timeline."""
    raw = config.SLOT_WINDOWS.get(slot_name.value)
    if not raw or "-" not in raw:
        raise InvalidInputError(f"slot window for '{slot_name.value}' is not configured")
    start, end = (part.strip() for part in raw.split("-", 1))
    return TimeRange.from_hhmm(start, end)


def make_slot(day: int, slot_name: SlotName) -> TimeSlot:
    window = canonical_window(slot_name)
    return TimeSlot(
        slot_id=make_slot_id(day, slot_name),
        day=day,
        slot_name=slot_name,
        start_time=window.start_hhmm,
        end_time=window.end_hhmm,
        available_mins=window.minutes,
        remaining_mins=window.minutes,
        meal_gap_after=config.SLOT_MEAL_GAPS.get(slot_name.value),
    )


def build_slot_template(days: int) -> list[TimeSlot]:
    """Full grid for a trip: day-major, slots in canonical order."""
    if days < 1:
        raise InvalidInputError(f"days={days} must be >= 1")
    return [make_slot(day, name) for day in range(1, days + 1) for name in SLOT_SEQUENCE]
