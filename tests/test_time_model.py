from datetime import date

import pytest

from tripslot.errors import InvalidInputError
from tripslot.modules.temporal.slots import build_slot_template, canonical_window
from tripslot.modules.temporal.time_model import (
    OpeningStatus,
    TimeRange,
    date_for_day,
    day_minutes,
    duration_minutes,
    format_hhmm,
    overlaps,
    parse_hhmm,
    subtract,
    weekday_for,
    within_opening_hours,
)
from tripslot.schemas.itinerary import SlotName


# ── Parsing ───────────────────────────────────────────────────────────────────

def test_parse_hhmm():
    assert parse_hhmm("09:30") == 570
    assert parse_hhmm("0:05") == 5


@pytest.mark.parametrize("bad", ["25:00", "12:60", "9.30", "", "noon", 930, None])
def test_parse_hhmm_rejects_malformed(bad):
    with pytest.raises(InvalidInputError):
        parse_hhmm(bad)


def test_after_midnight_sits_at_end_of_day():
    assert day_minutes("00:30") == 1440 + 30
    assert day_minutes("04:00") == 240
    assert format_hhmm(1470) == "00:30"


def test_cross_midnight_duration():
    assert duration_minutes("21:00", "00:00") == 180
    assert duration_minutes("23:30", "01:00") == 90
    night = TimeRange.from_hhmm("21:00", "00:00")
    assert night == TimeRange(1260, 1440)
    assert night.end_hhmm == "00:00"


# ── Ranges ────────────────────────────────────────────────────────────────────

def test_back_to_back_ranges_do_not_overlap():
    a = TimeRange.from_hhmm("09:00", "10:00")
    b = TimeRange.from_hhmm("10:00", "11:00")
    assert not overlaps(a, b)
    assert overlaps(a, TimeRange.from_hhmm("09:59", "10:30"))


def test_shift_and_reversed_range():
    assert TimeRange(600, 660).shift(30) == TimeRange(630, 690)
    with pytest.raises(InvalidInputError):
        TimeRange(700, 600)


def test_subtract_carves_blocked_ranges():
    window = TimeRange(480, 720)
    free = subtract(window, [TimeRange(540, 600), TimeRange(700, 800)])
    assert free == [TimeRange(480, 540), TimeRange(600, 700)]
    assert subtract(window, [TimeRange(0, 1000)]) == []


# ── Opening hours ─────────────────────────────────────────────────────────────

@pytest.mark.parametrize("hours, window, expected", [
    ("09:00-17:00", ("10:00", "11:00"), OpeningStatus.OPEN),
    ("09:00-17:00", ("16:30", "17:30"), OpeningStatus.CLOSED),
    ("05:30-12:00, 16:00-21:30", ("16:30", "18:00"), OpeningStatus.OPEN),
    ("05:30-12:00, 16:00-21:30", ("12:30", "13:30"), OpeningStatus.CLOSED),
    ("18:00-02:00", ("23:00", "01:00"), OpeningStatus.OPEN),
    ("24 hours", ("21:00", "00:00"), OpeningStatus.OPEN),
    ("closed", ("10:00", "11:00"), OpeningStatus.CLOSED),
    (None, ("10:00", "11:00"), OpeningStatus.UNKNOWN),
    ("Mon-Fri 9am to 5pm", ("10:00", "11:00"), OpeningStatus.UNKNOWN),
])
def test_within_opening_hours(hours, window, expected):
    assert within_opening_hours(TimeRange.from_hhmm(*window), hours) is expected


def test_closed_weekday():
    w = TimeRange.from_hhmm("10:00", "11:00")
    assert within_opening_hours(w, "09:00-17:00", ["Friday"], "friday") is OpeningStatus.CLOSED
    assert within_opening_hours(w, "09:00-17:00", ["Fri"], "monday") is OpeningStatus.OPEN
    # no date known: a closed day cannot be ruled out
    assert within_opening_hours(w, "09:00-17:00", ["Friday"], None) is OpeningStatus.UNKNOWN


def test_trip_dates():
    start = date(2026, 10, 19)
    assert date_for_day(start, 3) == date(2026, 10, 21)
    assert weekday_for(start, 1) == "monday"
    assert weekday_for(None, 1) is None


# ── Slots ─────────────────────────────────────────────────────────────────────

def test_slot_template_grid():
    template = build_slot_template(2)
    assert [s.slot_id for s in template[:4]] == ["d1_morning", "d1_afternoon", "d1_evening", "d1_night"]
    assert len(template) == 8
    night = template[3]
    assert night.available_mins == 180
    assert night.remaining_mins == night.available_mins
    assert template[0].meal_gap_after == "lunch"


def test_canonical_window_reads_config(monkeypatch):
    from tripslot import config
    monkeypatch.setitem(config.SLOT_WINDOWS, "morning", "07:00-11:00")
    assert canonical_window(SlotName.MORNING) == TimeRange(420, 660)


def test_slot_template_rejects_zero_days():
    with pytest.raises(InvalidInputError):
        build_slot_template(0)
