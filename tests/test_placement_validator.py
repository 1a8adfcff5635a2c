from datetime import date

import pytest

from tripslot.errors import InvalidInputError
from tripslot.modules.tool_usage.distance_tool import FixedTransitEstimator
from tripslot.modules.validation.placement_validator import PlacementValidator
from tripslot.schemas.validation import ConflictType

from tests.factories import place, stop


@pytest.fixture
def validator():
    return PlacementValidator(FixedTransitEstimator(10))


def _types(items):
    return [c.type for c in items]


def test_capacity_exceeded_when_slot_nearly_full(validator):
    first = stop("Fort", 1, "morning", "08:00", "10:30")
    verdict = validator.validate(
        place("Big Museum", 3.0), 1, "morning",
        slot_stops=[first], prev_stop=first,
    )
    assert not verdict.valid
    assert _types(verdict.conflicts) == [ConflictType.CAPACITY_EXCEEDED]
    assert verdict.estimated_start == "10:40"
    assert verdict.remaining_mins_in_slot == 0


def test_fits_after_previous_stop(validator):
    first = stop("Fort", 1, "morning", "08:00", "10:30")
    verdict = validator.validate(place("Cafe", 0.5), 1, "morning", slot_stops=[first], prev_stop=first)
    assert verdict.valid
    assert (verdict.estimated_start, verdict.estimated_end) == ("10:40", "11:10")
    assert verdict.travel_mins_from_prev == 10
    assert verdict.remaining_mins_in_slot == 240 - 150 - 40


def test_time_overlap_with_next_stop(validator):
    prev = stop("Temple", 1, "morning", "08:00", "09:00")
    nxt = stop("Museum", 1, "morning", "10:00", "11:00", travel=10)
    verdict = validator.validate(
        place("Garden", 1.0), 1, "morning",
        slot_stops=[prev, nxt], prev_stop=prev, next_stop=nxt,
    )
    assert ConflictType.TIME_OVERLAP in _types(verdict.conflicts)
    assert not verdict.valid


def test_transit_to_next_stop_must_fit_in_the_gap(validator):
    nxt = stop("Museum", 1, "morning", "09:05", "10:00", travel=5)
    verdict = validator.validate(
        place("Garden", 1.0, opening_hours="24 hours"), 1, "morning",
        slot_stops=[nxt], next_stop=nxt,
    )
    # ends 09:00, ten minutes of travel lands at 09:10
    assert verdict.estimated_end == "09:00"
    assert _types(verdict.conflicts) == [ConflictType.TIME_OVERLAP]

    roomy = stop("Museum", 1, "morning", "09:10", "10:00", travel=10)
    assert validator.validate(
        place("Garden", 1.0, opening_hours="24 hours"), 1, "morning",
        slot_stops=[roomy], next_stop=roomy,
    ).valid


def test_closed_is_an_error_unknown_hours_a_warning(validator):
    closed = validator.validate(place("Sunset Point", 1.0, opening_hours="16:00-19:00"), 1, "morning")
    assert _types(closed.conflicts) == [ConflictType.CLOSED]

    unknown = validator.validate(place("Shrine", 1.0), 1, "morning")
    assert unknown.valid
    assert _types(unknown.warnings) == [ConflictType.HOURS_UNVERIFIED]


def test_closed_on_visit_weekday(validator):
    museum = place("Museum", 1.0, opening_hours="09:00-17:00", closed_on=["Friday"])
    friday = date(2026, 10, 23)
    assert not validator.validate(museum, 1, "afternoon", visit_date=friday).valid
    assert validator.validate(museum, 1, "afternoon", visit_date=date(2026, 10, 22)).valid


def test_budget_mismatch_is_only_a_warning(validator):
    pricey = place("Palace", 1.0, opening_hours="24 hours", entry_fee=2000.0)
    verdict = validator.validate(pricey, 1, "morning", budget="medium")
    assert verdict.valid
    assert _types(verdict.warnings) == [ConflictType.BUDGET_MISMATCH]
    assert validator.validate(pricey, 1, "morning", budget="high").warnings == []


def test_accessibility_warnings(validator):
    unknown = validator.validate(place("A", opening_hours="24 hours"), 1, "morning", accessibility_needs=True)
    assert _types(unknown.warnings) == [ConflictType.ACCESSIBILITY_UNKNOWN]

    stairs = place("B", opening_hours="24 hours", wheelchair_accessible=False)
    verdict = validator.validate(stairs, 1, "morning", accessibility_needs=True)
    assert verdict.valid
    assert _types(verdict.warnings) == [ConflictType.NOT_ACCESSIBLE]

    ramp = place("C", opening_hours="24 hours", wheelchair_accessible=True)
    assert validator.validate(ramp, 1, "morning", accessibility_needs=True).warnings == []


def test_duplicate_place_warning(validator):
    existing = stop("Marina Beach", 2, "evening", "17:00", "18:30")
    verdict = validator.validate(
        place("marina beach", 1.0, opening_hours="24 hours"), 1, "morning", all_stops=[existing],
    )
    assert _types(verdict.warnings) == [ConflictType.DUPLICATE_PLACE]


def test_replaced_stop_frees_its_capacity(validator):
    full = stop("All Morning", 1, "morning", "08:00", "12:00")
    candidate = place("Swap In", 2.0, opening_hours="24 hours")
    assert not validator.validate(candidate, 1, "morning", slot_stops=[full]).valid
    verdict = validator.validate(candidate, 1, "morning", slot_stops=[full], replacing=full)
    assert verdict.valid
    assert verdict.estimated_start == "08:00"


def test_validation_is_repeatable(validator):
    prev = stop("Temple", 1, "afternoon", "13:00", "14:00")
    kwargs = dict(slot_stops=[prev], prev_stop=prev, budget="low", accessibility_needs=True)
    p = place("Fort", 2.5, entry_fee=900.0)
    first = validator.validate(p, 1, "afternoon", **kwargs).to_dict()
    second = validator.validate(p, 1, "afternoon", **kwargs).to_dict()
    assert first == second


@pytest.mark.parametrize("day, slot", [(0, "morning"), (1, "brunch")])
def test_malformed_input_raises(validator, day, slot):
    with pytest.raises(InvalidInputError):
        validator.validate(place("A"), day, slot)
