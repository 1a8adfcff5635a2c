import pytest

from tripslot.errors import InvalidInputError
from tripslot.schemas.itinerary import (
    BudgetTier,
    ItineraryResponse,
    PlaceCandidate,
    ScheduledStop,
    SlotName,
    TripRequest,
)
from tripslot.schemas.trip_record import ItineraryRecord, UserRating

from tests.factories import place, record, stop


def test_place_from_dict_normalises_fields():
    p = PlaceCandidate.from_dict({
        "place_name": "  Fort  ", "duration_hrs": 1.5, "best_slot": "Evening",
        "closed_on": "monday", "entry_fee": "", "tags": None,
    })
    assert p.place_name == "Fort"
    assert p.best_slot is SlotName.EVENING
    assert p.closed_on == ["monday"]
    assert p.entry_fee is None and p.tags == []


@pytest.mark.parametrize("bad", [
    {"place_name": "Fort", "duration_hrs": 0},
    {"place_name": "", "duration_hrs": 1},
    {"place_name": "Fort", "duration_hrs": 1, "entry_fee": -5},
    {"place_name": "Fort", "duration_hrs": 1, "best_slot": "brunch"},
    {"place_name": "Fort", "duration_hrs": 1, "lat": 120},
])
def test_place_from_dict_rejects(bad):
    with pytest.raises(InvalidInputError):
        PlaceCandidate.from_dict(bad)


def test_error_names_the_field():
    with pytest.raises(InvalidInputError, match="duration_hrs"):
        PlaceCandidate.from_dict({"place_name": "Fort", "duration_hrs": -1})


def test_stop_slot_id_is_derived_or_checked():
    data = stop("Fort", 2, "afternoon", "13:00", "14:00").to_dict()
    data.pop("slot_id")
    assert ScheduledStop.from_dict(data).slot_id == "d2_afternoon"

    with pytest.raises(InvalidInputError, match="slot_id"):
        ScheduledStop.from_dict({**data, "slot_id": "d1_afternoon"})
    with pytest.raises(InvalidInputError):
        ScheduledStop.from_dict({**data, "start_time": "25:00"})


def test_trip_request_enums_and_day_limit():
    req = TripRequest.from_dict({"destination": "Jaipur", "days": 3, "budget": "LOW"})
    assert req.budget is BudgetTier.LOW
    with pytest.raises(InvalidInputError):
        TripRequest.from_dict({"destination": "Jaipur", "days": 15}, max_days=14)
    with pytest.raises(InvalidInputError):
        TripRequest.from_dict({"destination": "Jaipur", "days": 2, "mood": "grumpy"})


def test_itinerary_and_record_read_back():
    rec = record([stop("Temple", 1, "morning", "08:00", "09:00")], unscheduled=[place("Lake")])
    rec.saved_at = "2026-10-18T09:30:00+05:30"
    again = ItineraryRecord.from_dict(rec.to_dict())
    assert again.to_dict() == rec.to_dict()
    assert ItineraryResponse.from_dict(rec.itinerary.to_dict()).unscheduled[0].place_name == "Lake"


def test_rating_bounds_and_blank_review():
    r = UserRating.from_dict({"user_id": "u1", "place_id": "p1", "place_name": "Fort",
                              "rating": 5, "review": "   "})
    assert r.review is None
    with pytest.raises(InvalidInputError, match="rating"):
        UserRating.from_dict({"user_id": "u1", "place_id": "p1", "place_name": "Fort", "rating": 9})
