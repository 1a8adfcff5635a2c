from concurrent.futures import ThreadPoolExecutor

import pytest

from tripslot.errors import (
    ConcurrentUpdateError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from tripslot.engine import ItineraryEngine
from tripslot.modules.tool_usage.distance_tool import HaversineTransitEstimator
from tripslot.schemas.itinerary import TripRequest
from tripslot.schemas.trip_record import ItineraryStatus, PhaseState, UserRating
from tripslot.schemas.validation import ConflictType

from tests.factories import chennai_six, place, response, stop

A_KEY = (1, "d1_morning", "08:00")
B_KEY = (1, "d1_morning", "09:00")
C_KEY = (1, "d1_afternoon", "13:00")


def _one_day():
    return response([
        stop("Temple", 1, "morning", "08:00", "09:00"),
        stop("Bazaar", 1, "morning", "09:00", "10:30"),
        stop("Museum", 1, "afternoon", "13:00", "15:00"),
    ])


@pytest.fixture
def saved(engine):
    return engine.save("user_001", _one_day())


# ── Pure operations ───────────────────────────────────────────────────────────

def test_generate_with_explicit_pool(engine):
    request = TripRequest.from_dict({"destination": "Chennai", "days": 2, "interests": ["temples"]})
    it = engine.generate(request, chennai_six())
    assert len(it.itinerary) + len(it.unscheduled) == 6


def test_generate_unknown_destination_is_empty(engine):
    it = engine.generate(TripRequest.from_dict({"destination": "Atlantis", "days": 1}))
    assert it.itinerary == [] and len(it.slot_template) == 4


def test_suggest_hotels_generates_itinerary_when_missing(engine):
    phases = engine.suggest_hotels("Chennai", 2, "medium")
    assert phases
    assert sorted(d for p in phases for d in p.days) == [1, 2]
    assert all(p.hotels_list for p in phases)


# ── Persistence ───────────────────────────────────────────────────────────────

def test_save_get_list(engine, saved):
    assert saved.version == 1
    assert saved.status is ItineraryStatus.PLANNED
    assert saved.phases and saved.phases[0].state is PhaseState.PLANNED

    fetched = engine.get(saved.itinerary_id)
    assert fetched.to_dict() == saved.to_dict()
    assert [r.itinerary_id for r in engine.list_for_user("user_001")] == [saved.itinerary_id]
    assert engine.list_for_user("someone_else") == []


def test_save_rejects_broken_itinerary(engine):
    broken = response([
        stop("A", 1, "morning", "08:00", "10:00"),
        stop("B", 1, "morning", "09:00", "10:00"),
    ])
    with pytest.raises(InvalidInputError):
        engine.save("user_001", broken)
    with pytest.raises(InvalidInputError):
        engine.save("  ", _one_day())


def test_get_unknown(engine):
    with pytest.raises(NotFoundError):
        engine.get("nope")


# ── Update ────────────────────────────────────────────────────────────────────

def test_update_replaces_stops_and_bumps_version(engine, saved):
    stops = engine.get(saved.itinerary_id).itinerary.itinerary[:2]
    updated = engine.update(saved.itinerary_id, stops, expected_version=1)
    assert updated.version == 2
    assert [s.place_name for s in engine.get(saved.itinerary_id).itinerary.itinerary] == ["Temple", "Bazaar"]


def test_update_rejects_overlap_and_leaves_state(engine, saved):
    stops = engine.get(saved.itinerary_id).itinerary.itinerary
    stops.append(stop("Intruder", 1, "morning", "08:30", "09:30"))
    with pytest.raises(InvalidInputError):
        engine.update(saved.itinerary_id, stops)
    assert engine.get(saved.itinerary_id).version == 1


def test_update_with_stale_version(engine, saved):
    engine.check_in_stop(saved.itinerary_id, A_KEY)
    with pytest.raises(ConcurrentUpdateError):
        engine.update(saved.itinerary_id, [], expected_version=1)


def test_update_rejects_window_that_disagrees_with_duration(engine, saved):
    stops = engine.get(saved.itinerary_id).itinerary.itinerary
    stops[0].duration_hrs = 2.0          # window is still 08:00-09:00
    with pytest.raises(InvalidInputError, match="duration"):
        engine.update(saved.itinerary_id, stops)
    assert engine.get(saved.itinerary_id).version == 1


def test_update_cannot_touch_checked_in_stop(engine, saved):
    engine.check_in_stop(saved.itinerary_id, A_KEY)
    stops = [s for s in engine.get(saved.itinerary_id).itinerary.itinerary if s.key != A_KEY]
    with pytest.raises(InvalidInputError):
        engine.update(saved.itinerary_id, stops)


# ── Stop events ───────────────────────────────────────────────────────────────

def test_stop_check_in_and_out(engine, saved):
    with pytest.raises(InvalidTransitionError):
        engine.check_out_stop(saved.itinerary_id, A_KEY)

    assert engine.check_in_stop(saved.itinerary_id, A_KEY).checked_in
    with pytest.raises(InvalidTransitionError):
        engine.check_in_stop(saved.itinerary_id, A_KEY)
    assert engine.check_out_stop(saved.itinerary_id, A_KEY).checked_out
    assert engine.get(saved.itinerary_id).version == 3


def test_unknown_stop_key(engine, saved):
    with pytest.raises(NotFoundError):
        engine.check_in_stop(saved.itinerary_id, (1, "d1_morning", "07:00"))


def test_remove_stop(engine, saved):
    record = engine.remove_stop(saved.itinerary_id, B_KEY)
    assert [s.place_name for s in record.itinerary.itinerary] == ["Temple", "Museum"]
    assert [c.place_name for c in record.itinerary.unscheduled] == ["Bazaar"]

    engine.check_in_stop(saved.itinerary_id, A_KEY)
    with pytest.raises(InvalidTransitionError):
        engine.remove_stop(saved.itinerary_id, A_KEY)


def test_swap_commits_valid_alternate(engine, saved):
    record, verdict = engine.swap_stop(
        saved.itinerary_id, B_KEY, place("Flower Market", 1.0, opening_hours="24 hours"),
    )
    assert verdict.valid
    assert record.version == 2
    new = next(s for s in record.itinerary.itinerary if s.place_name == "Flower Market")
    assert new.is_alternate
    assert (new.start_time, new.end_time) == ("09:00", "10:00")
    assert [c.place_name for c in record.itinerary.unscheduled] == ["Bazaar"]


def test_swap_rejected_leaves_itinerary(engine, saved):
    _, verdict = engine.swap_stop(saved.itinerary_id, B_KEY, place("All Day Trek", 4.0))
    assert not verdict.valid
    stored = engine.get(saved.itinerary_id)
    assert stored.version == 1
    assert "Bazaar" in [s.place_name for s in stored.itinerary.itinerary]


# ── Hotel events ──────────────────────────────────────────────────────────────

def test_hotel_checkin_commits_replan(engine, saved):
    result = engine.check_in_hotel(saved.itinerary_id, 1, 1, "14:00")
    assert result.replanned
    stored = engine.get(saved.itinerary_id)
    assert stored.version == 2
    assert stored.status is ItineraryStatus.ACTIVE
    assert stored.phases[0].state is PhaseState.CHECKED_IN
    assert [(s.place_name, s.start_time) for s in stored.itinerary.itinerary] == [("Museum", "14:00")]


def test_failed_hotel_event_is_atomic(engine, saved):
    with pytest.raises(InvalidInputError):
        engine.check_in_hotel(saved.itinerary_id, 1, 1, "2pm")
    with pytest.raises(InvalidTransitionError):
        engine.check_out_hotel(saved.itinerary_id, 1, 1, "11:00")
    stored = engine.get(saved.itinerary_id)
    assert stored.version == 1
    assert stored.phases[0].state is PhaseState.PLANNED


def test_concurrent_mutations_are_serialized(engine):
    stops = [stop(f"Stop {i}", 1, "morning", f"{8 + i:02d}:00", f"{8 + i:02d}:30") for i in range(4)]
    saved = engine.save("user_001", response(stops))
    keys = [s.key for s in stops]
    with ThreadPoolExecutor(max_workers=4) as pool:
        list(pool.map(lambda k: engine.check_in_stop(saved.itinerary_id, k), keys))

    stored = engine.get(saved.itinerary_id)
    assert stored.version == 1 + len(keys)
    assert all(s.checked_in for s in stored.itinerary.itinerary)


# ── Swap with real transit ────────────────────────────────────────────────────

MARINA = (13.0500, 80.2824)
NEAR_MARINA = (13.0350, 80.2824)     # ~1.7 km, 6 min at city speed
ENNORE = (13.2500, 80.2824)          # ~22 km, 67 min at city speed


@pytest.fixture
def routed(store):
    engine = ItineraryEngine(store=store, estimator=HaversineTransitEstimator())
    saved = engine.save("user_001", response([
        stop("Lighthouse", 1, "morning", "08:00", "09:00", lat=NEAR_MARINA[0], lon=NEAR_MARINA[1]),
        stop("Marina Beach", 1, "morning", "09:06", "10:00", travel=6,
             lat=MARINA[0], lon=MARINA[1]),
    ]))
    return engine, saved


def test_swap_rejects_place_too_far_from_next_stop(routed):
    engine, saved = routed
    _, verdict = engine.swap_stop(
        saved.itinerary_id, A_KEY,
        place("Ennore Creek", 1.0, opening_hours="24 hours", lat=ENNORE[0], lon=ENNORE[1]),
    )
    assert not verdict.valid
    assert [c.type for c in verdict.conflicts] == [ConflictType.TIME_OVERLAP]
    stored = engine.get(saved.itinerary_id)
    assert stored.version == 1
    assert [s.place_name for s in stored.itinerary.itinerary] == ["Lighthouse", "Marina Beach"]


def test_swap_retimes_transit_into_next_stop(routed):
    engine, saved = routed
    record, verdict = engine.swap_stop(
        saved.itinerary_id, A_KEY,
        place("Beach Cafe", 1.0, opening_hours="24 hours", lat=MARINA[0], lon=MARINA[1]),
    )
    assert verdict.valid
    beach = next(s for s in record.itinerary.itinerary if s.place_name == "Marina Beach")
    assert beach.travel_mins_from_prev == 0
    assert engine.get(saved.itinerary_id).itinerary.itinerary[1].travel_mins_from_prev == 0


# ── Ratings and bookkeeping ───────────────────────────────────────────────────

def test_rate_place_is_stamped_and_listed(engine):
    engine.rate_place(UserRating("user_001", "chennai-marina", "Marina Beach", 4, "windy"))
    engine.rate_place(UserRating("user_002", "chennai-marina", "Marina Beach", 5))

    ratings = engine.ratings_for_place("chennai-marina")
    assert [(r.user_id, r.rating) for r in ratings] == [("user_001", 4), ("user_002", 5)]
    assert all(r.created_at for r in ratings)
    assert engine.ratings_for_place("elsewhere") == []


def test_itinerary_locks_are_released(engine):
    ids = [engine.save("user_001", _one_day()).itinerary_id for _ in range(20)]
    for itinerary_id in ids:
        engine.check_in_stop(itinerary_id, A_KEY)
    assert engine._locks == {}
