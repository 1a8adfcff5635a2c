"""
tests/factories.py
------------------
Small builders for places, stops and saved records used across the suite.
"""

from __future__ import annotations

from typing import Iterable, Optional

from tripslot.modules.temporal.slots import build_slot_template
from tripslot.modules.temporal.time_model import TimeRange
from tripslot.schemas.itinerary import (
    ItineraryMeta,
    ItineraryResponse,
    PlaceCandidate,
    ScheduledStop,
    SlotName,
)
from tripslot.schemas.trip_record import HotelPhase, ItineraryRecord


def place(name: str, hrs: float = 1.0, **kw) -> PlaceCandidate:
    return PlaceCandidate(place_name=name, duration_hrs=hrs, **kw)


def stop(
    name: str,
    day: int,
    slot: str,
    start: str,
    end: str,
    travel: int = 0,
    checked_in: bool = False,
    **kw,
) -> ScheduledStop:
    s = ScheduledStop.from_candidate(
        place(name, **kw), day, SlotName.parse(slot), TimeRange.from_hhmm(start, end),
        travel_mins_from_prev=travel,
    )
    s.checked_in = checked_in
    return s


def response(
    stops: Iterable[ScheduledStop] = (),
    days: int = 1,
    unscheduled: Iterable[PlaceCandidate] = (),
    destination: str = "Chennai",
    travel_dates: Optional[str] = None,
) -> ItineraryResponse:
    it = ItineraryResponse(
        meta=ItineraryMeta(
            destination=destination, days=days, budget="medium",
            travel_type="solo", mood="relaxed", travel_dates=travel_dates,
        ),
        slot_template=build_slot_template(days),
        itinerary=list(stops),
        unscheduled=list(unscheduled),
    )
    it.refresh()
    return it


def record(
    stops: Iterable[ScheduledStop] = (),
    days: int = 1,
    unscheduled: Iterable[PlaceCandidate] = (),
    phases: Optional[list[HotelPhase]] = None,
) -> ItineraryRecord:
    return ItineraryRecord(
        itinerary_id="itin-test",
        user_id="user_001",
        itinerary=response(stops, days, unscheduled),
        phases=phases or [HotelPhase(phase=1, days=list(range(1, days + 1)))],
    )


def chennai_six() -> list[PlaceCandidate]:
    """Six temples and food places of varying length."""
    return [
        place("Kapaleeshwarar Temple", 1.5, category="temple", priority=9,
              tags=["temples"], opening_hours="05:30-12:00, 16:00-21:30"),
        place("Parthasarathy Temple", 1.0, category="temple", priority=7,
              tags=["temples"], opening_hours="06:00-12:00, 16:00-21:00"),
        place("Ashtalakshmi Temple", 1.0, category="temple", priority=6, tags=["temples"]),
        place("Murugan Idli Shop", 0.75, category="restaurant", priority=7,
              tags=["food"], opening_hours="07:00-23:00"),
        place("Sowcarpet Street Food Walk", 1.5, category="food_market", priority=8,
              tags=["food"], opening_hours="17:00-23:00", best_slot=SlotName.EVENING),
        place("Ratna Cafe", 3.0, category="restaurant", priority=4, tags=["food"]),
    ]
