"""
api/routes/hotels.py
---------------------
Hotel-phase endpoints under /api/hotels.

    POST /suggest   group trip days into hotel phases and propose hotels
    POST /checkin   record a phase check-in; a late arrival replans day D
    POST /checkout  record a phase check-out; early or late departures replan

Check-in / check-out responses carry `updated_stops` only when the day was
actually replanned.
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from tripslot.api.deps import get_engine, http_error
from tripslot.engine import ItineraryEngine
from tripslot.errors import TripSlotError
from tripslot.modules.temporal.slots import build_slot_template
from tripslot.schemas.itinerary import (
    HHMM,
    BudgetField,
    BudgetTier,
    ItineraryIn,
    ItineraryMeta,
    ItineraryResponse,
    StopIn,
)

router = APIRouter()


class HotelSuggestRequest(BaseModel):
    destination: str = Field(..., min_length=1)
    days: int = Field(..., ge=1)
    budget: BudgetField = BudgetTier.MEDIUM
    accessibility_needs: bool = False
    itinerary: Optional[Union[ItineraryIn, list[StopIn]]] = Field(
        None,
        description="Generated itinerary or its stop list; one is generated when omitted",
    )

    def planned(self) -> Optional[ItineraryResponse]:
        if self.itinerary is None:
            return None
        if isinstance(self.itinerary, ItineraryIn):
            return self.itinerary.to_domain()
        it = ItineraryResponse(
            meta=ItineraryMeta(
                destination=self.destination, days=self.days, budget=self.budget.value,
                accessibility_needs=self.accessibility_needs,
            ),
            slot_template=build_slot_template(self.days),
            itinerary=[s.to_domain() for s in self.itinerary],
        )
        it.refresh()
        return it


class HotelEventRequest(BaseModel):
    itinerary_id: str = Field(..., min_length=1)
    phase: int = Field(..., ge=1)
    current_day: int = Field(..., ge=1)


class CheckinRequest(HotelEventRequest):
    checkin_time: HHMM = Field(..., description="Actual arrival, HH:MM")


class CheckoutRequest(HotelEventRequest):
    checkout_time: HHMM = Field(..., description="Actual departure, HH:MM")


@router.post("/suggest", summary="Suggest hotels per stay phase")
def suggest_hotels(req: HotelSuggestRequest, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        phases = engine.suggest_hotels(
            destination=req.destination,
            days=req.days,
            budget=req.budget,
            itinerary=req.planned(),
            accessibility_needs=req.accessibility_needs,
        )
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, "phases": [p.to_dict() for p in phases]}


@router.post("/checkin", summary="Check in to a hotel phase")
def check_in(req: CheckinRequest, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        result = engine.check_in_hotel(req.itinerary_id, req.phase, req.current_day, req.checkin_time)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return result.to_dict()


@router.post("/checkout", summary="Check out of a hotel phase")
def check_out(req: CheckoutRequest, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        result = engine.check_out_hotel(req.itinerary_id, req.phase, req.current_day, req.checkout_time)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return result.to_dict()
