"""
api/routes/itinerary.py
------------------------
Itinerary endpoints under /api/itinerary:

    POST  /generate                 build an itinerary for a TripRequest
    POST  /suggest                  ranked alternates for one stop
    POST  /validate-place           placement verdict for a proposed stop
    POST  /save?user_id=            persist an itinerary → itinerary_id
    POST  /rate                     record a user's rating of a place
    GET   /ratings/{place_id}       ratings recorded for a place
    PATCH /update/{id}              replace the stop sequence (versioned)
    GET   /user/{user_id}           saved itineraries, newest first
    GET   /{id}                     one saved itinerary
    POST  /{id}/stops/checkin       mark a stop checked in
    POST  /{id}/stops/checkout      mark a stop checked out
    POST  /{id}/swap                replace a stop with an alternate
    POST  /{id}/remove              drop a stop back to unscheduled

Request bodies are the pydantic wire models from schemas/, so FastAPI
rejects malformed fields with 422 before a route runs. Routes convert them
to the engine dataclasses with .to_domain().
"""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import AliasChoices, BaseModel, Field

from tripslot import config
from tripslot.api.deps import get_engine, http_error
from tripslot.engine import ItineraryEngine
from tripslot.errors import TripSlotError
from tripslot.schemas.itinerary import (
    HHMM,
    BudgetField,
    BudgetTier,
    DateField,
    ItineraryIn,
    PlaceIn,
    ScheduledStop,
    SlotField,
    StopIn,
    TripRequestIn,
)
from tripslot.schemas.trip_record import ItineraryRecord, RatingIn

router = APIRouter()


# ── Request schemas ────────────────────────────────────────────────────────────

class GenerateRequest(TripRequestIn):
    candidates: Optional[list[PlaceIn]] = Field(
        None, description="Explicit candidate pool; the built-in pool is used when omitted",
    )


class SuggestRequest(BaseModel):
    destination: str = Field(..., min_length=1)
    slot_name: SlotField
    current_stop: StopIn
    scheduled_places: list[Union[StopIn, str]] = Field(
        default_factory=list, description="Scheduled stops or plain place names",
    )
    free_slots: list[SlotField] = Field(default_factory=list)
    visit_date: DateField = None


class ValidatePlaceRequest(BaseModel):
    place: PlaceIn
    target_day: int = Field(..., ge=1)
    target_slot: SlotField
    slot_stops: list[StopIn] = Field(default_factory=list)
    prev_stop: Optional[StopIn] = None
    next_stop: Optional[StopIn] = None
    all_stops: list[StopIn] = Field(default_factory=list)
    budget: BudgetField = BudgetTier.MEDIUM
    accessibility_needs: bool = False
    day_date: DateField = Field(
        None,
        validation_alias=AliasChoices("day_date", "visit_date"),
        description="Calendar date of target_day, YYYY-MM-DD; enables closed_on checks",
    )


class SaveRequest(BaseModel):
    itinerary: ItineraryIn
    saved_at: Optional[str] = Field(None, description="Client timestamp, stored as given")


class UpdateRequest(BaseModel):
    itinerary: list[StopIn]
    expected_version: Optional[int] = Field(None, ge=1)


class StopRef(BaseModel):
    day: int = Field(..., ge=1)
    slot_id: str = Field(..., min_length=1)
    start_time: HHMM

    @property
    def key(self) -> tuple[int, str, str]:
        return self.day, self.slot_id, self.start_time


class SwapRequest(StopRef):
    new_place: PlaceIn


# ── Serialisers ────────────────────────────────────────────────────────────────

def _ser_record(record: ItineraryRecord) -> dict:
    return {"success": True, **record.to_dict()}


def _ser_summary(record: ItineraryRecord) -> dict:
    meta = record.itinerary.meta
    return {
        "id":           record.itinerary_id,
        "destination":  meta.destination,
        "days":         meta.days,
        "status":       record.status.value,
        "total_places": meta.total_places,
        "version":      record.version,
        "created_at":   record.created_at,
        "updated_at":   record.updated_at,
    }


def _scheduled(items: list[Union[StopIn, str]]) -> list[ScheduledStop | str]:
    return [i if isinstance(i, str) else i.to_domain() for i in items]


def _opt_stop(data: Optional[StopIn]) -> Optional[ScheduledStop]:
    return data.to_domain() if data is not None else None


# ── Pure endpoints ─────────────────────────────────────────────────────────────

@router.post("/generate", summary="Generate a multi-day itinerary")
def generate_itinerary(
    req: GenerateRequest,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    """
    Places the destination pool (or the supplied candidates) into the day /
    slot grid. Places that do not fit come back under `unscheduled`; that is
    a partial success, not an error.
    """
    try:
        request = req.to_domain(max_days=config.MAX_TRIP_DAYS)
        pool = (
            [c.to_domain() for c in req.candidates]
            if req.candidates is not None else None
        )
        return engine.generate(request, pool).to_dict()
    except TripSlotError as exc:
        raise http_error(exc) from exc


@router.post("/suggest", summary="Suggest alternates for one stop")
def suggest_alternates(
    req: SuggestRequest,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        alternates = engine.suggest_alternates(
            destination=req.destination,
            slot_name=req.slot_name,
            current_stop=req.current_stop.to_domain(),
            scheduled_places=_scheduled(req.scheduled_places),
            free_slots=req.free_slots,
            visit_date=req.visit_date,
        )
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {
        "success":    True,
        "alternates": [a.to_dict() for a in alternates],
        "count":      len(alternates),
    }


@router.post("/validate-place", summary="Check a proposed placement")
def validate_place(
    req: ValidatePlaceRequest,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    """Business-rule violations come back as conflicts with HTTP 200."""
    try:
        verdict = engine.validate_place(
            place=req.place.to_domain(),
            target_day=req.target_day,
            target_slot=req.target_slot,
            slot_stops=[s.to_domain() for s in req.slot_stops],
            prev_stop=_opt_stop(req.prev_stop),
            next_stop=_opt_stop(req.next_stop),
            all_stops=[s.to_domain() for s in req.all_stops],
            budget=req.budget,
            accessibility_needs=req.accessibility_needs,
            visit_date=req.day_date,
        )
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, **verdict.to_dict()}


# ── Persistence ────────────────────────────────────────────────────────────────

@router.post("/save", summary="Save an itinerary for a user")
def save_itinerary(
    req: SaveRequest,
    user_id: str = Query(..., min_length=1),
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        record = engine.save(user_id, req.itinerary.to_domain(), saved_at=req.saved_at)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, "itinerary_id": record.itinerary_id, "version": record.version}


@router.post("/rate", summary="Rate a visited place")
def rate_place(req: RatingIn, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        rating = engine.rate_place(req.to_domain())
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, "message": f"Rating for {rating.place_name} saved"}


@router.get("/ratings/{place_id}", summary="List ratings for a place")
def list_ratings(place_id: str, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        ratings = engine.ratings_for_place(place_id)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {
        "success": True,
        "ratings": [r.to_dict() for r in ratings],
        "count":   len(ratings),
    }


@router.patch("/update/{itinerary_id}", summary="Replace the stop sequence")
def update_itinerary(
    itinerary_id: str,
    req: UpdateRequest,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        stops = [s.to_domain() for s in req.itinerary]
        record = engine.update(itinerary_id, stops, expected_version=req.expected_version)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {
        "success":      True,
        "itinerary_id": record.itinerary_id,
        "updated":      True,
        "version":      record.version,
    }


@router.get("/user/{user_id}", summary="List a user's saved itineraries")
def list_itineraries(user_id: str, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        records = engine.list_for_user(user_id)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {
        "success":     True,
        "itineraries": [_ser_summary(r) for r in records],
        "count":       len(records),
    }


@router.get("/{itinerary_id}", summary="Fetch a saved itinerary")
def get_itinerary(itinerary_id: str, engine: ItineraryEngine = Depends(get_engine)) -> dict:
    try:
        return _ser_record(engine.get(itinerary_id))
    except TripSlotError as exc:
        raise http_error(exc) from exc


# ── Stop mutations ─────────────────────────────────────────────────────────────

@router.post("/{itinerary_id}/stops/checkin", summary="Check in at a stop")
def check_in_stop(
    itinerary_id: str,
    ref: StopRef,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        stop = engine.check_in_stop(itinerary_id, ref.key)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, "stop": stop.to_dict()}


@router.post("/{itinerary_id}/stops/checkout", summary="Check out of a stop")
def check_out_stop(
    itinerary_id: str,
    ref: StopRef,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        stop = engine.check_out_stop(itinerary_id, ref.key)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {"success": True, "stop": stop.to_dict()}


@router.post("/{itinerary_id}/swap", summary="Swap a stop for an alternate")
def swap_stop(
    itinerary_id: str,
    req: SwapRequest,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    """
    The alternate is committed only when the placement verdict is valid.
    An invalid verdict is returned with success=false and the stored
    itinerary left as it was.
    """
    try:
        record, verdict = engine.swap_stop(
            itinerary_id, req.key, req.new_place.to_domain(),
        )
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return {
        "success":   verdict.valid,
        "verdict":   verdict.to_dict(),
        "version":   record.version,
        "itinerary": record.itinerary.to_dict() if verdict.valid else None,
    }


@router.post("/{itinerary_id}/remove", summary="Remove a stop")
def remove_stop(
    itinerary_id: str,
    ref: StopRef,
    engine: ItineraryEngine = Depends(get_engine),
) -> dict:
    try:
        record = engine.remove_stop(itinerary_id, ref.key)
    except TripSlotError as exc:
        raise http_error(exc) from exc
    return _ser_record(record)
