"""schemas — dataclasses shared by every engine module, and their pydantic wire models."""

from tripslot.schemas.itinerary import (
    BudgetTier,
    ItineraryIn,
    ItineraryMeta,
    ItineraryResponse,
    PlaceCandidate,
    PlaceIn,
    ScheduledStop,
    SlotName,
    SLOT_SEQUENCE,
    StopIn,
    TimeSlot,
    TravelType,
    TripMood,
    TripRequest,
    TripRequestIn,
    make_slot_id,
    parse_slot_id,
    parse_wire,
)
from tripslot.schemas.validation import (
    ConflictType,
    PlacementVerdict,
    Severity,
    ValidationConflict,
)
from tripslot.schemas.trip_record import (
    HotelOption,
    HotelPhase,
    ItineraryRecord,
    ItineraryStatus,
    PhaseState,
    UserRating,
)

__all__ = [
    "BudgetTier",
    "ItineraryIn",
    "ItineraryMeta",
    "ItineraryResponse",
    "PlaceCandidate",
    "PlaceIn",
    "ScheduledStop",
    "SlotName",
    "SLOT_SEQUENCE",
    "StopIn",
    "TimeSlot",
    "TravelType",
    "TripMood",
    "TripRequest",
    "TripRequestIn",
    "make_slot_id",
    "parse_slot_id",
    "parse_wire",
    "ConflictType",
    "PlacementVerdict",
    "Severity",
    "ValidationConflict",
    "HotelOption",
    "HotelPhase",
    "ItineraryRecord",
    "ItineraryStatus",
    "PhaseState",
    "UserRating",
]
