"""
schemas/trip_record.py
----------------------
Persisted state: hotel phases (with their check-in/out state machine), the
saved itinerary record the store reads and writes, and place ratings.

Rows read back from the store go through the pydantic *In models, same as
the wire payloads in schemas/itinerary.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from tripslot.schemas.itinerary import ItineraryIn, ItineraryResponse, parse_wire


class PhaseState(str, Enum):
    PLANNED = "planned"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"          # terminal for the phase


class ItineraryStatus(str, Enum):
    PLANNED = "planned"
    ACTIVE = "active"
    COMPLETED = "completed"


@dataclass
class HotelOption:
    name: str = ""
    lat: float = 0.0
    lon: float = 0.0
    price_per_night: float = 0.0
    rating: float = 0.0
    distance_km: float = 0.0
    wheelchair_accessible: bool = False

    def to_dict(self) -> dict:
        return {
            "name":                  self.name,
            "lat":                   self.lat,
            "lon":                   self.lon,
            "price_per_night":       self.price_per_night,
            "rating":                self.rating,
            "distance_km":           self.distance_km,
            "wheelchair_accessible": self.wheelchair_accessible,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HotelOption":
        return parse_wire(HotelOptionIn, data).to_domain()


@dataclass
class HotelPhase:
    """A contiguous run of trip days tied to one lodging."""
    phase: int = 1
    days: list[int] = field(default_factory=list)
    hotel_name: str = ""
    hotel_lat: float = 0.0
    hotel_lon: float = 0.0
    distance_km: float = 0.0
    hotels_list: list[HotelOption] = field(default_factory=list)
    planned_checkin: str = "13:00"
    planned_checkout: str = "11:00"
    state: PhaseState = PhaseState.PLANNED
    actual_checkin: Optional[str] = None
    actual_checkout: Optional[str] = None

    @property
    def first_day(self) -> int:
        return min(self.days)

    @property
    def last_day(self) -> int:
        return max(self.days)

    def to_dict(self) -> dict:
        return {
            "phase":            self.phase,
            "days":             list(self.days),
            "hotel_name":       self.hotel_name,
            "hotel_lat":        self.hotel_lat,
            "hotel_lon":        self.hotel_lon,
            "distance_km":      self.distance_km,
            "hotels_list":      [h.to_dict() for h in self.hotels_list],
            "planned_checkin":  self.planned_checkin,
            "planned_checkout": self.planned_checkout,
            "state":            self.state.value,
            "actual_checkin":   self.actual_checkin,
            "actual_checkout":  self.actual_checkout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "HotelPhase":
        return parse_wire(HotelPhaseIn, data).to_domain()


@dataclass
class ItineraryRecord:
    """One saved itinerary: the full response plus lifecycle bookkeeping."""
    itinerary_id: str
    user_id: str
    itinerary: ItineraryResponse
    status: ItineraryStatus = ItineraryStatus.PLANNED
    phases: list[HotelPhase] = field(default_factory=list)
    version: int = 1
    created_at: str = ""
    updated_at: str = ""
    saved_at: Optional[str] = None       # client clock at save time

    def phase(self, number: int) -> Optional[HotelPhase]:
        for p in self.phases:
            if p.phase == number:
                return p
        return None

    def next_phase(self, number: int) -> Optional[HotelPhase]:
        later = [p for p in self.phases if p.phase > number]
        return min(later, key=lambda p: p.phase) if later else None

    def to_dict(self) -> dict:
        return {
            "id":         self.itinerary_id,
            "user_id":    self.user_id,
            "itinerary":  self.itinerary.to_dict(),
            "status":     self.status.value,
            "phases":     [p.to_dict() for p in self.phases],
            "version":    self.version,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "saved_at":   self.saved_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ItineraryRecord":
        return parse_wire(RecordIn, data).to_domain()


@dataclass
class UserRating:
    """A traveller's 1-5 rating of a place, optionally with a review."""
    user_id: str
    place_id: str
    place_name: str
    rating: int
    review: Optional[str] = None
    created_at: str = ""

    def to_dict(self) -> dict:
        return {
            "user_id":    self.user_id,
            "place_id":   self.place_id,
            "place_name": self.place_name,
            "rating":     self.rating,
            "review":     self.review,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "UserRating":
        return parse_wire(RatingIn, data).to_domain()


# ─────────────────────────────────────────────────────────────────────────────
# Wire models
# ─────────────────────────────────────────────────────────────────────────────

class HotelOptionIn(BaseModel):
    name: str = Field(..., min_length=1)
    lat: float = Field(0.0, ge=-90, le=90)
    lon: float = Field(0.0, ge=-180, le=180)
    price_per_night: float = Field(0.0, ge=0)
    rating: float = Field(0.0, ge=0)
    distance_km: float = Field(0.0, ge=0)
    wheelchair_accessible: bool = False

    def to_domain(self) -> HotelOption:
        return HotelOption(**self.model_dump())


class HotelPhaseIn(BaseModel):
    phase: int = Field(1, ge=1)
    days: list[int] = Field(..., min_length=1)
    hotel_name: str = ""
    hotel_lat: float = 0.0
    hotel_lon: float = 0.0
    distance_km: float = Field(0.0, ge=0)
    hotels_list: list[HotelOptionIn] = Field(default_factory=list)
    planned_checkin: str = "13:00"
    planned_checkout: str = "11:00"
    state: PhaseState = PhaseState.PLANNED
    actual_checkin: Optional[str] = None
    actual_checkout: Optional[str] = None

    @field_validator("days")
    @classmethod
    def _positive_days(cls, v: list[int]) -> list[int]:
        if any(d < 1 for d in v):
            raise ValueError(f"phase days {v} must all be >= 1")
        return v

    def to_domain(self) -> HotelPhase:
        return HotelPhase(
            **self.model_dump(exclude={"hotels_list"}),
            hotels_list=[h.to_domain() for h in self.hotels_list],
        )


class RecordIn(BaseModel):
    id: str = Field(..., min_length=1)
    user_id: str = ""
    itinerary: ItineraryIn
    status: ItineraryStatus = ItineraryStatus.PLANNED
    phases: list[HotelPhaseIn] = Field(default_factory=list)
    version: int = Field(1, ge=1)
    created_at: str = ""
    updated_at: str = ""
    saved_at: Optional[str] = None

    def to_domain(self) -> ItineraryRecord:
        return ItineraryRecord(
            itinerary_id=self.id,
            user_id=self.user_id,
            itinerary=self.itinerary.to_domain(),
            status=self.status,
            phases=[p.to_domain() for p in self.phases],
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
            saved_at=self.saved_at,
        )


class RatingIn(BaseModel):
    user_id: str = Field(..., min_length=1)
    place_id: str = Field(..., min_length=1)
    place_name: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=2000)
    created_at: str = ""

    @field_validator("review", mode="before")
    @classmethod
    def _blank_review(cls, v: Any) -> Any:
        return None if isinstance(v, str) and not v.strip() else v

    def to_domain(self) -> UserRating:
        return UserRating(**self.model_dump())
