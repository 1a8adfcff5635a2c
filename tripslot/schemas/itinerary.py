"""
schemas/itinerary.py
--------------------
The itinerary aggregate: trip request, slot grid, place candidates,
scheduled stops and the generated response.

Two layers:
  dataclasses    — what the engine modules work on (TimeSlot, PlaceCandidate,
                   ScheduledStop, TripRequest, ItineraryResponse).
  pydantic *In   — the wire shape the client sends and the store reads back
                   (snake_case keys, times as "HH:MM"). Each model's
                   to_domain() returns the matching dataclass.

Every dataclass from_dict() goes through its wire model; a pydantic
ValidationError surfaces as InvalidInputError.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date
from enum import Enum
from typing import Annotated, Any, Optional, Type, TypeVar

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from tripslot.errors import InvalidInputError
from tripslot.modules.temporal.time_model import TimeRange, parse_date, parse_hhmm

E = TypeVar("E", bound=Enum)
W = TypeVar("W", bound=BaseModel)


# ── Enumerations ──────────────────────────────────────────────────────────────

class SlotName(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"

    @property
    def order(self) -> int:
        return _SLOT_ORDER[self]

    @classmethod
    def parse(cls, value: Any) -> "SlotName":
        return parse_enum(cls, value, "slot_name")


_SLOT_ORDER: dict[SlotName, int] = {
    SlotName.MORNING: 0,
    SlotName.AFTERNOON: 1,
    SlotName.EVENING: 2,
    SlotName.NIGHT: 3,
}
SLOT_SEQUENCE: tuple[SlotName, ...] = tuple(sorted(SlotName, key=lambda s: s.order))


class BudgetTier(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TravelType(str, Enum):
    SOLO = "solo"
    COUPLE = "couple"
    FAMILY = "family"
    GROUP = "group"


class TripMood(str, Enum):
    RELAXED = "relaxed"
    ADVENTURE = "adventure"
    SPIRITUAL = "spiritual"
    ROMANTIC = "romantic"
    CULTURAL = "cultural"
    FOODIE = "foodie"


def parse_enum(enum_cls: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError as exc:
        valid = [e.value for e in enum_cls]
        raise InvalidInputError(
            f"{field_name}={value!r} is not one of {valid}"
        ) from exc


def parse_wire(model: Type[W], data: Any) -> W:
    """Validate *data* against a wire model; failures raise InvalidInputError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        reasons = [
            f"{'.'.join(str(p) for p in err['loc']) or model.__name__}: {err['msg']}"
            for err in exc.errors()
        ]
        raise InvalidInputError("; ".join(reasons)) from exc


# ── TimeSlot ──────────────────────────────────────────────────────────────────

def make_slot_id(day: int, slot_name: SlotName) -> str:
    return f"d{day}_{slot_name.value}"


def parse_slot_id(slot_id: str) -> tuple[int, SlotName]:
    """"d2_evening" → (2, SlotName.EVENING)."""
    try:
        day_part, name_part = str(slot_id).split("_", 1)
        day = int(day_part.lstrip("d"))
    except ValueError as exc:
        raise InvalidInputError(f"slot_id {slot_id!r} is not '<d><day>_<slot>'") from exc
    return day, SlotName.parse(name_part)


@dataclass
class TimeSlot:
    """One named window of one trip day. remaining_mins never exceeds available_mins."""
    slot_id: str = ""
    day: int = 0
    slot_name: SlotName = SlotName.MORNING
    start_time: str = ""
    end_time: str = ""
    available_mins: int = 0
    remaining_mins: int = 0
    meal_gap_after: Optional[str] = None

    def __post_init__(self) -> None:
        if self.remaining_mins > self.available_mins:
            raise InvalidInputError(
                f"slot {self.slot_id}: remaining_mins {self.remaining_mins} "
                f"exceeds available_mins {self.available_mins}"
            )

    @property
    def window(self) -> TimeRange:
        return TimeRange.from_hhmm(self.start_time, self.end_time)

    def to_dict(self) -> dict:
        return {
            "slot_id":        self.slot_id,
            "day":            self.day,
            "slot_name":      self.slot_name.value,
            "start_time":     self.start_time,
            "end_time":       self.end_time,
            "available_mins": self.available_mins,
            "remaining_mins": self.remaining_mins,
            "meal_gap_after": self.meal_gap_after,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TimeSlot":
        return parse_wire(SlotIn, data).to_domain()


# ── PlaceCandidate ────────────────────────────────────────────────────────────

@dataclass
class PlaceCandidate:
    """
    A place eligible for scheduling. place_name is the effective key within a
    destination. wheelchair_accessible is tri-state: None means no data.
    """
    place_name: str = ""
    duration_hrs: float = 1.0
    category: Optional[str] = None
    priority: int = 5
    best_slot: Optional[SlotName] = None
    opening_hours: Optional[str] = None
    closed_on: list[str] = field(default_factory=list)
    entry_fee: Optional[float] = None
    entry_fee_foreign: Optional[float] = None
    lat: Optional[float] = None
    lon: Optional[float] = None
    tip: Optional[str] = None
    nearby_food: Optional[str] = None
    why_must_visit: Optional[str] = None
    tags: list[str] = field(default_factory=list)
    crowded: bool = False
    wheelchair_accessible: Optional[bool] = None
    is_alternate: bool = False

    @property
    def duration_mins(self) -> int:
        return int(round(self.duration_hrs * 60))

    @property
    def has_coords(self) -> bool:
        return self.lat is not None and self.lon is not None

    def candidate_fields(self) -> dict:
        """Copy of the PlaceCandidate fields; lists are not shared."""
        out = {f.name: getattr(self, f.name) for f in fields(PlaceCandidate)}
        out["closed_on"] = list(self.closed_on)
        out["tags"] = list(self.tags)
        return out

    def candidate_dict(self) -> dict:
        out = self.candidate_fields()
        out["best_slot"] = self.best_slot.value if self.best_slot else None
        return out

    def to_dict(self) -> dict:
        return self.candidate_dict()

    @classmethod
    def from_dict(cls, data: dict) -> "PlaceCandidate":
        return parse_wire(PlaceIn, data).to_domain()


# ── ScheduledStop ─────────────────────────────────────────────────────────────

@dataclass
class ScheduledStop(PlaceCandidate):
    """A PlaceCandidate bound to (day, slot, start_time, end_time)."""
    day: int = 0
    slot_id: str = ""
    slot_name: SlotName = SlotName.MORNING
    start_time: str = ""
    end_time: str = ""
    travel_mins_from_prev: int = 0
    checked_in: bool = False
    checked_out: bool = False
    opening_hours_unverified: bool = False

    @property
    def window(self) -> TimeRange:
        return TimeRange.from_hhmm(self.start_time, self.end_time)

    @property
    def key(self) -> tuple[int, str, str]:
        """Identity inside an itinerary: the same place may appear twice."""
        return (self.day, self.slot_id, self.start_time)

    @property
    def locked(self) -> bool:
        """Checked-in/out stops are never moved by replanning."""
        return self.checked_in or self.checked_out

    @property
    def used_mins(self) -> int:
        return self.duration_mins + self.travel_mins_from_prev

    def sort_key(self) -> tuple[int, int, int]:
        return (self.day, self.slot_name.order, self.window.start)

    def to_candidate(self) -> PlaceCandidate:
        return PlaceCandidate(**self.candidate_fields())

    @classmethod
    def from_candidate(
        cls,
        candidate: PlaceCandidate,
        day: int,
        slot_name: SlotName,
        window: TimeRange,
        travel_mins_from_prev: int = 0,
        opening_hours_unverified: bool = False,
    ) -> "ScheduledStop":
        kwargs = candidate.candidate_fields()
        kwargs["duration_hrs"] = round(window.minutes / 60.0, 4)
        return cls(
            **kwargs,
            day=day,
            slot_id=make_slot_id(day, slot_name),
            slot_name=slot_name,
            start_time=window.start_hhmm,
            end_time=window.end_hhmm,
            travel_mins_from_prev=int(travel_mins_from_prev),
            opening_hours_unverified=opening_hours_unverified,
        )

    def to_dict(self) -> dict:
        out = self.candidate_dict()
        out.update({
            "day":                      self.day,
            "slot_id":                  self.slot_id,
            "slot_name":                self.slot_name.value,
            "start_time":               self.start_time,
            "end_time":                 self.end_time,
            "travel_mins_from_prev":    self.travel_mins_from_prev,
            "checked_in":               self.checked_in,
            "checked_out":              self.checked_out,
            "opening_hours_unverified": self.opening_hours_unverified,
        })
        return out

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduledStop":
        return parse_wire(StopIn, data).to_domain()


# ── TripRequest ───────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TripRequest:
    """Immutable once submitted; identifies a single generation run."""
    destination: str
    days: int
    budget: BudgetTier = BudgetTier.MEDIUM
    travel_type: TravelType = TravelType.SOLO
    mood: TripMood = TripMood.RELAXED
    interests: frozenset[str] = frozenset()
    travel_dates: Optional[date] = None
    avoid_crowded: bool = False
    accessibility_needs: bool = False

    @classmethod
    def from_dict(cls, data: dict, max_days: int = 14) -> "TripRequest":
        return parse_wire(TripRequestIn, data).to_domain(max_days)


# ── ItineraryResponse ─────────────────────────────────────────────────────────

@dataclass
class ItineraryMeta:
    destination: str = ""
    days: int = 0
    travel_type: str = ""
    budget: str = ""
    mood: str = ""
    generated_at: str = ""             # ISO-8601 timestamp
    model_used: str = ""
    total_places: int = 0
    unscheduled_count: int = 0
    hours_unverified_count: int = 0
    total_entry_fees: float = 0.0
    travel_dates: Optional[str] = None
    accessibility_needs: bool = False

    def to_dict(self) -> dict:
        return {
            "destination":            self.destination,
            "days":                   self.days,
            "travel_type":            self.travel_type,
            "budget":                 self.budget,
            "mood":                   self.mood,
            "generated_at":           self.generated_at,
            "model_used":             self.model_used,
            "total_places":           self.total_places,
            "unscheduled_count":      self.unscheduled_count,
            "hours_unverified_count": self.hours_unverified_count,
            "total_entry_fees":       self.total_entry_fees,
            "travel_dates":           self.travel_dates,
            "accessibility_needs":    self.accessibility_needs,
        }


@dataclass
class ItineraryResponse:
    """Root aggregate of one generation run."""
    meta: ItineraryMeta = field(default_factory=ItineraryMeta)
    slot_template: list[TimeSlot] = field(default_factory=list)
    itinerary: list[ScheduledStop] = field(default_factory=list)
    unscheduled: list[PlaceCandidate] = field(default_factory=list)
    weather_warnings: Optional[list[str]] = None

    @property
    def start_date(self) -> Optional[date]:
        return parse_date(self.meta.travel_dates)

    def stops_for_day(self, day: int) -> list[ScheduledStop]:
        return sorted((s for s in self.itinerary if s.day == day), key=ScheduledStop.sort_key)

    def slots_for_day(self, day: int) -> list[TimeSlot]:
        return sorted(
            (s for s in self.slot_template if s.day == day),
            key=lambda s: s.slot_name.order,
        )

    def slot(self, slot_id: str) -> Optional[TimeSlot]:
        for s in self.slot_template:
            if s.slot_id == slot_id:
                return s
        return None

    def sort_stops(self) -> None:
        self.itinerary.sort(key=ScheduledStop.sort_key)

    def refresh(self) -> None:
        """Recompute slot remaining_mins and meta counters from the stops."""
        self.sort_stops()
        used: dict[str, int] = {}
        for stop in self.itinerary:
            used[stop.slot_id] = used.get(stop.slot_id, 0) + stop.used_mins
        for slot in self.slot_template:
            slot.remaining_mins = max(0, slot.available_mins - used.get(slot.slot_id, 0))
        self.meta.total_places = len(self.itinerary)
        self.meta.unscheduled_count = len(self.unscheduled)
        self.meta.hours_unverified_count = sum(
            1 for s in self.itinerary if s.opening_hours_unverified
        )
        self.meta.total_entry_fees = round(
            sum(s.entry_fee or 0.0 for s in self.itinerary), 2
        )

    def to_dict(self) -> dict:
        return {
            "success":          True,
            "meta":             self.meta.to_dict(),
            "slot_template":    [s.to_dict() for s in self.slot_template],
            "itinerary":        [s.to_dict() for s in self.itinerary],
            "unscheduled":      [c.to_dict() for c in self.unscheduled],
            "weather_warnings": self.weather_warnings,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ItineraryResponse":
        return parse_wire(ItineraryIn, data).to_domain()



# ─────────────────────────────────────────────────────────────────────────────
# Wire models
# ─────────────────────────────────────────────────────────────────────────────

def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _lowered(value: Any) -> Any:
    value = _blank_to_none(value)
    return value.strip().lower() if isinstance(value, str) else value


def _stripped(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _as_list(value: Any) -> Any:
    if value is None:
        return []
    return [value] if isinstance(value, str) else value


def _hhmm(value: str) -> str:
    parse_hhmm(value)
    return value.strip()


def _iso_date(value: Any) -> Any:
    return parse_date(_blank_to_none(value))


# Reusable field types; enum values are matched case-insensitively
SlotField = Annotated[SlotName, BeforeValidator(_lowered)]
OptSlotField = Annotated[Optional[SlotName], BeforeValidator(_lowered)]
BudgetField = Annotated[BudgetTier, BeforeValidator(_lowered)]
HHMM = Annotated[str, AfterValidator(_hhmm)]
DateField = Annotated[Optional[date], BeforeValidator(_iso_date)]
Name = Annotated[str, BeforeValidator(_stripped), Field(min_length=1)]
OptText = Annotated[Optional[str], BeforeValidator(_blank_to_none)]
OptFloat = Annotated[Optional[float], BeforeValidator(_blank_to_none)]
StrList = Annotated[list[str], BeforeValidator(_as_list)]


class PlaceIn(BaseModel):
    place_name: Name
    duration_hrs: float = Field(..., gt=0)
    category: OptText = None
    priority: int = 5
    best_slot: OptSlotField = Field(None, description="morning | afternoon | evening | night")
    opening_hours: OptText = Field(None, description='"09:00-17:00", "24 hours", "closed"')
    closed_on: StrList = Field(default_factory=list)
    entry_fee: OptFloat = Field(None, ge=0)
    entry_fee_foreign: OptFloat = Field(None, ge=0)
    lat: OptFloat = Field(None, ge=-90, le=90)
    lon: OptFloat = Field(None, ge=-180, le=180)
    tip: Optional[str] = None
    nearby_food: Optional[str] = None
    why_must_visit: Optional[str] = None
    tags: StrList = Field(default_factory=list)
    crowded: bool = False
    wheelchair_accessible: Optional[bool] = None
    is_alternate: bool = False

    def to_domain(self) -> PlaceCandidate:
        return PlaceCandidate(**self.model_dump(include=_PLACE_FIELDS))


_PLACE_FIELDS = frozenset(f.name for f in fields(PlaceCandidate))


class StopIn(PlaceIn):
    day: int = Field(..., ge=1)
    slot_id: OptText = Field(None, description="d<day>_<slot_name>; derived when omitted")
    slot_name: SlotField
    start_time: HHMM
    end_time: HHMM
    travel_mins_from_prev: int = Field(0, ge=0)
    checked_in: bool = False
    checked_out: bool = False
    opening_hours_unverified: bool = False

    @model_validator(mode="after")
    def _slot_id_matches(self) -> "StopIn":
        if self.slot_id is None:
            self.slot_id = make_slot_id(self.day, self.slot_name)
        elif parse_slot_id(self.slot_id) != (self.day, self.slot_name):
            raise ValueError(
                f"slot_id {self.slot_id!r} does not match "
                f"day={self.day} slot_name={self.slot_name.value}"
            )
        return self

    def to_domain(self) -> ScheduledStop:
        return ScheduledStop(**self.model_dump())


class SlotIn(BaseModel):
    slot_id: OptText = None
    day: int = Field(..., ge=1)
    slot_name: SlotField
    start_time: HHMM
    end_time: HHMM
    available_mins: int = Field(..., ge=0)
    remaining_mins: int = Field(..., ge=0)
    meal_gap_after: Optional[str] = None

    @model_validator(mode="after")
    def _consistent(self) -> "SlotIn":
        if self.slot_id is None:
            self.slot_id = make_slot_id(self.day, self.slot_name)
        if self.remaining_mins > self.available_mins:
            raise ValueError(
                f"remaining_mins {self.remaining_mins} exceeds available_mins {self.available_mins}"
            )
        return self

    def to_domain(self) -> TimeSlot:
        return TimeSlot(**self.model_dump())


class MetaIn(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    destination: Name
    days: int = Field(..., ge=1)
    travel_type: str = ""
    budget: str = ""
    mood: str = ""
    generated_at: str = ""
    model_used: str = ""
    total_places: int = Field(0, ge=0)
    unscheduled_count: int = Field(0, ge=0)
    hours_unverified_count: int = Field(0, ge=0)
    total_entry_fees: float = Field(0.0, ge=0)
    travel_dates: OptText = Field(None, description="YYYY-MM-DD")
    accessibility_needs: bool = False

    @field_validator("travel_dates")
    @classmethod
    def _date(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            parse_date(v)
        return v

    def to_domain(self) -> ItineraryMeta:
        return ItineraryMeta(**self.model_dump())


class ItineraryIn(BaseModel):
    meta: MetaIn
    slot_template: list[SlotIn] = Field(default_factory=list)
    itinerary: list[StopIn] = Field(default_factory=list)
    unscheduled: list[PlaceIn] = Field(default_factory=list)
    weather_warnings: Optional[list[str]] = None

    def to_domain(self) -> ItineraryResponse:
        return ItineraryResponse(
            meta=self.meta.to_domain(),
            slot_template=[s.to_domain() for s in self.slot_template],
            itinerary=[s.to_domain() for s in self.itinerary],
            unscheduled=[c.to_domain() for c in self.unscheduled],
            weather_warnings=list(self.weather_warnings) if self.weather_warnings is not None else None,
        )


class TripRequestIn(BaseModel):
    destination: Name
    days: int = Field(..., ge=1)
    budget: BudgetField = BudgetTier.MEDIUM
    travel_type: Annotated[TravelType, BeforeValidator(_lowered)] = TravelType.SOLO
    mood: Annotated[TripMood, BeforeValidator(_lowered)] = TripMood.RELAXED
    interests: StrList = Field(default_factory=list)
    travel_dates: DateField = Field(None, description="ISO-8601 start date YYYY-MM-DD")
    avoid_crowded: bool = False
    accessibility_needs: bool = False

    def to_domain(self, max_days: int = 14) -> TripRequest:
        if self.days > max_days:
            raise InvalidInputError(f"days={self.days} must be between 1 and {max_days}")
        return TripRequest(
            destination=self.destination,
            days=self.days,
            budget=self.budget,
            travel_type=self.travel_type,
            mood=self.mood,
            interests=frozenset(t.strip().lower() for t in self.interests if t.strip()),
            travel_dates=self.travel_dates,
            avoid_crowded=self.avoid_crowded,
            accessibility_needs=self.accessibility_needs,
        )
