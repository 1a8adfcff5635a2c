"""
engine.py
---------
ItineraryEngine — the single entry point the API (and tests) call.

Pure operations (generate, suggest_alternates, validate_place,
suggest_hotels) touch no shared state and run fully in parallel.

Mutations of a saved itinerary (update, stop check-in/out, swap, remove,
hotel check-in/out) are serialized per itinerary id:

    with lock(itinerary_id):
        record  = store.get(id)                 # fresh copy
        ...mutate the copy...
        record.version += 1
        store.replace(record, expected_version=old_version)

A failure anywhere before store.replace() leaves the stored state untouched,
so every mutation is all-or-nothing.
"""

from __future__ import annotations

import logging
import threading
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timezone
from typing import Callable, Iterator, Optional, Sequence, TypeVar

from tripslot import config
from tripslot.db.repositories.itinerary_repo import ItineraryStore, make_store
from tripslot.errors import (
    ConcurrentUpdateError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
)
from tripslot.modules.observability.logger import event_log
from tripslot.modules.planning.hotel_planner import plan_phases
from tripslot.modules.planning.itinerary_builder import ItineraryBuilder
from tripslot.modules.registry.candidate_registry import CandidateRegistry
from tripslot.modules.reoptimization.alternative_generator import AlternativeGenerator
from tripslot.modules.reoptimization.replanner import DynamicReplanner, ReplanResult
from tripslot.modules.temporal.time_model import TimeRange, date_for_day
from tripslot.modules.tool_usage.distance_tool import HaversineTransitEstimator, TransitEstimator
from tripslot.modules.tool_usage.hotel_tool import HotelTool
from tripslot.modules.validation.itinerary_validator import validate_stop_sequence
from tripslot.modules.validation.placement_validator import PlacementValidator
from tripslot.schemas.itinerary import (
    BudgetTier,
    ItineraryResponse,
    PlaceCandidate,
    ScheduledStop,
    SlotName,
    TripRequest,
    parse_enum,
)
from tripslot.schemas.trip_record import HotelPhase, ItineraryRecord, UserRating
from tripslot.schemas.validation import ConflictType, PlacementVerdict

logger = logging.getLogger(__name__)

T = TypeVar("T")
StopKey = tuple[int, str, str]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ItineraryEngine:
    """
    Args:
        registry   : candidate pools (default: built-in pools).
        store      : itinerary persistence (default: config.STORE_BACKEND).
        estimator  : transit collaborator shared by builder, validator, replanner.
        hotel_tool : hotel pools for phase planning.
    """

    def __init__(
        self,
        registry: Optional[CandidateRegistry] = None,
        store: Optional[ItineraryStore] = None,
        estimator: Optional[TransitEstimator] = None,
        hotel_tool: Optional[HotelTool] = None,
        builder: Optional[ItineraryBuilder] = None,
    ) -> None:
        self.registry = registry or CandidateRegistry()
        self.store = store or make_store()
        self.estimator: TransitEstimator = estimator or HaversineTransitEstimator()
        self.hotel_tool = hotel_tool or HotelTool()
        self.builder = builder or ItineraryBuilder(self.estimator)
        self.validator = PlacementValidator(self.estimator)
        self.alternates = AlternativeGenerator(self.registry)
        self.replanner = DynamicReplanner(self.estimator)

        self._locks: dict[str, list] = {}        # id -> [lock, holders]
        self._locks_guard = threading.Lock()

    # ── Pure operations ───────────────────────────────────────────────────────

    def generate(
        self,
        request: TripRequest,
        candidates: Optional[Sequence[PlaceCandidate]] = None,
    ) -> ItineraryResponse:
        """Build an itinerary from the registry pool (or an explicit one)."""
        pool = self.registry.prepare(request, list(candidates) if candidates is not None else None)
        return self.builder.build(request, pool)

    def suggest_alternates(
        self,
        destination: str,
        slot_name: SlotName | str,
        current_stop: ScheduledStop,
        scheduled_places: Sequence[ScheduledStop | str] = (),
        free_slots: Sequence[SlotName | str] = (),
        visit_date: Optional[date] = None,
    ) -> list[PlaceCandidate]:
        return self.alternates.suggest(
            destination, slot_name, current_stop, scheduled_places, free_slots,
            visit_date=visit_date,
        )

    def validate_place(
        self,
        place: PlaceCandidate,
        target_day: int,
        target_slot: SlotName | str,
        slot_stops: Sequence[ScheduledStop] = (),
        prev_stop: Optional[ScheduledStop] = None,
        next_stop: Optional[ScheduledStop] = None,
        all_stops: Sequence[ScheduledStop] = (),
        budget: BudgetTier | str = BudgetTier.MEDIUM,
        accessibility_needs: bool = False,
        visit_date: Optional[date] = None,
        replacing: Optional[ScheduledStop] = None,
    ) -> PlacementVerdict:
        return self.validator.validate(
            place, target_day, target_slot,
            slot_stops=slot_stops, prev_stop=prev_stop, next_stop=next_stop,
            all_stops=all_stops, budget=budget, accessibility_needs=accessibility_needs,
            visit_date=visit_date, replacing=replacing,
        )

    def suggest_hotels(
        self,
        destination: str,
        days: int,
        budget: BudgetTier | str = BudgetTier.MEDIUM,
        itinerary: Optional[ItineraryResponse] = None,
        accessibility_needs: bool = False,
    ) -> list[HotelPhase]:
        tier = parse_enum(BudgetTier, budget, "budget")
        if itinerary is None:
            itinerary = self.generate(TripRequest.from_dict(
                {"destination": destination, "days": days, "budget": tier.value},
                max_days=config.MAX_TRIP_DAYS,
            ))
        return plan_phases(itinerary, self.hotel_tool.fetch(destination), tier, accessibility_needs)

    # ── Persistence ───────────────────────────────────────────────────────────

    def save(
        self,
        user_id: str,
        itinerary: ItineraryResponse,
        saved_at: Optional[str] = None,
    ) -> ItineraryRecord:
        if not str(user_id or "").strip():
            raise InvalidInputError("user_id must not be empty")
        check = validate_stop_sequence(itinerary.slot_template, itinerary.itinerary)
        if not check:
            raise InvalidInputError("; ".join(check.errors))
        itinerary.refresh()

        tier = parse_enum(BudgetTier, itinerary.meta.budget or "medium", "budget")
        now = _now()
        record = ItineraryRecord(
            itinerary_id=uuid.uuid4().hex,
            user_id=str(user_id),
            itinerary=itinerary,
            phases=plan_phases(
                itinerary, self.hotel_tool.fetch(itinerary.meta.destination),
                tier, itinerary.meta.accessibility_needs,
            ),
            created_at=now,
            updated_at=now,
            saved_at=saved_at,
        )
        self.store.create(record)
        logger.info("saved itinerary %s for user %s", record.itinerary_id, record.user_id)
        event_log.commit(record.itinerary_id, record.version, "save")
        return record

    def get(self, itinerary_id: str) -> ItineraryRecord:
        return self.store.get(itinerary_id)

    def list_for_user(self, user_id: str) -> list[ItineraryRecord]:
        return self.store.list_for_user(user_id)

    def rate_place(self, rating: UserRating) -> UserRating:
        """Record a 1-5 rating; created_at is stamped here."""
        rating.created_at = _now()
        self.store.add_rating(rating)
        logger.info("user %s rated %s %d/5", rating.user_id, rating.place_id, rating.rating)
        return rating

    def ratings_for_place(self, place_id: str) -> list[UserRating]:
        return self.store.ratings_for_place(place_id)

    # ── Mutations ─────────────────────────────────────────────────────────────

    def update(
        self,
        itinerary_id: str,
        stops: Sequence[ScheduledStop],
        expected_version: Optional[int] = None,
    ) -> ItineraryRecord:
        """Replace the stop sequence after schema and invariant checks."""
        def apply(record: ItineraryRecord) -> None:
            check = validate_stop_sequence(
                record.itinerary.slot_template, stops, previous=record.itinerary.itinerary,
            )
            if not check:
                raise InvalidInputError("; ".join(check.errors))
            record.itinerary.itinerary = list(stops)
            record.itinerary.refresh()

        record, _ = self._mutate(itinerary_id, "update", apply, expected_version)
        return record

    def check_in_stop(self, itinerary_id: str, key: StopKey) -> ScheduledStop:
        def apply(record: ItineraryRecord) -> ScheduledStop:
            stop = _find_stop(record, key)
            if stop.checked_in:
                raise InvalidTransitionError(f"'{stop.place_name}' is already checked in")
            stop.checked_in = True
            return stop

        _, stop = self._mutate(itinerary_id, "stop_checkin", apply)
        return stop

    def check_out_stop(self, itinerary_id: str, key: StopKey) -> ScheduledStop:
        def apply(record: ItineraryRecord) -> ScheduledStop:
            stop = _find_stop(record, key)
            if not stop.checked_in:
                raise InvalidTransitionError(
                    f"'{stop.place_name}' must be checked in before checking out"
                )
            if stop.checked_out:
                raise InvalidTransitionError(f"'{stop.place_name}' is already checked out")
            stop.checked_out = True
            return stop

        _, stop = self._mutate(itinerary_id, "stop_checkout", apply)
        return stop

    def swap_stop(
        self,
        itinerary_id: str,
        key: StopKey,
        new_place: PlaceCandidate,
    ) -> tuple[ItineraryRecord, PlacementVerdict]:
        """
        Validate *new_place* in the slot of the stop at *key*; commit only when
        the verdict is valid. The replaced stop returns to `unscheduled`.
        """
        with self._lock(itinerary_id):
            record = self.store.get(itinerary_id)
            old = _find_stop(record, key)
            if old.locked:
                raise InvalidTransitionError(f"'{old.place_name}' is checked in and cannot be swapped")

            it = record.itinerary
            day_stops = it.stops_for_day(old.day)
            idx = next(i for i, s in enumerate(day_stops) if s.key == old.key)
            verdict = self.validator.validate(
                new_place, old.day, old.slot_name,
                slot_stops=[s for s in day_stops if s.slot_id == old.slot_id],
                prev_stop=day_stops[idx - 1] if idx > 0 else None,
                next_stop=day_stops[idx + 1] if idx + 1 < len(day_stops) else None,
                all_stops=it.itinerary,
                budget=it.meta.budget or "medium",
                accessibility_needs=it.meta.accessibility_needs,
                visit_date=date_for_day(it.start_date, old.day),
                replacing=old,
                slot=it.slot(old.slot_id),
            )
            if not verdict.valid:
                return record, verdict

            previous = record.version
            alt = PlaceCandidate(**new_place.candidate_fields())
            alt.is_alternate = True
            window = TimeRange.from_hhmm(verdict.estimated_start, verdict.estimated_end)  # type: ignore[arg-type]
            new_stop = ScheduledStop.from_candidate(
                alt, old.day, old.slot_name, window,
                travel_mins_from_prev=verdict.travel_mins_from_prev,
                opening_hours_unverified=any(
                    w.type is ConflictType.HOURS_UNVERIFIED for w in verdict.warnings
                ),
            )
            it.itinerary = [s for s in it.itinerary if s.key != old.key] + [new_stop]
            if idx + 1 < len(day_stops):
                # the verdict already guarantees the onward leg fits before it
                following = day_stops[idx + 1]
                following.travel_mins_from_prev = self.estimator.estimate(new_stop, following)
            it.unscheduled = [
                u for u in it.unscheduled
                if u.place_name.strip().lower() != alt.place_name.strip().lower()
            ]
            it.unscheduled.append(old.to_candidate())
            it.refresh()
            self._commit(record, previous, "swap")
            return record, verdict

    def remove_stop(self, itinerary_id: str, key: StopKey) -> ItineraryRecord:
        def apply(record: ItineraryRecord) -> None:
            stop = _find_stop(record, key)
            if stop.locked:
                raise InvalidTransitionError(f"'{stop.place_name}' is checked in and cannot be removed")
            it = record.itinerary
            it.itinerary = [s for s in it.itinerary if s.key != stop.key]
            cand = stop.to_candidate()
            cand.is_alternate = False
            it.unscheduled.append(cand)
            it.refresh()

        record, _ = self._mutate(itinerary_id, "remove", apply)
        return record

    def check_in_hotel(
        self,
        itinerary_id: str,
        phase: int,
        current_day: int,
        checkin_time: str,
    ) -> ReplanResult:
        _, result = self._mutate(
            itinerary_id, "hotel_checkin",
            lambda rec: self.replanner.check_in(rec, phase, current_day, checkin_time),
        )
        return result

    def check_out_hotel(
        self,
        itinerary_id: str,
        phase: int,
        current_day: int,
        checkout_time: str,
    ) -> ReplanResult:
        _, result = self._mutate(
            itinerary_id, "hotel_checkout",
            lambda rec: self.replanner.check_out(rec, phase, current_day, checkout_time),
        )
        return result

    # ── internals ─────────────────────────────────────────────────────────────

    @contextmanager
    def _lock(self, itinerary_id: str) -> Iterator[None]:
        # entries live only while some caller holds or waits on them
        with self._locks_guard:
            entry = self._locks.setdefault(itinerary_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[itinerary_id]

    def _mutate(
        self,
        itinerary_id: str,
        op: str,
        apply: Callable[[ItineraryRecord], T],
        expected_version: Optional[int] = None,
    ) -> tuple[ItineraryRecord, T]:
        with self._lock(itinerary_id):
            record = self.store.get(itinerary_id)
            if expected_version is not None and record.version != expected_version:
                raise ConcurrentUpdateError(
                    f"itinerary {itinerary_id} is at version {record.version}, "
                    f"expected {expected_version}"
                )
            previous = record.version
            out = apply(record)
            self._commit(record, previous, op)
            return record, out

    def _commit(self, record: ItineraryRecord, previous: int, op: str) -> None:
        record.version = previous + 1
        record.updated_at = _now()
        self.store.replace(record, expected_version=previous)
        logger.debug("committed %s on %s → v%d", op, record.itinerary_id, record.version)
        event_log.commit(record.itinerary_id, record.version, op)


def _find_stop(record: ItineraryRecord, key: StopKey) -> ScheduledStop:
    day, slot_id, start_time = key
    for s in record.itinerary.itinerary:
        if s.key == (int(day), str(slot_id), str(start_time)):
            return s
    raise NotFoundError(
        f"itinerary {record.itinerary_id} has no stop at day={day} "
        f"slot_id={slot_id} start_time={start_time}"
    )
