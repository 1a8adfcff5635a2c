"""
modules/reoptimization/replanner.py
------------------------------------
Dynamic Replanner — hotel phase state machine plus the day-level repairs that
late / early check-in and check-out events trigger.

State machine per phase:
    PLANNED ──check_in──▶ CHECKED_IN ──check_out──▶ CHECKED_OUT (terminal)

Repairs (all operate on future, not-yet-checked-in stops only):

  Late check-in on day D      block [first slot start, actual). Stops wholly
                              inside are dropped; a straddling stop keeps its
                              tail if it is at least
                              max(MIN_STOP_MINUTES, MIN_COMPRESS_RATIO × duration).
                              D is repacked; a stop may slide to a later slot.
  Early check-out on day D    Δ = planned − actual is a minute budget: first
                              insert unscheduled candidates with priority ≥
                              REALLOCATE_MIN_PRIORITY after `actual` on D (and
                              D+1 when the next phase starts after D), then
                              stretch D's remaining stops up to MAX_EXTEND_RATIO.
  Late check-out on day D     block [planned, actual) on D; stops that ended
                              before `planned` stay, the rest shift after it;
                              what no longer fits spills into D+1's
                              free room, the rest goes to `unscheduled`.
  On-time / early check-in,
  on-time check-out           state change only; the schedule is untouched.

Everything that leaves the itinerary lands in `unscheduled` with
is_alternate=False. The replanner mutates the ItineraryRecord it is given;
the engine hands it a private copy and commits the result atomically.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Optional, Sequence

from tripslot import config
from tripslot.errors import InvalidInputError, InvalidTransitionError, NotFoundError
from tripslot.modules.observability.logger import event_log
from tripslot.modules.planning.day_packer import DayPack, DayPacker, PackItem
from tripslot.modules.temporal.time_model import TimeRange, day_minutes, weekday_for
from tripslot.modules.tool_usage.distance_tool import HaversineTransitEstimator, TransitEstimator
from tripslot.schemas.itinerary import PlaceCandidate, ScheduledStop, TimeSlot
from tripslot.schemas.trip_record import (
    HotelPhase,
    ItineraryRecord,
    ItineraryStatus,
    PhaseState,
)

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Result
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ReplanResult:
    phase: int
    day: int
    event: str                                  # "check_in" | "check_out"
    message: str = ""
    replanned: bool = False
    updated_stops: Optional[list[ScheduledStop]] = None
    dropped: list[str] = field(default_factory=list)
    compressed: list[str] = field(default_factory=list)
    shifted: list[str] = field(default_factory=list)
    spilled: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    extended: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success":       True,
            "message":       self.message,
            "phase":         self.phase,
            "day":           self.day,
            "event":         self.event,
            "replanned":     self.replanned,
            "updated_stops": (
                [s.to_dict() for s in self.updated_stops]
                if self.updated_stops is not None else None
            ),
            "dropped":       self.dropped,
            "compressed":    self.compressed,
            "shifted":       self.shifted,
            "spilled":       self.spilled,
            "added":         self.added,
            "extended":      self.extended,
        }

    def counts(self) -> dict:
        return {
            "dropped":    len(self.dropped),
            "compressed": len(self.compressed),
            "shifted":    len(self.shifted),
            "spilled":    len(self.spilled),
            "added":      len(self.added),
            "extended":   len(self.extended),
        }


# ─────────────────────────────────────────────────────────────────────────────
# Per-day working state
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class _Day:
    day: int
    slots: list[TimeSlot]
    fixed: list[ScheduledStop]                  # never moved in this repair
    movable: list[PackItem]
    blocked: list[TimeRange] = field(default_factory=list)
    weekday: Optional[str] = None


class DynamicReplanner:
    """
    Usage:
        replanner = DynamicReplanner()
        result = replanner.check_in(record, phase=1, current_day=1, actual_time="16:00")
    """

    def __init__(self, estimator: Optional[TransitEstimator] = None) -> None:
        self.estimator: TransitEstimator = estimator or HaversineTransitEstimator()
        self.packer = DayPacker(self.estimator)

    # ── Public ────────────────────────────────────────────────────────────────

    def check_in(
        self,
        record: ItineraryRecord,
        phase: int,
        current_day: int,
        actual_time: str,
    ) -> ReplanResult:
        t0 = time.perf_counter()
        actual = _parse_time(actual_time, "checkin_time")
        ph = self._phase(record, phase)
        self._check_day(record, ph, current_day, allow_after=False)
        if ph.state is not PhaseState.PLANNED:
            raise InvalidTransitionError(
                f"phase {phase} is {ph.state.value}; check-in requires planned"
            )

        ph.state = PhaseState.CHECKED_IN
        ph.actual_checkin = actual_time
        if record.status is ItineraryStatus.PLANNED:
            record.status = ItineraryStatus.ACTIVE

        result = ReplanResult(phase=phase, day=current_day, event="check_in")
        planned = day_minutes(ph.planned_checkin)
        if actual <= planned:
            result.message = f"Checked in at {actual_time}; schedule unchanged."
        else:
            self._late_checkin(record, current_day, actual, result)
            result.message = (
                f"Late check-in at {actual_time} ({actual - planned} min late): "
                f"{len(result.dropped)} dropped, {len(result.compressed)} shortened, "
                f"{len(result.shifted)} moved."
            )
        self._finish(record, result, t0)
        return result

    def check_out(
        self,
        record: ItineraryRecord,
        phase: int,
        current_day: int,
        actual_time: str,
    ) -> ReplanResult:
        t0 = time.perf_counter()
        actual = _parse_time(actual_time, "checkout_time")
        ph = self._phase(record, phase)
        self._check_day(record, ph, current_day, allow_after=True)
        if ph.state is not PhaseState.CHECKED_IN:
            raise InvalidTransitionError(
                f"phase {phase} is {ph.state.value}; check-out requires checked_in"
            )

        ph.state = PhaseState.CHECKED_OUT
        ph.actual_checkout = actual_time
        if all(p.state is PhaseState.CHECKED_OUT for p in record.phases):
            record.status = ItineraryStatus.COMPLETED

        result = ReplanResult(phase=phase, day=current_day, event="check_out")
        planned = day_minutes(ph.planned_checkout)
        if actual < planned:
            nxt = record.next_phase(phase)
            extra_day = nxt is not None and nxt.first_day > current_day
            self._early_checkout(record, current_day, actual, planned - actual, extra_day, result)
            result.message = (
                f"Early check-out at {actual_time} ({planned - actual} min freed): "
                f"{len(result.added)} added, {len(result.extended)} extended."
            )
        elif actual > planned:
            self._late_checkout(record, current_day, planned, actual, result)
            result.message = (
                f"Late check-out at {actual_time} ({actual - planned} min late): "
                f"{len(result.shifted)} moved, {len(result.spilled)} moved to the next day, "
                f"{len(result.dropped)} unscheduled."
            )
        else:
            result.message = f"Checked out at {actual_time}; schedule unchanged."
        self._finish(record, result, t0)
        return result

    # ── Repairs ───────────────────────────────────────────────────────────────

    def _late_checkin(
        self,
        record: ItineraryRecord,
        day: int,
        actual: int,
        result: ReplanResult,
    ) -> None:
        state = self._day_state(record, day)
        if not state.slots:
            return
        block = TimeRange(state.slots[0].window.start, max(state.slots[0].window.start, actual))
        state.blocked.append(block)

        kept: list[PackItem] = []
        lost: list[PlaceCandidate] = []
        for item in state.movable:
            stop = item.place
            w = stop.window  # type: ignore[attr-defined]
            if w.end <= actual:
                lost.append(stop)
                result.dropped.append(stop.place_name)
            elif w.start < actual:
                tail = w.end - actual
                floor = max(config.MIN_STOP_MINUTES, math.ceil(config.MIN_COMPRESS_RATIO * item.duration_mins))
                if tail >= floor:
                    kept.append(PackItem(stop, item.slot_name, tail))
                    result.compressed.append(stop.place_name)
                else:
                    lost.append(stop)
                    result.dropped.append(stop.place_name)
            else:
                kept.append(item)

        state.movable = kept
        pack = self._pack(state, spill=True)
        for over in pack.overflow:
            lost.append(over.place)
            result.dropped.append(over.place.place_name)
        self._commit_day(record, state, pack, result)
        _send_to_unscheduled(record, lost)
        result.replanned = True
        result.updated_stops = record.itinerary.stops_for_day(day)

    def _early_checkout(
        self,
        record: ItineraryRecord,
        day: int,
        actual: int,
        budget: int,
        extra_day: bool,
        result: ReplanResult,
    ) -> None:
        days = [day]
        if extra_day and day + 1 <= record.itinerary.meta.days:
            days.append(day + 1)
        states = {d: self._day_state(record, d, free_after=actual if d == day else None) for d in days}

        # 1. reallocate high-priority unscheduled candidates
        pending = sorted(
            (c for c in record.itinerary.unscheduled if c.priority >= config.REALLOCATE_MIN_PRIORITY),
            key=lambda c: (-c.priority, c.duration_mins),
        )
        for cand in pending:
            if budget <= 0:
                break
            if cand.duration_mins > budget:
                continue
            for d in days:
                hit = self._try_insert(states[d], cand)
                if hit is None:
                    continue
                pack, item, placed = hit
                budget -= placed.used_mins
                states[d].movable.append(item)
                self._commit_day(record, states[d], pack, result)
                record.itinerary.unscheduled = [u for u in record.itinerary.unscheduled if u is not cand]
                result.added.append(cand.place_name)
                break

        # 2. stretch what is left on D
        state = states[day]
        for idx, item in enumerate(list(state.movable)):
            if budget <= 0:
                break
            cap = int(item.place.duration_mins * config.MAX_EXTEND_RATIO) - item.duration_mins
            slot = next(s for s in state.slots if s.slot_name is item.slot_name)
            used = sum(s.used_mins for s in self._current_stops(record, day) if s.slot_id == slot.slot_id)
            ext = min(budget, cap, slot.available_mins - used)
            if ext <= 0:
                continue
            trial = list(state.movable)
            trial[idx] = PackItem(item.place, item.slot_name, item.duration_mins + ext)
            pack = self._pack(_Day(state.day, state.slots, state.fixed, trial, state.blocked, state.weekday))
            if not pack.complete:
                continue
            state.movable = trial
            budget -= ext
            self._commit_day(record, state, pack, result)
            result.extended.append(item.place.place_name)

        if result.added or result.extended:
            result.replanned = True
        result.updated_stops = [s for d in days for s in record.itinerary.stops_for_day(d)]

    def _late_checkout(
        self,
        record: ItineraryRecord,
        day: int,
        planned: int,
        actual: int,
        result: ReplanResult,
    ) -> None:
        state = self._day_state(record, day, free_after=planned, fixed_rule="ends_before")
        # [planned, actual) is lost; movable stops never move ahead of it either
        first = state.slots[0].window.start if state.slots else planned
        state.blocked.append(TimeRange(min(first, planned), actual))
        pack = self._pack(state, spill=True)
        self._commit_day(record, state, pack, result)
        days = [day]

        lost: list[PlaceCandidate] = []
        if pack.overflow and day + 1 <= record.itinerary.meta.days:
            nxt = self._day_state(record, day + 1)
            days.append(day + 1)
            for over in pack.overflow:
                hit = self._try_insert(nxt, over.place, prefer=over)
                if hit is None:
                    lost.append(over.place)
                    result.dropped.append(over.place.place_name)
                    continue
                spilled, item, _ = hit
                nxt.movable.append(item)
                self._commit_day(record, nxt, spilled, result)
                result.spilled.append(over.place.place_name)
        else:
            for over in pack.overflow:
                lost.append(over.place)
                result.dropped.append(over.place.place_name)

        _send_to_unscheduled(record, lost)
        result.replanned = True
        result.updated_stops = [s for d in days for s in record.itinerary.stops_for_day(d)]

    # ── Helpers ───────────────────────────────────────────────────────────────

    @staticmethod
    def _phase(record: ItineraryRecord, number: int) -> HotelPhase:
        ph = record.phase(number)
        if ph is None:
            raise NotFoundError(f"itinerary {record.itinerary_id} has no phase {number}")
        return ph

    @staticmethod
    def _check_day(record: ItineraryRecord, ph: HotelPhase, day: int, allow_after: bool) -> None:
        if not 1 <= day <= record.itinerary.meta.days:
            raise NotFoundError(
                f"day {day} is outside the {record.itinerary.meta.days}-day itinerary"
            )
        valid = set(ph.days)
        if allow_after:
            valid.add(ph.last_day + 1)
        if day not in valid:
            raise NotFoundError(f"day {day} is not part of phase {ph.phase} (days {ph.days})")

    @staticmethod
    def _current_stops(record: ItineraryRecord, day: int) -> list[ScheduledStop]:
        return record.itinerary.stops_for_day(day)

    def _day_state(
        self,
        record: ItineraryRecord,
        day: int,
        free_after: Optional[int] = None,
        fixed_rule: str = "starts_before",
    ) -> _Day:
        """
        Split a day's stops into fixed and movable. Locked stops are always
        fixed; with free_after set, unlocked stops before that minute are too
        ("starts_before": start < free_after, "ends_before": end ≤ free_after).
        """
        fixed: list[ScheduledStop] = []
        movable: list[PackItem] = []
        for s in record.itinerary.stops_for_day(day):
            w = s.window
            before = free_after is not None and (
                w.start < free_after if fixed_rule == "starts_before" else w.end <= free_after
            )
            if s.locked or before:
                fixed.append(s)
            else:
                movable.append(PackItem(s, s.slot_name, s.duration_mins))
        state = _Day(
            day=day,
            slots=record.itinerary.slots_for_day(day),
            fixed=fixed,
            movable=movable,
            weekday=weekday_for(record.itinerary.start_date, day),
        )
        if free_after is not None and state.slots and fixed_rule == "starts_before":
            first = state.slots[0].window.start
            if free_after > first:
                state.blocked.append(TimeRange(first, free_after))
        return state

    def _pack(self, state: _Day, spill: bool = False) -> DayPack:
        return self.packer.pack(
            state.day, state.slots, state.movable,
            locked=state.fixed, blocked=state.blocked,
            weekday=state.weekday, spill=spill,
        )

    def _try_insert(
        self,
        state: _Day,
        place: PlaceCandidate,
        prefer: Optional[PackItem] = None,
    ) -> Optional[tuple[DayPack, PackItem, ScheduledStop]]:
        """
        First slot (preferred slot first) where the day still packs with
        *place* added. Returns the pack, the new item and the stop it became.
        """
        order = list(state.slots)
        if prefer is not None:
            order.sort(key=lambda s: 0 if s.slot_name is prefer.slot_name else 1)
        duration = prefer.duration_mins if prefer is not None else place.duration_mins
        for slot in order:
            item = PackItem(place, slot.slot_name, duration)
            trial = state.movable + [item]
            pack = self._pack(_Day(state.day, state.slots, state.fixed, trial, state.blocked, state.weekday))
            stop = pack.stop_for(item)
            if pack.complete and stop is not None:
                return pack, item, stop
        return None

    @staticmethod
    def _commit_day(record: ItineraryRecord, state: _Day, pack: DayPack, result: ReplanResult) -> None:
        before = {s.place_name: s.start_time for s in record.itinerary.stops_for_day(state.day)}
        others = [s for s in record.itinerary.itinerary if s.day != state.day]
        record.itinerary.itinerary = others + list(state.fixed) + pack.stops
        record.itinerary.refresh()
        for s in pack.stops:
            old = before.get(s.place_name)
            if old is not None and old != s.start_time and s.place_name not in result.shifted:
                result.shifted.append(s.place_name)

    def _finish(self, record: ItineraryRecord, result: ReplanResult, t0: float) -> None:
        elapsed_ms = round((time.perf_counter() - t0) * 1000, 2)
        logger.info(
            "itinerary %s phase %d day %d %s: %s",
            record.itinerary_id, result.phase, result.day, result.event, result.message,
        )
        event_log.replan(
            record.itinerary_id,
            phase=result.phase,
            day=result.day,
            event=result.event,
            replanned=result.replanned,
            duration_ms=elapsed_ms,
            **result.counts(),
        )


def _parse_time(value: str, field_name: str) -> int:
    if not isinstance(value, str):
        raise InvalidInputError(f"{field_name} must be an 'HH:MM' string, got {value!r}")
    try:
        return day_minutes(value)
    except InvalidInputError as exc:
        raise InvalidInputError(f"{field_name}: {exc.message}") from exc


def _send_to_unscheduled(record: ItineraryRecord, places: Sequence[PlaceCandidate]) -> None:
    for p in places:
        cand = p.to_candidate() if isinstance(p, ScheduledStop) else p
        cand.is_alternate = False
        record.itinerary.unscheduled.append(cand)
    record.itinerary.refresh()
