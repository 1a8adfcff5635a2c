"""
modules/validation/placement_validator.py
------------------------------------------
Accept/reject verdict for dropping one place into a (day, slot).

Checks, in order (each fires at most once, several may fire):

  capacity      duration + transit must fit the slot's remaining minutes
                (siblings' duration + transit, minus the stop being
                replaced) and the packed window must end inside the slot
                                                        → error   capacity_exceeded
  adjacency     the packed window plus transit onward must end by
                next_stop's start                       → error   time_overlap
  hours         opening_hours / closed_on must cover the window and weekday
                                                        → error   closed
                no verifiable data                      → warning hours_unverified
  budget        entry_fee above tier ceiling × tolerance → warning budget_mismatch
  accessibility accessibility_needs and no data         → warning accessibility_unknown
                accessibility_needs and known inaccessible → warning not_accessible
  duplicate     place already scheduled elsewhere       → warning duplicate_place

The packed window starts at max(slot start, prev_stop end) + transit, or at
the slot start when the place would open the day. The validator never
touches stored state and never raises for business-rule violations; only
malformed input raises InvalidInputError.
"""

from __future__ import annotations

import logging
import time
from datetime import date
from typing import Optional, Sequence

from tripslot import config
from tripslot.errors import InvalidInputError
from tripslot.modules.observability.logger import event_log
from tripslot.modules.temporal.slots import make_slot
from tripslot.modules.temporal.time_model import (
    WEEKDAYS,
    OpeningStatus,
    TimeRange,
    overlaps,
    within_opening_hours,
)
from tripslot.modules.tool_usage.distance_tool import HaversineTransitEstimator, TransitEstimator
from tripslot.schemas.itinerary import (
    BudgetTier,
    PlaceCandidate,
    ScheduledStop,
    SlotName,
    TimeSlot,
    parse_enum,
)
from tripslot.schemas.validation import (
    ConflictType,
    PlacementVerdict,
    Severity,
    ValidationConflict,
)

logger = logging.getLogger(__name__)


def _conflict(kind: ConflictType, severity: Severity, message: str, **detail) -> ValidationConflict:
    text = ", ".join(f"{k}={v}" for k, v in detail.items())
    return ValidationConflict(type=kind, severity=severity, message=message, detail=text)


class PlacementValidator:
    """Pure checker; safe to share across threads."""

    def __init__(self, estimator: Optional[TransitEstimator] = None) -> None:
        self.estimator: TransitEstimator = estimator or HaversineTransitEstimator()

    def validate(
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
        slot: Optional[TimeSlot] = None,
    ) -> PlacementVerdict:
        t0 = time.perf_counter()
        if not isinstance(place, PlaceCandidate):
            raise InvalidInputError("place must be a PlaceCandidate")
        if not isinstance(target_day, int) or target_day < 1:
            raise InvalidInputError(f"target_day={target_day!r} must be a positive integer")
        slot_name = SlotName.parse(target_slot)
        tier = parse_enum(BudgetTier, budget, "budget")
        if slot is None:
            slot = make_slot(target_day, slot_name)
        elif slot.slot_name is not slot_name or slot.day != target_day:
            raise InvalidInputError(
                f"slot {slot.slot_id} does not match day={target_day} slot={slot_name.value}"
            )

        verdict = PlacementVerdict(
            place_name=place.place_name,
            target_day=target_day,
            target_slot=slot_name.value,
        )
        skip = replacing.key if replacing is not None else None
        window = slot.window

        # ── Estimated window ─────────────────────────────────────────────────
        if prev_stop is not None and (prev_stop.day != target_day or prev_stop.key == skip):
            prev_stop = None
        transit = self.estimator.estimate(prev_stop, place)
        base = window.start if prev_stop is None else max(window.start, prev_stop.window.end)
        est = TimeRange.from_start(base + transit, place.duration_mins)
        verdict.estimated_start = est.start_hhmm
        verdict.estimated_end = est.end_hhmm
        verdict.travel_mins_from_prev = transit

        # ── Capacity ─────────────────────────────────────────────────────────
        used = sum(s.used_mins for s in slot_stops if s.key != skip)
        remaining = slot.available_mins - used
        need = place.duration_mins + transit
        verdict.remaining_mins_in_slot = max(0, remaining - need)
        if need > remaining or est.end > window.end:
            verdict.add(_conflict(
                ConflictType.CAPACITY_EXCEEDED, Severity.ERROR,
                f"'{place.place_name}' needs {need} min but slot {slot.slot_id} "
                f"has {max(0, remaining)} min left",
                need_mins=need, remaining_mins=max(0, remaining),
                estimated_end=est.end_hhmm, slot_end=slot.end_time,
            ))

        # ── Adjacency ────────────────────────────────────────────────────────
        if next_stop is not None and next_stop.day == target_day and next_stop.key != skip:
            onward = self.estimator.estimate(place, next_stop)
            if overlaps(est, next_stop.window) or est.end + onward > next_stop.window.start:
                verdict.add(_conflict(
                    ConflictType.TIME_OVERLAP, Severity.ERROR,
                    f"'{place.place_name}' plus {onward} min transit would run into "
                    f"'{next_stop.place_name}' starting {next_stop.start_time}",
                    estimated_end=est.end_hhmm, transit_to_next=onward,
                    next_start=next_stop.start_time,
                ))

        # ── Opening hours ────────────────────────────────────────────────────
        weekday = WEEKDAYS[visit_date.weekday()] if visit_date else None
        status = within_opening_hours(est, place.opening_hours, place.closed_on, weekday)
        if status is OpeningStatus.CLOSED:
            verdict.add(_conflict(
                ConflictType.CLOSED, Severity.ERROR,
                f"'{place.place_name}' is closed {est.start_hhmm}-{est.end_hhmm}"
                + (f" on {weekday.title()}" if weekday else ""),
                opening_hours=place.opening_hours, closed_on="|".join(place.closed_on),
                weekday=weekday,
            ))
        elif status is OpeningStatus.UNKNOWN:
            verdict.add(_conflict(
                ConflictType.HOURS_UNVERIFIED, Severity.WARNING,
                f"opening hours for '{place.place_name}' could not be verified",
                opening_hours=place.opening_hours, weekday=weekday,
            ))

        # ── Budget ───────────────────────────────────────────────────────────
        ceiling = config.BUDGET_FEE_CEILINGS.get(tier.value)
        if place.entry_fee and ceiling is not None \
                and place.entry_fee > ceiling * config.BUDGET_FEE_TOLERANCE:
            verdict.add(_conflict(
                ConflictType.BUDGET_MISMATCH, Severity.WARNING,
                f"entry fee {place.entry_fee:g} exceeds the {tier.value} budget ceiling {ceiling:g}",
                entry_fee=place.entry_fee, ceiling=ceiling, budget=tier.value,
            ))

        # ── Accessibility ────────────────────────────────────────────────────
        if accessibility_needs:
            if place.wheelchair_accessible is None:
                verdict.add(_conflict(
                    ConflictType.ACCESSIBILITY_UNKNOWN, Severity.WARNING,
                    f"no accessibility data for '{place.place_name}'",
                    wheelchair_accessible=None,
                ))
            elif place.wheelchair_accessible is False:
                verdict.add(_conflict(
                    ConflictType.NOT_ACCESSIBLE, Severity.WARNING,
                    f"'{place.place_name}' is reported as not wheelchair accessible",
                    wheelchair_accessible=False,
                ))

        # ── Duplicate ────────────────────────────────────────────────────────
        name = place.place_name.strip().lower()
        dupes = [
            s for s in all_stops
            if s.key != skip and s.place_name.strip().lower() == name
        ]
        if dupes:
            d = dupes[0]
            verdict.add(_conflict(
                ConflictType.DUPLICATE_PLACE, Severity.WARNING,
                f"'{place.place_name}' is already scheduled on day {d.day} ({d.slot_name.value})",
                day=d.day, slot_id=d.slot_id,
            ))

        logger.debug(
            "validate %s → d%d/%s valid=%s conflicts=%d warnings=%d",
            place.place_name, target_day, slot_name.value, verdict.valid,
            len(verdict.conflicts), len(verdict.warnings),
        )
        event_log.performance(
            "PlacementValidator", round((time.perf_counter() - t0) * 1000, 2),
            place=place.place_name, day=target_day, slot=slot_name.value, valid=verdict.valid,
        )
        return verdict
