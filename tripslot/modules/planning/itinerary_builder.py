"""
modules/planning/itinerary_builder.py
--------------------------------------
Greedy priority-first bin-packing of candidate places into the slot grid.

Pipeline:
  1. Instantiate the slot template for days 1..N (config.SLOT_WINDOWS).
  2. Order candidates by config.BUILDER_SORT_KEYS (default: priority desc,
     duration asc). Duplicate place names keep their first occurrence.
  3. For each candidate scan days/slots in order. A candidate with a
     best_slot hint is first tried only in slots of that name, then anywhere.
     A slot is accepted when the day still packs cleanly with the candidate
     appended: every stop fits its slot (duration + transit) and none lands
     outside its opening hours.
  4. Whatever never fits goes to `unscheduled`.
  5. Meta (totals, counts, fees) is aggregated last.

Unverifiable opening hours never exclude a candidate; the stop is flagged
opening_hours_unverified instead.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from tripslot import config
from tripslot.errors import InvalidInputError
from tripslot.modules.observability.logger import event_log
from tripslot.modules.planning.day_packer import DayPack, DayPacker, PackItem
from tripslot.modules.temporal.slots import build_slot_template
from tripslot.modules.temporal.time_model import weekday_for
from tripslot.modules.tool_usage.distance_tool import HaversineTransitEstimator, TransitEstimator
from tripslot.schemas.itinerary import (
    ItineraryMeta,
    ItineraryResponse,
    PlaceCandidate,
    SlotName,
    TimeSlot,
    TripRequest,
)

logger = logging.getLogger(__name__)

# ── Candidate ordering ────────────────────────────────────────────────────────

_SORT_KEYS: dict[str, Callable[[PlaceCandidate], object]] = {
    "priority":  lambda c: -c.priority,
    "duration":  lambda c: c.duration_mins,
    "best_slot": lambda c: 0 if c.best_slot else 1,
    "name":      lambda c: c.place_name.lower(),
}


def order_candidates(
    candidates: Sequence[PlaceCandidate],
    sort_keys: Sequence[str],
) -> list[PlaceCandidate]:
    """Stable sort by the named keys, left to right."""
    unknown = [k for k in sort_keys if k not in _SORT_KEYS]
    if unknown:
        raise InvalidInputError(
            f"unknown builder sort key(s) {unknown}; expected {sorted(_SORT_KEYS)}"
        )
    fns = [_SORT_KEYS[k] for k in sort_keys]
    return sorted(candidates, key=lambda c: tuple(fn(c) for fn in fns))


def dedupe_candidates(candidates: Sequence[PlaceCandidate]) -> list[PlaceCandidate]:
    seen: set[str] = set()
    out: list[PlaceCandidate] = []
    for c in candidates:
        name = c.place_name.strip().lower()
        if name in seen:
            logger.debug("dropping duplicate candidate '%s'", c.place_name)
            continue
        seen.add(name)
        out.append(c)
    return out


# ── Builder ───────────────────────────────────────────────────────────────────

class ItineraryBuilder:
    """
    Stateless builder; one instance may serve concurrent requests.

    Args:
        estimator        : transit collaborator (default Haversine).
        sort_keys        : overrides config.BUILDER_SORT_KEYS.
        honour_best_slot : overrides config.BUILDER_HONOUR_BEST_SLOT.
    """

    def __init__(
        self,
        estimator: Optional[TransitEstimator] = None,
        sort_keys: Optional[Sequence[str]] = None,
        honour_best_slot: Optional[bool] = None,
    ) -> None:
        self.estimator: TransitEstimator = estimator or HaversineTransitEstimator()
        self.sort_keys: list[str] = list(sort_keys if sort_keys is not None else config.BUILDER_SORT_KEYS)
        self.honour_best_slot: bool = (
            config.BUILDER_HONOUR_BEST_SLOT if honour_best_slot is None else honour_best_slot
        )
        # Fail fast on a bad policy rather than on the first request
        order_candidates([], self.sort_keys)
        self.packer = DayPacker(self.estimator)

    def build(self, request: TripRequest, pool: Sequence[PlaceCandidate]) -> ItineraryResponse:
        t0 = time.perf_counter()
        template = build_slot_template(request.days)
        slots_by_day: dict[int, list[TimeSlot]] = {
            d: [s for s in template if s.day == d] for d in range(1, request.days + 1)
        }
        weekdays = {d: weekday_for(request.travel_dates, d) for d in slots_by_day}

        ordered = order_candidates(dedupe_candidates(pool), self.sort_keys)
        items: dict[int, list[PackItem]] = {d: [] for d in slots_by_day}
        packs: dict[int, DayPack] = {d: DayPack(day=d) for d in slots_by_day}
        unscheduled: list[PlaceCandidate] = []

        for cand in ordered:
            placed = False
            for slot_filter in self._passes(cand):
                placed = self._place(cand, slot_filter, slots_by_day, weekdays, items, packs)
                if placed:
                    break
            if not placed:
                unscheduled.append(cand)

        stops = [s for d in sorted(packs) for s in packs[d].stops]
        response = ItineraryResponse(
            meta=ItineraryMeta(
                destination=request.destination,
                days=request.days,
                travel_type=request.travel_type.value,
                budget=request.budget.value,
                mood=request.mood.value,
                generated_at=datetime.now(timezone.utc).isoformat(),
                model_used=config.MODEL_NAME,
                travel_dates=request.travel_dates.isoformat() if request.travel_dates else None,
                accessibility_needs=request.accessibility_needs,
            ),
            slot_template=template,
            itinerary=stops,
            unscheduled=unscheduled,
        )
        response.refresh()

        elapsed_ms = round((time.perf_counter() - t0) * 1000, 2)
        logger.info(
            "built %d-day itinerary for '%s': %d placed, %d unscheduled (%.1f ms)",
            request.days, request.destination, len(stops), len(unscheduled), elapsed_ms,
        )
        event_log.performance(
            "ItineraryBuilder", elapsed_ms,
            destination=request.destination,
            days=request.days,
            candidates=len(ordered),
            placed=len(stops),
            unscheduled=len(unscheduled),
        )
        return response

    # ── internals ─────────────────────────────────────────────────────────────

    def _passes(self, cand: PlaceCandidate) -> list[Callable[[SlotName], bool]]:
        if self.honour_best_slot and cand.best_slot is not None:
            hint = cand.best_slot
            return [lambda name: name is hint, lambda name: name is not hint]
        return [lambda name: True]

    def _place(
        self,
        cand: PlaceCandidate,
        slot_filter: Callable[[SlotName], bool],
        slots_by_day: dict[int, list[TimeSlot]],
        weekdays: dict[int, Optional[str]],
        items: dict[int, list[PackItem]],
        packs: dict[int, DayPack],
    ) -> bool:
        need = cand.duration_mins
        for day, slots in slots_by_day.items():
            used = _used_by_slot(packs[day])
            for slot in slots:
                if not slot_filter(slot.slot_name):
                    continue
                # quick reject before the full repack; transit only adds
                if slot.available_mins - used.get(slot.slot_id, 0) < need:
                    continue
                trial = items[day] + [PackItem(cand, slot.slot_name)]
                pack = self.packer.pack(day, slots, trial, weekday=weekdays[day])
                if pack.complete:
                    items[day] = trial
                    packs[day] = pack
                    return True
        return False


def _used_by_slot(pack: DayPack) -> dict[str, int]:
    used: dict[str, int] = {}
    for s in pack.stops:
        used[s.slot_id] = used.get(s.slot_id, 0) + s.used_mins
    return used
