"""
modules/reoptimization/alternative_generator.py
------------------------------------------------
Ranked replacement candidates for one scheduled stop.

Given the stop to replace, candidates come from the same destination pool
and must be compatible with the stop's slot and neighbours:

  - not already scheduled anywhere in the trip (case-insensitive name);
  - best_slot hint absent, equal to the target slot, or among free_slots;
  - duration fits between the current stop's start and the next stop of the
    same slot (or the slot end);
  - opening hours do not rule out that window.

Ranking (lexicographic):
  1. category similarity to the replaced stop (exact > same group > other)
  2. priority, descending
  3. |duration − replaced duration|, ascending

Design principles:
  - NO schedule mutation. This module is read-only and produces a list.
  - An empty list is a valid "no alternates" outcome, never an error.
"""

from __future__ import annotations

import copy
import logging
from datetime import date
from typing import Optional, Sequence

from tripslot import config
from tripslot.modules.registry.candidate_registry import CandidateRegistry
from tripslot.modules.temporal.slots import canonical_window
from tripslot.modules.temporal.time_model import (
    WEEKDAYS,
    OpeningStatus,
    TimeRange,
    within_opening_hours,
)
from tripslot.schemas.itinerary import PlaceCandidate, ScheduledStop, SlotName

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Category similarity
# ─────────────────────────────────────────────────────────────────────────────

_CATEGORY_GROUPS: dict[str, str] = {
    "temple": "spiritual", "church": "spiritual", "mosque": "spiritual",
    "gurudwara": "spiritual", "monastery": "spiritual",
    "fort": "heritage", "palace": "heritage", "monument": "heritage",
    "museum": "heritage", "heritage_village": "heritage", "observatory": "heritage",
    "restaurant": "food", "food_market": "food", "cafe": "food", "street_food": "food",
    "beach": "outdoors", "park": "outdoors", "garden": "outdoors",
    "lake": "outdoors", "viewpoint": "outdoors",
    "market": "shopping", "neighbourhood": "shopping", "mall": "shopping",
    "cultural_village": "culture", "art_gallery": "culture", "theatre": "culture",
}


def category_similarity(candidate: Optional[str], replaced: Optional[str]) -> int:
    """Exact match = 2; same group = 1; unrelated or unknown = 0."""
    c1 = (candidate or "").strip().lower()
    c2 = (replaced or "").strip().lower()
    if not c1 or not c2:
        return 0
    if c1 == c2:
        return 2
    g1, g2 = _CATEGORY_GROUPS.get(c1), _CATEGORY_GROUPS.get(c2)
    if g1 is not None and g1 == g2:
        return 1
    return 0


# ─────────────────────────────────────────────────────────────────────────────
# Generator
# ─────────────────────────────────────────────────────────────────────────────

class AlternativeGenerator:
    """
    Usage:
        gen = AlternativeGenerator(CandidateRegistry())
        alternates = gen.suggest(
            destination     = "Chennai",
            target_slot     = "morning",
            current_stop    = stop,
            scheduled_stops = itinerary.itinerary,
            free_slots      = ["night"],
        )
    """

    def __init__(self, registry: Optional[CandidateRegistry] = None) -> None:
        self.registry = registry or CandidateRegistry()

    def suggest(
        self,
        destination: str,
        target_slot: SlotName | str,
        current_stop: ScheduledStop,
        scheduled_stops: Sequence[ScheduledStop | str] = (),
        free_slots: Sequence[SlotName | str] = (),
        pool: Optional[Sequence[PlaceCandidate]] = None,
        visit_date: Optional[date] = None,
        limit: Optional[int] = None,
    ) -> list[PlaceCandidate]:
        slot_name = SlotName.parse(target_slot)
        free = {SlotName.parse(s) for s in free_slots}
        candidates = list(pool) if pool is not None else self.registry.fetch(destination)

        taken = {_name_of(s) for s in scheduled_stops}
        taken.add(current_stop.place_name.strip().lower())

        room = _room_after(current_stop, slot_name, scheduled_stops)
        weekday = WEEKDAYS[visit_date.weekday()] if visit_date else None
        start = current_stop.window.start

        eligible: list[PlaceCandidate] = []
        for cand in candidates:
            if cand.place_name.strip().lower() in taken:
                continue
            if cand.best_slot is not None and cand.best_slot is not slot_name \
                    and cand.best_slot not in free:
                continue
            if cand.duration_mins > room:
                continue
            window = TimeRange.from_start(start, cand.duration_mins)
            status = within_opening_hours(window, cand.opening_hours, cand.closed_on, weekday)
            if status is OpeningStatus.CLOSED:
                continue
            eligible.append(cand)

        target = current_stop.duration_mins
        eligible.sort(key=lambda c: (
            -category_similarity(c.category, current_stop.category),
            -c.priority,
            abs(c.duration_mins - target),
        ))

        out: list[PlaceCandidate] = []
        for cand in eligible[: (limit or config.MAX_ALTERNATES)]:
            alt = copy.deepcopy(cand)
            alt.is_alternate = True
            out.append(alt)
        logger.info(
            "alternates for '%s' (%s): %d of %d candidates",
            current_stop.place_name, slot_name.value, len(out), len(candidates),
        )
        return out


def _name_of(item: ScheduledStop | str) -> str:
    name = item if isinstance(item, str) else item.place_name
    return name.strip().lower()


def _room_after(
    current: ScheduledStop,
    slot_name: SlotName,
    scheduled: Sequence[ScheduledStop | str],
) -> int:
    """Minutes from the current stop's start to the next same-slot stop (or slot end)."""
    start = current.window.start
    limit = canonical_window(slot_name).end
    for s in scheduled:
        if isinstance(s, str) or s.day != current.day or s.slot_name is not slot_name:
            continue
        if s.key == current.key:
            continue
        s_start = s.window.start
        if start < s_start < limit:
            limit = s_start
    return max(0, limit - start)
