"""
modules/planning/day_packer.py
-------------------------------
Per-day packing step shared by the Itinerary Builder and the Dynamic
Replanner.

Given one day's slot grid and an ordered list of items (each aimed at a
slot), the packer lays stops back-to-back from the slot start:

    start(stop) = max(slot_start, end(prev stop)) + transit(prev → stop)
    end(stop)   = start(stop) + duration

Blocked intervals (late check-in window, locked stops, late check-out
window) are carved out of the slot windows first; a stop never crosses one.
Transit always comes from the chronologically previous stop of the same day
(none for the first stop) and is charged to the slot the stop sits in, so
for every slot  Σ(duration + transit) ≤ available_mins  holds by construction.

Modes:
  pinned (spill=False) — an item either fits in its own slot or overflows.
  spill  (spill=True)  — an item that no longer fits may move to a later slot
                         of the same day; chronological order is preserved.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Sequence

from tripslot.modules.temporal.time_model import (
    OpeningStatus,
    TimeRange,
    subtract,
    within_opening_hours,
)
from tripslot.modules.tool_usage.distance_tool import TransitEstimator
from tripslot.schemas.itinerary import PlaceCandidate, ScheduledStop, SlotName, TimeSlot


@dataclass
class PackItem:
    """One place aimed at a slot. duration_mins overrides the place's own (compression)."""
    place: PlaceCandidate
    slot_name: SlotName
    duration_mins: int = 0

    def __post_init__(self) -> None:
        if self.duration_mins <= 0:
            self.duration_mins = self.place.duration_mins


@dataclass
class DayPack:
    day: int
    stops: list[ScheduledStop] = field(default_factory=list)
    overflow: list[PackItem] = field(default_factory=list)
    placed: list[PackItem] = field(default_factory=list)    # parallel to stops

    @property
    def complete(self) -> bool:
        return not self.overflow

    def stop_for(self, item: PackItem) -> Optional[ScheduledStop]:
        for placed, stop in zip(self.placed, self.stops):
            if placed is item:
                return stop
        return None


def occupied_range(stop: ScheduledStop) -> TimeRange:
    """Window a stop holds on the timeline, including its inbound transit."""
    w = stop.window
    return TimeRange(w.start - stop.travel_mins_from_prev, w.end)


class DayPacker:
    """Stateless; safe to share."""

    def __init__(self, estimator: TransitEstimator, enforce_hours: bool = True) -> None:
        self.estimator = estimator
        self.enforce_hours = enforce_hours

    def pack(
        self,
        day: int,
        slots: Sequence[TimeSlot],
        items: Iterable[PackItem],
        locked: Sequence[ScheduledStop] = (),
        blocked: Sequence[TimeRange] = (),
        weekday: Optional[str] = None,
        spill: bool = False,
    ) -> DayPack:
        ordered_slots = sorted(slots, key=lambda s: s.slot_name.order)
        slot_index = {s.slot_name: i for i, s in enumerate(ordered_slots)}
        occupied = list(blocked) + [occupied_range(s) for s in locked]
        free = [subtract(s.window, occupied) for s in ordered_slots]

        result = DayPack(day=day)
        if not ordered_slots:
            result.overflow = list(items)
            return result

        cursor_slot = 0
        cursor_pos = ordered_slots[0].window.start
        # stable: items keep their relative order inside a slot
        for item in sorted(items, key=lambda it: it.slot_name.order):
            first = slot_index.get(item.slot_name)
            if first is None:
                result.overflow.append(item)
                continue
            if spill:
                tries = range(max(first, cursor_slot), len(ordered_slots))
            else:
                tries = [first] if first >= cursor_slot else []

            stop: Optional[ScheduledStop] = None
            for i in tries:
                pos = cursor_pos if i == cursor_slot else ordered_slots[i].window.start
                stop = self._fit(day, ordered_slots[i], free[i], pos, item,
                                 result.stops, locked, weekday)
                if stop is not None:
                    cursor_slot, cursor_pos = i, stop.window.end
                    break
            if stop is None:
                result.overflow.append(item)
            else:
                result.stops.append(stop)
                result.placed.append(item)
        return result

    # ── internals ─────────────────────────────────────────────────────────────

    def _fit(
        self,
        day: int,
        slot: TimeSlot,
        segments: list[TimeRange],
        pos: int,
        item: PackItem,
        placed: list[ScheduledStop],
        locked: Sequence[ScheduledStop],
        weekday: Optional[str],
    ) -> Optional[ScheduledStop]:
        for seg in segments:
            if seg.end <= pos:
                continue
            start_pos = max(seg.start, pos)
            prev = _prev_at(start_pos, placed, locked)
            transit = self.estimator.estimate(prev, item.place)
            window = TimeRange.from_start(start_pos + transit, item.duration_mins)
            if window.end > seg.end:
                continue
            status = within_opening_hours(
                window, item.place.opening_hours, item.place.closed_on, weekday,
            )
            if status is OpeningStatus.CLOSED and self.enforce_hours:
                continue
            return ScheduledStop.from_candidate(
                item.place,
                day=day,
                slot_name=slot.slot_name,
                window=window,
                travel_mins_from_prev=transit,
                opening_hours_unverified=status is OpeningStatus.UNKNOWN,
            )
        return None


def _prev_at(
    pos: int,
    placed: list[ScheduledStop],
    locked: Sequence[ScheduledStop],
) -> Optional[ScheduledStop]:
    """Latest stop of the day ending at or before *pos*."""
    best: Optional[ScheduledStop] = None
    for s in list(placed) + list(locked):
        end = s.window.end
        if end <= pos and (best is None or end > best.window.end):
            best = s
    return best
