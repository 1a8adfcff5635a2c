"""
modules/validation/itinerary_validator.py
------------------------------------------
Schema guards applied before a stop sequence is committed to the store.

  Stop sequence (full itinerary):
    ✓ Every stop references a slot of the trip's slot_template
    ✓ Stop window lies inside its slot window
    ✓ Stop window length equals its duration
    ✓ No two stops in the same slot overlap  [start, end)
    ✓ Σ(duration + transit) per slot ≤ available_mins
    ✓ No duplicate (day, slot_id, start_time) key
    ✓ checked_out implies checked_in

  Against the previously committed sequence:
    ✓ A checked-in / checked-out stop keeps its key, place and window
    ✓ Check flags only move forward (no un-check)

Usage:
    result = validate_stop_sequence(template, stops, previous=old_stops)
    if not result:
        raise InvalidInputError("; ".join(result.errors))
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from tripslot.modules.temporal.time_model import overlaps
from tripslot.schemas.itinerary import ScheduledStop, TimeSlot


# ── Result dataclass ───────────────────────────────────────────────────────────

@dataclass
class ValidationResult:
    """
    Outcome of a single validation run.

    Attributes:
        valid:  True iff there are zero errors.
        errors: Human-readable list of failure reasons.
    """
    valid: bool
    errors: list[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return self.valid


# ── Stop sequence ──────────────────────────────────────────────────────────────

def validate_stop_sequence(
    slot_template: Sequence[TimeSlot],
    stops: Sequence[ScheduledStop],
    previous: Optional[Sequence[ScheduledStop]] = None,
) -> ValidationResult:
    errors: list[str] = []
    slots = {s.slot_id: s for s in slot_template}
    by_slot: dict[str, list[ScheduledStop]] = {}
    seen_keys: set[tuple[int, str, str]] = set()

    for stop in stops:
        label = f"'{stop.place_name}' ({stop.slot_id} {stop.start_time})"
        slot = slots.get(stop.slot_id)
        if slot is None:
            errors.append(f"{label}: slot {stop.slot_id} is not part of this trip")
            continue
        if stop.key in seen_keys:
            errors.append(f"{label}: duplicate stop key")
        seen_keys.add(stop.key)
        if not slot.window.contains(stop.window):
            errors.append(
                f"{label}: window {stop.start_time}-{stop.end_time} falls outside "
                f"slot {slot.start_time}-{slot.end_time}"
            )
        if stop.window.minutes != stop.duration_mins:
            errors.append(
                f"{label}: window {stop.start_time}-{stop.end_time} is {stop.window.minutes} min "
                f"but duration is {stop.duration_mins} min"
            )
        if stop.checked_out and not stop.checked_in:
            errors.append(f"{label}: checked_out without checked_in")
        by_slot.setdefault(stop.slot_id, []).append(stop)

    # ── Per-slot invariants ───────────────────────────────────────────────────
    for slot_id, members in by_slot.items():
        slot = slots[slot_id]
        used = sum(s.used_mins for s in members)
        if used > slot.available_mins:
            errors.append(
                f"slot {slot_id}: {used} min scheduled exceeds capacity {slot.available_mins} min"
            )
        ordered = sorted(members, key=lambda s: s.window.start)
        for a, b in zip(ordered, ordered[1:]):
            if overlaps(a.window, b.window):
                errors.append(
                    f"slot {slot_id}: '{a.place_name}' {a.start_time}-{a.end_time} overlaps "
                    f"'{b.place_name}' {b.start_time}-{b.end_time}"
                )

    # ── Locked stops ──────────────────────────────────────────────────────────
    if previous is not None:
        current = {s.key: s for s in stops}
        for old in previous:
            if not old.locked:
                continue
            new = current.get(old.key)
            label = f"'{old.place_name}' ({old.slot_id} {old.start_time})"
            if new is None:
                errors.append(f"{label}: checked-in stop cannot be removed or moved")
                continue
            if new.place_name != old.place_name or new.end_time != old.end_time:
                errors.append(f"{label}: checked-in stop cannot be altered")
            if (old.checked_in and not new.checked_in) or (old.checked_out and not new.checked_out):
                errors.append(f"{label}: check-in state cannot be reverted")

    return ValidationResult(valid=not errors, errors=errors)
