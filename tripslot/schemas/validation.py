"""
schemas/validation.py
---------------------
Transient verdict structures produced by the placement validator.
Never persisted on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class ConflictType(str, Enum):
    CAPACITY_EXCEEDED = "capacity_exceeded"
    TIME_OVERLAP = "time_overlap"
    CLOSED = "closed"
    HOURS_UNVERIFIED = "hours_unverified"
    BUDGET_MISMATCH = "budget_mismatch"
    ACCESSIBILITY_UNKNOWN = "accessibility_unknown"
    NOT_ACCESSIBLE = "not_accessible"
    DUPLICATE_PLACE = "duplicate_place"


@dataclass(frozen=True)
class ValidationConflict:
    type: ConflictType
    severity: Severity
    message: str                       # human-readable
    detail: str                        # machine-readable key=value explanation

    def to_dict(self) -> dict:
        return {
            "type":     self.type.value,
            "severity": self.severity.value,
            "message":  self.message,
            "detail":   self.detail,
        }


@dataclass
class PlacementVerdict:
    """
    Outcome of PlacementValidator.validate().

    valid is False iff at least one error-severity conflict fired; warnings
    never block.
    """
    place_name: str
    target_day: int
    target_slot: str
    conflicts: list[ValidationConflict] = field(default_factory=list)
    warnings: list[ValidationConflict] = field(default_factory=list)
    estimated_start: Optional[str] = None
    estimated_end: Optional[str] = None
    remaining_mins_in_slot: Optional[int] = None
    travel_mins_from_prev: int = 0

    @property
    def valid(self) -> bool:
        return not any(c.severity is Severity.ERROR for c in self.conflicts)

    def add(self, conflict: ValidationConflict) -> None:
        if conflict.severity is Severity.ERROR:
            self.conflicts.append(conflict)
        else:
            self.warnings.append(conflict)

    def to_dict(self) -> dict:
        return {
            "valid":                  self.valid,
            "place_name":             self.place_name,
            "target_slot":            self.target_slot,
            "target_day":             self.target_day,
            "conflicts":              [c.to_dict() for c in self.conflicts],
            "warnings":               [w.to_dict() for w in self.warnings],
            "estimated_start":        self.estimated_start,
            "estimated_end":          self.estimated_end,
            "remaining_mins_in_slot": self.remaining_mins_in_slot,
            "travel_mins_from_prev":  self.travel_mins_from_prev,
        }
