"""
errors.py
---------
Exceptions raised by the engine. Business-rule violations found while
validating a placement are *not* raised; they travel as ValidationConflict
entries (see schemas/validation.py).
"""

from __future__ import annotations


class TripSlotError(Exception):
    """Base class for every engine error."""

    code: str = "ERROR_ENGINE"

    def __init__(self, message: str) -> None:
        super().__init__(f"{self.code}: {message}")
        self.message = message


class InvalidInputError(TripSlotError, ValueError):
    """Malformed time, out-of-range day count, missing required field."""

    code = "ERROR_INVALID_INPUT"


class NotFoundError(TripSlotError, LookupError):
    """Unknown itinerary, phase, day or stop reference."""

    code = "ERROR_NOT_FOUND"


class InvalidTransitionError(InvalidInputError):
    """State machine refused the transition (e.g. check-out before check-in)."""

    code = "ERROR_INVALID_TRANSITION"


class ConcurrentUpdateError(TripSlotError):
    """The stored itinerary version moved on since the caller read it."""

    code = "ERROR_CONCURRENT_UPDATE"
