"""
api/deps.py
-----------
Shared route plumbing: the process-wide ItineraryEngine and the mapping from
engine errors to HTTP status codes.

Tests swap the engine with app.dependency_overrides[get_engine].
"""

from __future__ import annotations

import threading
from typing import Optional

from fastapi import HTTPException

from tripslot.engine import ItineraryEngine
from tripslot.errors import (
    ConcurrentUpdateError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    TripSlotError,
)

_engine: Optional[ItineraryEngine] = None
_engine_lock = threading.Lock()


def get_engine() -> ItineraryEngine:
    global _engine
    with _engine_lock:
        if _engine is None:
            _engine = ItineraryEngine()
        return _engine


def http_error(exc: TripSlotError) -> HTTPException:
    """InvalidInput → 422, NotFound → 404, InvalidTransition / ConcurrentUpdate → 409."""
    if isinstance(exc, (InvalidTransitionError, ConcurrentUpdateError)):
        status = 409
    elif isinstance(exc, NotFoundError):
        status = 404
    elif isinstance(exc, InvalidInputError):
        status = 422
    else:
        status = 500
    return HTTPException(status_code=status, detail=str(exc))
