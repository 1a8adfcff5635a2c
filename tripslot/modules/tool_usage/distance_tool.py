"""
modules/tool_usage/distance_tool.py
-------------------------------------
Transit-time estimation between consecutive stops.

The engine never hard-codes a travel formula: the builder, validator and
replanner receive a TransitEstimator and call estimate(prev, nxt). The
default implementation uses the Haversine formula with a configurable city
speed. No external HTTP calls are made.

Config knobs (config.py):
  TRANSIT_SPEED_KMH        -- average door-to-door speed (default: 20)
  TRANSIT_DEFAULT_MINUTES  -- used when either stop has no coordinates
  TRANSIT_MAX_MINUTES      -- cap for a single leg
"""

from __future__ import annotations

import logging
import math
from typing import Optional, Protocol

from tripslot import config
from tripslot.schemas.itinerary import PlaceCandidate

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Pure maths
# ---------------------------------------------------------------------------

_EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points (Haversine formula) in km."""
    r = _EARTH_RADIUS_KM
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lam = math.radians(lon2 - lon1)
    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lam / 2) ** 2
    )
    return 2 * r * math.asin(math.sqrt(a))


def _km_to_minutes(km: float, speed_kmh: float) -> float:
    """Straight-line km to minutes at a given speed."""
    return (km / speed_kmh) * 60.0


# ---------------------------------------------------------------------------
# Estimator protocol
# ---------------------------------------------------------------------------


class TransitEstimator(Protocol):
    def estimate(self, prev: Optional[PlaceCandidate], nxt: PlaceCandidate) -> int:
        """Whole minutes of travel from *prev* to *nxt* (0 when prev is None)."""
        ...


class HaversineTransitEstimator:
    """
    Travel time = straight-line distance at config.TRANSIT_SPEED_KMH, rounded
    up to whole minutes and capped at TRANSIT_MAX_MINUTES. A leg with a
    missing coordinate costs TRANSIT_DEFAULT_MINUTES.
    """

    def __init__(
        self,
        speed_kmh: float | None = None,
        default_minutes: int | None = None,
        max_minutes: int | None = None,
    ) -> None:
        self.speed_kmh: float = speed_kmh or config.TRANSIT_SPEED_KMH
        self.default_minutes: int = (
            config.TRANSIT_DEFAULT_MINUTES if default_minutes is None else default_minutes
        )
        self.max_minutes: int = max_minutes or config.TRANSIT_MAX_MINUTES

    def estimate(self, prev: Optional[PlaceCandidate], nxt: PlaceCandidate) -> int:
        if prev is None:
            return 0
        if not (prev.has_coords and nxt.has_coords):
            return self.default_minutes
        if prev.lat == nxt.lat and prev.lon == nxt.lon:
            return 0
        km = haversine_km(prev.lat, prev.lon, nxt.lat, nxt.lon)  # type: ignore[arg-type]
        minutes = math.ceil(_km_to_minutes(km, self.speed_kmh))
        if minutes > self.max_minutes:
            logger.debug(
                "transit %s -> %s capped at %d min (raw %d)",
                prev.place_name, nxt.place_name, self.max_minutes, minutes,
            )
        return min(minutes, self.max_minutes)


class FixedTransitEstimator:
    """Constant leg time; useful when no distance data exists at all."""

    def __init__(self, minutes: int = 0) -> None:
        self.minutes = int(minutes)

    def estimate(self, prev: Optional[PlaceCandidate], nxt: PlaceCandidate) -> int:
        return 0 if prev is None else self.minutes
