"""
modules/planning/hotel_planner.py
----------------------------------
Groups trip days into hotel phases and proposes lodgings per phase.

Phase split:
  Each day's centroid is the mean of its stops' coordinates. Days are walked
  in order; a day starts a new phase when its centroid lies more than
  config.PHASE_SPLIT_KM from the running centroid of the current phase.
  Days without coordinates stay in the current phase.

Hotel choice:
  Hotels are filtered to the budget tier's nightly band
  (config.HOTEL_PRICE_BANDS), then to wheelchair-accessible ones when the trip
  needs it (only if any survive), and ranked by distance to the phase
  centroid. The nearest becomes the phase hotel; config.HOTELS_PER_PHASE
  options are kept for the picker.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from tripslot import config
from tripslot.modules.tool_usage.distance_tool import haversine_km
from tripslot.schemas.itinerary import BudgetTier, ItineraryResponse
from tripslot.schemas.trip_record import HotelOption, HotelPhase

logger = logging.getLogger(__name__)

Point = tuple[float, float]


def _centroid(points: list[Point]) -> Optional[Point]:
    if not points:
        return None
    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points),
    )


def day_centroids(itinerary: ItineraryResponse) -> dict[int, Optional[Point]]:
    out: dict[int, Optional[Point]] = {}
    for day in range(1, itinerary.meta.days + 1):
        pts = [(s.lat, s.lon) for s in itinerary.stops_for_day(day) if s.has_coords]
        out[day] = _centroid(pts)  # type: ignore[arg-type]
    return out


def split_phases(
    centroids: dict[int, Optional[Point]],
    split_km: Optional[float] = None,
) -> list[list[int]]:
    """Contiguous day groups; a far-away day opens a new group."""
    limit = config.PHASE_SPLIT_KM if split_km is None else split_km
    groups: list[list[int]] = []
    anchor_pts: list[Point] = []
    for day in sorted(centroids):
        c = centroids[day]
        anchor = _centroid(anchor_pts)
        if groups and c is not None and anchor is not None \
                and haversine_km(anchor[0], anchor[1], c[0], c[1]) > limit:
            groups.append([day])
            anchor_pts = [c]
            continue
        if not groups:
            groups.append([])
        groups[-1].append(day)
        if c is not None:
            anchor_pts.append(c)
    return groups


def rank_hotels(
    hotels: list[HotelOption],
    centre: Optional[Point],
    budget: BudgetTier,
    accessibility_needs: bool = False,
    limit: Optional[int] = None,
) -> list[HotelOption]:
    lo, hi = config.HOTEL_PRICE_BANDS[budget.value]
    pool = [h for h in hotels if lo <= h.price_per_night <= hi]
    if not pool:
        logger.info("no hotel in the %s price band; ranking the full pool", budget.value)
        pool = list(hotels)
    if accessibility_needs:
        accessible = [h for h in pool if h.wheelchair_accessible]
        pool = accessible or pool

    ranked: list[HotelOption] = []
    for h in pool:
        # copies: the same pool is ranked once per phase
        dist = haversine_km(centre[0], centre[1], h.lat, h.lon) if centre else 0.0
        ranked.append(replace(h, distance_km=round(dist, 2)))
    ranked.sort(key=lambda h: (h.distance_km, -h.rating, h.price_per_night))
    return ranked[: (limit or config.HOTELS_PER_PHASE)]


def plan_phases(
    itinerary: ItineraryResponse,
    hotels: list[HotelOption],
    budget: BudgetTier,
    accessibility_needs: bool = False,
) -> list[HotelPhase]:
    """One HotelPhase per contiguous day group, each with a proposed hotel."""
    centroids = day_centroids(itinerary)
    if not centroids:
        return []
    groups = split_phases(centroids)
    trip_centre = _centroid([c for c in centroids.values() if c is not None])

    phases: list[HotelPhase] = []
    for number, days in enumerate(groups, start=1):
        centre = _centroid([centroids[d] for d in days if centroids[d] is not None]) or trip_centre
        options = rank_hotels(hotels, centre, budget, accessibility_needs)
        best = options[0] if options else None
        phases.append(HotelPhase(
            phase=number,
            days=days,
            hotel_name=best.name if best else "",
            hotel_lat=best.lat if best else 0.0,
            hotel_lon=best.lon if best else 0.0,
            distance_km=best.distance_km if best else 0.0,
            hotels_list=options,
            planned_checkin=config.PLANNED_CHECKIN_TIME,
            planned_checkout=config.PLANNED_CHECKOUT_TIME,
        ))
    logger.info(
        "planned %d hotel phase(s) for '%s': %s",
        len(phases), itinerary.meta.destination, [p.days for p in phases],
    )
    return phases
