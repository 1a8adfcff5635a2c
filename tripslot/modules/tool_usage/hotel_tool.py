"""
modules/tool_usage/hotel_tool.py
---------------------------------
Provides hotel data for phase planning.

Stub mode only: hard-coded records per destination, shaped like the
Booking.com search rows the hotel picker renders (name, coords, nightly
price in INR, rating on a 0-5 scale, wheelchair flag). Pools can be replaced
at runtime with register(), the same way the candidate registry works.

review_score normalization: rating = review_score / 2.0  (0–10 → 0–5)
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from tripslot.modules.registry.candidate_registry import normalise_destination
from tripslot.schemas.trip_record import HotelOption

logger = logging.getLogger(__name__)


@dataclass
class _StubHotel:
    name: str
    lat: float
    lon: float
    price_per_night: float
    review_score: float          # Booking.com scale 0–10
    wheelchair_accessible: bool = False

    def to_option(self) -> HotelOption:
        return HotelOption(
            name=self.name,
            lat=self.lat,
            lon=self.lon,
            price_per_night=self.price_per_night,
            rating=round(self.review_score / 2.0, 2),
            wheelchair_accessible=self.wheelchair_accessible,
        )


_STUB_HOTELS: dict[str, list[_StubHotel]] = {
    "chennai": [
        _StubHotel("The Leela Palace Chennai",   13.0170, 80.2740, 14500.0, 9.2, True),
        _StubHotel("Taj Coromandel",             13.0594, 80.2496, 11800.0, 9.0, True),
        _StubHotel("Hotel Savera",               13.0464, 80.2626,  6200.0, 8.2, True),
        _StubHotel("Ginger Chennai Vadapalani",  13.0501, 80.2121,  3400.0, 7.8, True),
        _StubHotel("Triplicane Heritage Lodge",  13.0570, 80.2750,  1800.0, 7.0),
        _StubHotel("Mylapore Residency",         13.0330, 80.2680,  2200.0, 7.4),
        _StubHotel("ECR Beach Resort",           12.8300, 80.2450,  7600.0, 8.4, True),
        _StubHotel("Mahabalipuram Shore Inn",    12.8200, 80.2400,  2600.0, 7.6),
    ],
    "delhi": [
        _StubHotel("The Imperial New Delhi",     28.6254, 77.2183, 16500.0, 9.3, True),
        _StubHotel("Haveli Dharampura",          28.6530, 77.2330,  9800.0, 9.0),
        _StubHotel("Lemon Tree Connaught Place", 28.6304, 77.2177,  5200.0, 8.1, True),
        _StubHotel("Zostel Paharganj",           28.6430, 77.2150,  1200.0, 7.6),
        _StubHotel("Mehrauli Courtyard Stay",    28.5250, 77.1860,  2900.0, 7.8),
    ],
    "jaipur": [
        _StubHotel("Rambagh Palace",             26.8980, 75.8080, 32000.0, 9.5, True),
        _StubHotel("Alsisar Haveli",             26.9220, 75.8020,  6800.0, 8.7),
        _StubHotel("Hotel Pearl Palace",         26.9180, 75.7960,  2400.0, 9.1),
        _StubHotel("Amer View Guest House",      26.9830, 75.8500,  1900.0, 7.9),
    ],
}


class HotelTool:
    """Destination → list[HotelOption]. Safe to share across threads."""

    def __init__(self, use_builtin: bool = True) -> None:
        self._use_builtin = use_builtin
        self._pools: dict[str, list[HotelOption]] = {}
        self._lock = threading.Lock()

    def register(self, destination: str, hotels: Iterable[HotelOption]) -> None:
        key = normalise_destination(destination)
        with self._lock:
            self._pools[key] = [copy.deepcopy(h) for h in hotels]

    def fetch(self, destination: str) -> list[HotelOption]:
        """Fresh copies of the hotel pool ([] when the destination is unknown)."""
        key = normalise_destination(destination)
        with self._lock:
            pool = self._pools.get(key)
            if pool is not None:
                return [copy.deepcopy(h) for h in pool]
        if self._use_builtin and key in _STUB_HOTELS:
            return [h.to_option() for h in _STUB_HOTELS[key]]
        logger.warning("no hotel data for destination '%s'", destination)
        return []
