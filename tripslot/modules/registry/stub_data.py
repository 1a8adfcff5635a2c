"""
modules/registry/stub_data.py
------------------------------
Built-in candidate pools for offline use and tests. One builder function per
destination returning fresh PlaceCandidate objects.

Opening hours use the "HH:MM-HH:MM[, HH:MM-HH:MM]" format; entry fees are
INR (domestic / foreign visitor). wheelchair_accessible is left as None
where no reliable data exists.
"""

from __future__ import annotations

from typing import Callable, Optional

from tripslot.schemas.itinerary import PlaceCandidate, SlotName


def _p(
    name: str,
    cat: str,
    lat: float,
    lon: float,
    oh: Optional[str],
    hrs: float,
    pri: int,
    tags: list[str],
    best: Optional[SlotName] = None,
    fee: Optional[float] = None,
    fee_foreign: Optional[float] = None,
    closed: Optional[list[str]] = None,
    crowded: bool = False,
    wc: Optional[bool] = None,
    tip: Optional[str] = None,
    food: Optional[str] = None,
    why: Optional[str] = None,
) -> PlaceCandidate:
    """Convenience builder for stub PlaceCandidate rows."""
    return PlaceCandidate(
        place_name=name, category=cat, lat=lat, lon=lon, opening_hours=oh,
        duration_hrs=hrs, priority=pri, tags=tags, best_slot=best,
        entry_fee=fee, entry_fee_foreign=fee_foreign, closed_on=closed or [],
        crowded=crowded, wheelchair_accessible=wc, tip=tip, nearby_food=food,
        why_must_visit=why,
    )


def _chennai() -> list[PlaceCandidate]:
    """Chennai: Mylapore / Triplicane temples, the Marina, George Town food lanes."""
    return [
        # ── Mylapore / Triplicane ─────────────────────────────────────────────
        _p("Kapaleeshwarar Temple", "temple", 13.0339, 80.2696,
           "05:30-12:00, 16:00-21:30", 1.5, 9, ["temples", "spiritual", "architecture"],
           best=SlotName.MORNING, fee=0.0, crowded=True,
           tip="Dress modestly; footwear is left at the gopuram entrance.",
           food="Mylapore's Karpagambal Mess for filter coffee and pongal",
           why="7th-century Dravidian temple with a towering painted gopuram."),
        _p("Parthasarathy Temple", "temple", 13.0540, 80.2766,
           "06:00-12:00, 16:00-21:00", 1.0, 7, ["temples", "spiritual", "history"],
           best=SlotName.MORNING, fee=0.0,
           why="One of the oldest Vishnu temples in the city, built by the Pallavas."),
        _p("San Thome Basilica", "church", 13.0334, 80.2778,
           "06:00-21:00", 0.75, 6, ["architecture", "spiritual", "history"],
           fee=0.0, wc=True,
           why="Neo-Gothic basilica built over the tomb of St. Thomas the Apostle."),
        _p("Ashtalakshmi Temple", "temple", 12.9980, 80.2720,
           "06:30-12:00, 16:00-21:00", 1.0, 6, ["temples", "spiritual", "beach"],
           fee=0.0),
        # ── Marina / Fort ─────────────────────────────────────────────────────
        _p("Marina Beach", "beach", 13.0500, 80.2824,
           "24 hours", 1.5, 8, ["beach", "nature", "photography"],
           best=SlotName.EVENING, fee=0.0, crowded=True, wc=True,
           food="Sundal and murukku carts along the promenade"),
        _p("Fort St. George Museum", "museum", 13.0795, 80.2870,
           "09:00-17:00", 1.5, 7, ["history", "architecture"],
           fee=25.0, fee_foreign=300.0, closed=["Friday"], wc=False,
           why="The first English fortress in India (1644), now an ASI museum."),
        _p("Government Museum Egmore", "museum", 13.0697, 80.2565,
           "09:30-17:00", 2.0, 6, ["history", "art"],
           fee=15.0, fee_foreign=250.0, closed=["Friday"],
           why="Second-oldest museum in India with a celebrated Chola bronze gallery."),
        _p("Valluvar Kottam", "monument", 13.0499, 80.2416,
           "08:00-18:00", 0.75, 4, ["history", "architecture"],
           fee=10.0),
        # ── Food ──────────────────────────────────────────────────────────────
        _p("Murugan Idli Shop", "restaurant", 13.0418, 80.2341,
           "07:00-23:00", 0.75, 7, ["food"],
           best=SlotName.MORNING, fee=0.0, wc=True,
           tip="Order the ghee podi idli with four chutneys."),
        _p("Ratna Cafe", "restaurant", 13.0581, 80.2739,
           "06:00-22:30", 0.75, 6, ["food"], fee=0.0),
        _p("Sowcarpet Street Food Walk", "food_market", 13.0906, 80.2820,
           "17:00-23:00", 1.5, 8, ["food", "nightlife"],
           best=SlotName.EVENING, fee=0.0, crowded=True,
           why="Marwari and Gujarati street snacks in the lanes of George Town."),
        _p("Pondy Bazaar", "market", 13.0415, 80.2347,
           "10:00-22:00", 1.5, 5, ["shopping", "food"],
           crowded=True),
        # ── Day trip ──────────────────────────────────────────────────────────
        _p("DakshinaChitra Heritage Museum", "heritage_village", 12.8255, 80.2418,
           "10:00-18:00", 3.0, 6, ["history", "art", "architecture"],
           fee=250.0, fee_foreign=600.0, closed=["Tuesday"], wc=True),
        _p("Elliot's Beach", "beach", 12.9989, 80.2717,
           "24 hours", 1.0, 5, ["beach", "nature", "nightlife"],
           best=SlotName.NIGHT, fee=0.0),
    ]


def _delhi() -> list[PlaceCandidate]:
    """Delhi: Old Delhi, Lutyens' Delhi and Mehrauli."""
    return [
        _p("Red Fort", "fort", 28.6561, 77.2410,
           "09:30-16:30", 2.0, 9, ["history", "architecture"],
           fee=35.0, fee_foreign=500.0, closed=["Monday"], crowded=True, wc=True,
           why="Shah Jahan's 17th-century fortress-palace, a UNESCO site."),
        _p("Jama Masjid", "mosque", 28.6507, 77.2335,
           "07:00-12:00, 13:30-18:30", 1.0, 7, ["spiritual", "architecture", "history"],
           fee=0.0, crowded=True),
        _p("Chandni Chowk Food Trail", "food_market", 28.6508, 77.2311,
           "10:00-22:00", 1.5, 8, ["food", "shopping"],
           crowded=True, food="Paranthe Wali Gali and Old Famous Jalebi Wala"),
        _p("Humayun's Tomb", "monument", 28.5933, 77.2507,
           "06:00-18:00", 1.5, 8, ["history", "architecture", "photography"],
           fee=35.0, fee_foreign=550.0, wc=True),
        _p("Qutub Minar", "monument", 28.5245, 77.1855,
           "07:00-21:00", 1.5, 8, ["history", "architecture"],
           fee=35.0, fee_foreign=550.0, crowded=True),
        _p("Akshardham Temple", "temple", 28.6127, 77.2773,
           "10:00-18:30", 2.5, 7, ["temples", "spiritual", "architecture"],
           closed=["Monday"], fee=0.0, crowded=True, wc=True),
        _p("Lodhi Garden", "park", 28.5931, 77.2197,
           "06:00-20:00", 1.0, 5, ["nature", "history"], fee=0.0, wc=True),
        _p("India Gate", "monument", 28.6129, 77.2295,
           "24 hours", 0.75, 6, ["history", "photography"],
           best=SlotName.NIGHT, fee=0.0, wc=True),
        _p("Hauz Khas Village", "neighbourhood", 28.5535, 77.1941,
           "10:30-23:30", 2.0, 5, ["nightlife", "food", "art"],
           best=SlotName.EVENING),
    ]


def _jaipur() -> list[PlaceCandidate]:
    """Jaipur: Old City and Amer."""
    return [
        _p("Amber Fort", "fort", 26.9855, 75.8513,
           "08:00-17:30", 3.0, 9, ["history", "architecture", "photography"],
           best=SlotName.MORNING, fee=100.0, fee_foreign=500.0, crowded=True, wc=False),
        _p("City Palace", "palace", 26.9258, 75.8237,
           "09:30-17:00", 2.0, 8, ["history", "art", "architecture"],
           fee=200.0, fee_foreign=700.0),
        _p("Hawa Mahal", "monument", 26.9239, 75.8267,
           "09:00-17:00", 0.75, 8, ["architecture", "photography"],
           fee=50.0, fee_foreign=200.0, crowded=True),
        _p("Jantar Mantar Jaipur", "observatory", 26.9248, 75.8246,
           "09:00-16:30", 1.0, 6, ["history", "architecture"],
           fee=50.0, fee_foreign=200.0, wc=True),
        _p("Nahargarh Fort Sunset Point", "fort", 26.9373, 75.8155,
           "10:00-22:00", 1.5, 6, ["photography", "nature"],
           best=SlotName.EVENING, fee=50.0),
        _p("Chokhi Dhani", "cultural_village", 26.7672, 75.8375,
           "17:00-23:00", 3.0, 6, ["food", "art"],
           best=SlotName.EVENING, fee=900.0),
        _p("Johari Bazaar", "market", 26.9196, 75.8267,
           "10:00-21:00", 1.5, 5, ["shopping"], crowded=True),
        _p("Birla Mandir Jaipur", "temple", 26.8921, 75.8155,
           "06:00-12:00, 15:00-21:00", 0.75, 5, ["temples", "spiritual"], fee=0.0),
    ]


STUB_POOLS: dict[str, Callable[[], list[PlaceCandidate]]] = {
    "chennai": _chennai,
    "delhi":   _delhi,
    "jaipur":  _jaipur,
}

DESTINATION_ALIASES: dict[str, str] = {
    "madras":    "chennai",
    "new delhi": "delhi",
    "pink city": "jaipur",
}
