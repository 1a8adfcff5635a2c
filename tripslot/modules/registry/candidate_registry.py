"""
modules/registry/candidate_registry.py
----------------------------------------
Place Candidate Registry — the pool of places eligible for scheduling, keyed
by destination.

Sources:
  1. Built-in pools (stub_data.STUB_POOLS) for offline use.
  2. Pools registered at runtime with register(), which take precedence.

fetch() always returns fresh copies so callers can mutate priority / flags
without touching the shared pool. An unknown destination yields an empty
pool (an empty itinerary downstream), never an exception.
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Iterable, Optional

from tripslot import config
from tripslot.errors import InvalidInputError
from tripslot.modules.registry.stub_data import DESTINATION_ALIASES, STUB_POOLS
from tripslot.schemas.itinerary import PlaceCandidate, TripMood, TripRequest

logger = logging.getLogger(__name__)

# Tags that express each trip mood
_MOOD_TAGS: dict[TripMood, frozenset[str]] = {
    TripMood.RELAXED:   frozenset({"beach", "nature", "art"}),
    TripMood.ADVENTURE: frozenset({"adventure", "trekking", "nature", "wildlife", "waterfalls"}),
    TripMood.SPIRITUAL: frozenset({"temples", "spiritual"}),
    TripMood.ROMANTIC:  frozenset({"beach", "photography", "nightlife"}),
    TripMood.CULTURAL:  frozenset({"history", "art", "architecture", "temples"}),
    TripMood.FOODIE:    frozenset({"food"}),
}


def normalise_destination(destination: str) -> str:
    key = str(destination or "").strip().lower()
    return DESTINATION_ALIASES.get(key, key)


class CandidateRegistry:
    """Destination → list[PlaceCandidate]. Safe to share across threads."""

    def __init__(self, use_builtin: bool = True) -> None:
        self._use_builtin = use_builtin
        self._pools: dict[str, list[PlaceCandidate]] = {}
        self._lock = threading.Lock()

    # ── Mutation ──────────────────────────────────────────────────────────────

    def register(self, destination: str, candidates: Iterable[PlaceCandidate]) -> None:
        """Replace the pool for *destination*. Duplicate place names are rejected."""
        key = normalise_destination(destination)
        if not key:
            raise InvalidInputError("destination must not be empty")
        pool = [copy.deepcopy(c) for c in candidates]
        seen: set[str] = set()
        for c in pool:
            name = c.place_name.strip().lower()
            if name in seen:
                raise InvalidInputError(
                    f"duplicate place_name '{c.place_name}' in pool for '{destination}'"
                )
            seen.add(name)
        with self._lock:
            self._pools[key] = pool
        logger.info("registered %d candidates for '%s'", len(pool), key)

    # ── Queries ───────────────────────────────────────────────────────────────

    def has(self, destination: str) -> bool:
        key = normalise_destination(destination)
        with self._lock:
            if key in self._pools:
                return True
        return self._use_builtin and key in STUB_POOLS

    def destinations(self) -> list[str]:
        with self._lock:
            names = set(self._pools)
        if self._use_builtin:
            names |= set(STUB_POOLS)
        return sorted(names)

    def fetch(self, destination: str) -> list[PlaceCandidate]:
        """Fresh copies of the pool for *destination* ([] when unknown)."""
        key = normalise_destination(destination)
        with self._lock:
            pool = self._pools.get(key)
            if pool is not None:
                return [copy.deepcopy(c) for c in pool]
        if self._use_builtin and key in STUB_POOLS:
            return STUB_POOLS[key]()
        logger.warning("no candidate data for destination '%s'", destination)
        return []

    def find(self, destination: str, place_name: str) -> Optional[PlaceCandidate]:
        target = place_name.strip().lower()
        for c in self.fetch(destination):
            if c.place_name.strip().lower() == target:
                return c
        return None

    # ── Request shaping ───────────────────────────────────────────────────────

    def prepare(
        self,
        request: TripRequest,
        pool: Optional[list[PlaceCandidate]] = None,
    ) -> list[PlaceCandidate]:
        """
        Pool adjusted to a TripRequest: interest matches and mood matches raise
        priority, crowded places are demoted when avoid_crowded is set.
        Nothing is removed; the builder decides what fits.
        """
        candidates = (
            [copy.deepcopy(c) for c in pool] if pool is not None else self.fetch(request.destination)
        )
        mood_tags = _MOOD_TAGS.get(request.mood, frozenset())
        for c in candidates:
            tags = {t.lower() for t in c.tags}
            if c.category:
                tags.add(c.category.lower())
            if tags & request.interests:
                c.priority += config.INTEREST_PRIORITY_BOOST
            if tags & mood_tags:
                c.priority += config.MOOD_PRIORITY_BOOST
            if request.avoid_crowded and c.crowded:
                c.priority -= config.CROWDED_PRIORITY_PENALTY
        return candidates
