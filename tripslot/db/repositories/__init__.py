"""Repositories over the configured store backend."""

from tripslot.db.repositories.itinerary_repo import (
    InMemoryItineraryStore,
    ItineraryStore,
    RedisItineraryStore,
    make_store,
)

__all__ = ["InMemoryItineraryStore", "ItineraryStore", "RedisItineraryStore", "make_store"]
