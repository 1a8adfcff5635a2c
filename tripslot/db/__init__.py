"""
db/
----
Persistence for saved itineraries.

Storage backends (config.STORE_BACKEND):
  in_memory — process-local dict, default for development and tests
  redis     — redis-py; one JSON string per itinerary plus a per-user id set
              schema: db/redis_client.py

Public exports (import from here for convenience):
    from tripslot.db import get_redis, make_store
"""

from tripslot.db.redis_client import get_redis
from tripslot.db.repositories.itinerary_repo import make_store

__all__ = ["get_redis", "make_store"]
