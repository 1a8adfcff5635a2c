"""
db/redis_client.py
-------------------
Shared redis-py connection for the itinerary store, plus its key schema.

Keys (all under REDIS_KEY_PREFIX, default "tripslot"):

  <prefix>:itinerary:{itinerary_id}
      String, JSON of ItineraryRecord.to_dict(). TTL is ITINERARY_TTL
      seconds (0 keeps it forever) and is reset on every write.

  <prefix>:user:{user_id}:itineraries
      Set of the user's itinerary ids. Ids whose record has expired are
      pruned lazily by list_for_user().

  <prefix>:ratings:{place_id}
      List of UserRating JSON, oldest first. No TTL.

Connection: REDIS_URL when set, otherwise REDIS_HOST / REDIS_PORT /
REDIS_DB / REDIS_PASSWORD. Responses are decoded to str.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional

import redis

from tripslot import config

logger = logging.getLogger(__name__)

_connection: Optional[redis.Redis] = None
_connection_lock = threading.Lock()


def _connect() -> redis.Redis:
    if config.REDIS_URL:
        return redis.Redis.from_url(config.REDIS_URL, decode_responses=True)
    return redis.Redis(
        host=config.REDIS_HOST,
        port=config.REDIS_PORT,
        db=config.REDIS_DB,
        password=config.REDIS_PASSWORD or None,
        decode_responses=True,
    )


def get_redis() -> redis.Redis:
    """Process-wide client; the pool is created on first use."""
    global _connection
    with _connection_lock:
        if _connection is None:
            _connection = _connect()
            logger.info("redis pool opened for the itinerary store")
        return _connection


def close_redis() -> None:
    """Release the pool. The next get_redis() opens a fresh one."""
    global _connection
    with _connection_lock:
        if _connection is not None:
            _connection.close()
            _connection = None


def redis_status() -> str:
    """'ok' when the server answers PING, else 'unreachable'."""
    try:
        get_redis().ping()
    except redis.RedisError as exc:
        logger.warning("redis ping failed: %s", exc)
        return "unreachable"
    return "ok"


# ── Key schema ─────────────────────────────────────────────────────────────────

def itinerary_key(itinerary_id: str) -> str:
    return f"{config.REDIS_KEY_PREFIX}:itinerary:{itinerary_id}"


def user_index_key(user_id: str) -> str:
    return f"{config.REDIS_KEY_PREFIX}:user:{user_id}:itineraries"


def rating_key(place_id: str) -> str:
    return f"{config.REDIS_KEY_PREFIX}:ratings:{place_id}"
