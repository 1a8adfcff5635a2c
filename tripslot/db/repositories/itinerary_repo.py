"""
db/repositories/itinerary_repo.py
----------------------------------
Read/write access to saved ItineraryRecords and place ratings.

Every write is a compare-and-set on `version`: create() requires the id to
be new, replace() requires the stored version to equal expected_version and
raises ConcurrentUpdateError otherwise. Callers bump record.version before
calling replace().

Backends:
  InMemoryItineraryStore — dict guarded by a lock; records are stored as
                           JSON-shaped dicts so callers never share objects.
  RedisItineraryStore    — JSON under itinerary:{id}; the CAS runs inside a
                           WATCH / MULTI transaction.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

import redis

from tripslot import config
from tripslot.db.redis_client import get_redis, itinerary_key, rating_key, user_index_key
from tripslot.errors import ConcurrentUpdateError, InvalidInputError, NotFoundError
from tripslot.schemas.trip_record import ItineraryRecord, UserRating

logger = logging.getLogger(__name__)


class ItineraryStore(ABC):

    @abstractmethod
    def create(self, record: ItineraryRecord) -> None:
        ...

    @abstractmethod
    def get(self, itinerary_id: str) -> ItineraryRecord:
        """Raises NotFoundError when the id is unknown."""

    @abstractmethod
    def list_for_user(self, user_id: str) -> list[ItineraryRecord]:
        ...

    @abstractmethod
    def replace(self, record: ItineraryRecord, expected_version: int) -> None:
        ...

    @abstractmethod
    def add_rating(self, rating: UserRating) -> None:
        """Append-only; a user may rate the same place more than once."""

    @abstractmethod
    def ratings_for_place(self, place_id: str) -> list[UserRating]:
        ...


# ── In-memory ──────────────────────────────────────────────────────────────────

class InMemoryItineraryStore(ItineraryStore):

    def __init__(self) -> None:
        self._rows: dict[str, dict] = {}
        self._ratings: dict[str, list[dict]] = {}
        self._lock = threading.Lock()

    def create(self, record: ItineraryRecord) -> None:
        with self._lock:
            if record.itinerary_id in self._rows:
                raise InvalidInputError(f"itinerary {record.itinerary_id} already exists")
            self._rows[record.itinerary_id] = record.to_dict()

    def get(self, itinerary_id: str) -> ItineraryRecord:
        with self._lock:
            row = self._rows.get(itinerary_id)
        if row is None:
            raise NotFoundError(f"itinerary {itinerary_id} not found")
        return ItineraryRecord.from_dict(row)

    def list_for_user(self, user_id: str) -> list[ItineraryRecord]:
        with self._lock:
            rows = [r for r in self._rows.values() if r["user_id"] == user_id]
        records = [ItineraryRecord.from_dict(r) for r in rows]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def replace(self, record: ItineraryRecord, expected_version: int) -> None:
        with self._lock:
            row = self._rows.get(record.itinerary_id)
            if row is None:
                raise NotFoundError(f"itinerary {record.itinerary_id} not found")
            if row["version"] != expected_version:
                raise ConcurrentUpdateError(
                    f"itinerary {record.itinerary_id} is at version {row['version']}, "
                    f"expected {expected_version}"
                )
            self._rows[record.itinerary_id] = record.to_dict()

    def add_rating(self, rating: UserRating) -> None:
        with self._lock:
            self._ratings.setdefault(rating.place_id, []).append(rating.to_dict())

    def ratings_for_place(self, place_id: str) -> list[UserRating]:
        with self._lock:
            rows = list(self._ratings.get(place_id, ()))
        return [UserRating.from_dict(r) for r in rows]


# ── Redis ──────────────────────────────────────────────────────────────────────

class RedisItineraryStore(ItineraryStore):

    def __init__(self, client: Optional[redis.Redis] = None, ttl: Optional[int] = None) -> None:
        self._client = client
        self.ttl = config.ITINERARY_TTL if ttl is None else ttl

    @property
    def client(self) -> redis.Redis:
        return self._client or get_redis()

    def _encode(self, record: ItineraryRecord) -> str:
        return json.dumps(record.to_dict(), ensure_ascii=False)

    def create(self, record: ItineraryRecord) -> None:
        key = itinerary_key(record.itinerary_id)
        # SET NX: refuse to overwrite an existing id
        written = self.client.set(key, self._encode(record), nx=True, ex=self.ttl or None)
        if not written:
            raise InvalidInputError(f"itinerary {record.itinerary_id} already exists")
        self.client.sadd(user_index_key(record.user_id), record.itinerary_id)

    def get(self, itinerary_id: str) -> ItineraryRecord:
        raw = self.client.get(itinerary_key(itinerary_id))
        if raw is None:
            raise NotFoundError(f"itinerary {itinerary_id} not found")
        return ItineraryRecord.from_dict(json.loads(raw))

    def list_for_user(self, user_id: str) -> list[ItineraryRecord]:
        ids = sorted(self.client.smembers(user_index_key(user_id)))
        records: list[ItineraryRecord] = []
        for itinerary_id in ids:
            raw = self.client.get(itinerary_key(itinerary_id))
            if raw is None:
                # expired; keep the index tidy
                self.client.srem(user_index_key(user_id), itinerary_id)
                continue
            records.append(ItineraryRecord.from_dict(json.loads(raw)))
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def replace(self, record: ItineraryRecord, expected_version: int) -> None:
        key = itinerary_key(record.itinerary_id)
        with self.client.pipeline() as pipe:
            try:
                pipe.watch(key)
                raw = pipe.get(key)
                if raw is None:
                    raise NotFoundError(f"itinerary {record.itinerary_id} not found")
                stored = json.loads(raw).get("version")
                if stored != expected_version:
                    raise ConcurrentUpdateError(
                        f"itinerary {record.itinerary_id} is at version {stored}, "
                        f"expected {expected_version}"
                    )
                pipe.multi()
                pipe.set(key, self._encode(record), ex=self.ttl or None)
                pipe.execute()
            except redis.WatchError as exc:
                raise ConcurrentUpdateError(
                    f"itinerary {record.itinerary_id} changed during the update"
                ) from exc

    def add_rating(self, rating: UserRating) -> None:
        self.client.rpush(rating_key(rating.place_id), json.dumps(rating.to_dict(), ensure_ascii=False))

    def ratings_for_place(self, place_id: str) -> list[UserRating]:
        return [UserRating.from_dict(json.loads(raw)) for raw in self.client.lrange(rating_key(place_id), 0, -1)]


def make_store(backend: Optional[str] = None) -> ItineraryStore:
    """Store for config.STORE_BACKEND ("in_memory" | "redis")."""
    name = (backend or config.STORE_BACKEND).strip().lower()
    if name == "redis":
        logger.info("itinerary store: redis %s:%s/%s", config.REDIS_HOST, config.REDIS_PORT, config.REDIS_DB)
        return RedisItineraryStore()
    if name == "in_memory":
        return InMemoryItineraryStore()
    raise InvalidInputError(f"unknown STORE_BACKEND '{name}'; expected in_memory or redis")
