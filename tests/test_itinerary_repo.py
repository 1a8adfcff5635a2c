import json
from unittest.mock import MagicMock, patch

import pytest
import redis

from tripslot import config
from tripslot.db import redis_client
from tripslot.db.redis_client import itinerary_key, rating_key, user_index_key
from tripslot.db.repositories.itinerary_repo import (
    InMemoryItineraryStore,
    RedisItineraryStore,
    make_store,
)
from tripslot.errors import ConcurrentUpdateError, InvalidInputError, NotFoundError
from tripslot.schemas.trip_record import UserRating

from tests.factories import record, stop


def _rec(version=1):
    rec = record([stop("Temple", 1, "morning", "08:00", "09:00")])
    rec.version = version
    return rec


def _raw(rec):
    return json.dumps(rec.to_dict())


# ── In-memory ─────────────────────────────────────────────────────────────────

def test_in_memory_compare_and_set():
    store = InMemoryItineraryStore()
    rec = _rec()
    store.create(rec)
    with pytest.raises(InvalidInputError):
        store.create(rec)

    rec.version = 2
    store.replace(rec, expected_version=1)
    assert store.get(rec.itinerary_id).version == 2
    with pytest.raises(ConcurrentUpdateError):
        store.replace(rec, expected_version=1)


def test_in_memory_returns_copies():
    store = InMemoryItineraryStore()
    store.create(_rec())
    first = store.get("itin-test")
    first.itinerary.itinerary.clear()
    assert len(store.get("itin-test").itinerary.itinerary) == 1


def test_in_memory_ratings_append_per_place():
    store = InMemoryItineraryStore()
    store.add_rating(UserRating("u1", "p1", "Fort", 3))
    store.add_rating(UserRating("u1", "p1", "Fort", 5, "better at dusk"))
    store.add_rating(UserRating("u2", "p2", "Lake", 4))
    assert [r.rating for r in store.ratings_for_place("p1")] == [3, 5]
    assert store.ratings_for_place("nowhere") == []


# ── Redis (mocked client) ─────────────────────────────────────────────────────

@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def pipe(client):
    p = MagicMock()
    client.pipeline.return_value.__enter__.return_value = p
    return p


def test_redis_create_sets_nx_and_indexes_user(client):
    client.set.return_value = True
    RedisItineraryStore(client, ttl=60).create(_rec())

    args, kwargs = client.set.call_args
    assert args[0] == itinerary_key("itin-test")
    assert kwargs == {"nx": True, "ex": 60}
    client.sadd.assert_called_once_with(user_index_key("user_001"), "itin-test")


def test_redis_create_refuses_existing_id(client):
    client.set.return_value = None
    with pytest.raises(InvalidInputError):
        RedisItineraryStore(client).create(_rec())
    client.sadd.assert_not_called()


def test_redis_get(client):
    client.get.return_value = None
    with pytest.raises(NotFoundError):
        RedisItineraryStore(client).get("missing")

    client.get.return_value = _raw(_rec())
    assert RedisItineraryStore(client).get("itin-test").user_id == "user_001"


def test_redis_list_drops_expired_ids(client):
    client.smembers.return_value = {"itin-test", "gone"}
    client.get.side_effect = lambda key: _raw(_rec()) if key == itinerary_key("itin-test") else None

    records = RedisItineraryStore(client).list_for_user("user_001")
    assert [r.itinerary_id for r in records] == ["itin-test"]
    client.srem.assert_called_once_with(user_index_key("user_001"), "gone")


def test_redis_replace_runs_in_transaction(client, pipe):
    pipe.get.return_value = _raw(_rec(version=1))
    RedisItineraryStore(client, ttl=0).replace(_rec(version=2), expected_version=1)

    pipe.watch.assert_called_once_with(itinerary_key("itin-test"))
    pipe.multi.assert_called_once()
    args, kwargs = pipe.set.call_args
    assert json.loads(args[1])["version"] == 2
    assert kwargs == {"ex": None}
    pipe.execute.assert_called_once()


def test_redis_replace_version_mismatch(client, pipe):
    pipe.get.return_value = _raw(_rec(version=3))
    with pytest.raises(ConcurrentUpdateError):
        RedisItineraryStore(client).replace(_rec(version=2), expected_version=1)
    pipe.execute.assert_not_called()


def test_redis_replace_watch_error(client, pipe):
    pipe.get.return_value = _raw(_rec(version=1))
    pipe.execute.side_effect = redis.WatchError()
    with pytest.raises(ConcurrentUpdateError):
        RedisItineraryStore(client).replace(_rec(version=2), expected_version=1)


def test_redis_replace_missing(client, pipe):
    pipe.get.return_value = None
    with pytest.raises(NotFoundError):
        RedisItineraryStore(client).replace(_rec(version=2), expected_version=1)


def test_make_store():
    assert isinstance(make_store("in_memory"), InMemoryItineraryStore)
    assert isinstance(make_store(" Redis "), RedisItineraryStore)
    with pytest.raises(InvalidInputError):
        make_store("postgres")


# ── Connection helpers ────────────────────────────────────────────────────────

def test_keys_carry_the_configured_prefix(monkeypatch):
    monkeypatch.setattr(config, "REDIS_KEY_PREFIX", "staging")
    assert itinerary_key("abc") == "staging:itinerary:abc"
    assert user_index_key("u1") == "staging:user:u1:itineraries"


def test_url_takes_precedence_over_host(monkeypatch):
    monkeypatch.setattr(config, "REDIS_URL", "redis://cache:6380/2")
    monkeypatch.setattr(redis_client, "_connection", None)
    with patch("tripslot.db.redis_client.redis.Redis.from_url") as from_url:
        client = redis_client.get_redis()
    from_url.assert_called_once_with("redis://cache:6380/2", decode_responses=True)
    assert client is from_url.return_value
    assert redis_client.get_redis() is client


def test_redis_status_reports_unreachable(monkeypatch):
    fake = MagicMock()
    fake.ping.side_effect = redis.ConnectionError("refused")
    monkeypatch.setattr(redis_client, "_connection", fake)
    assert redis_client.redis_status() == "unreachable"

    fake.ping.side_effect = None
    assert redis_client.redis_status() == "ok"


def test_redis_ratings_are_a_list_per_place(client):
    store = RedisItineraryStore(client)
    store.add_rating(UserRating("u1", "p1", "Fort", 4, created_at="2026-10-18T10:00:00+00:00"))
    key, raw = client.rpush.call_args.args
    assert key == rating_key("p1")
    assert json.loads(raw)["rating"] == 4

    client.lrange.return_value = [raw]
    assert [r.place_name for r in store.ratings_for_place("p1")] == ["Fort"]
    client.lrange.assert_called_once_with(rating_key("p1"), 0, -1)
