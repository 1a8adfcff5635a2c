import pytest

from tripslot.errors import InvalidInputError
from tripslot.modules.registry.candidate_registry import CandidateRegistry
from tripslot.schemas.itinerary import TripRequest

from tests.factories import place


def _names(pool):
    return [c.place_name for c in pool]


def test_builtin_pool_and_alias():
    reg = CandidateRegistry()
    chennai = reg.fetch("Chennai")
    assert "Kapaleeshwarar Temple" in _names(chennai)
    assert _names(reg.fetch("  madras ")) == _names(chennai)
    assert reg.has("Jaipur")


def test_unknown_destination_is_empty_pool():
    assert CandidateRegistry().fetch("Atlantis") == []


def test_fetch_returns_copies():
    reg = CandidateRegistry()
    first = reg.fetch("Delhi")
    first[0].priority = -100
    assert reg.fetch("Delhi")[0].priority != -100


def test_registered_pool_takes_precedence():
    reg = CandidateRegistry()
    reg.register("Chennai", [place("Only Place")])
    assert _names(reg.fetch("chennai")) == ["Only Place"]
    assert reg.find("Chennai", "only place").place_name == "Only Place"
    assert reg.find("Chennai", "Marina Beach") is None


def test_register_rejects_duplicate_names():
    with pytest.raises(InvalidInputError):
        CandidateRegistry().register("X", [place("A"), place("a ")])


def test_prepare_boosts_interests_and_demotes_crowds():
    reg = CandidateRegistry(use_builtin=False)
    reg.register("Chennai", [
        place("Idli Shop", tags=["food"], priority=7),
        place("Busy Temple", category="temple", priority=9, crowded=True),
        place("Quiet Park", category="park", priority=5, tags=["nature"]),
    ])
    request = TripRequest.from_dict({
        "destination": "Chennai", "days": 1, "interests": ["Food"],
        "mood": "relaxed", "avoid_crowded": True,
    })
    prepared = {c.place_name: c.priority for c in reg.prepare(request)}
    assert prepared == {"Idli Shop": 9, "Busy Temple": 7, "Quiet Park": 6}
    # the registered pool itself is untouched
    assert {c.place_name: c.priority for c in reg.fetch("Chennai")}["Idli Shop"] == 7


def test_prepare_uses_explicit_pool():
    reg = CandidateRegistry()
    request = TripRequest.from_dict({"destination": "Chennai", "days": 1})
    pool = [place("Custom")]
    prepared = reg.prepare(request, pool)
    assert _names(prepared) == ["Custom"]
    assert prepared[0] is not pool[0]
