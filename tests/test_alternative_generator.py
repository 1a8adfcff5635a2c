import pytest

from tripslot.modules.registry.candidate_registry import CandidateRegistry
from tripslot.modules.reoptimization.alternative_generator import (
    AlternativeGenerator,
    category_similarity,
)
from tripslot.schemas.itinerary import SlotName

from tests.factories import place, stop


@pytest.fixture
def generator():
    reg = CandidateRegistry(use_builtin=False)
    reg.register("Testville", [
        place("Old Temple", 1.0, category="temple", priority=8),
        place("New Temple", 1.0, category="temple", priority=5),
        place("Big Church", 1.0, category="church", priority=9),
        place("Food Street", 1.5, category="food_market", priority=10),
        place("Long Fort", 5.0, category="fort", priority=10),
        place("Night Bar", 1.0, category="bar", priority=6, best_slot=SlotName.NIGHT),
        place("Evening Ghat", 1.0, category="temple", priority=7, opening_hours="18:00-22:00"),
        place("Taken Museum", 1.0, category="museum", priority=10),
    ])
    return AlternativeGenerator(reg)


@pytest.fixture
def current():
    return stop("Old Temple", 1, "morning", "09:00", "10:00", category="temple")


def _names(alts):
    return [a.place_name for a in alts]


def test_ranked_by_similarity_then_priority(generator, current):
    alts = generator.suggest(
        "Testville", "morning", current,
        scheduled_stops=[current, "Taken Museum"],
    )
    assert _names(alts) == ["New Temple", "Big Church", "Food Street"]
    assert all(a.is_alternate for a in alts)


def test_next_stop_in_slot_limits_duration(generator, current):
    nxt = stop("Breakfast", 1, "morning", "10:15", "11:15")
    alts = generator.suggest("Testville", "morning", current, scheduled_stops=[current, nxt])
    assert "Food Street" not in _names(alts)
    assert "New Temple" in _names(alts)


def test_free_slots_admit_other_slot_hints(generator, current):
    assert "Night Bar" not in _names(generator.suggest("Testville", "morning", current))
    alts = generator.suggest("Testville", "morning", current, free_slots=["night"])
    assert "Night Bar" in _names(alts)


def test_no_alternates_is_an_empty_list(generator, current):
    assert generator.suggest("Nowhere", "morning", current) == []


def test_limit(generator, current):
    assert len(generator.suggest("Testville", "morning", current, limit=2)) == 2


def test_pool_is_not_mutated(generator, current):
    generator.suggest("Testville", "morning", current)
    pool = generator.registry.fetch("Testville")
    assert not any(c.is_alternate for c in pool)


@pytest.mark.parametrize("a, b, expected", [
    ("temple", "temple", 2),
    ("temple", "church", 1),
    ("temple", "beach", 0),
    (None, "temple", 0),
    ("bar", "pub", 0),
])
def test_category_similarity(a, b, expected):
    assert category_similarity(a, b) == expected
