from __future__ import annotations

import pytest

from tripslot import config
from tripslot.db.repositories.itinerary_repo import InMemoryItineraryStore
from tripslot.engine import ItineraryEngine
from tripslot.modules.observability.logger import event_log
from tripslot.modules.tool_usage.distance_tool import FixedTransitEstimator


@pytest.fixture(autouse=True)
def _logs_to_tmp(tmp_path, monkeypatch):
    """JSONL event logs go to a per-test directory."""
    monkeypatch.setattr(config, "LOGS_DIR", str(tmp_path / "logs"))
    yield
    event_log.close()


@pytest.fixture
def store() -> InMemoryItineraryStore:
    return InMemoryItineraryStore()


@pytest.fixture
def engine(store) -> ItineraryEngine:
    return ItineraryEngine(store=store, estimator=FixedTransitEstimator(0))
