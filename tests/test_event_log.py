from tripslot import config
from tripslot.modules.observability.logger import ENGINE_STREAM, EventLog, EventType, event_log
from tripslot.schemas.itinerary import TripRequest

from tests.factories import chennai_six, response, stop


def test_commit_events_follow_versions(engine):
    rec = engine.save("user_001", response([
        stop("Temple", 1, "morning", "08:00", "09:00"),
        stop("Museum", 1, "afternoon", "13:00", "15:00"),
    ]))
    engine.remove_stop(rec.itinerary_id, (1, "d1_morning", "08:00"))

    commits = event_log.read(rec.itinerary_id, EventType.COMMIT)
    assert [(c["payload"]["op"], c["payload"]["version"]) for c in commits] == [
        ("save", 1), ("remove", 2),
    ]


def test_builder_and_validator_report_timings(engine):
    request = TripRequest.from_dict({"destination": "Chennai", "days": 1})
    it = engine.generate(request, chennai_six())
    first = it.itinerary[0]
    engine.validate_place(first.to_candidate(), 1, first.slot_name)

    components = {e["payload"]["component"] for e in event_log.read(ENGINE_STREAM)}
    assert {"ItineraryBuilder", "PlacementValidator"} <= components


def test_disabled_log_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "STRUCTURED_LOG_ENABLED", False)
    log = EventLog(tmp_path)
    log.commit("itin-x", 1, "save")
    log.close()
    assert log.read("itin-x") == []
    assert not (tmp_path / "itin-x.jsonl").exists()


def test_read_missing_stream_is_empty(tmp_path):
    assert EventLog(tmp_path / "nowhere").read("itin-none") == []


def test_itinerary_streams_do_not_hold_handles(engine):
    ids = [
        engine.save("user_001", response([stop("Temple", 1, "morning", "08:00", "09:00")])).itinerary_id
        for _ in range(50)
    ]
    engine.validate_place(stop("Temple", 1, "morning", "08:00", "09:00").to_candidate(), 1, "morning")

    assert set(event_log._streams) == {ENGINE_STREAM}
    assert all(len(event_log.read(i, EventType.COMMIT)) == 1 for i in ids)
