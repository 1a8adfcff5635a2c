"""
modules/observability/logger.py
--------------------------------
Engine event log — append-only JSONL, one event per line.

Streams:
  engine.jsonl          PERFORMANCE events (component timings)
  <itinerary_id>.jsonl  REPLAN and COMMIT events for one saved itinerary

Usage:
    from tripslot.modules.observability.logger import event_log

    event_log.commit("itin_abc123", version=3, op="swap")
    event_log.read("itin_abc123")      # -> list of event dicts

The directory is <config.LOGS_DIR>, resolved when a stream is first opened
so tests can point it elsewhere. STRUCTURED_LOG_ENABLED=false mutes it.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, TextIO

from tripslot import config

ENGINE_STREAM = "engine"


class EventType(str, Enum):
    PERFORMANCE = "PERFORMANCE"
    REPLAN = "REPLAN"
    COMMIT = "COMMIT"


class EventLog:
    """Thread-safe. Only the engine stream keeps its handle open; itinerary
    streams are opened, appended and closed per event."""

    def __init__(self, logs_dir: Path | str | None = None) -> None:
        self._logs_dir = Path(logs_dir) if logs_dir else None
        self._lock = threading.Lock()
        self._streams: dict[str, TextIO] = {}

    # ── typed events ──────────────────────────────────────────────────────

    def performance(self, component: str, duration_ms: float, **fields) -> None:
        self.emit(ENGINE_STREAM, EventType.PERFORMANCE,
                  {"component": component, "duration_ms": duration_ms, **fields})

    def replan(self, itinerary_id: str, **fields) -> None:
        self.emit(itinerary_id, EventType.REPLAN, fields)

    def commit(self, itinerary_id: str, version: int, op: str) -> None:
        self.emit(itinerary_id, EventType.COMMIT, {"version": version, "op": op})

    # ── raw stream access ─────────────────────────────────────────────────

    def emit(self, stream: str, event: EventType, payload: dict) -> None:
        if not config.STRUCTURED_LOG_ENABLED:
            return
        line = json.dumps({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "stream":    stream,
            "event":     event.value,
            "payload":   payload,
        }, default=str, ensure_ascii=False)

        with self._lock:
            if stream != ENGINE_STREAM:
                with self._append(stream) as fh:
                    fh.write(line + "\n")
                return
            fh = self._streams.get(stream) or self._open(stream)
            fh.write(line + "\n")
            fh.flush()

    def read(self, stream: str, event: Optional[EventType] = None) -> list[dict]:
        """Events written to *stream* so far, optionally filtered by type."""
        path = self._dir() / f"{stream}.jsonl"
        if not path.exists():
            return []
        with open(path, encoding="utf-8") as fh:
            rows = [json.loads(line) for line in fh if line.strip()]
        if event is not None:
            rows = [r for r in rows if r["event"] == event.value]
        return rows

    def close(self) -> None:
        with self._lock:
            for fh in self._streams.values():
                fh.close()
            self._streams.clear()

    # ── internals ─────────────────────────────────────────────────────────

    def _dir(self) -> Path:
        return self._logs_dir or Path(config.LOGS_DIR)

    def _append(self, stream: str) -> TextIO:
        os.makedirs(self._dir(), exist_ok=True)
        return open(self._dir() / f"{stream}.jsonl", "a", encoding="utf-8")  # noqa: SIM115

    def _open(self, stream: str) -> TextIO:
        fh = self._append(stream)
        self._streams[stream] = fh
        return fh


# Process-wide instance shared by the engine modules
event_log = EventLog()
