"""modules/observability — structured JSONL event log."""

from tripslot.modules.observability.logger import EventLog, EventType, event_log

__all__ = ["EventLog", "EventType", "event_log"]
