"""Runner events — typed models and JSONL recorder."""

from runwire.events.models import (
    ContextEvent,
    ErrorEvent,
    Event,
    ExitEvent,
    LogEvent,
    RawMessageEvent,
    StartEvent,
    TextEvent,
    parse_event,
)
from runwire.events.recorder import RunRecorder, read_recording

__all__ = [
    "ContextEvent",
    "ErrorEvent",
    "Event",
    "ExitEvent",
    "LogEvent",
    "RawMessageEvent",
    "RunRecorder",
    "StartEvent",
    "TextEvent",
    "parse_event",
    "read_recording",
]
