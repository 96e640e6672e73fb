"""Delivery channels an endpoint can be connected through."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import Protocol, runtime_checkable

from runwire.events.models import Event
from runwire.events.recorder import RunRecorder

logger = logging.getLogger(__name__)


@runtime_checkable
class Channel(Protocol):
    """Minimal protocol a delivery channel must satisfy."""

    def send(self, event: Event) -> None:
        """Deliver *event*; must not block."""
        ...


class QueueChannel:
    """Puts events on an ``asyncio.Queue`` for a consumer task to drain."""

    def __init__(self, queue: asyncio.Queue[Event] | None = None) -> None:
        self.queue: asyncio.Queue[Event] = queue if queue is not None else asyncio.Queue()

    def send(self, event: Event) -> None:
        self.queue.put_nowait(event)


class CallbackChannel:
    """Calls a plain function with every event."""

    def __init__(self, callback: Callable[[Event], None]) -> None:
        self._callback = callback

    def send(self, event: Event) -> None:
        self._callback(event)


class RecorderChannel:
    """Appends every event to a JSONL recording."""

    def __init__(self, recorder: RunRecorder) -> None:
        self.recorder = recorder

    def send(self, event: Event) -> None:
        self.recorder.record(event)


class FanoutChannel:
    """Forwards each event to several channels.

    A failing member is logged and skipped so the others still receive
    the event.
    """

    def __init__(self, channels: Iterable[Channel]) -> None:
        self._channels = list(channels)

    def send(self, event: Event) -> None:
        for channel in self._channels:
            try:
                channel.send(event)
            except Exception:
                logger.exception("Fan-out member %r failed", channel)
