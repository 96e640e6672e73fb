"""Tests for the event dispatcher and its channels."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

from runwire.dispatch.channels import (
    CallbackChannel,
    Channel,
    FanoutChannel,
    QueueChannel,
    RecorderChannel,
)
from runwire.dispatch.dispatcher import Delivery, EventDispatcher
from runwire.events.models import ErrorEvent, TextEvent
from runwire.events.recorder import RunRecorder

_EVENT = TextEvent(run_id="r1", text="hello")


class _Broken:
    def send(self, event: object) -> None:
        raise RuntimeError("window closed")


class TestEventDispatcher:
    def test_delivers_to_connected_endpoint(self) -> None:
        received: list = []
        dispatcher = EventDispatcher()
        dispatcher.connect("window-1", CallbackChannel(received.append))
        assert dispatcher.dispatch("window-1", _EVENT) is Delivery.DELIVERED
        assert received == [_EVENT]

    def test_drops_for_unknown_endpoint(self) -> None:
        dispatcher = EventDispatcher()
        assert dispatcher.dispatch("nobody", _EVENT) is Delivery.DROPPED
        assert dispatcher.dropped_count == 1

    def test_only_target_endpoint_receives(self) -> None:
        a: list = []
        b: list = []
        dispatcher = EventDispatcher()
        dispatcher.connect("a", CallbackChannel(a.append))
        dispatcher.connect("b", CallbackChannel(b.append))
        dispatcher.dispatch("b", _EVENT)
        assert a == []
        assert b == [_EVENT]

    def test_disconnect_then_drop(self) -> None:
        dispatcher = EventDispatcher()
        dispatcher.connect("w", CallbackChannel(lambda e: None))
        assert dispatcher.is_connected("w")
        dispatcher.disconnect("w")
        dispatcher.disconnect("w")
        assert not dispatcher.is_connected("w")
        assert dispatcher.dispatch("w", _EVENT) is Delivery.DROPPED

    def test_reconnect_replaces_channel(self) -> None:
        old = MagicMock()
        new = MagicMock()
        dispatcher = EventDispatcher()
        dispatcher.connect("w", old)
        dispatcher.connect("w", new)
        dispatcher.dispatch("w", _EVENT)
        old.send.assert_not_called()
        new.send.assert_called_once_with(_EVENT)
        assert dispatcher.endpoints == ["w"]

    def test_failing_channel_reported_as_dropped(self) -> None:
        dispatcher = EventDispatcher()
        dispatcher.connect("w", _Broken())
        assert dispatcher.dispatch("w", _EVENT) is Delivery.DROPPED
        assert dispatcher.dropped_count == 1


class TestChannels:
    def test_protocol(self) -> None:
        assert isinstance(QueueChannel(), Channel)
        assert isinstance(_Broken(), Channel)

    async def test_queue_channel(self) -> None:
        channel = QueueChannel()
        channel.send(_EVENT)
        assert await channel.queue.get() == _EVENT

    def test_recorder_channel(self, tmp_path: Path) -> None:
        recorder = RunRecorder("dispatch", tmp_path)
        RecorderChannel(recorder).send(ErrorEvent(run_id="r", message="x"))
        recorder.close()
        line = recorder.path.read_text(encoding="utf-8").strip()
        assert json.loads(line)["message"] == "x"

    def test_fanout_survives_member_failure(self) -> None:
        received: list = []
        fanout = FanoutChannel([_Broken(), CallbackChannel(received.append)])
        fanout.send(_EVENT)
        assert received == [_EVENT]
