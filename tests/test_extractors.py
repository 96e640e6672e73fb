"""Tests for structured messages and protocol extractors."""

from __future__ import annotations

import json

from runwire.events.models import ContextEvent, LogEvent, RawMessageEvent, TextEvent
from runwire.stream.extractors import (
    PlainTextExtractor,
    StructuredExtractor,
    create_extractor,
    final_text,
)
from runwire.stream.messages import (
    AssistantMessage,
    ResultMessage,
    SystemMessage,
    UnknownMessage,
    parse_message,
)

_INIT = '{"type":"system","subtype":"init","session_id":"sess-1"}\n'
_ASSISTANT = (
    '{"type":"assistant","session_id":"sess-1","message":{"content":'
    '[{"type":"text","text":"Hello"},{"type":"tool_use","name":"Read"},'
    '{"type":"text","text":"World"}]}}\n'
)
_RESULT = '{"type":"result","subtype":"success","result":"Final","session_id":"sess-1"}\n'


def _types(events: list) -> list[str]:
    return [e.type for e in events]


# ------------------------------------------------------------------ #
# Message classification
# ------------------------------------------------------------------ #


class TestParseMessage:
    def test_known_types(self) -> None:
        assert isinstance(parse_message(json.loads(_INIT)), SystemMessage)
        assert isinstance(parse_message(json.loads(_ASSISTANT)), AssistantMessage)
        assert isinstance(parse_message(json.loads(_RESULT)), ResultMessage)

    def test_assistant_text_joins_text_parts(self) -> None:
        message = parse_message(json.loads(_ASSISTANT))
        assert message.text() == "Hello\nWorld"

    def test_unknown_type(self) -> None:
        message = parse_message({"type": "stream_event", "session_id": "s"})
        assert isinstance(message, UnknownMessage)
        assert message.type == "stream_event"
        assert message.session_id == "s"

    def test_shape_mismatch_degrades_to_unknown(self) -> None:
        message = parse_message({"type": "assistant", "message": {"content": "not a list"}})
        assert isinstance(message, UnknownMessage)
        assert message.type == "assistant"
        assert message.text() is None

    def test_missing_type(self) -> None:
        assert isinstance(parse_message({"foo": 1}), UnknownMessage)


# ------------------------------------------------------------------ #
# Structured extractor
# ------------------------------------------------------------------ #


class TestStructuredExtractor:
    def test_init_line_emits_context_raw_log(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        events = ext.extract("stdout", _INIT)
        assert _types(events) == ["context", "raw", "log"]
        context = events[0]
        assert isinstance(context, ContextEvent)
        assert context.context_id == "sess-1"
        assert context.backend == "claude-code"
        assert ext.context_id == "sess-1"

    def test_context_emitted_once_per_session_id(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        ext.extract("stdout", _INIT)
        events = ext.extract("stdout", _ASSISTANT)
        assert _types(events) == ["text", "raw", "log"]

    def test_new_session_id_emits_again(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        ext.extract("stdout", _INIT)
        events = ext.extract("stdout", '{"type":"system","session_id":"sess-2"}\n')
        assert [e.context_id for e in events if isinstance(e, ContextEvent)] == ["sess-2"]

    def test_resumed_context_not_reannounced(self) -> None:
        ext = StructuredExtractor("r1", "claude-code", context_id="sess-1")
        events = ext.extract("stdout", _INIT)
        assert not any(isinstance(e, ContextEvent) for e in events)

    def test_assistant_text_is_snapshot(self) -> None:
        ext = StructuredExtractor("r1", "claude-code", context_id="sess-1")
        events = ext.extract("stdout", _ASSISTANT)
        text = events[0]
        assert isinstance(text, TextEvent)
        assert text.text == "Hello\nWorld"
        assert text.delta is False
        raw = events[1]
        assert isinstance(raw, RawMessageEvent)
        assert raw.message_type == "assistant"
        assert raw.content == "Hello\nWorld"
        assert raw.raw["message"]["content"][1]["name"] == "Read"

    def test_result_emits_text(self) -> None:
        ext = StructuredExtractor("r1", "claude-code", context_id="sess-1")
        events = ext.extract("stdout", _RESULT)
        assert _types(events) == ["text", "raw", "log"]
        assert events[0].text == "Final"

    def test_non_json_is_log_only(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        events = ext.extract("stdout", "Loading...\n")
        assert _types(events) == ["log"]
        assert events[0].data == "Loading...\n"

    def test_non_object_json_is_log_only(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        assert _types(ext.extract("stdout", "[1, 2]\n")) == ["log"]

    def test_stderr_is_never_parsed(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        events = ext.extract("stderr", _INIT)
        assert _types(events) == ["log"]
        assert events[0].stream == "stderr"

    def test_log_is_verbatim(self) -> None:
        ext = StructuredExtractor("r1", "claude-code")
        raw_line = '  {"type":"user"}  \r\n'
        events = ext.extract("stdout", raw_line)
        log = events[-1]
        assert isinstance(log, LogEvent)
        assert log.data == raw_line

    def test_unterminated_json_still_parsed(self) -> None:
        ext = StructuredExtractor("r1", "claude-code", context_id="sess-1")
        events = ext.extract("stdout", _RESULT.rstrip("\n"))
        assert _types(events) == ["text", "raw", "log"]


# ------------------------------------------------------------------ #
# Plain-text extractor
# ------------------------------------------------------------------ #


class TestPlainTextExtractor:
    def test_session_marker_emits_single_context(self) -> None:
        ext = PlainTextExtractor("r1", "codex")
        first = ext.extract("stderr", "session id: ABCD-1234\n")
        second = ext.extract("stderr", "session id: ABCD-1234\n")
        assert _types(first) == ["context", "log"]
        assert first[0].context_id == "ABCD-1234"
        assert first[0].backend == "codex"
        assert _types(second) == ["log"]

    def test_marker_case_insensitive(self) -> None:
        ext = PlainTextExtractor("r1", "codex")
        events = ext.extract("stderr", "Session ID:   0199aa-bb\n")
        assert events[0].context_id == "0199aa-bb"

    def test_marker_on_stdout_ignored(self) -> None:
        ext = PlainTextExtractor("r1", "codex")
        assert _types(ext.extract("stdout", "session id: abc\n")) == ["log"]

    def test_known_context_stops_search(self) -> None:
        ext = PlainTextExtractor("r1", "codex", context_id="old")
        assert _types(ext.extract("stderr", "session id: abc\n")) == ["log"]

    def test_marker_found_after_other_stderr(self) -> None:
        ext = PlainTextExtractor("r1", "codex")
        for line in ["warming up\n", "model: o3\n"]:
            assert _types(ext.extract("stderr", line)) == ["log"]
        events = ext.extract("stderr", "session id: 42ab\n")
        assert _types(events) == ["context", "log"]

    def test_marker_matched_within_one_line(self) -> None:
        ext = PlainTextExtractor("r1", "kimi-cli")
        assert _types(ext.extract("stderr", "session id:\n")) == ["log"]
        assert _types(ext.extract("stderr", "abc123\n")) == ["log"]
        assert ext.context_id is None

    def test_never_emits_text(self) -> None:
        ext = PlainTextExtractor("r1", "kimi-cli")
        events = ext.extract("stdout", '{"type":"result","result":"x"}\n')
        assert _types(events) == ["log"]


class TestCreateExtractor:
    def test_selects_by_protocol(self) -> None:
        assert isinstance(create_extractor("jsonl", "r", "claude-code"), StructuredExtractor)
        assert isinstance(create_extractor("text", "r", "codex"), PlainTextExtractor)


class TestFinalText:
    def test_result_wins_over_assistant(self) -> None:
        lines = [
            _INIT,
            '{"type":"assistant","message":{"content":[{"type":"text","text":"draft"}]}}',
            '{"type":"result","result":"answer"}',
        ]
        assert final_text(lines) == "answer"

    def test_assistant_without_result(self) -> None:
        lines = [
            '{"type":"assistant","message":{"content":[{"type":"text","text":"one"}]}}',
            "garbage",
            '{"type":"assistant","message":{"content":[{"type":"text","text":"two"}]}}',
        ]
        assert final_text(lines) == "two"

    def test_nothing(self) -> None:
        assert final_text(["", "noise"]) == ""
