"""Protocol extractors — turn one line of process output into events.

Both strategies emit a ``log`` event for every line they see so the raw
transcript is always recoverable; interpreted events are emitted in
parallel, never instead of the log.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterable
from typing import Protocol

from runwire.backends.registry import WireProtocol
from runwire.constants import BackendKind, StreamName
from runwire.errors import ProtocolParseError
from runwire.events.models import (
    ContextEvent,
    Event,
    LogEvent,
    RawMessageEvent,
    TextEvent,
)
from runwire.stream.messages import (
    AgentMessage,
    AssistantMessage,
    ResultMessage,
    parse_message,
)

logger = logging.getLogger(__name__)

#: Marker the codex CLI prints on stderr with its resumable session id.
SESSION_ID_RE = re.compile(r"session id:\s*([0-9a-fA-F-]+)", re.IGNORECASE)


class Extractor(Protocol):
    """Per-run strategy converting one raw line into events."""

    def extract(self, stream: StreamName, raw: str) -> list[Event]:
        """Events for *raw*, one complete line including its terminator."""
        ...


def _parse_json_line(line: str) -> dict[str, object]:
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolParseError(str(exc)) from exc
    if not isinstance(obj, dict):
        msg = f"expected a JSON object, got {type(obj).__name__}"
        raise ProtocolParseError(msg)
    return obj


class StructuredExtractor:
    """Extractor for JSON-lines backends (the Claude Code family).

    For each parsed stdout line emits, in order: a ``context`` event the
    first time a ``session_id`` not yet seen for the run shows up, a
    ``text`` event for assistant text or a result string (whole snapshots,
    ``delta=False``), and a ``raw`` debug event carrying the parsed object.
    Every line ends with its ``log`` event.
    """

    def __init__(
        self,
        run_id: str,
        backend: BackendKind,
        context_id: str | None = None,
    ) -> None:
        self._run_id = run_id
        self._backend = backend
        self.context_id = context_id
        # The id a run resumes with is already known to the caller.
        self._seen: set[str] = {context_id} if context_id else set()

    def extract(self, stream: StreamName, raw: str) -> list[Event]:
        events: list[Event] = []
        line = raw.strip()
        if stream == "stdout" and line:
            try:
                obj = _parse_json_line(line)
            except ProtocolParseError as exc:
                logger.debug("%s: non-JSON stdout line (%s)", self._run_id, exc)
            else:
                events.extend(self._interpret(parse_message(obj), obj))
        events.append(LogEvent(run_id=self._run_id, stream=stream, data=raw))
        return events

    def _interpret(self, message: AgentMessage, obj: dict[str, object]) -> list[Event]:
        events: list[Event] = []

        session_id = message.session_id
        if session_id and session_id not in self._seen:
            self._seen.add(session_id)
            self.context_id = session_id
            events.append(
                ContextEvent(
                    run_id=self._run_id,
                    backend=self._backend,
                    context_id=session_id,
                )
            )

        text = message.text()
        if text:
            events.append(TextEvent(run_id=self._run_id, text=text, delta=False))

        events.append(
            RawMessageEvent(
                run_id=self._run_id,
                message_type=message.type or "unknown",
                content=text,
                raw=obj,
            )
        )
        return events


class PlainTextExtractor:
    """Extractor for line-oriented backends (codex, kimi-cli).

    Watches stderr for the ``session id: <hex>`` marker and emits one
    ``context`` event on the first match; otherwise everything is log
    output.  This protocol has no text channel, so the transcript is the
    concatenated logs.
    """

    def __init__(
        self,
        run_id: str,
        backend: BackendKind,
        context_id: str | None = None,
    ) -> None:
        self._run_id = run_id
        self._backend = backend
        self.context_id = context_id

    def extract(self, stream: StreamName, raw: str) -> list[Event]:
        events: list[Event] = []
        if stream == "stderr" and self.context_id is None:
            match = SESSION_ID_RE.search(raw)
            if match:
                self.context_id = match.group(1)
                events.append(
                    ContextEvent(
                        run_id=self._run_id,
                        backend=self._backend,
                        context_id=self.context_id,
                    )
                )
        events.append(LogEvent(run_id=self._run_id, stream=stream, data=raw))
        return events


def create_extractor(
    protocol: WireProtocol,
    run_id: str,
    backend: BackendKind,
    context_id: str | None = None,
) -> StructuredExtractor | PlainTextExtractor:
    """Return the extractor for *protocol*."""
    if protocol == "jsonl":
        return StructuredExtractor(run_id, backend, context_id)
    return PlainTextExtractor(run_id, backend, context_id)


def final_text(lines: Iterable[str]) -> str:
    """Canonical answer from JSON-lines output.

    The last ``result`` message wins over any assistant text; without a
    result, the last assistant text is used.  Non-JSON lines are ignored.
    """
    result_text: str | None = None
    assistant_text: str | None = None
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            obj = _parse_json_line(line)
        except ProtocolParseError:
            continue
        message = parse_message(obj)
        if isinstance(message, ResultMessage) and message.text():
            result_text = message.text()
        elif isinstance(message, AssistantMessage) and message.text():
            assistant_text = message.text()
    return result_text or assistant_text or ""
