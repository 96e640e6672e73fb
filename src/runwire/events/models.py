"""Pydantic v2 models for runner events."""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter

from runwire.constants import BackendKind, StreamName


class _EventBase(BaseModel):
    """Common envelope fields shared by every runner event."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    run_id: str = Field(description="Identifier of the run that emitted the event")


class StartEvent(_EventBase):
    """Emitted once, right after the backend process was spawned."""

    type: Literal["start"] = "start"
    command: list[str] = Field(description="Resolved executable followed by its args")
    cwd: str = Field(description="Working directory of the process")


class LogEvent(_EventBase):
    """Raw output from one of the process streams.

    Emitted for every line, parsed or not, so that concatenating the
    ``data`` of a stream's log events reproduces that stream verbatim.
    """

    type: Literal["log"] = "log"
    stream: StreamName = Field(description="Which output stream produced the text")
    data: str = Field(description="Raw text including its line terminator")


class TextEvent(_EventBase):
    """Human-readable content extracted from structured output."""

    type: Literal["text"] = "text"
    text: str = Field(description="Extracted content")
    delta: bool = Field(
        default=False,
        description="True to append to accumulated output, False to replace it",
    )


class ContextEvent(_EventBase):
    """A resumable-context identifier issued by the backend."""

    type: Literal["context"] = "context"
    backend: BackendKind = Field(description="Backend that issued the identifier")
    context_id: str = Field(description="Opaque identifier to resume with")


class ErrorEvent(_EventBase):
    """A process-level failure (spawn, prompt write, stream read)."""

    type: Literal["error"] = "error"
    message: str = Field(description="Error description")


class ExitEvent(_EventBase):
    """Emitted once when the process has exited and its output is drained."""

    type: Literal["exit"] = "exit"
    code: int | None = Field(description="Exit code, or null when killed by a signal")
    signal: str | None = Field(
        default=None,
        description="Name of the terminating signal, e.g. 'SIGTERM'",
    )
    duration_ms: int = Field(ge=0, description="Wall-clock time since spawn")


class RawMessageEvent(_EventBase):
    """Every parsed structured message, re-emitted for trace views."""

    type: Literal["raw"] = "raw"
    message_type: str = Field(description="The message's 'type' discriminator")
    content: str | None = Field(
        default=None,
        description="Text extracted from the message, if any",
    )
    raw: dict[str, Any] = Field(description="The parsed JSON object")


def _event_discriminator(v: Any) -> str:
    """Extract the discriminator value from raw data or a model instance."""
    if isinstance(v, dict):
        return str(v.get("type", ""))
    return str(getattr(v, "type", ""))


Event = Annotated[
    Annotated[StartEvent, Tag("start")]
    | Annotated[LogEvent, Tag("log")]
    | Annotated[TextEvent, Tag("text")]
    | Annotated[ContextEvent, Tag("context")]
    | Annotated[ErrorEvent, Tag("error")]
    | Annotated[ExitEvent, Tag("exit")]
    | Annotated[RawMessageEvent, Tag("raw")],
    Discriminator(_event_discriminator),
]
"""Discriminated union of all runner event types."""

_EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)


def parse_event(data: dict[str, Any]) -> Event:
    """Validate a serialized event back into its model."""
    return _EVENT_ADAPTER.validate_python(data)
