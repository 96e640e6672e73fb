"""Closed set of structured messages emitted by JSON-lines backends.

Claude Code ``--output-format stream-json --verbose`` writes one JSON
object per line with a ``type`` discriminator:

* ``system``    — init event carrying ``session_id``, tools, model, etc.
* ``assistant`` — wraps an API message; content parts are nested inside
  ``message.content[]`` as ``text``, ``tool_use`` or ``thinking`` parts.
* ``user``      — tool results fed back to the model.
* ``result``    — final aggregated answer in ``result``.

Anything else, or a known type whose shape does not match, becomes an
``UnknownMessage`` so callers degrade to log-only handling instead of
raising.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Tag,
    TypeAdapter,
    ValidationError,
)


class _MessageBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    session_id: str | None = None


class ContentPart(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    type: str
    text: str | None = None


class AssistantBody(BaseModel):
    model_config = ConfigDict(frozen=True, extra="allow")

    content: list[ContentPart] = []


class SystemMessage(_MessageBase):
    type: Literal["system"] = "system"
    subtype: str | None = None

    def text(self) -> str | None:
        return None


class AssistantMessage(_MessageBase):
    type: Literal["assistant"] = "assistant"
    message: AssistantBody | None = None

    def text(self) -> str | None:
        """All ``text`` parts joined by newlines, or None if there are none."""
        if self.message is None:
            return None
        parts = [p.text for p in self.message.content if p.type == "text" and p.text]
        return "\n".join(parts) if parts else None


class UserMessage(_MessageBase):
    type: Literal["user"] = "user"

    def text(self) -> str | None:
        return None


class ResultMessage(_MessageBase):
    type: Literal["result"] = "result"
    subtype: str | None = None
    result: str | None = None
    is_error: bool = False

    def text(self) -> str | None:
        return self.result or None


class UnknownMessage(_MessageBase):
    type: str = ""

    def text(self) -> str | None:
        return None


_KNOWN_TYPES = frozenset({"system", "assistant", "user", "result"})


def _message_discriminator(v: Any) -> str:
    raw_type = v.get("type") if isinstance(v, dict) else getattr(v, "type", None)
    return raw_type if raw_type in _KNOWN_TYPES else "unknown"


AgentMessage = Annotated[
    Annotated[SystemMessage, Tag("system")]
    | Annotated[AssistantMessage, Tag("assistant")]
    | Annotated[UserMessage, Tag("user")]
    | Annotated[ResultMessage, Tag("result")]
    | Annotated[UnknownMessage, Tag("unknown")],
    Discriminator(_message_discriminator),
]

_MESSAGE_ADAPTER: TypeAdapter[AgentMessage] = TypeAdapter(AgentMessage)


def parse_message(obj: dict[str, Any]) -> AgentMessage:
    """Classify a parsed JSON object; never raises."""
    try:
        return _MESSAGE_ADAPTER.validate_python(obj)
    except ValidationError:
        session_id = obj.get("session_id")
        return UnknownMessage(
            type=str(obj.get("type", "")),
            session_id=session_id if isinstance(session_id, str) else None,
        )
