"""Consumer-side chat state that runner events are folded into."""

from __future__ import annotations

import time
import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field

from runwire.constants import StreamName

MessageStatus = Literal["running", "success", "error"]
Role = Literal["user", "assistant"]


class LogEntry(BaseModel):
    """One ``log`` event as kept on a message."""

    stream: StreamName
    text: str
    timestamp: float = Field(default_factory=time.time)


class Message(BaseModel):
    """A chat turn; assistant turns are correlated 1:1 with a run."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role = "assistant"
    content: str = ""
    run_id: str | None = None
    backend: str | None = None
    output: str = ""
    logs: list[LogEntry] = Field(default_factory=list)
    trace: list[dict[str, Any]] = Field(default_factory=list)
    status: MessageStatus | None = None
    error_message: str | None = None
    context_id: str | None = None


class Conversation(BaseModel):
    """Ordered messages plus the resumable context per backend."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    messages: list[Message] = Field(default_factory=list)
    contexts: dict[str, str] = Field(default_factory=dict)


class ChatState(BaseModel):
    """Every conversation a consumer currently holds."""

    conversations: list[Conversation] = Field(default_factory=list)

    def conversation(self, conversation_id: str) -> Conversation | None:
        return next((c for c in self.conversations if c.id == conversation_id), None)
