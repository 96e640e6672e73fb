"""Event reducer — folds runner events into :class:`ChatState`."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from runwire.client.models import ChatState, Conversation, LogEntry, Message
from runwire.events.models import (
    ContextEvent,
    ErrorEvent,
    Event,
    ExitEvent,
    LogEvent,
    RawMessageEvent,
    StartEvent,
    TextEvent,
)

logger = logging.getLogger(__name__)


class EventReducer:
    """Applies events to the message whose ``run_id`` matches.

    Keeps an index of run id to (conversation id, message position) for
    constant-time lookup.  On a miss or a stale entry it scans every
    conversation and repairs the index.  ``version`` increases once per
    applied event, or once per applied batch, so a view can refresh on
    change.
    """

    def __init__(self, state: ChatState | None = None) -> None:
        self._state = state if state is not None else ChatState()
        self._index: dict[str, tuple[str, int]] = {}
        self._version = 0
        self.rebuild_index()

    @property
    def state(self) -> ChatState:
        return self._state

    @property
    def version(self) -> int:
        return self._version

    # ------------------------------------------------------------------ #
    # State changes
    # ------------------------------------------------------------------ #

    def add_conversation(self, conversation: Conversation) -> None:
        self._state.conversations.append(conversation)
        self._index_conversation(conversation)
        self._version += 1

    def append_messages(self, conversation_id: str, messages: Iterable[Message]) -> None:
        """Append *messages* to a conversation and index their run ids.

        Raises:
            KeyError: If the conversation does not exist.
        """
        conversation = self._state.conversation(conversation_id)
        if conversation is None:
            msg = f"Unknown conversation '{conversation_id}'"
            raise KeyError(msg)
        for message in messages:
            conversation.messages.append(message)
            if message.run_id:
                self._index[message.run_id] = (conversation.id, len(conversation.messages) - 1)
        self._version += 1

    def rebuild_index(self) -> None:
        self._index.clear()
        for conversation in self._state.conversations:
            self._index_conversation(conversation)

    def apply(self, event: Event) -> bool:
        """Apply one event; returns False when no message matches."""
        if not self._apply(event):
            return False
        self._version += 1
        return True

    def apply_batch(self, events: Iterable[Event]) -> int:
        """Apply several events with a single version bump.

        Returns the number of events that matched a message.
        """
        applied = sum(1 for event in events if self._apply(event))
        if applied:
            self._version += 1
        return applied

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #

    def _index_conversation(self, conversation: Conversation) -> None:
        for position, message in enumerate(conversation.messages):
            if message.run_id:
                self._index[message.run_id] = (conversation.id, position)

    def _find(self, run_id: str) -> tuple[Conversation, Message] | None:
        ref = self._index.get(run_id)
        if ref is not None:
            conversation = self._state.conversation(ref[0])
            if conversation is not None and ref[1] < len(conversation.messages):
                message = conversation.messages[ref[1]]
                if message.run_id == run_id:
                    return conversation, message
            logger.debug("Stale index entry for run %s, scanning", run_id)

        for conversation in self._state.conversations:
            for position, message in enumerate(conversation.messages):
                if message.run_id == run_id:
                    self._index[run_id] = (conversation.id, position)
                    return conversation, message
        return None

    def _apply(self, event: Event) -> bool:
        found = self._find(event.run_id)
        if found is None:
            logger.debug("No message for run %s, dropping %s event", event.run_id, event.type)
            return False
        conversation, message = found

        match event:
            case StartEvent():
                message.status = "running"
            case TextEvent(text=text, delta=True):
                message.output += text
            case TextEvent(text=text):
                message.output = text
            case LogEvent(stream=stream, data=data):
                message.logs.append(LogEntry(stream=stream, text=data))
            case ContextEvent(backend=backend, context_id=context_id):
                message.context_id = context_id
                conversation.contexts[backend] = context_id
            case ErrorEvent(message=error_message):
                message.status = "error"
                message.error_message = error_message
            case ExitEvent(code=code):
                message.status = "success" if code == 0 else "error"
            case RawMessageEvent(raw=raw):
                message.trace.append(raw)
        return True
