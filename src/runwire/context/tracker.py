"""Context continuity — remembers which session each backend is on."""

from __future__ import annotations

import logging

from runwire.context.store import ConversationStore, MemoryConversationStore
from runwire.events.models import ContextEvent, Event

logger = logging.getLogger(__name__)


class ContextTracker:
    """Records discovered context ids per (conversation, backend).

    A later run in the same conversation on the same backend resumes the
    stored context instead of starting fresh.
    """

    def __init__(self, store: ConversationStore | None = None) -> None:
        self._store = store if store is not None else MemoryConversationStore()

    @property
    def store(self) -> ConversationStore:
        return self._store

    def record(self, conversation_id: str, backend: str, context_id: str) -> None:
        if not context_id:
            return
        previous = self._store.get_context(conversation_id, backend)
        if previous == context_id:
            return
        logger.debug(
            "Conversation %s: %s context %s -> %s",
            conversation_id,
            backend,
            previous,
            context_id,
        )
        self._store.set_context(conversation_id, backend, context_id)

    def lookup(self, conversation_id: str, backend: str) -> str | None:
        return self._store.get_context(conversation_id, backend)

    def observe(self, conversation_id: str, event: Event) -> None:
        """Apply *event* if it is a ``context`` event; ignore anything else."""
        if isinstance(event, ContextEvent):
            self.record(conversation_id, event.backend, event.context_id)
