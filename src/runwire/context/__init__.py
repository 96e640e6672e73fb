"""Context continuity tracking and conversation stores."""

from runwire.context.store import (
    ConversationStore,
    JsonConversationStore,
    MemoryConversationStore,
)
from runwire.context.tracker import ContextTracker

__all__ = [
    "ContextTracker",
    "ConversationStore",
    "JsonConversationStore",
    "MemoryConversationStore",
]
