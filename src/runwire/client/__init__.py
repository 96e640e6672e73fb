"""Consumer-side chat state and the reducer that applies runner events."""

from runwire.client.models import ChatState, Conversation, LogEntry, Message
from runwire.client.reducer import EventReducer

__all__ = [
    "ChatState",
    "Conversation",
    "EventReducer",
    "LogEntry",
    "Message",
]
