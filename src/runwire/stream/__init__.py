"""Stream handling — line framing and protocol extraction."""

from runwire.stream.extractors import (
    Extractor,
    PlainTextExtractor,
    StructuredExtractor,
    create_extractor,
    final_text,
)
from runwire.stream.framer import LineFramer
from runwire.stream.messages import AgentMessage, parse_message

__all__ = [
    "AgentMessage",
    "Extractor",
    "LineFramer",
    "PlainTextExtractor",
    "StructuredExtractor",
    "create_extractor",
    "final_text",
    "parse_message",
]
