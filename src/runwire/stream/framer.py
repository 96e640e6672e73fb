"""Line framing across arbitrarily chunked stream reads."""

from __future__ import annotations

import re

_TERMINATOR_RE = re.compile(r"\r?\n")


class LineFramer:
    """Turns chunks of text into complete lines.

    Holds one partial-line remainder between calls; the remainder never
    contains a line terminator.  Callers must :meth:`flush` at end of
    stream so trailing unterminated output is not lost.
    """

    def __init__(self) -> None:
        self._remainder = ""

    @property
    def remainder(self) -> str:
        return self._remainder

    def feed_terminated(self, chunk: str) -> list[str]:
        """Return complete lines, each with the terminator it had (``\\n`` or ``\\r\\n``)."""
        if not chunk:
            return []
        buffer = self._remainder + chunk
        lines: list[str] = []
        start = 0
        for match in _TERMINATOR_RE.finditer(buffer):
            lines.append(buffer[start : match.end()])
            start = match.end()
        self._remainder = buffer[start:]
        return lines

    def feed(self, chunk: str) -> list[str]:
        """Return complete lines with their terminators stripped."""
        return [strip_terminator(line) for line in self.feed_terminated(chunk)]

    def flush(self) -> str:
        """Return and clear the partial-line remainder."""
        remainder, self._remainder = self._remainder, ""
        return remainder


def strip_terminator(line: str) -> str:
    """Remove a single trailing ``\\n`` or ``\\r\\n``."""
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line
