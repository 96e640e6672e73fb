"""Run recorder — append-only JSONL writer for runner events."""

from __future__ import annotations

import json
import logging
import re
import threading
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from typing import IO

from pydantic import ValidationError

from runwire.events.models import Event, parse_event

logger = logging.getLogger(__name__)

#: Valid recording label pattern: alphanumeric, hyphens, underscores only.
_SAFE_NAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")


class RunRecorder:
    """Records runner events to an append-only JSONL file.

    Each line is the event's JSON form plus a ``ts`` timestamp and a
    monotonic ``seq`` number.

    Thread-safe: all writes are serialized through a ``threading.Lock``.
    Crash-safe: the file is flushed after every event.
    """

    def __init__(self, label: str, recordings_dir: Path | None = None) -> None:
        if not _SAFE_NAME_RE.match(label):
            msg = (
                f"Invalid recording label {label!r}: must contain only "
                "alphanumeric characters, hyphens, and underscores."
            )
            raise ValueError(msg)

        self._label = label
        self._lock = threading.Lock()
        self._seq = 0
        self._closed = False
        self._recording_id = uuid.uuid4().hex[:12]

        if recordings_dir is None:
            recordings_dir = Path("recordings")
        recordings_dir.mkdir(parents=True, exist_ok=True)

        date_str = datetime.now(tz=UTC).strftime("%Y-%m-%d")
        self._path = recordings_dir / f"{date_str}_{label}_{self._recording_id}.jsonl"
        self._fh: IO[str] | None = self._path.open("a", encoding="utf-8")

    @property
    def path(self) -> Path:
        """Path to the JSONL file."""
        return self._path

    @property
    def event_count(self) -> int:
        """Number of events recorded so far."""
        return self._seq

    def record(self, event: Event) -> None:
        """Write *event* to the JSONL file.

        Silently drops events after the recorder has been closed.
        """
        with self._lock:
            if self._closed or self._fh is None:
                return
            payload = {"ts": _iso_now(), "seq": self._seq}
            payload.update(event.model_dump(mode="json"))
            self._seq += 1
            self._fh.write(json.dumps(payload) + "\n")
            self._fh.flush()

    def close(self) -> None:
        """Close the file handle. Idempotent."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._fh is not None and not self._fh.closed:
                self._fh.close()


def read_recording(path: Path) -> Iterator[Event]:
    """Yield the events stored in a recording, in file order.

    Lines that are not valid events are skipped with a warning.
    """
    with path.open(encoding="utf-8") as fh:
        for lineno, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError:
                logger.warning("%s:%d: not valid JSON, skipping", path.name, lineno)
                continue
            if not isinstance(data, dict):
                continue
            data.pop("ts", None)
            data.pop("seq", None)
            try:
                yield parse_event(data)
            except ValidationError:
                logger.warning("%s:%d: not a runner event, skipping", path.name, lineno)


def _iso_now() -> str:
    """Return the current UTC time as ISO 8601 with milliseconds."""
    return datetime.now(tz=UTC).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z"
