"""Conversation stores — where resumable context ids live between runs."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class ConversationStore(Protocol):
    """Maps (conversation id, backend kind) to a context id."""

    def get_context(self, conversation_id: str, backend: str) -> str | None:
        ...

    def set_context(self, conversation_id: str, backend: str, context_id: str) -> None:
        ...

    def contexts(self, conversation_id: str) -> dict[str, str]:
        """All known context ids for *conversation_id*, keyed by backend."""
        ...


class MemoryConversationStore:
    """Process-local store; forgotten when the process exits."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, str]] = {}

    def get_context(self, conversation_id: str, backend: str) -> str | None:
        return self._data.get(conversation_id, {}).get(backend)

    def set_context(self, conversation_id: str, backend: str, context_id: str) -> None:
        self._data.setdefault(conversation_id, {})[backend] = context_id

    def contexts(self, conversation_id: str) -> dict[str, str]:
        return dict(self._data.get(conversation_id, {}))


class JsonConversationStore:
    """Store backed by a single JSON document.

    The whole document is rewritten on every change through a temp file
    and ``os.replace``, so readers never observe a half-written file.  An
    unreadable or malformed file reads as empty.
    """

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get_context(self, conversation_id: str, backend: str) -> str | None:
        return self._read().get(conversation_id, {}).get(backend)

    def set_context(self, conversation_id: str, backend: str, context_id: str) -> None:
        with self._lock:
            data = self._read()
            data.setdefault(conversation_id, {})[backend] = context_id
            self._write(data)

    def contexts(self, conversation_id: str) -> dict[str, str]:
        return dict(self._read().get(conversation_id, {}))

    # ------------------------------------------------------------------ #
    # File I/O
    # ------------------------------------------------------------------ #

    def _read(self) -> dict[str, dict[str, str]]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable conversation store %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring conversation store %s: not a JSON object", self._path)
            return {}
        data: dict[str, dict[str, str]] = {}
        for conversation_id, contexts in raw.items():
            if isinstance(contexts, dict):
                data[conversation_id] = {
                    str(k): v for k, v in contexts.items() if isinstance(v, str)
                }
        return data

    def _write(self, data: dict[str, dict[str, str]]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent, prefix=f".{self._path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
