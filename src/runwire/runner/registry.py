"""Run registry — the live runs of one host process, keyed by run id."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Iterator
from dataclasses import dataclass, field

from runwire.constants import BackendKind, StreamName
from runwire.stream.extractors import PlainTextExtractor, StructuredExtractor
from runwire.stream.framer import LineFramer


@dataclass
class RunHandle:
    """Everything the runner owns for one spawned process."""

    run_id: str
    backend: BackendKind
    cwd: str
    process: asyncio.subprocess.Process
    extractor: StructuredExtractor | PlainTextExtractor
    endpoint: str
    context_id: str | None = None
    conversation_id: str | None = None
    started_at: float = field(default_factory=time.monotonic)
    framers: dict[StreamName, LineFramer] = field(
        default_factory=lambda: {"stdout": LineFramer(), "stderr": LineFramer()}
    )
    cancelled: bool = False
    task: asyncio.Task[None] | None = None

    @property
    def pid(self) -> int:
        return self.process.pid

    def elapsed_ms(self) -> int:
        return max(0, int((time.monotonic() - self.started_at) * 1000))


class RunRegistry:
    """Map of run id to :class:`RunHandle`.

    Entries are added at spawn and removed by the run's own supervisor
    after its output has been flushed.  All access happens on the event
    loop thread, so no locking is needed.
    """

    def __init__(self) -> None:
        self._runs: dict[str, RunHandle] = {}

    def __contains__(self, run_id: object) -> bool:
        return run_id in self._runs

    def __len__(self) -> int:
        return len(self._runs)

    def __iter__(self) -> Iterator[RunHandle]:
        return iter(list(self._runs.values()))

    def add(self, handle: RunHandle) -> None:
        if handle.run_id in self._runs:
            msg = f"Run '{handle.run_id}' is already registered"
            raise KeyError(msg)
        self._runs[handle.run_id] = handle

    def get(self, run_id: str) -> RunHandle | None:
        return self._runs.get(run_id)

    def remove(self, run_id: str) -> RunHandle | None:
        return self._runs.pop(run_id, None)

    def run_ids(self) -> list[str]:
        return list(self._runs)
