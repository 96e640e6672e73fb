"""Process runner — spawn, stream, cancel, and probe backend CLIs."""

from runwire.runner.probe import DEFAULT_PROBE_PROMPT, ProbeResult, probe
from runwire.runner.process import CancelResult, ProcessRunner, RunRequest
from runwire.runner.registry import RunHandle, RunRegistry
from runwire.runner.workspace import resolve_workspace

__all__ = [
    "DEFAULT_PROBE_PROMPT",
    "CancelResult",
    "ProbeResult",
    "ProcessRunner",
    "RunHandle",
    "RunRegistry",
    "RunRequest",
    "probe",
    "resolve_workspace",
]
