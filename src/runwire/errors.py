"""Error taxonomy for the runner pipeline."""

from __future__ import annotations


class RunwireError(Exception):
    """Base class for all runwire errors."""


class ValidationError(RunwireError, ValueError):
    """A start request was malformed (e.g. empty prompt)."""


class NotFoundError(RunwireError):
    """The executable for a backend could not be resolved."""


class WorkspaceError(RunwireError):
    """The working directory for a run could not be resolved."""


class SpawnError(RunwireError):
    """The OS failed to create the backend process."""


class WriteError(RunwireError):
    """The prompt could not be delivered to the process's stdin."""


class ProtocolParseError(RunwireError):
    """A line failed structured parsing.

    Never propagated out of an extractor; the line is downgraded to a
    plain ``log`` event.
    """
