"""Shared constants and type aliases for the runwire runtime."""

from __future__ import annotations

from typing import Literal

#: Backend kinds runwire knows how to drive.
BackendKind = Literal[
    "claude-code",
    "claude-code-glm",
    "claude-code-kimi",
    "claude-code-minimax",
    "codex",
    "kimi-cli",
]

#: Output stream tags carried by ``log`` events.
StreamName = Literal["stdout", "stderr"]

#: Endpoint name used by the command line for its own event channel.
CLI_ENDPOINT = "cli"

#: Environment variable naming the default workspace root.
REPO_ROOT_ENV = "RUNWIRE_REPO_ROOT"
