"""Static metadata for every backend runwire can drive."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import Literal, get_args

from runwire.constants import BackendKind

WireProtocol = Literal["jsonl", "text"]
Family = Literal["claude", "codex", "kimi"]

_IS_WINDOWS = sys.platform == "win32"


def _binaries(*names: str) -> tuple[str, ...]:
    if _IS_WINDOWS:
        return tuple(f"{n}.exe" for n in names) + names
    return names


@dataclass(frozen=True)
class BackendSpec:
    """Everything needed to find, launch, and read one backend."""

    kind: BackendKind
    display_name: str
    family: Family
    protocol: WireProtocol
    binaries: tuple[str, ...]
    env_override: str
    base_url: str | None = None
    credential_key: str | None = None


_CLAUDE_BINARIES = _binaries("claude-code", "claude")

BACKENDS: dict[BackendKind, BackendSpec] = {
    "claude-code": BackendSpec(
        kind="claude-code",
        display_name="Claude Code",
        family="claude",
        protocol="jsonl",
        binaries=_CLAUDE_BINARIES,
        env_override="CLAUDE_CODE_BIN",
    ),
    "claude-code-glm": BackendSpec(
        kind="claude-code-glm",
        display_name="Claude Code (GLM)",
        family="claude",
        protocol="jsonl",
        binaries=_CLAUDE_BINARIES,
        env_override="CLAUDE_CODE_BIN",
        base_url="https://open.bigmodel.cn/api/anthropic",
        credential_key="glm",
    ),
    "claude-code-kimi": BackendSpec(
        kind="claude-code-kimi",
        display_name="Claude Code (Kimi)",
        family="claude",
        protocol="jsonl",
        binaries=_CLAUDE_BINARIES,
        env_override="CLAUDE_CODE_BIN",
        base_url="https://api.moonshot.cn/anthropic",
        credential_key="kimi",
    ),
    "claude-code-minimax": BackendSpec(
        kind="claude-code-minimax",
        display_name="Claude Code (MiniMax)",
        family="claude",
        protocol="jsonl",
        binaries=_CLAUDE_BINARIES,
        env_override="CLAUDE_CODE_BIN",
        base_url="https://api.minimax.chat/v1/text/chatcompletion_v2",
        credential_key="minmax",
    ),
    "codex": BackendSpec(
        kind="codex",
        display_name="Codex",
        family="codex",
        protocol="text",
        binaries=_binaries("codex", "openai-codex"),
        env_override="CODEX_BIN",
    ),
    "kimi-cli": BackendSpec(
        kind="kimi-cli",
        display_name="Kimi CLI",
        family="kimi",
        protocol="text",
        binaries=_binaries("kimi-cli", "kimi", "moonshot"),
        env_override="KIMI_CLI_BIN",
    ),
}

#: All backend kinds, in display order.
BACKEND_KINDS: tuple[BackendKind, ...] = get_args(BackendKind)


def get_backend(kind: str) -> BackendSpec:
    """Look up a backend by kind.

    Raises:
        KeyError: If *kind* is not a known backend.
    """
    try:
        return BACKENDS[kind]  # type: ignore[index]
    except KeyError:
        available = ", ".join(BACKEND_KINDS)
        msg = f"Unknown backend '{kind}' — available backends: {available}"
        raise KeyError(msg) from None
