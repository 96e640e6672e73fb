"""Centralized construction of backend CLI arguments.

Each family has one builder.  All of them follow the same rule: required
flags are added only when the caller did not already pass them, and flags
listed as singletons keep only their first occurrence.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from runwire.backends.registry import get_backend
from runwire.constants import BackendKind

#: Bypass flag codex runs with; appears at most once.
CODEX_BYPASS_FLAG = "--yolo"

#: Arguments placed after the bypass flag for every codex run.
CODEX_DEFAULT_ARGS: tuple[str, ...] = ("-c", "model_reasoning_effort=high")

CLAUDE_SKIP_PERMISSIONS = "--dangerously-skip-permissions"

#: Claude flags that must not be repeated.
CLAUDE_SINGLETONS = frozenset({"--print", CLAUDE_SKIP_PERMISSIONS, "--verbose"})

CODEX_SINGLETONS = frozenset({CODEX_BYPASS_FLAG})


def clean_args(extra_args: Iterable[object] | None) -> list[str]:
    """Drop empty and non-string entries from caller-supplied arguments."""
    if not extra_args:
        return []
    return [a for a in extra_args if isinstance(a, str) and a]


def flag_names(args: Iterable[str]) -> set[str]:
    """Flag names present in *args*, counting ``--flag=value`` as ``--flag``."""
    return {token.split("=", 1)[0] for token in args}


def dedupe_singletons(args: Sequence[str], singletons: Iterable[str]) -> list[str]:
    """Keep only the first occurrence of each singleton flag, order preserved."""
    singleton_set = frozenset(singletons)
    seen: set[str] = set()
    result: list[str] = []
    for token in args:
        if token in singleton_set:
            if token in seen:
                continue
            seen.add(token)
        result.append(token)
    return result


def build_claude_args(
    extra_args: Iterable[object] | None = None,
    context_id: str | None = None,
) -> list[str]:
    """Arguments for the Claude Code family.

    Ensures non-interactive print mode, stream-json output, verbose
    output, and permission bypass, then appends ``--resume <id>`` when a
    context id is known and the caller did not pass their own resume flag.
    """
    args = clean_args(extra_args)
    present = flag_names(args)

    if "--print" not in present and "-p" not in present:
        args.append("--print")
    if CLAUDE_SKIP_PERMISSIONS not in present:
        args.insert(0, CLAUDE_SKIP_PERMISSIONS)
    if "--output-format" not in present:
        args.extend(["--output-format", "stream-json"])
    if "--verbose" not in present:
        args.append("--verbose")

    context_id = (context_id or "").strip()
    if context_id and "--resume" not in present and "-r" not in present:
        args.extend(["--resume", context_id])

    return dedupe_singletons(args, CLAUDE_SINGLETONS)


def build_codex_args(
    extra_args: Iterable[object] | None = None,
    context_id: str | None = None,
    default_args: Sequence[str] | None = None,
) -> list[str]:
    """Arguments for codex.

    Final shape: ``exec --yolo <defaults> <extra> [resume <id> -]``.  The
    trailing ``-`` makes codex read the prompt from stdin on resume.
    """
    defaults = CODEX_DEFAULT_ARGS if default_args is None else tuple(default_args)
    core = dedupe_singletons(
        [CODEX_BYPASS_FLAG, *defaults, *clean_args(extra_args)],
        CODEX_SINGLETONS,
    )
    args = ["exec", *core]
    context_id = (context_id or "").strip()
    if context_id:
        args.extend(["resume", context_id, "-"])
    return args


def build_args(
    backend: BackendKind,
    extra_args: Iterable[object] | None = None,
    context_id: str | None = None,
    default_args: Sequence[str] | None = None,
) -> list[str]:
    """Dispatch to the argument builder for *backend*'s family."""
    spec = get_backend(backend)
    match spec.family:
        case "claude":
            args = list(default_args or []) + clean_args(extra_args)
            return build_claude_args(args, context_id)
        case "codex":
            return build_codex_args(extra_args, context_id, default_args)
        case _:
            return list(default_args or []) + clean_args(extra_args)
