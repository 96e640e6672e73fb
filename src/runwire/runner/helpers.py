"""Shared helper functions for the process runner."""

from __future__ import annotations

import signal


def format_stderr_preview(stderr_text: str, max_lines: int = 5) -> str:
    """Extract and format the last N non-empty lines from stderr output."""
    lines = [line for line in stderr_text.splitlines() if line.strip()]
    last = lines[-max_lines:] if len(lines) > max_lines else lines
    return "\n  ".join(last)


def split_returncode(returncode: int | None) -> tuple[int | None, str | None]:
    """Turn an asyncio return code into ``(code, signal name)``.

    Negative return codes mean the process was killed by that signal, in
    which case the code is None.
    """
    if returncode is None or returncode >= 0:
        return returncode, None
    try:
        name = signal.Signals(-returncode).name
    except ValueError:
        name = f"SIG{-returncode}"
    return None, name
