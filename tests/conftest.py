"""Shared fixtures: fake backend executables written as small Python scripts."""

from __future__ import annotations

import sys
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

FakeBackend = Callable[..., Path]


@pytest.fixture
def fake_backend(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> FakeBackend:
    """Return a factory writing an executable script and pointing a backend at it.

    The script body runs after ``import sys, time``.  The backend is
    selected through its override environment variable.
    """
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _make(body: str, env_var: str = "CLAUDE_CODE_BIN", name: str = "fake-agent") -> Path:
        path = bin_dir / name
        path.write_text(
            f"#!{sys.executable}\nimport sys, time\n" + textwrap.dedent(body),
            encoding="utf-8",
        )
        path.chmod(0o755)
        monkeypatch.setenv(env_var, str(path))
        return path

    return _make


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the real ~/.runwire files and the caller's credentials."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    for var in (
        "CLAUDE_CODE_BIN",
        "CODEX_BIN",
        "KIMI_CLI_BIN",
        "RUNWIRE_REPO_ROOT",
        "ANTHROPIC_API_KEY",
        "ANTHROPIC_AUTH_TOKEN",
        "ANTHROPIC_BASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
