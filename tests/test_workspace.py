"""Tests for working-directory resolution."""

from __future__ import annotations

import asyncio
import sys
import textwrap
from pathlib import Path

import pytest

from runwire.config.models import RunwireConfig
from runwire.errors import WorkspaceError
from runwire.runner.workspace import resolve_workspace


def _install_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, body: str) -> None:
    """Put a fake ``git`` first and only on PATH."""
    bin_dir = tmp_path / "gitbin"
    bin_dir.mkdir()
    git = bin_dir / "git"
    git.write_text(
        f"#!{sys.executable}\nimport sys, time\n" + textwrap.dedent(body),
        encoding="utf-8",
    )
    git.chmod(0o755)
    monkeypatch.setenv("PATH", str(bin_dir))


class TestSelector:
    async def test_directory(self, tmp_path: Path) -> None:
        assert await resolve_workspace(str(tmp_path)) == tmp_path.resolve()

    async def test_named_workspace(self, tmp_path: Path) -> None:
        config = RunwireConfig(workspaces={"proj": str(tmp_path)})
        assert await resolve_workspace("proj", config) == tmp_path.resolve()

    async def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(WorkspaceError, match="does not exist"):
            await resolve_workspace(str(tmp_path / "gone"))

    async def test_missing_named_workspace(self, tmp_path: Path) -> None:
        config = RunwireConfig(workspaces={"proj": str(tmp_path / "gone")})
        with pytest.raises(WorkspaceError, match="workspace 'proj'"):
            await resolve_workspace("proj", config)


class TestFallbacks:
    async def test_repo_root_env(self, tmp_path: Path) -> None:
        result = await resolve_workspace(None, env={"RUNWIRE_REPO_ROOT": str(tmp_path)})
        assert result == tmp_path.resolve()

    async def test_repo_root_env_missing(self, tmp_path: Path) -> None:
        with pytest.raises(WorkspaceError, match="RUNWIRE_REPO_ROOT"):
            await resolve_workspace(None, env={"RUNWIRE_REPO_ROOT": str(tmp_path / "gone")})

    async def test_git_toplevel(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        repo = tmp_path / "repo"
        _install_git(tmp_path, monkeypatch, f"print({str(repo)!r})\n")
        assert await resolve_workspace(None, env={}) == repo

    async def test_git_failure_uses_cwd(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _install_git(tmp_path, monkeypatch, "sys.exit(128)\n")
        monkeypatch.chdir(tmp_path)
        assert await resolve_workspace(None, env={}) == Path.cwd()

    async def test_no_git_uses_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.setenv("PATH", str(empty))
        monkeypatch.chdir(tmp_path)
        assert await resolve_workspace(None, env={}) == Path.cwd()

    async def test_slow_git_times_out(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _install_git(tmp_path, monkeypatch, "time.sleep(5)\nprint('/nowhere')\n")
        monkeypatch.setattr("runwire.runner.workspace._GIT_TIMEOUT", 0.2)
        monkeypatch.chdir(tmp_path)
        result = await asyncio.wait_for(resolve_workspace(None, env={}), timeout=3)
        assert result == Path.cwd()

    async def test_git_lookup_does_not_stall_event_loop(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        repo = tmp_path / "repo"
        _install_git(tmp_path, monkeypatch, f"time.sleep(0.6)\nprint({str(repo)!r})\n")
        gaps: list[float] = []

        async def tick() -> None:
            loop = asyncio.get_running_loop()
            last = loop.time()
            while True:
                await asyncio.sleep(0.02)
                now = loop.time()
                gaps.append(now - last)
                last = now

        ticker = asyncio.create_task(tick())
        try:
            result = await resolve_workspace(None, env={})
        finally:
            ticker.cancel()

        assert result == repo
        assert len(gaps) >= 10
        assert max(gaps) < 0.3
