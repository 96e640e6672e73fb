"""Working-directory resolution for runs."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from runwire.config.models import RunwireConfig
from runwire.constants import REPO_ROOT_ENV
from runwire.errors import WorkspaceError

logger = logging.getLogger(__name__)

#: Seconds allowed for ``git rev-parse`` when guessing the repository root.
_GIT_TIMEOUT = 2.0


async def resolve_workspace(
    selector: str | None = None,
    config: RunwireConfig | None = None,
    env: Mapping[str, str] | None = None,
) -> Path:
    """Return the directory a run executes in.

    *selector* is a workspace name from config or a directory path.
    Without one, falls back to ``$RUNWIRE_REPO_ROOT``, then the enclosing
    git repository, then the current directory.

    Raises:
        WorkspaceError: If the selected directory does not exist.
    """
    config = config or RunwireConfig()
    env = os.environ if env is None else env

    if selector is not None and selector.strip():
        selector = selector.strip()
        named = config.workspaces.get(selector)
        candidate = Path(named if named is not None else selector).expanduser()
        source = f"workspace '{selector}'" if named is not None else f"'{selector}'"
    else:
        root = env.get(REPO_ROOT_ENV, "").strip()
        if root:
            candidate = Path(root).expanduser()
            source = f"${REPO_ROOT_ENV}"
        else:
            return await _git_toplevel() or Path.cwd()

    if not candidate.is_dir():
        msg = f"Working directory for {source} does not exist: {candidate}"
        raise WorkspaceError(msg)
    return candidate.resolve()


async def _git_toplevel() -> Path | None:
    try:
        proc = await asyncio.create_subprocess_exec(
            "git",
            "rev-parse",
            "--show-toplevel",
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        logger.debug("git rev-parse failed to spawn: %s", exc)
        return None

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=_GIT_TIMEOUT)
    except TimeoutError:
        logger.debug("git rev-parse timed out after %gs", _GIT_TIMEOUT)
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()
        return None

    top = stdout.decode(errors="replace").strip()
    if proc.returncode != 0 or not top:
        return None
    return Path(top)
