"""Locate backend executables and probe their versions."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from runwire.backends.registry import BACKEND_KINDS, BackendSpec, get_backend
from runwire.config.models import RunwireConfig
from runwire.constants import BackendKind
from runwire.errors import NotFoundError

logger = logging.getLogger(__name__)

#: Seconds allowed for each version probe attempt.
VERSION_TIMEOUT = 1.5

#: Argument lists tried, in order, when probing a version.
_VERSION_ARGS: tuple[tuple[str, ...], ...] = (("--version",), ("version",), ("-v",))

#: Interpreters whose scripts are treated as wrappers around a real entry point.
_SHELL_INTERPRETERS = frozenset({"sh", "bash", "zsh", "dash", "ksh"})

#: Bytes read from a candidate when looking for a shebang and exec line.
_SCRIPT_READ_LIMIT = 64 * 1024

#: Extensions that mark an exec argument as an interpreted entry point.
_ENTRY_SUFFIXES = (".js", ".mjs", ".cjs", ".py")

_EXEC_LINE_RE = re.compile(r"^\s*exec\s+(?P<cmd>.+)$", re.MULTILINE)

#: Shell idioms that expand to the wrapper's own directory.
_BASEDIR_RE = re.compile(
    r"""\$\{basedir\}|\$basedir|\$\(dirname\s+"?\$0"?\)|`dirname\s+"?\$0"?`"""
)


@dataclass(frozen=True)
class ResolvedBinary:
    """Result of resolving a backend executable.

    ``path`` is what gets spawned.  When ``path`` is a shell wrapper (or a
    symlink to an interpreted script), ``entry_point`` names the real script
    it runs and ``interpreter`` the runtime it runs under, for callers that
    need to invoke it through that runtime directly.
    """

    backend: BackendKind
    path: Path
    entry_point: Path | None = None
    interpreter: str | None = None


@dataclass(frozen=True)
class DetectResult:
    """Outcome of detecting one backend; fields are None when not found."""

    name: BackendKind
    executable_path: str | None = None
    version: str | None = None


def default_install_dirs(home: Path | None = None) -> list[Path]:
    """Directories where agent CLIs commonly live outside of PATH."""
    if home is None:
        home = Path.home()
    dirs = [
        home / ".local" / "bin",
        home / ".volta" / "bin",
        home / ".asdf" / "shims",
        home / ".npm-global" / "bin",
        home / "bin",
        Path("/opt/homebrew/bin"),
        Path("/usr/local/bin"),
    ]
    nvm_root = home / ".nvm" / "versions" / "node"
    with contextlib.suppress(OSError):
        versions = sorted(
            (p for p in nvm_root.iterdir() if p.name.startswith("v")),
            key=lambda p: p.name,
            reverse=True,
        )
        if versions:
            dirs.append(versions[0] / "bin")
    return dirs


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class BinaryResolver:
    """Resolve backend kinds to executables.

    Resolution order: the backend's override env var, the ``bin`` set in
    config, then extra install directories followed by ``PATH``.
    """

    def __init__(
        self,
        config: RunwireConfig | None = None,
        env: Mapping[str, str] | None = None,
        install_dirs: list[Path] | None = None,
    ) -> None:
        self._config = config or RunwireConfig()
        self._env = env
        self._install_dirs = install_dirs

    @property
    def env(self) -> Mapping[str, str]:
        return os.environ if self._env is None else self._env

    def search_dirs(self) -> list[Path]:
        """Extra install directories followed by PATH entries, deduplicated."""
        extra = [Path(d).expanduser() for d in self._config.install_dirs]
        if self._install_dirs is not None:
            extra.extend(self._install_dirs)
        else:
            extra.extend(default_install_dirs())
        path_entries = [Path(p) for p in self.env.get("PATH", "").split(os.pathsep) if p]

        seen: set[Path] = set()
        result: list[Path] = []
        for entry in [*extra, *path_entries]:
            if entry in seen:
                continue
            seen.add(entry)
            result.append(entry)
        return result

    def find_executable(self, backend: BackendKind) -> Path:
        """Return the executable for *backend*.

        Raises:
            NotFoundError: If no candidate is an executable file.
        """
        spec = get_backend(backend)

        for override in self._overrides(spec):
            if _is_executable(override):
                return override.absolute()
            logger.warning(
                "%s: override %s is not an executable file, scanning PATH",
                backend,
                override,
            )

        dirs = self.search_dirs()
        for name in spec.binaries:
            for entry in dirs:
                candidate = entry / name
                if _is_executable(candidate):
                    return candidate.absolute()

        msg = (
            f"{spec.display_name} not found on PATH. "
            f"You can set {spec.env_override} to its absolute path."
        )
        raise NotFoundError(msg)

    def resolve(self, backend: BackendKind) -> ResolvedBinary:
        """Find the executable for *backend* and unwrap it if it is a wrapper."""
        path = self.find_executable(backend)
        entry_point, interpreter = resolve_entry_point(path)
        if entry_point is not None:
            logger.debug("%s: %s runs %s via %s", backend, path, entry_point, interpreter)
        return ResolvedBinary(
            backend=backend,
            path=path,
            entry_point=entry_point,
            interpreter=interpreter,
        )

    def _overrides(self, spec: BackendSpec) -> list[Path]:
        overrides: list[Path] = []
        env_value = self.env.get(spec.env_override, "").strip()
        if env_value:
            overrides.append(Path(env_value).expanduser())
        config_bin = self._config.backend(spec.kind).bin
        if config_bin and config_bin.strip():
            overrides.append(Path(config_bin.strip()).expanduser())
        return overrides


# ------------------------------------------------------------------ #
# Wrapper unwrapping
# ------------------------------------------------------------------ #


def _read_shebang(path: Path) -> tuple[str | None, str]:
    """Return ``(interpreter name, script text)`` for *path*.

    The interpreter is None for files without a ``#!`` line.
    """
    try:
        with path.open("rb") as fh:
            head = fh.read(_SCRIPT_READ_LIMIT)
    except OSError:
        return None, ""
    if not head.startswith(b"#!"):
        return None, ""
    text = head.decode("utf-8", errors="replace")
    first_line = text.splitlines()[0][2:].strip()
    parts = first_line.split()
    if not parts:
        return None, text
    interpreter = os.path.basename(parts[0])
    if interpreter == "env":
        rest = [p for p in parts[1:] if not p.startswith("-")]
        interpreter = os.path.basename(rest[0]) if rest else "env"
    return interpreter, text


def _exec_targets(script: str, script_dir: Path) -> tuple[Path | None, str | None]:
    """Find the entry point a shell wrapper execs into."""
    for match in _EXEC_LINE_RE.finditer(script):
        command = _BASEDIR_RE.sub(lambda _m: str(script_dir), match.group("cmd"))
        try:
            tokens = shlex.split(command, comments=True)
        except ValueError:
            continue
        tokens = [t for t in tokens if t and not t.startswith("$")]
        if not tokens:
            continue
        runtime = os.path.basename(tokens[0])
        for token in tokens[1:]:
            if token.endswith(_ENTRY_SUFFIXES):
                candidate = _anchor(Path(token), script_dir)
                if candidate.is_file():
                    return candidate.resolve(), runtime
        candidate = _anchor(Path(tokens[0]), script_dir)
        if candidate.is_file() and candidate.suffix in _ENTRY_SUFFIXES:
            interpreter, _ = _read_shebang(candidate)
            return candidate.resolve(), interpreter
    return None, None


def _anchor(path: Path, base: Path) -> Path:
    return path if path.is_absolute() else base / path


def resolve_entry_point(path: Path) -> tuple[Path | None, str | None]:
    """Resolve a wrapper or symlinked script to ``(entry point, interpreter)``.

    Returns ``(None, None)`` when *path* is a native binary or when no
    better target can be found.
    """
    real = path.resolve()
    interpreter, script = _read_shebang(real)
    if interpreter is None:
        return None, None
    if interpreter in _SHELL_INTERPRETERS:
        return _exec_targets(script, real.parent)
    if real != path.absolute():
        # e.g. an npm bin symlink pointing straight at cli.js
        return real, interpreter
    return None, None


# ------------------------------------------------------------------ #
# Version probing and detection
# ------------------------------------------------------------------ #


async def _try_version(path: Path, args: tuple[str, ...], timeout: float) -> str | None:
    try:
        proc = await asyncio.create_subprocess_exec(
            str(path),
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env={**os.environ, "NO_COLOR": "1"},
        )
    except OSError as exc:
        logger.debug("version probe of %s failed to spawn: %s", path, exc)
        return None

    readers = [
        asyncio.create_task(stream.read())
        for stream in (proc.stdout, proc.stderr)
        if stream is not None
    ]
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except TimeoutError:
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()

    done, pending = await asyncio.wait(readers, timeout=0.5)
    for task in pending:
        task.cancel()
    outputs = [
        task.result().decode(errors="replace").strip() if task in done else ""
        for task in readers
    ]
    return next((text for text in outputs if text), None)


async def probe_version(path: Path, timeout: float = VERSION_TIMEOUT) -> str | None:
    """Best-effort version string for an executable; never raises."""
    for args in _VERSION_ARGS:
        try:
            version = await _try_version(path, args, timeout)
        except Exception as exc:
            logger.debug("version probe of %s %s failed: %s", path, args, exc)
            continue
        if version:
            return version
    return None


async def detect(
    backend: BackendKind,
    resolver: BinaryResolver | None = None,
    timeout: float = VERSION_TIMEOUT,
) -> DetectResult:
    """Resolve *backend* and probe its version; never raises."""
    resolver = resolver or BinaryResolver()
    try:
        path = resolver.find_executable(backend)
    except NotFoundError:
        return DetectResult(name=backend)
    version = await probe_version(path, timeout=timeout)
    return DetectResult(name=backend, executable_path=str(path), version=version)


async def detect_all(
    resolver: BinaryResolver | None = None,
    timeout: float = VERSION_TIMEOUT,
) -> dict[BackendKind, DetectResult]:
    """Detect every known backend concurrently."""
    resolver = resolver or BinaryResolver()
    results = await asyncio.gather(
        *(detect(kind, resolver, timeout) for kind in BACKEND_KINDS)
    )
    return {result.name: result for result in results}
