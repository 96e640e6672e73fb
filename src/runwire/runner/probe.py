"""Connectivity probe — one bounded run to check a backend actually answers."""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
import shlex
from dataclasses import dataclass
from typing import cast

from runwire.backends.args import build_args
from runwire.backends.credentials import CredentialStore
from runwire.backends.env import BASE_URL_ENV_KEY, CREDENTIAL_ENV_KEYS, build_env
from runwire.backends.registry import get_backend
from runwire.backends.resolver import BinaryResolver
from runwire.config.models import RunwireConfig
from runwire.constants import BackendKind
from runwire.errors import NotFoundError
from runwire.runner.helpers import format_stderr_preview
from runwire.stream.extractors import final_text
from runwire.stream.framer import LineFramer

logger = logging.getLogger(__name__)

#: Prompt sent when the caller does not supply one.
DEFAULT_PROBE_PROMPT = "Reply with the single word: pong"


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a connectivity probe.

    ``output`` is the parsed answer for JSON-lines backends (falling back
    to stderr), or raw stdout for plain-text ones.  ``command`` is a
    printable rendering with credentials masked.
    """

    ok: bool
    output: str = ""
    error: str | None = None
    command: str = ""


class _InitWatcher:
    """Tracks whether anything but the ``system``/``init`` message arrived."""

    def __init__(self) -> None:
        self.got_init = False
        self.got_other = False
        self._framer = LineFramer()

    @property
    def only_init(self) -> bool:
        return self.got_init and not self.got_other

    def feed(self, chunk: str) -> None:
        for line in self._framer.feed(chunk):
            self._classify(line)

    def finish(self) -> None:
        self._classify(self._framer.flush())

    def _classify(self, line: str) -> None:
        line = line.strip()
        if not line:
            return
        try:
            obj = json.loads(line)
        except json.JSONDecodeError:
            obj = None
        if isinstance(obj, dict) and obj.get("type") == "system" and obj.get("subtype") == "init":
            self.got_init = True
        else:
            self.got_other = True


def printable_command(argv: list[str], env: dict[str, str]) -> str:
    """Shell-like rendering of a probe invocation, credentials masked."""
    assigns: list[str] = []
    if any(env.get(key) for key in CREDENTIAL_ENV_KEYS):
        assigns.append("ANTHROPIC_AUTH_TOKEN=******")
    if env.get(BASE_URL_ENV_KEY):
        assigns.append(f"{BASE_URL_ENV_KEY}={env[BASE_URL_ENV_KEY]}")
    return " ".join([*assigns, shlex.join(argv), "<stdin>"])


async def probe(
    backend: BackendKind,
    prompt: str = DEFAULT_PROBE_PROMPT,
    timeout: float | None = None,
    resolver: BinaryResolver | None = None,
    credentials: CredentialStore | None = None,
    config: RunwireConfig | None = None,
) -> ProbeResult:
    """Run *backend* once with *prompt* and report whether it answered.

    Never raises for process-level failures; they are reported in the
    result.  A JSON-lines backend that only printed its ``init`` message
    before exiting or timing out is reported as failed, which usually
    means a bad credential or a blocked network.
    """
    config = config or RunwireConfig()
    spec = get_backend(backend)
    resolver = resolver or BinaryResolver(config)
    credentials = credentials or CredentialStore.from_config(config)
    if timeout is None:
        timeout = config.probe.timeout

    try:
        path = resolver.find_executable(spec.kind)
    except NotFoundError as exc:
        return ProbeResult(ok=False, error=str(exc))

    overrides = config.backend(spec.kind)
    argv = [str(path), *build_args(spec.kind, None, None, overrides.default_args)]
    env = build_env(spec.kind, credentials, config)
    command = printable_command(argv, env)
    logger.info("probe %s: %s", backend, command)

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=env,
            start_new_session=True,
        )
    except OSError as exc:
        return ProbeResult(ok=False, error=str(exc), command=command)

    stdout = cast(asyncio.StreamReader, proc.stdout)
    stderr = cast(asyncio.StreamReader, proc.stderr)
    stdout_parts: list[str] = []
    stderr_parts: list[str] = []
    watcher = _InitWatcher()

    async def read_stdout(reader: asyncio.StreamReader) -> None:
        while chunk := await reader.read(65_536):
            text = chunk.decode(errors="replace")
            stdout_parts.append(text)
            watcher.feed(text)

    async def read_stderr(reader: asyncio.StreamReader) -> None:
        while chunk := await reader.read(65_536):
            stderr_parts.append(chunk.decode(errors="replace"))

    readers = [
        asyncio.create_task(read_stdout(stdout)),
        asyncio.create_task(read_stderr(stderr)),
    ]

    if proc.stdin is not None:
        with contextlib.suppress(BrokenPipeError, ConnectionResetError, OSError):
            proc.stdin.write(prompt.encode("utf-8"))
            await proc.stdin.drain()
            proc.stdin.close()

    timed_out = False
    try:
        await asyncio.wait_for(proc.wait(), timeout=timeout)
    except TimeoutError:
        timed_out = True
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        await proc.wait()

    _, pending = await asyncio.wait(readers, timeout=1.0)
    for task in pending:
        task.cancel()
    watcher.finish()

    stdout_text = "".join(stdout_parts)
    stderr_text = "".join(stderr_parts)
    if spec.protocol == "jsonl":
        output = final_text(stdout_text.splitlines()) or stderr_text.strip()
        only_init = watcher.only_init
    else:
        output = stdout_text.strip() or stderr_text.strip()
        only_init = False

    if timed_out:
        error = (
            f"No output after init within {timeout:g}s; the credential may be "
            "invalid or the network blocked"
            if only_init
            else None
        )
        return ProbeResult(ok=not only_init, output=output, error=error, command=command)

    if proc.returncode == 0 and not only_init:
        return ProbeResult(ok=True, output=output, command=command)

    if only_init:
        error = "No output after init; the credential may be invalid"
    else:
        error = f"exit {proc.returncode}"
        preview = format_stderr_preview(stderr_text)
        if preview:
            error += f"\n  {preview}"
    return ProbeResult(ok=False, output=output, error=error, command=command)
