"""Process runner — spawns backend CLIs and streams their output as events."""

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
import uuid
from dataclasses import dataclass
from typing import cast

from pydantic import BaseModel, ConfigDict, Field

from runwire.backends.args import build_args
from runwire.backends.credentials import CredentialStore
from runwire.backends.env import build_env
from runwire.backends.registry import BackendSpec, get_backend
from runwire.backends.resolver import BinaryResolver
from runwire.config.models import RunwireConfig
from runwire.constants import CLI_ENDPOINT, StreamName
from runwire.context.tracker import ContextTracker
from runwire.dispatch.dispatcher import EventDispatcher
from runwire.errors import SpawnError, ValidationError, WriteError
from runwire.events.models import (
    ContextEvent,
    ErrorEvent,
    Event,
    ExitEvent,
    StartEvent,
)
from runwire.runner.helpers import split_returncode
from runwire.runner.registry import RunHandle, RunRegistry
from runwire.runner.workspace import resolve_workspace
from runwire.stream.extractors import create_extractor

logger = logging.getLogger(__name__)

#: Bytes requested per stream read.
_READ_SIZE = 65_536

#: Seconds to wait after SIGTERM before SIGKILL during shutdown.
_SIGTERM_WAIT = 3.0


class RunRequest(BaseModel):
    """Input to :meth:`ProcessRunner.start`."""

    model_config = ConfigDict(extra="forbid")

    backend: str = Field(description="Backend kind, e.g. 'claude-code'")
    prompt: str = Field(description="Prompt written to the process's stdin")
    workspace: str | None = Field(
        default=None,
        description="Workspace name or directory; defaults to the repository root",
    )
    extra_args: list[str] = Field(
        default_factory=list,
        description="Caller-supplied CLI arguments",
    )
    run_id: str | None = Field(default=None, description="Run id; generated when omitted")
    context_id: str | None = Field(
        default=None,
        description="Resumable context id; wins over the tracked one",
    )
    conversation_id: str | None = Field(
        default=None,
        description="Conversation whose tracked context is resumed and updated",
    )


@dataclass(frozen=True)
class CancelResult:
    """Outcome of :meth:`ProcessRunner.cancel`."""

    ok: bool


class ProcessRunner:
    """Owns the lifecycle of every backend process started through it.

    ``start`` returns as soon as the process is spawned; everything after
    that is reported to the requesting endpoint as events through the
    dispatcher, ending with exactly one ``exit`` event per registered run.
    """

    def __init__(
        self,
        dispatcher: EventDispatcher,
        resolver: BinaryResolver | None = None,
        credentials: CredentialStore | None = None,
        tracker: ContextTracker | None = None,
        config: RunwireConfig | None = None,
    ) -> None:
        self._config = config or RunwireConfig()
        self._dispatcher = dispatcher
        self._resolver = resolver or BinaryResolver(self._config)
        self._credentials = credentials or CredentialStore.from_config(self._config)
        self._tracker = tracker
        self._registry = RunRegistry()
        # Run ids between the duplicate check and registration.
        self._starting: set[str] = set()

    @property
    def registry(self) -> RunRegistry:
        return self._registry

    # ------------------------------------------------------------------ #
    # Start
    # ------------------------------------------------------------------ #

    async def start(self, request: RunRequest, endpoint: str = CLI_ENDPOINT) -> str:
        """Spawn a run and return its id.

        Raises:
            ValidationError: Empty prompt, unknown backend, or a run id that
                is already live.
            WorkspaceError: The working directory cannot be resolved.
            NotFoundError: The backend executable cannot be found.
        """
        prompt = request.prompt.strip()
        if not prompt:
            msg = "Prompt must not be empty"
            raise ValidationError(msg)
        try:
            spec = get_backend(request.backend)
        except KeyError as exc:
            raise ValidationError(exc.args[0]) from None

        run_id = request.run_id or uuid.uuid4().hex
        if run_id in self._registry or run_id in self._starting:
            msg = f"Run '{run_id}' is already running"
            raise ValidationError(msg)

        self._starting.add(run_id)
        try:
            return await self._launch(request, spec, run_id, prompt, endpoint)
        finally:
            self._starting.discard(run_id)

    async def _launch(
        self,
        request: RunRequest,
        spec: BackendSpec,
        run_id: str,
        prompt: str,
        endpoint: str,
    ) -> str:
        cwd = await resolve_workspace(request.workspace, self._config)
        binary = self._resolver.resolve(spec.kind)

        context_id = request.context_id
        if not context_id and request.conversation_id and self._tracker is not None:
            context_id = self._tracker.lookup(request.conversation_id, spec.kind)

        overrides = self._config.backend(spec.kind)
        args = build_args(spec.kind, request.extra_args, context_id, overrides.default_args)
        env = build_env(spec.kind, self._credentials, self._config)
        command = [str(binary.path), *args]

        logger.info("%s: spawning %s in %s", run_id, " ".join(command), cwd)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=env,
                start_new_session=True,
            )
        except OSError as exc:
            error = SpawnError(f"Failed to spawn {spec.display_name}: {exc}")
            logger.error("%s: %s", run_id, error)
            self._dispatcher.dispatch(endpoint, ErrorEvent(run_id=run_id, message=str(error)))
            return run_id

        handle = RunHandle(
            run_id=run_id,
            backend=spec.kind,
            cwd=str(cwd),
            process=process,
            extractor=create_extractor(spec.protocol, run_id, spec.kind, context_id),
            endpoint=endpoint,
            context_id=context_id,
            conversation_id=request.conversation_id,
        )
        self._registry.add(handle)
        self._emit(handle, StartEvent(run_id=run_id, command=command, cwd=str(cwd)))
        handle.task = asyncio.create_task(self._supervise(handle, prompt), name=f"run-{run_id}")
        return run_id

    # ------------------------------------------------------------------ #
    # Cancel / wait / shutdown
    # ------------------------------------------------------------------ #

    def cancel(self, run_id: str) -> CancelResult:
        """Request termination of a live run; never raises.

        The run's ``exit`` event still follows asynchronously.
        """
        handle = self._registry.get(run_id)
        if handle is None or handle.cancelled or handle.process.returncode is not None:
            return CancelResult(ok=False)
        try:
            handle.process.terminate()
        except (ProcessLookupError, OSError) as exc:
            logger.debug("%s: terminate failed: %s", run_id, exc)
            return CancelResult(ok=False)
        handle.cancelled = True
        logger.info("%s: cancellation requested", run_id)
        return CancelResult(ok=True)

    async def wait(self, run_id: str) -> None:
        """Wait until *run_id* has emitted its ``exit`` event."""
        handle = self._registry.get(run_id)
        if handle is None or handle.task is None:
            return
        await asyncio.shield(handle.task)

    async def shutdown(self) -> None:
        """Terminate every live run and wait for their supervisors."""
        handles = list(self._registry)
        for handle in handles:
            self.cancel(handle.run_id)
        tasks = [h.task for h in handles if h.task is not None]
        if not tasks:
            return
        _, pending = await asyncio.wait(tasks, timeout=_SIGTERM_WAIT)
        for handle in handles:
            if handle.task in pending:
                self._kill(handle)
        if pending:
            await asyncio.wait(pending)

    # ------------------------------------------------------------------ #
    # Supervision
    # ------------------------------------------------------------------ #

    async def _supervise(self, handle: RunHandle, prompt: str) -> None:
        proc = handle.process
        # _launch() spawns with both output streams piped.
        stdout = cast(asyncio.StreamReader, proc.stdout)
        stderr = cast(asyncio.StreamReader, proc.stderr)
        pumps = [
            asyncio.create_task(self._pump(handle, "stdout", stdout)),
            asyncio.create_task(self._pump(handle, "stderr", stderr)),
        ]
        try:
            try:
                await self._write_prompt(handle, prompt)
            except WriteError as exc:
                logger.error("%s: %s", handle.run_id, exc)
                self._emit(handle, ErrorEvent(run_id=handle.run_id, message=str(exc)))
                self._kill(handle)

            await asyncio.gather(*pumps)
            returncode = await proc.wait()
        except asyncio.CancelledError:
            self._kill(handle)
            for task in pumps:
                task.cancel()
            self._registry.remove(handle.run_id)
            raise

        self._registry.remove(handle.run_id)
        code, signal_name = split_returncode(returncode)
        logger.info(
            "%s: exited (code=%s, signal=%s) after %d ms",
            handle.run_id,
            code,
            signal_name,
            handle.elapsed_ms(),
        )
        self._emit(
            handle,
            ExitEvent(
                run_id=handle.run_id,
                code=code,
                signal=signal_name,
                duration_ms=handle.elapsed_ms(),
            ),
        )

    async def _write_prompt(self, handle: RunHandle, prompt: str) -> None:
        stdin = handle.process.stdin
        if stdin is None:
            msg = "Failed to write prompt: stdin is not a pipe"
            raise WriteError(msg)
        try:
            stdin.write(prompt.encode("utf-8"))
            await stdin.drain()
            stdin.close()
            await stdin.wait_closed()
        except (BrokenPipeError, ConnectionResetError, OSError) as exc:
            msg = f"Failed to write prompt: {exc}"
            raise WriteError(msg) from exc

    async def _pump(
        self,
        handle: RunHandle,
        stream: StreamName,
        reader: asyncio.StreamReader,
    ) -> None:
        """Read *stream* to EOF, framing and extracting as data arrives."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        framer = handle.framers[stream]
        try:
            while True:
                chunk = await reader.read(_READ_SIZE)
                if not chunk:
                    break
                self._extract(handle, stream, framer.feed_terminated(decoder.decode(chunk)))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.error("%s: error reading %s: %s", handle.run_id, stream, exc)
            self._emit(
                handle,
                ErrorEvent(run_id=handle.run_id, message=f"Error reading {stream}: {exc}"),
            )
            self._kill(handle)

        # Trailing output without a final newline is still a line.
        lines = framer.feed_terminated(decoder.decode(b"", final=True))
        remainder = framer.flush()
        if remainder:
            lines.append(remainder)
        self._extract(handle, stream, lines)

    def _extract(self, handle: RunHandle, stream: StreamName, lines: list[str]) -> None:
        for line in lines:
            for event in handle.extractor.extract(stream, line):
                self._emit(handle, event)

    def _emit(self, handle: RunHandle, event: Event) -> None:
        if isinstance(event, ContextEvent):
            handle.context_id = event.context_id
            if handle.conversation_id and self._tracker is not None:
                self._tracker.observe(handle.conversation_id, event)
        self._dispatcher.dispatch(handle.endpoint, event)

    def _kill(self, handle: RunHandle) -> None:
        if handle.process.returncode is not None:
            return
        with contextlib.suppress(ProcessLookupError, OSError):
            handle.process.kill()
