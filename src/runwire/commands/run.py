"""runwire run — send one prompt to a backend and stream the result."""

from __future__ import annotations

import asyncio
import uuid
from pathlib import Path

import click

from runwire.backends.registry import BACKEND_KINDS, get_backend
from runwire.client.models import ChatState, Conversation, Message
from runwire.client.reducer import EventReducer
from runwire.commands.common import conversation_store, load_cli_config
from runwire.config.models import RunwireConfig
from runwire.constants import CLI_ENDPOINT
from runwire.context.tracker import ContextTracker
from runwire.dispatch.channels import Channel, FanoutChannel, QueueChannel, RecorderChannel
from runwire.dispatch.dispatcher import EventDispatcher
from runwire.errors import RunwireError
from runwire.events.models import (
    ContextEvent,
    ErrorEvent,
    Event,
    ExitEvent,
    LogEvent,
)
from runwire.events.recorder import RunRecorder
from runwire.runner.process import ProcessRunner, RunRequest


class _Renderer:
    """Prints events for a terminal and folds them into a message."""

    def __init__(
        self,
        run_id: str,
        backend: str,
        as_json: bool,
        show_logs: bool,
    ) -> None:
        self._as_json = as_json
        self._show_logs = show_logs
        self._plain = get_backend(backend).protocol == "text"
        self.message = Message(role="assistant", run_id=run_id, backend=backend)
        self._reducer = EventReducer(ChatState(conversations=[Conversation(messages=[self.message])]))

    def show(self, event: Event) -> None:
        self._reducer.apply(event)
        if self._as_json:
            click.echo(event.model_dump_json())
            return

        match event:
            case LogEvent(stream="stderr", data=data) if self._show_logs:
                click.echo(data, nl=False, err=True)
            case LogEvent(stream="stdout", data=data) if self._show_logs or self._plain:
                click.echo(data, nl=False)
            case ContextEvent(context_id=context_id):
                click.echo(click.style(f"context: {context_id}", dim=True), err=True)
            case ErrorEvent(message=message):
                click.echo(click.style(f"Error: {message}", fg="red"), err=True)
            case ExitEvent():
                self._show_exit(event)

    def _show_exit(self, event: ExitEvent) -> None:
        if not self._plain and self.message.output:
            click.echo(self.message.output)
        if event.signal:
            summary = f"terminated by {event.signal} after {event.duration_ms} ms"
        else:
            summary = f"exit {event.code} after {event.duration_ms} ms"
        color = "green" if self.message.status == "success" else "red"
        click.echo(click.style(summary, fg=color), err=True)

    def exit_status(self) -> int:
        if self.message.status == "success":
            return 0
        return 1


@click.command()
@click.argument("backend", type=click.Choice(BACKEND_KINDS))
@click.argument("prompt")
@click.option("--cwd", "workspace", default=None, help="Workspace name or directory.")
@click.option(
    "--arg",
    "extra_args",
    multiple=True,
    help="Extra argument passed to the backend CLI (repeatable).",
)
@click.option("--resume", "context_id", default=None, help="Context id to resume.")
@click.option(
    "--conversation",
    "conversation_id",
    default=None,
    help="Conversation id; resumes and remembers the backend's context.",
)
@click.option("--run-id", default=None, help="Run id (generated when omitted).")
@click.option("--json", "as_json", is_flag=True, help="Print every event as a JSON line.")
@click.option("--logs", "show_logs", is_flag=True, help="Echo raw process output.")
@click.option(
    "--record",
    "record_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory to write a JSONL recording of the run's events.",
)
@click.pass_context
def run(
    ctx: click.Context,
    backend: str,
    prompt: str,
    workspace: str | None,
    extra_args: tuple[str, ...],
    context_id: str | None,
    conversation_id: str | None,
    run_id: str | None,
    as_json: bool,
    show_logs: bool,
    record_dir: Path | None,
) -> None:
    """Run PROMPT on BACKEND and stream its output.

    Pass ``-`` as PROMPT to read it from standard input.
    """
    config = load_cli_config(ctx)
    if prompt == "-":
        prompt = click.get_text_stream("stdin").read()

    request = RunRequest(
        backend=backend,
        prompt=prompt,
        workspace=workspace,
        extra_args=list(extra_args),
        run_id=run_id,
        context_id=context_id,
        conversation_id=conversation_id,
    )
    status = asyncio.run(_run(config, request, as_json, show_logs, record_dir))
    raise SystemExit(status)


async def _run(
    config: RunwireConfig,
    request: RunRequest,
    as_json: bool,
    show_logs: bool,
    record_dir: Path | None,
) -> int:
    # The renderer needs the id before start() would generate one.
    run_id = request.run_id or uuid.uuid4().hex
    request = request.model_copy(update={"run_id": run_id})
    dispatcher = EventDispatcher()
    tracker = ContextTracker(conversation_store(config)) if request.conversation_id else None
    runner = ProcessRunner(dispatcher, tracker=tracker, config=config)

    queue_channel = QueueChannel()
    channel: Channel = queue_channel
    recorder: RunRecorder | None = None
    if record_dir is not None:
        recorder = RunRecorder(request.backend, record_dir)
        channel = FanoutChannel([queue_channel, RecorderChannel(recorder)])
    dispatcher.connect(CLI_ENDPOINT, channel)

    renderer = _Renderer(run_id, request.backend, as_json, show_logs)
    try:
        try:
            await runner.start(request, CLI_ENDPOINT)
        except RunwireError as exc:
            click.echo(f"Error: {exc}", err=True)
            return 1

        if run_id not in runner.registry:
            # Spawn failed; only the error event was dispatched.
            while not queue_channel.queue.empty():
                renderer.show(queue_channel.queue.get_nowait())
            return 1

        while True:
            event = await queue_channel.queue.get()
            renderer.show(event)
            if isinstance(event, ExitEvent):
                return renderer.exit_status()
    finally:
        await runner.shutdown()
        if recorder is not None:
            recorder.close()
            click.echo(f"Recording saved to {recorder.path}", err=True)
