"""runwire replay — reconstruct a recorded run's output."""

from __future__ import annotations

from pathlib import Path

import click

from runwire.events.models import LogEvent
from runwire.events.recorder import read_recording


@click.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--stream",
    type=click.Choice(["stdout", "stderr"]),
    default="stdout",
    show_default=True,
    help="Which process stream to reconstruct.",
)
@click.option("--run-id", default=None, help="Only replay this run.")
def replay(file: Path, stream: str, run_id: str | None) -> None:
    """Print the STREAM output recorded in FILE, byte for byte."""
    found = False
    for event in read_recording(file):
        if not isinstance(event, LogEvent) or event.stream != stream:
            continue
        if run_id is not None and event.run_id != run_id:
            continue
        found = True
        click.echo(event.data, nl=False)

    if not found:
        click.echo(f"No {stream} output recorded in {file.name}", err=True)
        raise SystemExit(1)
