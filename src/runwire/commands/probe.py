"""runwire probe — check that a backend answers a prompt."""

from __future__ import annotations

import asyncio

import click

from runwire.backends.registry import BACKEND_KINDS
from runwire.commands.common import load_cli_config
from runwire.runner.probe import DEFAULT_PROBE_PROMPT
from runwire.runner.probe import probe as run_probe


@click.command()
@click.argument("backend", type=click.Choice(BACKEND_KINDS))
@click.option("--prompt", default=DEFAULT_PROBE_PROMPT, show_default=True, help="Prompt to send.")
@click.option(
    "--timeout",
    type=float,
    default=None,
    help="Seconds before the probe gives up (default from config, 10s).",
)
@click.pass_context
def probe(ctx: click.Context, backend: str, prompt: str, timeout: float | None) -> None:
    """Send one prompt to BACKEND and report whether it answered."""
    config = load_cli_config(ctx)
    result = asyncio.run(run_probe(backend, prompt, timeout, config=config))  # type: ignore[arg-type]

    if result.command:
        click.echo(click.style(result.command, dim=True), err=True)
    if result.output:
        click.echo(result.output)

    if result.ok:
        click.echo(click.style(f"{backend}: OK", fg="green"), err=True)
        return
    click.echo(click.style(f"{backend}: FAILED — {result.error}", fg="red"), err=True)
    raise SystemExit(1)
