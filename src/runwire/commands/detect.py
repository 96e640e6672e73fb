"""runwire detect — show which backends are installed and their versions."""

from __future__ import annotations

import asyncio
import json

import click

from runwire.backends.registry import BACKEND_KINDS, BACKENDS
from runwire.backends.resolver import BinaryResolver, DetectResult, detect_all
from runwire.backends.resolver import detect as detect_backend
from runwire.commands.common import load_cli_config


def _format_result(result: DetectResult) -> str:
    name = BACKENDS[result.name].display_name
    if result.executable_path is None:
        return f"{click.style('✗', fg='red')} {name:<24} not found"
    version = result.version or "unknown version"
    return f"{click.style('✓', fg='green')} {name:<24} {result.executable_path} ({version})"


@click.command()
@click.argument("backend", required=False, type=click.Choice(BACKEND_KINDS))
@click.option("--json", "as_json", is_flag=True, help="Print results as JSON.")
@click.pass_context
def detect(ctx: click.Context, backend: str | None, as_json: bool) -> None:
    """Detect installed backends (or only BACKEND)."""
    config = load_cli_config(ctx)
    resolver = BinaryResolver(config)
    timeout = config.probe.version_timeout

    if backend is not None:
        results = [asyncio.run(detect_backend(backend, resolver, timeout))]  # type: ignore[arg-type]
    else:
        results = list(asyncio.run(detect_all(resolver, timeout)).values())

    if as_json:
        payload = {
            r.name: {"executable_path": r.executable_path, "version": r.version}
            for r in results
        }
        click.echo(json.dumps(payload, indent=2))
    else:
        for result in results:
            click.echo(_format_result(result))

    if backend is not None and results[0].executable_path is None:
        spec = BACKENDS[results[0].name]
        click.echo(
            f"\nTip: set {spec.env_override} to the executable's absolute path.",
            err=True,
        )
        raise SystemExit(1)
