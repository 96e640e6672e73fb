"""Root CLI group, global options and version flag."""

import logging
import signal
from pathlib import Path

import click

from runwire import __version__
from runwire.commands.detect import detect
from runwire.commands.probe import probe
from runwire.commands.replay import replay
from runwire.commands.run import run

# Ensure SIGPIPE doesn't kill the process when stdout is piped into
# something like ``head``.
if hasattr(signal, "SIGPIPE"):
    signal.signal(signal.SIGPIPE, signal.SIG_IGN)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@click.group()
@click.version_option(version=__version__, prog_name="runwire")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Config file path (default: ./runwire.yaml if present).",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(ctx: click.Context, config_file: Path | None, log_level: str) -> None:
    """Runwire — drive coding-agent CLIs and stream their output as events."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {"config_file": config_file}


cli.add_command(run)
cli.add_command(detect)
cli.add_command(probe)
cli.add_command(replay)
