"""Helpers shared by the runwire subcommands."""

from __future__ import annotations

from pathlib import Path

import click

from runwire.config.models import RunwireConfig
from runwire.config.parser import ConfigError, load_config
from runwire.context.store import JsonConversationStore

#: Default conversation store, relative to the user's home directory.
DEFAULT_CONVERSATIONS_FILE = Path(".runwire") / "conversations.json"


def load_cli_config(ctx: click.Context) -> RunwireConfig:
    """Load the config named by the root ``--config`` option, or exit 1."""
    obj = ctx.find_root().obj or {}
    config_file: Path | None = obj.get("config_file")
    try:
        return load_config(config_file)
    except ConfigError as exc:
        click.echo(f"Error: {exc}", err=True)
        raise SystemExit(1) from exc


def conversation_store(config: RunwireConfig) -> JsonConversationStore:
    path = (
        Path(config.conversations_file).expanduser()
        if config.conversations_file
        else Path.home() / DEFAULT_CONVERSATIONS_FILE
    )
    return JsonConversationStore(path)
