"""Subcommands of the runwire CLI."""
