"""Load, validate, and resolve runwire.yaml configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from runwire.config.models import RunwireConfig

DEFAULT_CONFIG_NAME = "runwire.yaml"


class ConfigError(Exception):
    """User-facing configuration error."""


def load_config(path: Path | None = None) -> RunwireConfig:
    """Load and validate a runwire.yaml file.

    Args:
        path: Explicit config file path. If None, looks for
              runwire.yaml in the current directory and falls back to
              the built-in defaults when there is none.

    Returns:
        A validated RunwireConfig instance.

    Raises:
        ConfigError: On a missing explicit file, bad YAML, or validation
            failure.
    """
    config_path = _resolve_path(path)
    if config_path is None:
        return RunwireConfig()
    raw = _read_yaml(config_path)
    _load_env(config_path.parent)
    config = _validate(raw)
    _resolve_file_references(config, config_path.parent)
    return config


def _resolve_path(path: Path | None) -> Path | None:
    if path is not None:
        resolved = Path(path)
        if not resolved.is_file():
            msg = f"Config file not found: {resolved}"
            raise ConfigError(msg)
        return resolved

    default = Path.cwd() / DEFAULT_CONFIG_NAME
    if not default.is_file():
        return None
    return default


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read config file: {exc}"
        raise ConfigError(msg) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        detail = ""
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            detail = f" (line {mark.line + 1}, column {mark.column + 1})"
        msg = f"Invalid YAML in {path.name}{detail}"
        raise ConfigError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Expected a YAML mapping in {path.name}, got {type(data).__name__}"
        raise ConfigError(msg)

    return data


def _load_env(config_dir: Path) -> None:
    env_path = config_dir / ".env"
    if env_path.is_file():
        load_dotenv(env_path)


def _validate(raw: dict[str, Any]) -> RunwireConfig:
    try:
        return RunwireConfig.model_validate(raw)
    except ValidationError as exc:
        parts: list[str] = []
        for err in exc.errors():
            loc = " → ".join(str(s) for s in err["loc"])
            msg = err["msg"]
            if "field required" in msg.lower():
                msg = "This field is required"
            elif "input should be" in msg.lower():
                msg = f"Invalid value: {msg}"
            parts.append(f"  {loc}: {msg}")
        joined = "\n".join(parts)
        msg = f"Config validation failed:\n{joined}"
        raise ConfigError(msg) from exc


def _resolve_file_references(config: RunwireConfig, base_dir: Path) -> None:
    """Make relative file and workspace paths relative to the config file."""
    for field in ("credentials_file", "conversations_file"):
        value = getattr(config, field)
        if value and not Path(value).expanduser().is_absolute():
            setattr(config, field, str((base_dir / value).resolve()))
    for name, value in config.workspaces.items():
        if not Path(value).expanduser().is_absolute():
            config.workspaces[name] = str((base_dir / value).resolve())
