"""Configuration models and parser for runwire.yaml."""

from runwire.config.models import BackendConfig, ProbeConfig, RunwireConfig
from runwire.config.parser import ConfigError, load_config

__all__ = [
    "BackendConfig",
    "ConfigError",
    "ProbeConfig",
    "RunwireConfig",
    "load_config",
]
