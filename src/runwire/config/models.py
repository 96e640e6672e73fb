"""Pydantic v2 models for runwire.yaml configuration."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

from runwire.constants import BackendKind


class BackendConfig(BaseModel):
    """Per-backend overrides."""

    model_config = ConfigDict(extra="forbid")

    bin: str | None = Field(
        default=None,
        description="Absolute path to the executable (the override env var wins)",
    )
    base_url: str | None = Field(
        default=None,
        description="API base URL exported as ANTHROPIC_BASE_URL",
    )
    credential: str | None = Field(
        default=None,
        description="Credential key to inject, e.g. 'glm'",
    )
    default_args: list[str] | None = Field(
        default=None,
        description="Default CLI arguments placed before caller-supplied ones",
    )

    @field_validator("base_url")
    @classmethod
    def _check_base_url(cls, value: str | None) -> str | None:
        if value is not None and not value.startswith(("http://", "https://")):
            msg = f"Invalid base_url '{value}' — expected an http(s) URL"
            raise ValueError(msg)
        return value


class ProbeConfig(BaseModel):
    """Timeouts for detection and connectivity probes."""

    model_config = ConfigDict(extra="forbid")

    timeout: float = Field(
        default=10.0,
        gt=0,
        description="Wall-clock limit in seconds for a connectivity probe",
    )
    version_timeout: float = Field(
        default=1.5,
        gt=0,
        description="Per-attempt limit in seconds for version probing",
    )


class RunwireConfig(BaseModel):
    """Top-level runwire.yaml configuration."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="1", description="Config schema version")
    install_dirs: list[str] = Field(
        default_factory=list,
        description="Extra directories searched for backend executables",
    )
    backends: dict[BackendKind, BackendConfig] = Field(
        default_factory=dict,
        description="Per-backend overrides",
    )
    credentials: dict[str, str] = Field(
        default_factory=dict,
        description="Credential key to environment variable name",
    )
    credentials_file: str | None = Field(
        default=None,
        description="JSON file mapping credential keys to tokens",
    )
    conversations_file: str | None = Field(
        default=None,
        description="JSON file persisting resumable contexts per conversation",
    )
    workspaces: dict[str, str] = Field(
        default_factory=dict,
        description="Named workspace directories usable as --cwd selectors",
    )
    probe: ProbeConfig = Field(
        default_factory=ProbeConfig,
        description="Probe timeouts",
    )

    @field_validator("workspaces")
    @classmethod
    def _check_workspaces(cls, value: dict[str, str]) -> dict[str, str]:
        empty = sorted(name for name, path in value.items() if not path.strip())
        if empty:
            joined = ", ".join(f"'{n}'" for n in empty)
            msg = f"Workspaces with an empty path: {joined}"
            raise ValueError(msg)
        return value

    def backend(self, kind: BackendKind) -> BackendConfig:
        """Return overrides for *kind* (empty overrides when unset)."""
        return self.backends.get(kind) or BackendConfig()
