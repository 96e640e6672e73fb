"""Environment construction for backend processes."""

from __future__ import annotations

import os
from collections.abc import Mapping

from runwire.backends.credentials import CredentialStore
from runwire.backends.registry import get_backend
from runwire.config.models import RunwireConfig
from runwire.constants import BackendKind

#: Both names are set so older and newer CLI releases pick the token up.
CREDENTIAL_ENV_KEYS = ("ANTHROPIC_API_KEY", "ANTHROPIC_AUTH_TOKEN")

BASE_URL_ENV_KEY = "ANTHROPIC_BASE_URL"


def build_env(
    backend: BackendKind,
    credentials: CredentialStore | None = None,
    config: RunwireConfig | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Return the environment for a *backend* process.

    Starts from the current environment, disables colored output, pins a
    UTF-8 locale when none is set, points alternate vendors at their base
    URL, and injects the backend's credential.
    """
    spec = get_backend(backend)
    overrides = (config or RunwireConfig()).backend(backend)

    env = dict(os.environ if base_env is None else base_env)
    env["NO_COLOR"] = "1"
    env.setdefault("LANG", "C.UTF-8")

    base_url = overrides.base_url or spec.base_url
    if base_url:
        env[BASE_URL_ENV_KEY] = base_url

    credential_key = overrides.credential or spec.credential_key
    if credential_key and credentials is not None:
        token = credentials.lookup(credential_key)
        if token:
            for key in CREDENTIAL_ENV_KEYS:
                env[key] = token

    return env


def redact_env(env: Mapping[str, str]) -> dict[str, str]:
    """Copy of *env* with credential values masked, for logging."""
    return {k: ("******" if k in CREDENTIAL_ENV_KEYS else v) for k, v in env.items()}
