"""Read-only credential lookup keyed by backend credential key."""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from runwire.config.models import RunwireConfig

logger = logging.getLogger(__name__)

#: Default tokens file, relative to the user's home directory.
DEFAULT_TOKENS_FILE = Path(".runwire") / "tokens.json"


class CredentialStore:
    """Keyed lookup of per-backend credentials.

    Sources, first hit wins:

    1. The config ``credentials`` mapping, whose values name environment
       variables (``{"glm": "ZHIPU_API_KEY"}``).
    2. A JSON tokens file mapping keys to token strings
       (``{"glm": "...", "kimi": "..."}``).  A missing or unreadable file
       reads as empty.
    """

    def __init__(
        self,
        env_mapping: Mapping[str, str] | None = None,
        tokens_file: Path | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._env_mapping = dict(env_mapping or {})
        self._tokens_file = tokens_file
        self._env = env

    @classmethod
    def from_config(cls, config: RunwireConfig) -> CredentialStore:
        tokens_file = (
            Path(config.credentials_file).expanduser()
            if config.credentials_file
            else Path.home() / DEFAULT_TOKENS_FILE
        )
        return cls(env_mapping=config.credentials, tokens_file=tokens_file)

    def lookup(self, key: str) -> str | None:
        """Return the credential for *key*, or None when not configured."""
        env = os.environ if self._env is None else self._env
        var = self._env_mapping.get(key)
        if var:
            value = env.get(var, "").strip()
            if value:
                return value
        token = self._read_tokens().get(key)
        if isinstance(token, str) and token.strip():
            return token.strip()
        return None

    def _read_tokens(self) -> dict[str, object]:
        if self._tokens_file is None or not self._tokens_file.is_file():
            return {}
        try:
            data = json.loads(self._tokens_file.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Cannot read tokens file %s: %s", self._tokens_file, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return data
