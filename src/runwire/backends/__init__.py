"""Backend metadata, executable resolution, and launch configuration."""

from runwire.backends.args import build_args, dedupe_singletons
from runwire.backends.credentials import CredentialStore
from runwire.backends.env import build_env
from runwire.backends.registry import BACKEND_KINDS, BACKENDS, BackendSpec, get_backend
from runwire.backends.resolver import (
    BinaryResolver,
    DetectResult,
    ResolvedBinary,
    detect,
    detect_all,
    probe_version,
)

__all__ = [
    "BACKENDS",
    "BACKEND_KINDS",
    "BackendSpec",
    "BinaryResolver",
    "CredentialStore",
    "DetectResult",
    "ResolvedBinary",
    "build_args",
    "build_env",
    "dedupe_singletons",
    "detect",
    "detect_all",
    "get_backend",
    "probe_version",
]
