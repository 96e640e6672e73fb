"""Runwire — streaming orchestration for coding-agent CLIs."""

__version__ = "0.1.0"
