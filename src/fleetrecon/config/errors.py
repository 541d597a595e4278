"""Configuration errors."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when an environment value cannot be used."""
