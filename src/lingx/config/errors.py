"""Configuration error definitions."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """Raised when configuration values are invalid."""


class MissingConfigurationError(ConfigurationError):
    """Raised when required configuration values are absent or blank."""


class ProjectFileError(ConfigurationError):
    """Raised when ``lingx.toml`` cannot be parsed or holds unknown values."""
