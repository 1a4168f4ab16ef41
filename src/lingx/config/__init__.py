"""Application configuration helpers."""

from __future__ import annotations

from .api import ApiConfig, ServerConfig
from .env import env_int, optional_env, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError, ProjectFileError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging, resolve_log_level
from .project import (
    PROJECT_FILENAME,
    FileFormat,
    ProjectConfig,
    TranslationFilesConfig,
    find_project_file,
    load_project_config,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "PROJECT_FILENAME",
    "ApiConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "FileFormat",
    "MissingConfigurationError",
    "ProjectConfig",
    "ProjectFileError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "ServerConfig",
    "StorageConfig",
    "TranslationFilesConfig",
    "configure_logging",
    "env_int",
    "find_project_file",
    "get_database_config",
    "get_storage_config",
    "load_project_config",
    "optional_env",
    "require_env_vars",
    "resolve_log_level",
]
