"""Where the branch store keeps its database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env

APP_DIR_NAME: Final[str] = "lingx"
DEFAULT_DB_FILENAME: Final[str] = "lingx.db"
_TRUTHY: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Data directory of a self-hosted server (``LINGX_DATA_DIR``)."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.resolve_data_dir()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def _default_data_dir() -> Path:
    if os.name == "nt":
        base = optional_env("LOCALAPPDATA")
        base_path = Path(base) if base else (Path.home() / "AppData" / "Local")
    else:
        base = optional_env("XDG_DATA_HOME")
        base_path = Path(base) if base else (Path.home() / ".local" / "share")
    return (base_path / APP_DIR_NAME).expanduser().resolve()


def get_storage_config() -> StorageConfig:
    env_dir = optional_env("LINGX_DATA_DIR")
    return StorageConfig(data_dir=Path(env_dir) if env_dir else _default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a sqlite file in the data directory."""

    echo = (optional_env("LINGX_DATABASE_ECHO") or "").lower() in _TRUTHY
    env_uri = optional_env("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri, echo=echo)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri(), echo=echo)
