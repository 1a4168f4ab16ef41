"""Alembic migration helpers for the Lingx schema.

Migration scripts live next to this module in ``versions/``. Options from the
``[tool.alembic]`` table of ``pyproject.toml`` are honoured when the project is
run from a checkout; an installed package falls back to this directory.
"""

from __future__ import annotations

import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory

from lingx.config import get_database_config

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine


def _pyproject_options() -> dict[str, str]:
    if not PYPROJECT_PATH.is_file():
        return {}
    with PYPROJECT_PATH.open("rb") as pyproject_file:
        document = tomllib.load(pyproject_file)
    section = document.get("tool", {}).get("alembic", {})
    return {str(key): str(value) for key, value in section.items()}


def _resolve(option: str | None, default: Path) -> Path:
    if option is None:
        return default
    candidate = Path(option)
    return candidate if candidate.is_absolute() else (PROJECT_ROOT / candidate).resolve()


def build_config(*, database_uri: str | None = None) -> Config:
    """Return an Alembic config pointing at the bundled migration scripts."""

    options = _pyproject_options()
    config = Config()

    script_location = _resolve(options.pop("script_location", None), MIGRATIONS_PATH)
    if not script_location.is_dir():
        script_location = MIGRATIONS_PATH
    config.set_main_option("script_location", str(script_location))
    config.set_main_option(
        "prepend_sys_path",
        str(_resolve(options.pop("prepend_sys_path", None), PROJECT_ROOT)),
    )
    for key, value in options.items():
        config.set_main_option(key, value)
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Upgrade the database schema to the latest revision."""

    if engine is None:
        config = build_config(database_uri=database_uri or get_database_config().uri)
        command.upgrade(config, "head")
        return

    config = build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")


def is_up_to_date(engine: Engine) -> bool:
    """Return whether ``engine`` is at the newest migration."""

    script = ScriptDirectory.from_config(build_config())
    with engine.connect() as connection:
        current = MigrationContext.configure(connection).get_current_heads()
    return set(current) == set(script.get_heads())
