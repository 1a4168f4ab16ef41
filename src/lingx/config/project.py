"""Project configuration read from ``lingx.toml``.

The file lives at the root of a client project and tells the CLI which
project/space/branch it tracks and where the translation files are. Every
value can be overridden from the environment (``LINGX_PROJECT``,
``LINGX_SPACE``, ``LINGX_BRANCH``, ``LINGX_TRANSLATIONS_DIR``).

Example::

    project = "webshop"
    space = "frontend"
    branch = "main"

    [translations]
    path = "locales"
    format = "json"
    pattern = "{lang}.json"
    nested = true

    [api]
    url = "http://127.0.0.1:8000"
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from typing import Any, Final, cast

from .api import ApiConfig
from .env import optional_env
from .errors import MissingConfigurationError, ProjectFileError

PROJECT_FILENAME: Final[str] = "lingx.toml"
LANGUAGE_PLACEHOLDER: Final[str] = "{lang}"
DEFAULT_BRANCH: Final[str] = "main"
DEFAULT_TRANSLATIONS_DIR: Final[str] = "locales"


class FileFormat(StrEnum):
    JSON = "json"
    YAML = "yaml"

    @property
    def default_pattern(self) -> str:
        return f"{LANGUAGE_PLACEHOLDER}.{self.value}"


@dataclass(frozen=True, slots=True, kw_only=True)
class TranslationFilesConfig:
    directory: Path
    format: FileFormat = FileFormat.JSON
    file_pattern: str = "{lang}.json"
    nested: bool = True
    indentation: int = 2

    def __post_init__(self) -> None:
        if self.file_pattern.count(LANGUAGE_PLACEHOLDER) != 1:
            raise ProjectFileError(
                f"File pattern {self.file_pattern!r} must contain {LANGUAGE_PLACEHOLDER} once"
            )
        if "/" in self.file_pattern or "\\" in self.file_pattern:
            raise ProjectFileError("File pattern must be a bare file name")
        if self.indentation < 0:
            raise ProjectFileError("Indentation must be non-negative")


@dataclass(frozen=True, slots=True, kw_only=True)
class ProjectConfig:
    project: str
    space: str
    branch: str = DEFAULT_BRANCH
    files: TranslationFilesConfig
    api: ApiConfig = field(default_factory=ApiConfig)
    source_path: Path | None = None


def find_project_file(start: Path | None = None) -> Path | None:
    """Return the nearest ``lingx.toml`` in ``start`` or one of its parents."""

    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / PROJECT_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _read_document(path: Path) -> dict[str, Any]:
    try:
        with path.open("rb") as handle:
            return tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ProjectFileError(f"Invalid {path.name}: {exc}") from exc


def _section(document: dict[str, Any], name: str) -> dict[str, Any]:
    value = document.get(name, {})
    if not isinstance(value, dict):
        raise ProjectFileError(f"[{name}] must be a table")
    return cast(dict[str, Any], value)


def _string(table: dict[str, Any], key: str) -> str | None:
    value = table.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ProjectFileError(f"{key} must be a non-empty string")
    return value.strip()


def _build_files_config(table: dict[str, Any], *, root: Path) -> TranslationFilesConfig:
    raw_format = _string(table, "format") or FileFormat.JSON.value
    try:
        file_format = FileFormat(raw_format.lower())
    except ValueError as exc:
        raise ProjectFileError(f"Unsupported translation format: {raw_format}") from exc

    directory = Path(
        optional_env("LINGX_TRANSLATIONS_DIR")
        or _string(table, "path")
        or DEFAULT_TRANSLATIONS_DIR
    )
    if not directory.is_absolute():
        directory = root / directory

    nested = table.get("nested", True)
    indentation = table.get("indentation", 2)
    if not isinstance(nested, bool):
        raise ProjectFileError("nested must be true or false")
    if not isinstance(indentation, int):
        raise ProjectFileError("indentation must be an integer")

    return TranslationFilesConfig(
        directory=directory,
        format=file_format,
        file_pattern=_string(table, "pattern") or file_format.default_pattern,
        nested=nested,
        indentation=indentation,
    )


def load_project_config(path: Path | None = None, *, cwd: Path | None = None) -> ProjectConfig:
    """Load the project configuration, falling back to the environment.

    Without a project file, ``LINGX_PROJECT`` and ``LINGX_SPACE`` must be set and
    the translation files are looked up relative to ``cwd``.
    """

    source_path = path or find_project_file(cwd)
    document: dict[str, Any] = {}
    root = (cwd or Path.cwd()).resolve()
    if source_path is not None:
        if not source_path.is_file():
            raise MissingConfigurationError(f"Project file not found: {source_path}")
        document = _read_document(source_path)
        root = source_path.resolve().parent

    project = optional_env("LINGX_PROJECT") or _string(document, "project")
    space = optional_env("LINGX_SPACE") or _string(document, "space")
    missing = [
        name
        for name, value in (("project", project), ("space", space))
        if value is None
    ]
    if missing or project is None or space is None:
        raise MissingConfigurationError(
            f"Missing configuration for: {', '.join(missing)} "
            f"(set it in {PROJECT_FILENAME} or via LINGX_{missing[0].upper()})"
        )

    api_table = _section(document, "api")
    env_api = ApiConfig.from_environment()
    api = ApiConfig(
        base_url=optional_env("LINGX_API_URL") or _string(api_table, "url") or env_api.base_url,
        api_key=env_api.api_key,
    )

    return ProjectConfig(
        project=project,
        space=space,
        branch=optional_env("LINGX_BRANCH") or _string(document, "branch") or DEFAULT_BRANCH,
        files=_build_files_config(_section(document, "translations"), root=root),
        api=api,
        source_path=source_path,
    )
