"""Translation catalogs stored as JSON or YAML files on disk.

Layout::

    locales/
        en.json            keys without namespace
        de.json
        checkout/
            en.json        keys in namespace "checkout"
            de.json

The language comes from the file name (``{lang}`` in the configured pattern)
and a sub-directory name becomes the key namespace. Nested objects are
flattened with ``.`` on load and, when ``nested`` is configured, unflattened
again on write.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING, Any, cast

import yaml

from lingx.config import FileFormat
from lingx.domain.errors import CatalogFormatError, CatalogNotFoundError, CatalogWriteError
from lingx.domain.model import Catalog, combine_key, parse_namespaced_key

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from lingx.config import TranslationFilesConfig
    from lingx.domain.model import Identity
    from lingx.domain.reconciliation import MergePlan

log = logging.getLogger(__name__)

KEY_SEPARATOR = "."
LANGUAGE_CODE = r"(?P<lang>[A-Za-z0-9][A-Za-z0-9_-]*)"
_LANGUAGE_RE = re.compile(LANGUAGE_CODE)
_PATH_SEPARATORS = ("/", "\\")

type FileSlot = tuple[str | None, str]
"""``(namespace, language)``: identifies one file in the layout."""


def _pattern_regex(file_pattern: str) -> re.Pattern[str]:
    prefix, suffix = file_pattern.split("{lang}")
    return re.compile(f"^{re.escape(prefix)}{LANGUAGE_CODE}{re.escape(suffix)}$")


def flatten(data: Mapping[str, Any], *, path: str = "") -> dict[str, str]:
    """Flatten nested mappings into dotted keys; every leaf must be a string."""

    flat: dict[str, str] = {}
    for raw_key, value in data.items():
        key = f"{path}{KEY_SEPARATOR}{raw_key}" if path else str(raw_key)
        if isinstance(value, dict):
            children = flatten(cast(dict[str, Any], value), path=key)
        elif isinstance(value, str):
            children = {key: value}
        else:
            raise CatalogFormatError(
                f"Value for {key!r} must be a string, got {type(value).__name__}"
            )
        for child_key, child_value in children.items():
            if child_key in flat:
                raise CatalogFormatError(f"Key {child_key!r} is defined twice")
            flat[child_key] = child_value
    return flat


def unflatten(flat: Mapping[str, str]) -> dict[str, Any] | None:
    """Rebuild the nested form, or ``None`` when the keys cannot nest.

    Keys cannot nest when one key is a prefix segment of another
    (``a`` and ``a.b``) or a key has empty segments.
    """

    nested: dict[str, Any] = {}
    for key in sorted(flat):
        parts = key.split(KEY_SEPARATOR)
        if any(not part for part in parts):
            return None
        node = nested
        for part in parts[:-1]:
            child = node.setdefault(part, {})
            if not isinstance(child, dict):
                return None
            node = cast(dict[str, Any], child)
        if parts[-1] in node:
            return None
        node[parts[-1]] = flat[key]
    return nested


class LocalCatalogStore:
    """A directory of translation files as reconciliation source or target.

    Files carry no revision, so the optimistic revision check is skipped.
    Every file is replaced atomically, but a plan spanning several files is
    not applied atomically as a whole.
    """

    supports_atomic_writes = False

    def __init__(self, config: TranslationFilesConfig) -> None:
        self.config = config
        self._pattern = _pattern_regex(config.file_pattern)

    @property
    def directory(self) -> Path:
        return self.config.directory

    @property
    def identity(self) -> str:
        return f"files {self.directory}"

    def load_catalog(self) -> Catalog:
        if not self.directory.is_dir():
            raise CatalogNotFoundError(self.identity)

        values: dict[Identity, str] = {}
        for (namespace, language), path in self._discover():
            for name, value in self._read_file(path).items():
                try:
                    key = combine_key(name, namespace)
                except ValueError as exc:
                    raise CatalogFormatError(f"{path}: {exc}") from exc
                values[(language, key)] = value
        log.debug("Read %d entries from %s", len(values), self.directory)
        return Catalog(values)

    def apply_plan(self, plan: MergePlan, *, expected_revision: int | None) -> None:
        if expected_revision is not None:
            log.debug("Ignoring expected revision %s for %s", expected_revision, self.identity)

        upserts: dict[FileSlot, dict[str, str]] = {}
        for upsert in plan.upserts:
            upserts.setdefault(self._slot(upsert.language, upsert.key), {})[
                parse_namespaced_key(upsert.key).name
            ] = upsert.value
        deletes: dict[FileSlot, set[str]] = {}
        for delete in plan.deletes:
            deletes.setdefault(self._slot(delete.language, delete.key), set()).add(
                parse_namespaced_key(delete.key).name
            )

        # files with upserts go first so a partial failure never loses values
        slots = sorted(
            upserts.keys() | deletes.keys(),
            key=lambda slot: (slot not in upserts, slot[0] or "", slot[1]),
        )
        # every file written must be found again by load_catalog
        for slot in slots:
            self._check_slot(slot)
        for slot in slots:
            path = self._path_for(slot)
            current = self._read_file(path) if path.is_file() else {}
            current.update(upserts.get(slot, {}))
            for name in deletes.get(slot, ()):
                current.pop(name, None)
            self._write_file(path, current)

        log.info(
            "Wrote %d file(s) in %s (%d upserted, %d deleted)",
            len(slots),
            self.directory,
            len(plan.upserts),
            len(plan.deletes),
        )

    def _slot(self, language: str, key: str) -> FileSlot:
        return (parse_namespaced_key(key).namespace, language)

    def _check_slot(self, slot: FileSlot) -> None:
        namespace, language = slot
        if _LANGUAGE_RE.fullmatch(language) is None:
            raise CatalogFormatError(
                f"Language {language!r} cannot be stored as a file in {self.directory}"
            )
        if namespace is not None and (
            not namespace
            or namespace.startswith(".")
            or any(separator in namespace for separator in _PATH_SEPARATORS)
        ):
            raise CatalogFormatError(
                f"Namespace {namespace!r} cannot be stored as a directory in {self.directory}"
            )

    def _path_for(self, slot: FileSlot) -> Path:
        namespace, language = slot
        filename = self.config.file_pattern.replace("{lang}", language)
        if namespace is None:
            return self.directory / filename
        return self.directory / namespace / filename

    def _discover(self) -> Iterator[tuple[FileSlot, Path]]:
        for entry in sorted(self.directory.iterdir()):
            if entry.name.startswith("."):
                continue
            if entry.is_dir():
                for child in sorted(entry.iterdir()):
                    language = self._language_of(child)
                    if language is not None:
                        yield (entry.name, language), child
                continue
            language = self._language_of(entry)
            if language is not None:
                yield (None, language), entry

    def _language_of(self, path: Path) -> str | None:
        if not path.is_file():
            return None
        match = self._pattern.match(path.name)
        return match.group("lang") if match else None

    def _read_file(self, path: Path) -> dict[str, str]:
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise CatalogFormatError(f"Cannot read {path}: {exc}") from exc

        try:
            if self.config.format is FileFormat.YAML:
                document: object = yaml.safe_load(text)
            else:
                document = json.loads(text) if text.strip() else None
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise CatalogFormatError(f"Cannot parse {path}: {exc}") from exc

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise CatalogFormatError(f"{path} must contain an object at the top level")
        try:
            return flatten(cast(dict[str, Any], document))
        except CatalogFormatError as exc:
            raise CatalogFormatError(f"{path}: {exc}") from exc

    def _render(self, path: Path, values: Mapping[str, str]) -> str:
        document: Mapping[str, Any] = dict(sorted(values.items()))
        if self.config.nested:
            nested = unflatten(values)
            if nested is None:
                log.warning("Keys in %s cannot be nested; writing them flat", path)
            else:
                document = nested

        if self.config.format is FileFormat.YAML:
            if not document:
                return "{}\n"
            return yaml.safe_dump(
                dict(document),
                allow_unicode=True,
                sort_keys=False,
                default_flow_style=False,
                indent=min(max(self.config.indentation, 2), 9),
            )
        indent = self.config.indentation or None
        return json.dumps(document, ensure_ascii=False, indent=indent) + "\n"

    def _write_file(self, path: Path, values: Mapping[str, str]) -> None:
        content = self._render(path, values)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                Path(temp_name).replace(path)
            except BaseException:
                Path(temp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise CatalogWriteError(f"Cannot write {path}: {exc}", retryable=False) from exc
        log.debug("Wrote %d entries to %s", len(values), path)
