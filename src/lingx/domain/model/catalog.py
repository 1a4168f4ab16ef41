"""Immutable translation catalog snapshot."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import KeysView

type Identity = tuple[str, str]
"""``(language, key)``: the unit of comparison in a catalog."""

type NestedCatalog = Mapping[str, Mapping[str, str]]
"""``language -> key -> value`` as exchanged with files and the API."""


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    language: str
    key: str
    value: str

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


def _validate(identity: Identity, value: object) -> None:
    language, key = identity
    if not isinstance(language, str) or not language:
        raise ValueError(f"Language code must be a non-empty string, got {language!r}")
    if not isinstance(key, str) or not key:
        raise ValueError(f"Key name must be a non-empty string, got {key!r}")
    if not isinstance(value, str):
        raise TypeError(f"Value for {language}:{key} must be a string, got {type(value).__name__}")


class Catalog(Mapping[Identity, str]):
    """Point-in-time mapping of ``(language, key)`` to a translated value.

    An empty string is a real value and is distinct from a missing entry.
    Iteration is ordered by language, then key. ``revision`` is the store
    revision the snapshot was read at, if the store has one; it does not take
    part in equality.
    """

    __slots__ = ("_entries", "_revision")

    def __init__(
        self,
        entries: Mapping[Identity, str] | Iterable[tuple[Identity, str]] = (),
        *,
        revision: int | None = None,
    ) -> None:
        items = entries.items() if isinstance(entries, Mapping) else entries
        collected: dict[Identity, str] = {}
        for identity, value in items:
            _validate(identity, value)
            if identity in collected:
                language, key = identity
                raise ValueError(f"Duplicate catalog entry {language}:{key}")
            collected[identity] = value
        self._entries: dict[Identity, str] = dict(sorted(collected.items()))
        self._revision = revision

    @property
    def revision(self) -> int | None:
        return self._revision

    @classmethod
    def from_nested(cls, nested: NestedCatalog, *, revision: int | None = None) -> Catalog:
        items = (
            ((language, key), value)
            for language, values in nested.items()
            for key, value in values.items()
        )
        return cls(items, revision=revision)

    @classmethod
    def from_entries(
        cls, entries: Iterable[CatalogEntry], *, revision: int | None = None
    ) -> Catalog:
        return cls(((entry.identity, entry.value) for entry in entries), revision=revision)

    def __getitem__(self, identity: Identity) -> str:
        return self._entries[identity]

    def __iter__(self) -> Iterator[Identity]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return (
            f"Catalog(languages={list(self.languages)!r}, entries={len(self)}, "
            f"revision={self.revision!r})"
        )

    def identities(self) -> KeysView[Identity]:
        return self._entries.keys()

    def entries(self) -> Iterator[CatalogEntry]:
        for (language, key), value in self._entries.items():
            yield CatalogEntry(language=language, key=key, value=value)

    def value(self, language: str, key: str) -> str | None:
        return self._entries.get((language, key))

    @property
    def languages(self) -> tuple[str, ...]:
        return tuple(sorted({language for language, _key in self._entries}))

    @property
    def keys_by_language(self) -> dict[str, tuple[str, ...]]:
        grouped: dict[str, list[str]] = {}
        for language, key in self._entries:
            grouped.setdefault(language, []).append(key)
        return {language: tuple(keys) for language, keys in grouped.items()}

    def to_nested(self) -> dict[str, dict[str, str]]:
        nested: dict[str, dict[str, str]] = {}
        for (language, key), value in self._entries.items():
            nested.setdefault(language, {})[key] = value
        return nested

    def restricted_to(self, languages: Iterable[str] | None) -> Catalog:
        """Return a copy holding only ``languages`` (all of them for ``None``)."""

        if languages is None:
            return self
        wanted = set(languages)
        return Catalog(
            {identity: value for identity, value in self._entries.items() if identity[0] in wanted},
            revision=self.revision,
        )

    def with_changes(
        self,
        *,
        upserts: Mapping[Identity, str] | None = None,
        deletes: Iterable[Identity] = (),
        revision: int | None = None,
    ) -> Catalog:
        """Return a new catalog with ``upserts`` applied, then ``deletes``."""

        entries = dict(self._entries)
        entries.update(upserts or {})
        for identity in deletes:
            entries.pop(identity, None)
        return Catalog(entries, revision=revision)
