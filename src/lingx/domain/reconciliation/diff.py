"""Two-snapshot catalog comparison.

Responsibilities of this stage:
- classify every ``(language, key)`` present in either catalog into exactly one
  of: only in source, only in target, in both with different values, unchanged
- order each category by language, then key
- stay pure: no store access and no shared state, so concurrent calls are safe

Values are compared byte-for-byte. No whitespace, case or Unicode
normalisation is applied, and an empty string differs from a missing entry.
There is no common ancestor, so every changed entry is reported as a conflict
candidate and the caller decides how to treat it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from lingx.domain.model import Catalog, Identity


@dataclass(frozen=True, slots=True)
class AddedEntry:
    """Entry present in the source catalog only."""

    language: str
    key: str
    value: str

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


@dataclass(frozen=True, slots=True)
class RemovedEntry:
    """Entry present in the target catalog only."""

    language: str
    key: str
    value: str

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


@dataclass(frozen=True, slots=True)
class Conflict:
    """Entry present on both sides with different values."""

    language: str
    key: str
    source_value: str
    target_value: str

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)

    def swapped(self) -> Conflict:
        return Conflict(
            language=self.language,
            key=self.key,
            source_value=self.target_value,
            target_value=self.source_value,
        )


@dataclass(frozen=True, slots=True, kw_only=True)
class DiffResult:
    added_only_source: tuple[AddedEntry, ...] = ()
    removed_only_target: tuple[RemovedEntry, ...] = ()
    changed_both_present: tuple[Conflict, ...] = ()
    unchanged: int = 0

    @property
    def conflicts(self) -> tuple[Conflict, ...]:
        return self.changed_both_present

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_only_source or self.removed_only_target or self.changed_both_present
        )

    @property
    def languages(self) -> tuple[str, ...]:
        found = {entry.language for entry in self.added_only_source}
        found.update(entry.language for entry in self.removed_only_target)
        found.update(conflict.language for conflict in self.changed_both_present)
        return tuple(sorted(found))

    def swapped(self) -> DiffResult:
        """Return the diff seen from the other side."""

        return DiffResult(
            added_only_source=tuple(
                AddedEntry(entry.language, entry.key, entry.value)
                for entry in self.removed_only_target
            ),
            removed_only_target=tuple(
                RemovedEntry(entry.language, entry.key, entry.value)
                for entry in self.added_only_source
            ),
            changed_both_present=tuple(c.swapped() for c in self.changed_both_present),
            unchanged=self.unchanged,
        )


class DiffCatalogs(Protocol):
    """Compare ``source`` against ``target``."""

    def __call__(self, source: Catalog, target: Catalog) -> DiffResult: ...


def diff_catalogs(source: Catalog, target: Catalog) -> DiffResult:
    added: list[AddedEntry] = []
    removed: list[RemovedEntry] = []
    changed: list[Conflict] = []
    unchanged = 0

    for identity in sorted(source.identities() | target.identities()):
        language, key = identity
        source_value = source.get(identity)
        target_value = target.get(identity)
        if target_value is None:
            assert source_value is not None
            added.append(AddedEntry(language, key, source_value))
        elif source_value is None:
            removed.append(RemovedEntry(language, key, target_value))
        elif source_value != target_value:
            changed.append(Conflict(language, key, source_value, target_value))
        else:
            unchanged += 1

    return DiffResult(
        added_only_source=tuple(added),
        removed_only_target=tuple(removed),
        changed_both_present=tuple(changed),
        unchanged=unchanged,
    )
