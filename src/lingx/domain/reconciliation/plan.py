"""Merge planning.

Responsibilities of this stage:
- turn a diff plus resolutions into concrete upserts and deletes
- refuse to plan while any changed entry is undecided
- only plan deletes when the caller asked for them

Rules, in order:
1. every entry only in the source is upserted as ``added``
2. a conflict resolved to the source is upserted as ``updated``; one resolved
   to the target is recorded in ``kept`` and produces no write
3. a conflict without a resolution fails the whole plan with
   :class:`~lingx.domain.errors.UnresolvedConflictError`
4. entries only in the target are deleted when ``delete_unmatched`` is set
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from lingx.domain.errors import UnresolvedConflictError

from .contracts import ChangeKind, Winner

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lingx.domain.model import Identity

    from .contracts import Resolution
    from .diff import Conflict, DiffResult

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Upsert:
    language: str
    key: str
    value: str
    change: ChangeKind

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


@dataclass(frozen=True, slots=True)
class Delete:
    language: str
    key: str

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


@dataclass(frozen=True, slots=True, kw_only=True)
class MergePlan:
    upserts: tuple[Upsert, ...] = ()
    deletes: tuple[Delete, ...] = ()
    kept: tuple[Conflict, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.upserts and not self.deletes

    @property
    def languages(self) -> tuple[str, ...]:
        found = {upsert.language for upsert in self.upserts}
        found.update(delete.language for delete in self.deletes)
        return tuple(sorted(found))

    def upsert_values(self) -> dict[Identity, str]:
        return {upsert.identity: upsert.value for upsert in self.upserts}

    def delete_identities(self) -> tuple[Identity, ...]:
        return tuple(delete.identity for delete in self.deletes)


class BuildMergePlan(Protocol):
    """Derive the writes needed to reconcile the two sides of ``diff``."""

    def __call__(
        self,
        diff: DiffResult,
        resolutions: Iterable[Resolution],
        *,
        delete_unmatched: bool = False,
    ) -> MergePlan: ...


def _index_resolutions(
    resolutions: Iterable[Resolution],
    conflicts: tuple[Conflict, ...],
) -> dict[Identity, Winner]:
    conflicting = {conflict.identity for conflict in conflicts}
    winners: dict[Identity, Winner] = {}
    ignored: list[Identity] = []
    for resolution in resolutions:
        identity = resolution.identity
        if identity not in conflicting:
            ignored.append(identity)
            continue
        previous = winners.setdefault(identity, resolution.winner)
        if previous is not resolution.winner:
            language, key = identity
            raise ValueError(f"Contradictory resolutions for {language}:{key}")
    if ignored:
        log.info(
            "Ignoring %d resolution(s) that match no conflict: %s",
            len(ignored),
            ", ".join(f"{language}:{key}" for language, key in ignored),
        )
    return winners


def build_plan(
    diff: DiffResult,
    resolutions: Iterable[Resolution],
    *,
    delete_unmatched: bool = False,
) -> MergePlan:
    winners = _index_resolutions(resolutions, diff.changed_both_present)

    unresolved = [c for c in diff.changed_both_present if c.identity not in winners]
    if unresolved:
        raise UnresolvedConflictError(unresolved)

    upserts = [
        Upsert(entry.language, entry.key, entry.value, ChangeKind.ADDED)
        for entry in diff.added_only_source
    ]
    kept: list[Conflict] = []
    for conflict in diff.changed_both_present:
        if winners[conflict.identity] is Winner.SOURCE:
            upserts.append(
                Upsert(conflict.language, conflict.key, conflict.source_value, ChangeKind.UPDATED)
            )
        else:
            kept.append(conflict)

    deletes: tuple[Delete, ...] = ()
    if delete_unmatched:
        deletes = tuple(Delete(entry.language, entry.key) for entry in diff.removed_only_target)

    upserts.sort(key=lambda upsert: upsert.identity)
    return MergePlan(upserts=tuple(upserts), deletes=deletes, kept=tuple(kept))
