"""Pure application and summaries of merge plans."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .contracts import ChangeKind

if TYPE_CHECKING:
    from lingx.domain.model import Catalog

    from .plan import MergePlan


def apply_plan(catalog: Catalog, plan: MergePlan, *, revision: int | None = None) -> Catalog:
    """Return ``catalog`` with ``plan`` applied (upserts first, then deletes)."""

    return catalog.with_changes(
        upserts=plan.upsert_values(),
        deletes=plan.delete_identities(),
        revision=revision,
    )


@dataclass(slots=True)
class LanguageSummary:
    added: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0

    @property
    def total_changes(self) -> int:
        return self.added + self.updated + self.deleted


@dataclass(slots=True)
class MergeSummary:
    """Per-language counts of what a plan writes.

    ``skipped`` counts conflicts that kept the target value.
    """

    languages: dict[str, LanguageSummary] = field(default_factory=dict[str, LanguageSummary])

    def for_language(self, language: str) -> LanguageSummary:
        return self.languages.setdefault(language, LanguageSummary())

    @property
    def added(self) -> int:
        return sum(summary.added for summary in self.languages.values())

    @property
    def updated(self) -> int:
        return sum(summary.updated for summary in self.languages.values())

    @property
    def skipped(self) -> int:
        return sum(summary.skipped for summary in self.languages.values())

    @property
    def deleted(self) -> int:
        return sum(summary.deleted for summary in self.languages.values())


def summarize_plan(plan: MergePlan) -> MergeSummary:
    summary = MergeSummary()
    for upsert in plan.upserts:
        counts = summary.for_language(upsert.language)
        if upsert.change is ChangeKind.ADDED:
            counts.added += 1
        else:
            counts.updated += 1
    for conflict in plan.kept:
        summary.for_language(conflict.language).skipped += 1
    for delete in plan.deletes:
        summary.for_language(delete.language).deleted += 1
    summary.languages = dict(sorted(summary.languages.items()))
    return summary
