"""Pydantic models describing the Lingx HTTP API payloads.

The same models are used by the FastAPI server and by the remote client, so
both sides agree on the wire format. Field names are camelCase on the wire.

Keys travel in their internal form: a namespaced key carries the U+001F
delimiter between namespace and name.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import StrEnum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lingx.domain.model import Branch, Space
from lingx.domain.reconciliation import (
    Conflict,
    DiffResult,
    KeyResolution,
    MergeSummary,
    ReconciliationResult,
    Winner,
)

type TranslationMap = dict[str, dict[str, str]]


class LingxBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


def _reject_blank(value: object) -> object:
    if isinstance(value, str) and not value.strip():
        raise ValueError("must not be blank")
    return value


class SpaceSummary(LingxBaseModel):
    id: UUID
    slug: str
    name: str

    @classmethod
    def from_space(cls, space: Space) -> SpaceSummary:
        return cls(id=space.id, slug=space.slug, name=space.name)


class SpaceList(LingxBaseModel):
    spaces: list[SpaceSummary] = Field(default_factory=list[SpaceSummary])


class BranchInfo(LingxBaseModel):
    id: UUID
    name: str
    slug: str
    is_default: bool = False
    source_branch_id: UUID | None = None
    revision: int = 0

    @classmethod
    def from_branch(cls, branch: Branch) -> BranchInfo:
        return cls(
            id=branch.id,
            name=branch.name,
            slug=branch.slug,
            is_default=branch.is_default,
            source_branch_id=branch.source_branch_id,
            revision=branch.revision,
        )


class SpaceDetail(SpaceSummary):
    branches: list[BranchInfo] = Field(default_factory=list[BranchInfo])


class CreateSpaceRequest(LingxBaseModel):
    name: str
    slug: str | None = None
    project_name: str | None = None

    _check_name = field_validator("name", mode="before")(_reject_blank)


class CreateBranchRequest(LingxBaseModel):
    name: str
    from_branch_id: UUID | None = None

    _check_name = field_validator("name", mode="before")(_reject_blank)


class TranslationsResponse(LingxBaseModel):
    translations: TranslationMap = Field(default_factory=dict)
    languages: list[str] = Field(default_factory=list[str])
    revision: int | None = None


class EntryRef(LingxBaseModel):
    language: str
    key: str


class UpdateTranslationsRequest(LingxBaseModel):
    """Upserts and deletes applied in one transaction.

    With ``expected_revision`` set the write is rejected (409) when the branch
    has moved on since it was read.
    """

    translations: TranslationMap = Field(default_factory=dict)
    deletes: list[EntryRef] = Field(default_factory=list[EntryRef])
    expected_revision: int | None = None


class UpdateTranslationsResponse(LingxBaseModel):
    upserted: int
    deleted: int
    revision: int


class DiffEntry(LingxBaseModel):
    language: str
    key: str
    value: str


class ChangedEntry(LingxBaseModel):
    language: str
    key: str
    source_value: str
    target_value: str

    @classmethod
    def from_conflict(cls, conflict: Conflict) -> ChangedEntry:
        return cls(
            language=conflict.language,
            key=conflict.key,
            source_value=conflict.source_value,
            target_value=conflict.target_value,
        )

    def to_conflict(self) -> Conflict:
        return Conflict(self.language, self.key, self.source_value, self.target_value)


class BranchDiffResponse(LingxBaseModel):
    source: BranchInfo
    target: BranchInfo
    added: list[DiffEntry] = Field(default_factory=list[DiffEntry])
    removed: list[DiffEntry] = Field(default_factory=list[DiffEntry])
    changed: list[ChangedEntry] = Field(default_factory=list[ChangedEntry])

    @classmethod
    def build(cls, source: Branch, target: Branch, diff: DiffResult) -> BranchDiffResponse:
        return cls(
            source=BranchInfo.from_branch(source),
            target=BranchInfo.from_branch(target),
            added=[
                DiffEntry(language=e.language, key=e.key, value=e.value)
                for e in diff.added_only_source
            ],
            removed=[
                DiffEntry(language=e.language, key=e.key, value=e.value)
                for e in diff.removed_only_target
            ],
            changed=[ChangedEntry.from_conflict(c) for c in diff.changed_both_present],
        )


class KeyResolutionModel(LingxBaseModel):
    key: str
    resolution: Winner
    language: str | None = None

    def to_domain(self) -> KeyResolution:
        return KeyResolution(key=self.key, winner=self.resolution, language=self.language)


class MergeRequest(LingxBaseModel):
    target_branch_id: UUID
    resolutions: list[KeyResolutionModel] = Field(default_factory=list[KeyResolutionModel])
    delete_unmatched: bool = False


class LanguageCounts(LingxBaseModel):
    added: int = 0
    updated: int = 0
    skipped: int = 0
    deleted: int = 0


class MergeResponse(LingxBaseModel):
    success: bool
    status: str
    upserted: int = 0
    deleted: int = 0
    conflicts_resolved: int = 0
    languages: dict[str, LanguageCounts] = Field(default_factory=dict[str, LanguageCounts])

    @classmethod
    def from_result(cls, result: ReconciliationResult) -> MergeResponse:
        plan = result.plan
        return cls(
            success=True,
            status=result.status.value,
            upserted=len(plan.upserts) if plan else 0,
            deleted=len(plan.deletes) if plan else 0,
            conflicts_resolved=len(result.outcome.accepted),
            languages=summary_to_wire(result.summary),
        )


class ErrorCode(StrEnum):
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    STALE_REVISION = "stale_revision"
    UNRESOLVED_CONFLICTS = "unresolved_conflicts"
    INVALID_REQUEST = "invalid_request"
    WRITE_FAILED = "write_failed"


class ErrorResponse(LingxBaseModel):
    detail: str
    code: ErrorCode | None = None
    conflicts: list[ChangedEntry] = Field(default_factory=list[ChangedEntry])


def summary_to_wire(summary: MergeSummary) -> dict[str, LanguageCounts]:
    return {
        language: LanguageCounts(
            added=counts.added,
            updated=counts.updated,
            skipped=counts.skipped,
            deleted=counts.deleted,
        )
        for language, counts in summary.languages.items()
    }


def nested_to_wire(nested: Mapping[str, Mapping[str, str]]) -> TranslationMap:
    return {language: dict(values) for language, values in nested.items()}
