"""Ports for persisting projects, spaces, branches and their catalogs."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from lingx.domain.model import Branch, Project, Space

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from lingx.domain.model import Catalog, Identity


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class ProjectRepository(Repository[Project], Protocol):
    def get_by_slug(self, slug: str) -> Project | None: ...


@runtime_checkable
class SpaceRepository(Repository[Space], Protocol):
    def get(self, space_id: UUID) -> Space | None: ...

    def get_by_slug(self, project_id: UUID, slug: str) -> Space | None: ...

    def list_for_project(self, project_id: UUID) -> Sequence[Space]: ...


@runtime_checkable
class BranchRepository(Repository[Branch], Protocol):
    def get(self, branch_id: UUID) -> Branch | None: ...

    def get_by_slug(self, space_id: UUID, slug: str) -> Branch | None: ...

    def list_for_space(self, space_id: UUID) -> Sequence[Branch]: ...

    def bump_revision(self, branch: Branch, *, expected: int | None) -> bool:
        """Advance the revision if it still equals ``expected``; report success."""
        ...


@runtime_checkable
class TranslationRepository(Protocol):
    """Key/value storage of one branch's catalog."""

    def load(self, branch_id: UUID) -> Catalog: ...

    def upsert(self, branch_id: UUID, values: Mapping[Identity, str]) -> int: ...

    def delete(self, branch_id: UUID, identities: Sequence[Identity]) -> int: ...
