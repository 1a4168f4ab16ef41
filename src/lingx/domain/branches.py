"""Branch and space use cases on top of the catalog unit of work.

Branches of one space share a key set and can be diffed and merged into each
other. Creating a branch copies the full catalog of its source branch; after
that the two evolve independently and only meet again through a merge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from lingx.domain.errors import (
    AlreadyExistsError,
    CatalogNotFoundError,
    InvalidReconciliationError,
    StaleCatalogError,
)
from lingx.domain.model import DEFAULT_BRANCH_NAME, Branch, Catalog, Project, Space, slugify
from lingx.domain.reconciliation import (
    ReconciliationService,
    ResolutionMode,
    build_policy,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from uuid import UUID

    from lingx.domain.model import Identity
    from lingx.domain.ports.prompting import ConflictPrompt
    from lingx.domain.ports.unit_of_work import CatalogRepositories, CatalogUnitOfWorkFactory
    from lingx.domain.reconciliation import (
        DiffResult,
        KeyResolution,
        MergePlan,
        ReconciliationResult,
        Resolution,
    )

log = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, kw_only=True)
class CatalogWriteResult:
    upserted: int
    deleted: int
    revision: int


@dataclass(frozen=True, slots=True, kw_only=True)
class BranchDiff:
    source: Branch
    target: Branch
    diff: DiffResult


def _get_branch(repositories: CatalogRepositories, branch_id: UUID) -> Branch:
    branch = repositories.branches.get(branch_id)
    if branch is None:
        raise CatalogNotFoundError(f"branch {branch_id}")
    return branch


def _write_catalog(
    repositories: CatalogRepositories,
    branch: Branch,
    *,
    upserts: Mapping[Identity, str],
    deletes: Sequence[Identity],
    expected_revision: int | None,
) -> CatalogWriteResult:
    if expected_revision is not None and branch.revision != expected_revision:
        raise StaleCatalogError(
            f"branch {branch.id}", expected=expected_revision, actual=branch.revision
        )
    if not repositories.branches.bump_revision(branch, expected=branch.revision):
        raise StaleCatalogError(f"branch {branch.id}", expected=expected_revision, actual=None)
    upserted = repositories.translations.upsert(branch.id, upserts)
    deleted = repositories.translations.delete(branch.id, deletes)
    return CatalogWriteResult(upserted=upserted, deleted=deleted, revision=branch.revision)


class BranchCatalog:
    """A stored branch catalog as reconciliation source or target.

    Reads and writes each run in their own unit of work. Writes are atomic and
    guarded by the branch revision.
    """

    supports_atomic_writes = True

    def __init__(self, unit_of_work_factory: CatalogUnitOfWorkFactory, branch_id: UUID) -> None:
        self._uow_factory = unit_of_work_factory
        self.branch_id = branch_id

    @property
    def identity(self) -> str:
        return f"branch {self.branch_id}"

    def load_catalog(self) -> Catalog:
        with self._uow_factory() as uow:
            repositories = uow.repositories
            branch = _get_branch(repositories, self.branch_id)
            catalog = repositories.translations.load(branch.id)
        return Catalog(catalog, revision=branch.revision)

    def apply_plan(self, plan: MergePlan, *, expected_revision: int | None) -> None:
        self.write(
            upserts=plan.upsert_values(),
            deletes=plan.delete_identities(),
            expected_revision=expected_revision,
        )

    def write(
        self,
        *,
        upserts: Mapping[Identity, str],
        deletes: Sequence[Identity] = (),
        expected_revision: int | None = None,
    ) -> CatalogWriteResult:
        with self._uow_factory() as uow:
            repositories = uow.repositories
            branch = _get_branch(repositories, self.branch_id)
            result = _write_catalog(
                repositories,
                branch,
                upserts=upserts,
                deletes=deletes,
                expected_revision=expected_revision,
            )
            uow.commit()
        log.info(
            "Wrote branch %s: %d upserted, %d deleted, revision %d",
            self.branch_id,
            result.upserted,
            result.deleted,
            result.revision,
        )
        return result


def _check_pair(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    source_branch_id: UUID,
    target_branch_id: UUID,
) -> tuple[Branch, Branch]:
    if source_branch_id == target_branch_id:
        raise InvalidReconciliationError("Cannot reconcile a branch with itself")
    with unit_of_work_factory() as uow:
        source = _get_branch(uow.repositories, source_branch_id)
        target = _get_branch(uow.repositories, target_branch_id)
    if source.space_id != target.space_id:
        raise InvalidReconciliationError("Branches must belong to the same space")
    return source, target


def diff_branches(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    source_branch_id: UUID,
    target_branch_id: UUID,
) -> BranchDiff:
    """Compare two branches of one space; nothing is written."""

    source, target = _check_pair(unit_of_work_factory, source_branch_id, target_branch_id)
    service = ReconciliationService(
        BranchCatalog(unit_of_work_factory, source.id),
        BranchCatalog(unit_of_work_factory, target.id),
    )
    return BranchDiff(source=source, target=target, diff=service.diff())


def merge_branches(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    source_branch_id: UUID,
    target_branch_id: UUID,
    *,
    mode: ResolutionMode = ResolutionMode.EXPLICIT,
    resolutions: Sequence[Resolution | KeyResolution] = (),
    prompt: ConflictPrompt | None = None,
    delete_unmatched: bool = False,
) -> ReconciliationResult:
    """Merge ``source`` into ``target``.

    With the default explicit mode every conflicting key needs a resolution;
    otherwise :class:`~lingx.domain.errors.UnresolvedConflictError` is raised
    and the target is left untouched.
    """

    source, target = _check_pair(unit_of_work_factory, source_branch_id, target_branch_id)
    log.info("Merging branch %s into %s", source.name, target.name)
    service = ReconciliationService(
        BranchCatalog(unit_of_work_factory, source.id),
        BranchCatalog(unit_of_work_factory, target.id),
    )
    policy = build_policy(mode, prompt=prompt, resolutions=resolutions)
    return service.reconcile(policy, delete_unmatched=delete_unmatched)


def write_branch_catalog(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    branch_id: UUID,
    *,
    upserts: Mapping[Identity, str],
    deletes: Sequence[Identity] = (),
    expected_revision: int | None = None,
) -> CatalogWriteResult:
    return BranchCatalog(unit_of_work_factory, branch_id).write(
        upserts=upserts,
        deletes=deletes,
        expected_revision=expected_revision,
    )


def load_branch_catalog(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    branch_id: UUID,
    *,
    languages: Iterable[str] | None = None,
) -> Catalog:
    catalog = BranchCatalog(unit_of_work_factory, branch_id).load_catalog()
    return catalog.restricted_to(None if languages is None else tuple(languages))


def create_branch(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    space_id: UUID,
    name: str,
    *,
    from_branch_id: UUID | None = None,
) -> Branch:
    """Create a branch holding a full copy of ``from_branch_id`` (default branch if unset)."""

    slug = slugify(name)
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        space = repositories.spaces.get(space_id)
        if space is None:
            raise CatalogNotFoundError(f"space {space_id}")
        if repositories.branches.get_by_slug(space.id, slug) is not None:
            raise AlreadyExistsError(f"Branch {slug!r} already exists in space {space.slug!r}")

        source = _resolve_source_branch(repositories, space, from_branch_id)
        branch = Branch(
            space_id=space.id,
            name=name,
            slug=slug,
            source_branch_id=source.id if source else None,
        )
        repositories.branches.add(branch)
        if source is not None:
            catalog = repositories.translations.load(source.id)
            repositories.translations.upsert(branch.id, catalog)
        uow.commit()

    log.info(
        "Created branch %s in space %s from %s",
        branch.slug,
        space.slug,
        source.slug if source else "nothing",
    )
    return branch


def _resolve_source_branch(
    repositories: CatalogRepositories,
    space: Space,
    from_branch_id: UUID | None,
) -> Branch | None:
    if from_branch_id is not None:
        source = _get_branch(repositories, from_branch_id)
        if source.space_id != space.id:
            raise InvalidReconciliationError("Source branch belongs to another space")
        return source
    for branch in repositories.branches.list_for_space(space.id):
        if branch.is_default:
            return branch
    return None


@dataclass(frozen=True, slots=True, kw_only=True)
class SpaceOverview:
    space: Space
    branches: tuple[Branch, ...]


def create_space(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    project_slug: str,
    name: str,
    *,
    slug: str | None = None,
    project_name: str | None = None,
) -> SpaceOverview:
    """Create a space (and its project, if new) with an empty default branch."""

    space_slug = slugify(slug or name)
    project_key = slugify(project_slug)
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        project = repositories.projects.get_by_slug(project_key)
        if project is None:
            project = Project(slug=project_key, name=project_name or project_slug)
            repositories.projects.add(project)
            log.info("Created project %s", project.slug)
        elif repositories.spaces.get_by_slug(project.id, space_slug) is not None:
            raise AlreadyExistsError(
                f"Space {space_slug!r} already exists in project {project.slug!r}"
            )

        space = Space(project_id=project.id, slug=space_slug, name=name)
        repositories.spaces.add(space)
        main = Branch(
            space_id=space.id,
            name=DEFAULT_BRANCH_NAME,
            slug=DEFAULT_BRANCH_NAME,
            is_default=True,
        )
        repositories.branches.add(main)
        uow.commit()

    log.info("Created space %s/%s", project.slug, space.slug)
    return SpaceOverview(space=space, branches=(main,))


def list_spaces(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    project_slug: str,
) -> tuple[Space, ...]:
    with unit_of_work_factory() as uow:
        project = uow.repositories.projects.get_by_slug(slugify(project_slug))
        if project is None:
            raise CatalogNotFoundError(f"project {project_slug}")
        return tuple(uow.repositories.spaces.list_for_project(project.id))


def get_space(unit_of_work_factory: CatalogUnitOfWorkFactory, space_id: UUID) -> SpaceOverview:
    with unit_of_work_factory() as uow:
        space = uow.repositories.spaces.get(space_id)
        if space is None:
            raise CatalogNotFoundError(f"space {space_id}")
        branches = tuple(uow.repositories.branches.list_for_space(space.id))
    return SpaceOverview(space=space, branches=branches)


def find_branch(
    unit_of_work_factory: CatalogUnitOfWorkFactory,
    project_slug: str,
    space_slug: str,
    branch_name: str,
) -> Branch:
    """Look a branch up by project slug, space slug and branch name."""

    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        project = repositories.projects.get_by_slug(slugify(project_slug))
        if project is None:
            raise CatalogNotFoundError(f"project {project_slug}")
        space = repositories.spaces.get_by_slug(project.id, slugify(space_slug))
        if space is None:
            raise CatalogNotFoundError(f"space {project_slug}/{space_slug}")
        branch = repositories.branches.get_by_slug(space.id, slugify(branch_name))
        if branch is None:
            raise CatalogNotFoundError(f"branch {project_slug}/{space_slug}/{branch_name}")
        return branch
