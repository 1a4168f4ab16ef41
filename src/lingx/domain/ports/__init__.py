"""Ports (protocols) the domain depends on."""

from __future__ import annotations

from .catalogs import CatalogSource, CatalogTarget
from .persistence import (
    BranchRepository,
    ProjectRepository,
    Repository,
    SpaceRepository,
    TranslationRepository,
)
from .prompting import ConflictPrompt
from .unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    CatalogUnitOfWorkFactory,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "BranchRepository",
    "CatalogRepositories",
    "CatalogSource",
    "CatalogTarget",
    "CatalogUnitOfWork",
    "CatalogUnitOfWorkFactory",
    "ConflictPrompt",
    "ProjectRepository",
    "Repository",
    "RepositoryCollection",
    "SpaceRepository",
    "TranslationRepository",
    "UnitOfWork",
]
