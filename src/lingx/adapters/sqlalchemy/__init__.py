"""SQLAlchemy adapter package for Lingx."""

from __future__ import annotations

from .mappings import create_all_tables, mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyBranchRepository,
    SqlAlchemyProjectRepository,
    SqlAlchemySpaceRepository,
    SqlAlchemyTranslationRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "SqlAlchemyBranchRepository",
    "SqlAlchemyProjectRepository",
    "SqlAlchemySpaceRepository",
    "SqlAlchemyTranslationRepository",
    "SqlAlchemyUnitOfWork",
    "create_all_tables",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
