"""SQLAlchemy mapping metadata for the Lingx domain model.

Projects, spaces and branches are mapped imperatively onto their domain
dataclasses. Catalog content (keys and per-language values) stays in plain
Core tables: it is only ever read and written in bulk by the translation
repository and never navigated as objects.
"""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Dialect,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
)
from sqlalchemy.orm import configure_mappers

from lingx.domain.model import Branch, Project, Space

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Branch hierarchy -------------------------------------------------------------

project_table = Table(
    "project",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("slug", String(128), nullable=False, unique=True),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

space_table = Table(
    "space",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "project_id",
        UUIDColumnType,
        ForeignKey("project.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("slug", String(128), nullable=False),
    Column("name", String, nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
    UniqueConstraint("project_id", "slug"),
)

branch_table = Table(
    "branch",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "space_id",
        UUIDColumnType,
        ForeignKey("space.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("name", String, nullable=False),
    Column("slug", String(128), nullable=False),
    Column("is_default", Boolean, nullable=False, default=False),
    Column(
        "source_branch_id",
        UUIDColumnType,
        ForeignKey("branch.id", ondelete="SET NULL"),
        nullable=True,
    ),
    Column("revision", Integer, nullable=False, default=0),
    Column("created_at", UTCDateTime(), nullable=False),
    Column("updated_at", UTCDateTime(), nullable=False),
    UniqueConstraint("space_id", "slug"),
)

# Catalog content -------------------------------------------------------------

translation_key_table = Table(
    "translation_key",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "branch_id",
        UUIDColumnType,
        ForeignKey("branch.id", ondelete="CASCADE"),
        nullable=False,
    ),
    # "" for keys without a namespace so the unique constraint also holds for them
    Column("namespace", String, nullable=False, default=""),
    Column("name", String, nullable=False),
    UniqueConstraint("branch_id", "namespace", "name"),
)

translation_table = Table(
    "translation",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "key_id",
        Integer,
        ForeignKey("translation_key.id", ondelete="CASCADE"),
        nullable=False,
    ),
    Column("language", String(35), nullable=False),
    Column("value", Text, nullable=False),
    UniqueConstraint("key_id", "language"),
    Index("ix_translation_language", "language"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Project, project_table)
    mapper_registry.map_imperatively(Space, space_table)
    mapper_registry.map_imperatively(Branch, branch_table)

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
