"""Projects, spaces and branches that own translation catalogs."""

from __future__ import annotations

import re
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Final

DEFAULT_BRANCH_NAME: Final[str] = "main"

_SLUG_INVALID = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    """Lower-case ``name`` and collapse everything else into single dashes."""

    slug = _SLUG_INVALID.sub("-", name.strip().lower()).strip("-")
    if not slug:
        raise ValueError(f"Cannot derive a slug from {name!r}")
    return slug


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(eq=False, kw_only=True)
class Project:
    slug: str
    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(eq=False, kw_only=True)
class Space:
    """A group of branches sharing one set of keys, e.g. "frontend" or "mobile"."""

    project_id: uuid.UUID
    slug: str
    name: str
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)


@dataclass(eq=False, kw_only=True)
class Branch:
    """Named, independently editable catalog inside a space.

    ``revision`` grows by one with every committed change to the catalog and is
    what optimistic writers compare against. ``source_branch_id`` records which
    branch this one was copied from, if any.
    """

    space_id: uuid.UUID
    name: str
    slug: str
    is_default: bool = False
    source_branch_id: uuid.UUID | None = None
    revision: int = 0
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)
