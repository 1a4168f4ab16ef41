"""Tests for SQLAlchemy repositories."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lingx.adapters.sqlalchemy.mappings import translation_key_table
from lingx.adapters.sqlalchemy.repositories import (
    SqlAlchemyBranchRepository,
    SqlAlchemyProjectRepository,
    SqlAlchemySpaceRepository,
    SqlAlchemyTranslationRepository,
)
from lingx.domain.model import Branch, Project, Space

if TYPE_CHECKING:
    from collections.abc import Iterator

    from sqlalchemy.engine import Engine


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    with Session(sqlite_engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def branch(sqlite_session: Session) -> Branch:
    project = Project(slug="webshop", name="Webshop")
    space = Space(project_id=project.id, slug="frontend", name="Frontend")
    main = Branch(space_id=space.id, name="main", slug="main", is_default=True)
    SqlAlchemyProjectRepository(sqlite_session).add(project)
    SqlAlchemySpaceRepository(sqlite_session).add(space)
    SqlAlchemyBranchRepository(sqlite_session).add(main)
    sqlite_session.commit()
    return main


def test_lookup_by_slug(sqlite_session: Session, branch: Branch) -> None:
    project = SqlAlchemyProjectRepository(sqlite_session).get_by_slug("webshop")
    assert project is not None
    space = SqlAlchemySpaceRepository(sqlite_session).get_by_slug(project.id, "frontend")
    assert space is not None
    branches = SqlAlchemyBranchRepository(sqlite_session)

    assert branches.get_by_slug(space.id, "main") is branch
    assert branches.get_by_slug(space.id, "other") is None
    assert [b.slug for b in branches.list_for_space(space.id)] == ["main"]


def test_default_branch_is_listed_first(sqlite_session: Session, branch: Branch) -> None:
    repository = SqlAlchemyBranchRepository(sqlite_session)
    repository.add(Branch(space_id=branch.space_id, name="alpha", slug="alpha"))
    sqlite_session.commit()

    assert [b.slug for b in repository.list_for_space(branch.space_id)] == ["main", "alpha"]


def test_translations_upsert_and_load(sqlite_session: Session, branch: Branch) -> None:
    translations = SqlAlchemyTranslationRepository(sqlite_session)

    inserted = translations.upsert(
        branch.id,
        {("en", "greeting"): "Hello", ("de", "greeting"): "Hallo", ("en", "shop\x1ftitle"): "Shop"},
    )
    updated = translations.upsert(branch.id, {("en", "greeting"): "Hi"})
    sqlite_session.commit()

    assert (inserted, updated) == (3, 1)
    assert translations.load(branch.id).to_nested() == {
        "de": {"greeting": "Hallo"},
        "en": {"greeting": "Hi", "shop\x1ftitle": "Shop"},
    }


def test_empty_value_is_stored(sqlite_session: Session, branch: Branch) -> None:
    translations = SqlAlchemyTranslationRepository(sqlite_session)

    translations.upsert(branch.id, {("en", "blank"): ""})

    assert translations.load(branch.id).value("en", "blank") == ""


def test_delete_removes_values_and_orphaned_keys(sqlite_session: Session, branch: Branch) -> None:
    translations = SqlAlchemyTranslationRepository(sqlite_session)
    translations.upsert(
        branch.id,
        {("en", "greeting"): "Hello", ("de", "greeting"): "Hallo", ("en", "bye"): "Bye"},
    )

    deleted = translations.delete(
        branch.id, [("en", "greeting"), ("en", "bye"), ("fr", "greeting"), ("en", "missing")]
    )

    assert deleted == 2
    assert translations.load(branch.id).to_nested() == {"de": {"greeting": "Hallo"}}
    key_count = sqlite_session.execute(
        select(func.count()).select_from(translation_key_table)
    ).scalar_one()
    assert key_count == 1


def test_bump_revision_guards_against_concurrent_writers(
    sqlite_session: Session,
    branch: Branch,
) -> None:
    repository = SqlAlchemyBranchRepository(sqlite_session)

    assert repository.bump_revision(branch, expected=0)
    assert branch.revision == 1
    assert not repository.bump_revision(branch, expected=0)
    assert branch.revision == 1
