"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import bindparam, delete, insert, select, update
from sqlalchemy.orm.attributes import set_committed_value

from lingx.adapters.sqlalchemy.mappings import (
    branch_table,
    project_table,
    space_table,
    translation_key_table,
    translation_table,
)
from lingx.domain.model import Branch, Catalog, Project, Space, combine_key, parse_namespaced_key

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence
    from uuid import UUID

    from sqlalchemy import CursorResult
    from sqlalchemy.orm import Session

    from lingx.domain.model import Identity

type KeyRef = tuple[str, str]
"""``(namespace, name)`` as stored; ``""`` stands for "no namespace"."""


def _key_ref(key: str) -> KeyRef:
    parsed = parse_namespaced_key(key)
    return (parsed.namespace or "", parsed.name)


# No relationship() links these tables; add() flushes so inserts follow call order.


class SqlAlchemyProjectRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Project) -> None:
        self.session.add(entity)
        self.session.flush()

    def get_by_slug(self, slug: str) -> Project | None:
        stmt = select(Project).where(project_table.c.slug == slug)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemySpaceRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Space) -> None:
        self.session.add(entity)
        self.session.flush()

    def get(self, space_id: UUID) -> Space | None:
        return self.session.get(Space, space_id)

    def get_by_slug(self, project_id: UUID, slug: str) -> Space | None:
        stmt = (
            select(Space)
            .where(space_table.c.project_id == project_id)
            .where(space_table.c.slug == slug)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_project(self, project_id: UUID) -> Sequence[Space]:
        stmt = (
            select(Space).where(space_table.c.project_id == project_id).order_by(space_table.c.slug)
        )
        return self.session.execute(stmt).scalars().all()


class SqlAlchemyBranchRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: Branch) -> None:
        self.session.add(entity)
        self.session.flush()

    def get(self, branch_id: UUID) -> Branch | None:
        return self.session.get(Branch, branch_id)

    def get_by_slug(self, space_id: UUID, slug: str) -> Branch | None:
        stmt = (
            select(Branch)
            .where(branch_table.c.space_id == space_id)
            .where(branch_table.c.slug == slug)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def list_for_space(self, space_id: UUID) -> Sequence[Branch]:
        stmt = (
            select(Branch)
            .where(branch_table.c.space_id == space_id)
            .order_by(branch_table.c.is_default.desc(), branch_table.c.slug)
        )
        return self.session.execute(stmt).scalars().all()

    def bump_revision(self, branch: Branch, *, expected: int | None) -> bool:
        """Conditionally advance the stored revision.

        The ``WHERE revision = :expected`` guard makes a concurrent writer that
        committed in between lose the race instead of overwriting silently.
        """

        self.session.flush()
        current = branch.revision if expected is None else expected
        now = datetime.now(UTC)
        stmt = update(branch_table).where(branch_table.c.id == branch.id)
        if expected is not None:
            stmt = stmt.where(branch_table.c.revision == expected)
        result = cast(
            "CursorResult[Any]",
            self.session.execute(stmt.values(revision=current + 1, updated_at=now)),
        )
        if result.rowcount != 1:
            return False
        set_committed_value(branch, "revision", current + 1)
        set_committed_value(branch, "updated_at", now)
        return True


class SqlAlchemyTranslationRepository:
    """Bulk access to the keys and values of a branch."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def load(self, branch_id: UUID) -> Catalog:
        self.session.flush()
        stmt = (
            select(
                translation_key_table.c.namespace,
                translation_key_table.c.name,
                translation_table.c.language,
                translation_table.c.value,
            )
            .join(translation_table, translation_table.c.key_id == translation_key_table.c.id)
            .where(translation_key_table.c.branch_id == branch_id)
        )
        return Catalog(
            {
                (language, combine_key(name, namespace or None)): value
                for namespace, name, language, value in self.session.execute(stmt)
            }
        )

    def upsert(self, branch_id: UUID, values: Mapping[Identity, str]) -> int:
        if not values:
            return 0
        self.session.flush()

        key_ids = self._key_ids(branch_id)
        missing = sorted({_key_ref(key) for _language, key in values} - key_ids.keys())
        if missing:
            self.session.execute(
                insert(translation_key_table),
                [
                    {"branch_id": branch_id, "namespace": namespace, "name": name}
                    for namespace, name in missing
                ],
            )
            key_ids = self._key_ids(branch_id)

        existing = self._translation_ids(branch_id)
        inserts: list[dict[str, object]] = []
        updates: list[dict[str, object]] = []
        for (language, key), value in values.items():
            key_id = key_ids[_key_ref(key)]
            translation_id = existing.get((key_id, language))
            if translation_id is None:
                inserts.append({"key_id": key_id, "language": language, "value": value})
            else:
                updates.append({"translation_id": translation_id, "new_value": value})

        if inserts:
            self.session.execute(insert(translation_table), inserts)
        if updates:
            self.session.execute(
                update(translation_table)
                .where(translation_table.c.id == bindparam("translation_id"))
                .values(value=bindparam("new_value")),
                updates,
            )
        return len(values)

    def delete(self, branch_id: UUID, identities: Sequence[Identity]) -> int:
        if not identities:
            return 0
        self.session.flush()

        key_ids = self._key_ids(branch_id)
        existing = self._translation_ids(branch_id)
        doomed: list[dict[str, object]] = []
        for language, key in identities:
            key_id = key_ids.get(_key_ref(key))
            if key_id is None:
                continue
            translation_id = existing.get((key_id, language))
            if translation_id is not None:
                doomed.append({"translation_id": translation_id})

        if doomed:
            self.session.execute(
                delete(translation_table).where(
                    translation_table.c.id == bindparam("translation_id")
                ),
                doomed,
            )
            self._delete_orphaned_keys(branch_id)
        return len(doomed)

    def _key_ids(self, branch_id: UUID) -> dict[KeyRef, int]:
        stmt = select(
            translation_key_table.c.namespace,
            translation_key_table.c.name,
            translation_key_table.c.id,
        ).where(translation_key_table.c.branch_id == branch_id)
        rows = self.session.execute(stmt)
        return {(namespace, name): key_id for namespace, name, key_id in rows}

    def _translation_ids(self, branch_id: UUID) -> dict[tuple[int, str], int]:
        stmt = (
            select(translation_table.c.key_id, translation_table.c.language, translation_table.c.id)
            .join(translation_key_table, translation_table.c.key_id == translation_key_table.c.id)
            .where(translation_key_table.c.branch_id == branch_id)
        )
        return {
            (key_id, language): translation_id
            for key_id, language, translation_id in self.session.execute(stmt)
        }

    def _delete_orphaned_keys(self, branch_id: UUID) -> None:
        has_values = (
            select(translation_table.c.id)
            .where(translation_table.c.key_id == translation_key_table.c.id)
            .correlate(translation_key_table)
            .exists()
        )
        self.session.execute(
            delete(translation_key_table)
            .where(translation_key_table.c.branch_id == branch_id)
            .where(~has_values)
        )
