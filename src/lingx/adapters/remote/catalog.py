"""A branch on a Lingx server as reconciliation source or target."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from lingx.api.schemas import EntryRef, UpdateTranslationsRequest
from lingx.domain.model import Catalog

if TYPE_CHECKING:
    from uuid import UUID

    from lingx.domain.reconciliation import MergePlan

    from .client import LingxApiClient

log = logging.getLogger(__name__)


class RemoteBranchCatalog:
    """Reads and writes one remote branch through the HTTP API.

    The server applies each PUT in a single transaction and checks the
    expected revision, so writes are atomic.
    """

    supports_atomic_writes = True

    def __init__(
        self, client: LingxApiClient, branch_id: UUID, *, label: str | None = None
    ) -> None:
        self.client = client
        self.branch_id = branch_id
        self._label = label

    @property
    def identity(self) -> str:
        return f"remote {self._label or self.branch_id}"

    def load_catalog(self) -> Catalog:
        response = self.client.get_translations(self.branch_id)
        return Catalog.from_nested(response.translations, revision=response.revision)

    def apply_plan(self, plan: MergePlan, *, expected_revision: int | None) -> None:
        translations: dict[str, dict[str, str]] = {}
        for upsert in plan.upserts:
            translations.setdefault(upsert.language, {})[upsert.key] = upsert.value
        request = UpdateTranslationsRequest(
            translations=translations,
            deletes=[EntryRef(language=d.language, key=d.key) for d in plan.deletes],
            expected_revision=expected_revision,
        )
        response = self.client.put_translations(self.branch_id, request)
        log.info(
            "Remote %s now at revision %d (%d upserted, %d deleted)",
            self.identity,
            response.revision,
            response.upserted,
            response.deleted,
        )
