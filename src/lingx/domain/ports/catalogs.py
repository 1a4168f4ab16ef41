"""Ports for reading and writing catalog snapshots."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lingx.domain.model import Catalog
    from lingx.domain.reconciliation.plan import MergePlan


@runtime_checkable
class CatalogSource(Protocol):
    """Something a consistent catalog snapshot can be read from."""

    @property
    def identity(self) -> str: ...

    def load_catalog(self) -> Catalog:
        """Return a point-in-time snapshot.

        Raises :class:`~lingx.domain.errors.CatalogNotFoundError` when the
        catalog does not exist.
        """
        ...


@runtime_checkable
class CatalogTarget(CatalogSource, Protocol):
    """A catalog store that merge plans can be written to."""

    @property
    def supports_atomic_writes(self) -> bool: ...

    def apply_plan(self, plan: MergePlan, *, expected_revision: int | None) -> None:
        """Write ``plan``: upserts, then deletes.

        Stores with revisions raise
        :class:`~lingx.domain.errors.StaleCatalogError` when the catalog is no
        longer at ``expected_revision``. Store failures surface as
        :class:`~lingx.domain.errors.CatalogWriteError`.
        """
        ...
