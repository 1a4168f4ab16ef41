"""Errors raised by catalog loading, reconciliation and writing."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lingx.domain.reconciliation.diff import Conflict


class LingxError(RuntimeError):
    """Base class for domain errors."""


class CatalogNotFoundError(LingxError):
    """A referenced catalog (branch, directory, remote) does not exist."""

    def __init__(self, identity: str) -> None:
        super().__init__(f"Catalog not found: {identity}")
        self.identity = identity


class InvalidReconciliationError(LingxError):
    """The two sides of a diff or merge cannot be reconciled with each other."""


class UnresolvedConflictError(LingxError):
    """At least one changed entry has no resolution; nothing was written."""

    def __init__(self, conflicts: Sequence[Conflict]) -> None:
        self.conflicts = tuple(conflicts)
        preview = ", ".join(f"{c.language}:{c.key}" for c in self.conflicts[:5])
        more = len(self.conflicts) - 5
        if more > 0:
            preview = f"{preview} (+{more} more)"
        super().__init__(f"{len(self.conflicts)} unresolved conflict(s): {preview}")


class CatalogWriteError(LingxError):
    """The target store rejected or failed a write."""

    def __init__(self, message: str, *, retryable: bool = True) -> None:
        super().__init__(message)
        self.retryable = retryable


class StaleCatalogError(CatalogWriteError):
    """The target changed since it was loaded (optimistic revision check failed)."""

    def __init__(self, identity: str, *, expected: int | None, actual: int | None) -> None:
        super().__init__(
            f"Catalog {identity} changed concurrently (expected revision {expected}, "
            f"found {actual})",
            retryable=True,
        )
        self.identity = identity
        self.expected = expected
        self.actual = actual


class ResolutionCancelled(LingxError):  # noqa: N818
    """The user aborted interactive conflict resolution."""


class ReconciliationRetryError(LingxError):
    """Concurrent writers kept invalidating the plan until attempts ran out."""

    def __init__(self, attempts: int, last_error: CatalogWriteError) -> None:
        super().__init__(f"Gave up after {attempts} attempt(s): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class AlreadyExistsError(LingxError):
    """A project, space or branch with the same slug already exists."""


class CatalogFormatError(LingxError):
    """A stored catalog could not be parsed into flat string entries."""
