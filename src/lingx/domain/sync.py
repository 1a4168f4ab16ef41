"""Synchronisation between a local catalog and a remote branch.

Push treats the local files as the source and the remote branch as the target;
pull is the reverse and never deletes local entries. A full sync pushes first
and then pulls with the remote winning, so that both sides end up equal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from lingx.domain.reconciliation import (
    ReconciliationService,
    ReconciliationStatus,
    force_source,
)
from lingx.domain.reconciliation.engine import DEFAULT_MAX_ATTEMPTS

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lingx.domain.ports.catalogs import CatalogSource, CatalogTarget
    from lingx.domain.reconciliation import (
        ConflictPolicy,
        DiffResult,
        MergeSummary,
        ReconciliationResult,
    )

log = logging.getLogger(__name__)


class SyncDirection(StrEnum):
    PUSH = "push"
    PULL = "pull"


@dataclass(frozen=True, slots=True, kw_only=True)
class SyncReport:
    direction: SyncDirection
    result: ReconciliationResult

    @property
    def status(self) -> ReconciliationStatus:
        return self.result.status

    @property
    def summary(self) -> MergeSummary:
        return self.result.summary

    @property
    def cancelled(self) -> bool:
        return self.result.status is ReconciliationStatus.CANCELLED


@dataclass(frozen=True, slots=True, kw_only=True)
class FullSyncReport:
    push: SyncReport
    pull: SyncReport | None = None


def diff_local_remote(
    local: CatalogSource,
    remote: CatalogTarget,
    *,
    languages: Iterable[str] | None = None,
) -> DiffResult:
    """Compare local files (source) with the remote branch (target)."""

    return ReconciliationService(local, remote).diff(languages=languages)


def push_catalogs(
    local: CatalogSource,
    remote: CatalogTarget,
    policy: ConflictPolicy,
    *,
    delete_remote: bool = False,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> SyncReport:
    service = ReconciliationService(local, remote, max_attempts=max_attempts)
    result = service.reconcile(
        policy,
        delete_unmatched=delete_remote,
        languages=languages,
        dry_run=dry_run,
    )
    _log_report(SyncDirection.PUSH, result)
    return SyncReport(direction=SyncDirection.PUSH, result=result)


def pull_catalogs(
    remote: CatalogSource,
    local: CatalogTarget,
    policy: ConflictPolicy,
    *,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> SyncReport:
    service = ReconciliationService(remote, local, max_attempts=max_attempts)
    result = service.reconcile(policy, languages=languages, dry_run=dry_run)
    _log_report(SyncDirection.PULL, result)
    return SyncReport(direction=SyncDirection.PULL, result=result)


def sync_catalogs(
    local: CatalogTarget,
    remote: CatalogTarget,
    policy: ConflictPolicy,
    *,
    delete_remote: bool = False,
    languages: Iterable[str] | None = None,
    dry_run: bool = False,
) -> FullSyncReport:
    """Push local changes, then pull whatever the remote has that local lacks.

    ``policy`` settles the push conflicts. The pull afterwards lets the remote
    win, which only affects entries the push deliberately kept remote-side.
    """

    wanted = None if languages is None else tuple(languages)
    push = push_catalogs(
        local,
        remote,
        policy,
        delete_remote=delete_remote,
        languages=wanted,
        dry_run=dry_run,
    )
    if push.cancelled or dry_run:
        return FullSyncReport(push=push)
    pull = pull_catalogs(remote, local, force_source(), languages=wanted)
    return FullSyncReport(push=push, pull=pull)


def _log_report(direction: SyncDirection, result: ReconciliationResult) -> None:
    summary = result.summary
    log.info(
        "%s %s: added=%d, updated=%d, skipped=%d, deleted=%d",
        direction.value.capitalize(),
        result.status.value,
        summary.added,
        summary.updated,
        summary.skipped,
        summary.deleted,
    )
