"""Orchestrator for catalog reconciliation.

The service composes the stages (diff, policy, plan, write) but does not
prescribe concrete stores. Branch merges, pushes and pulls all go through it
with different source/target adapters, so they behave the same way.

A reconciliation reads both catalogs fresh on every attempt. When the target
reports that it changed in the meantime (stale revision or a retryable write
failure) the whole load/diff/plan cycle runs again. Decisions already taken
for conflicts that look exactly the same as before are reused; anything new or
different goes back to the policy.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from lingx.domain.errors import CatalogWriteError, ReconciliationRetryError

from .apply import MergeSummary, summarize_plan
from .contracts import ReconciliationStatus, Resolution, Winner
from .diff import DiffCatalogs, diff_catalogs
from .plan import BuildMergePlan, build_plan
from .policy import PolicyOutcome

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lingx.domain.model import Catalog
    from lingx.domain.ports.catalogs import CatalogSource, CatalogTarget

    from .diff import Conflict, DiffResult
    from .plan import MergePlan
    from .policy import ConflictPolicy

log = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3

type DecisionKey = tuple[str, str, str, str]


def _decision_key(conflict: Conflict) -> DecisionKey:
    return (conflict.language, conflict.key, conflict.source_value, conflict.target_value)


@dataclass(frozen=True, slots=True, kw_only=True)
class ReconciliationResult:
    status: ReconciliationStatus
    diff: DiffResult
    outcome: PolicyOutcome
    plan: MergePlan | None = None
    summary: MergeSummary = field(default_factory=MergeSummary)
    attempts: int = 1

    @property
    def applied(self) -> bool:
        return self.status is ReconciliationStatus.APPLIED


class ReconciliationService:
    """Diff and merge a source catalog into a target catalog."""

    def __init__(
        self,
        source: CatalogSource,
        target: CatalogTarget,
        *,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        differ: DiffCatalogs = diff_catalogs,
        planner: BuildMergePlan = build_plan,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.source = source
        self.target = target
        self.max_attempts = max_attempts
        self._differ = differ
        self._planner = planner

    def load(self, *, languages: Iterable[str] | None = None) -> tuple[Catalog, Catalog]:
        wanted = None if languages is None else tuple(languages)
        source = self.source.load_catalog().restricted_to(wanted)
        target = self.target.load_catalog().restricted_to(wanted)
        log.info(
            "Loaded %s (%d entries) and %s (%d entries, revision %s)",
            self.source.identity,
            len(source),
            self.target.identity,
            len(target),
            target.revision,
        )
        return source, target

    def diff(self, *, languages: Iterable[str] | None = None) -> DiffResult:
        """Compare both catalogs without writing anything."""

        source, target = self.load(languages=languages)
        return self._differ(source, target)

    def reconcile(
        self,
        policy: ConflictPolicy,
        *,
        delete_unmatched: bool = False,
        languages: Iterable[str] | None = None,
        dry_run: bool = False,
    ) -> ReconciliationResult:
        """Merge the source into the target.

        Raises :class:`~lingx.domain.errors.UnresolvedConflictError` when the
        policy leaves a conflict undecided, without writing anything. A
        cancelled policy returns a ``cancelled`` result, also without writes.
        """

        wanted = None if languages is None else tuple(languages)
        decisions: dict[DecisionKey, Winner] = {}
        last_error: CatalogWriteError | None = None

        for attempt in range(1, self.max_attempts + 1):
            source, target = self.load(languages=wanted)
            diff = self._differ(source, target)
            log.info(
                "Diff: %d added, %d removed, %d changed",
                len(diff.added_only_source),
                len(diff.removed_only_target),
                len(diff.changed_both_present),
            )

            outcome = self._resolve(policy, diff, decisions)
            if outcome.cancelled:
                log.info("Reconciliation cancelled; nothing written")
                return ReconciliationResult(
                    status=ReconciliationStatus.CANCELLED,
                    diff=diff,
                    outcome=outcome,
                    attempts=attempt,
                )

            plan = self._planner(diff, outcome.accepted, delete_unmatched=delete_unmatched)
            summary = summarize_plan(plan)
            if plan.is_empty or dry_run:
                status = ReconciliationStatus.DRY_RUN
                if plan.is_empty:
                    status = ReconciliationStatus.UP_TO_DATE
                return ReconciliationResult(
                    status=status,
                    diff=diff,
                    outcome=outcome,
                    plan=plan,
                    summary=summary,
                    attempts=attempt,
                )

            try:
                self.target.apply_plan(plan, expected_revision=target.revision)
            except CatalogWriteError as exc:
                if not exc.retryable:
                    raise
                last_error = exc
                log.warning(
                    "Write to %s failed on attempt %d/%d: %s",
                    self.target.identity,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                continue

            log.info(
                "Applied %d upsert(s) and %d delete(s) to %s",
                len(plan.upserts),
                len(plan.deletes),
                self.target.identity,
            )
            return ReconciliationResult(
                status=ReconciliationStatus.APPLIED,
                diff=diff,
                outcome=outcome,
                plan=plan,
                summary=summary,
                attempts=attempt,
            )

        assert last_error is not None
        raise ReconciliationRetryError(self.max_attempts, last_error)

    def _resolve(
        self,
        policy: ConflictPolicy,
        diff: DiffResult,
        decisions: dict[DecisionKey, Winner],
    ) -> PolicyOutcome:
        remembered: list[Resolution] = []
        pending: list[Conflict] = []
        for conflict in diff.conflicts:
            winner = decisions.get(_decision_key(conflict))
            if winner is None:
                pending.append(conflict)
            else:
                remembered.append(
                    Resolution(language=conflict.language, key=conflict.key, winner=winner)
                )

        if not pending:
            return PolicyOutcome(accepted=tuple(remembered))

        fresh = policy(pending)
        pending_by_identity = {conflict.identity: conflict for conflict in pending}
        for resolution in fresh.accepted:
            conflict = pending_by_identity.get(resolution.identity)
            if conflict is not None:
                decisions[_decision_key(conflict)] = resolution.winner

        accepted = sorted((*remembered, *fresh.accepted), key=lambda r: r.identity)
        return PolicyOutcome(
            accepted=tuple(accepted),
            rejected=fresh.rejected,
            cancelled=fresh.cancelled,
        )
