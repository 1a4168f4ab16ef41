from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from lingx.domain.errors import (
    CatalogNotFoundError,
    CatalogWriteError,
    ReconciliationRetryError,
    UnresolvedConflictError,
)
from lingx.domain.reconciliation import (
    DiffResult,
    ExplicitResolutionPolicy,
    InteractivePolicy,
    PromptChoice,
    ReconciliationService,
    ReconciliationStatus,
    force_source,
    force_target,
)
from tests.helpers.catalogs import FakeCatalogStore, ScriptedPrompt, make_catalog

if TYPE_CHECKING:
    from lingx.domain.model import Catalog


def _stores(
    source: dict[str, dict[str, str]],
    target: dict[str, dict[str, str]],
) -> tuple[FakeCatalogStore, FakeCatalogStore]:
    return (
        FakeCatalogStore(make_catalog(source), name="source", revision=None),
        FakeCatalogStore(make_catalog(target), name="target"),
    )


def test_reconcile_applies_plan_with_target_winner() -> None:
    source, target = _stores(
        {"en": {"greeting": "Hi"}, "es": {"greeting": "Hola"}},
        {"en": {"greeting": "Hello"}},
    )

    result = ReconciliationService(source, target).reconcile(force_target())

    assert result.status is ReconciliationStatus.APPLIED
    assert result.applied
    assert result.attempts == 1
    assert target.catalog.to_nested() == {
        "en": {"greeting": "Hello"},
        "es": {"greeting": "Hola"},
    }
    assert (result.summary.added, result.summary.updated, result.summary.skipped) == (1, 0, 1)
    assert target.revision == 1


def test_reconcile_deletes_only_when_asked() -> None:
    source, target = _stores({"en": {"a": "1"}}, {"en": {"a": "1", "b": "2"}})
    service = ReconciliationService(source, target)

    kept = service.reconcile(force_source())
    deleted = service.reconcile(force_source(), delete_unmatched=True)

    assert kept.status is ReconciliationStatus.UP_TO_DATE
    assert deleted.status is ReconciliationStatus.APPLIED
    assert target.catalog.to_nested() == {"en": {"a": "1"}}
    assert deleted.summary.deleted == 1


def test_unresolved_conflicts_write_nothing() -> None:
    source, target = _stores({"en": {"a": "new"}}, {"en": {"a": "old"}})

    with pytest.raises(UnresolvedConflictError):
        ReconciliationService(source, target).reconcile(ExplicitResolutionPolicy([]))

    assert target.writes == []
    assert target.catalog.value("en", "a") == "old"


def test_cancelled_prompt_writes_nothing() -> None:
    source, target = _stores(
        {"en": {"a": "new", "b": "added"}},
        {"en": {"a": "old"}},
    )
    prompt = ScriptedPrompt([None])

    result = ReconciliationService(source, target).reconcile(InteractivePolicy(prompt))

    assert result.status is ReconciliationStatus.CANCELLED
    assert result.plan is None
    assert target.writes == []


def test_dry_run_reports_plan_without_writing() -> None:
    source, target = _stores({"en": {"a": "1", "b": "2"}}, {"en": {"a": "0"}})

    result = ReconciliationService(source, target).reconcile(force_source(), dry_run=True)

    assert result.status is ReconciliationStatus.DRY_RUN
    assert result.plan is not None
    assert [u.identity for u in result.plan.upserts] == [("en", "a"), ("en", "b")]
    assert target.writes == []


def test_identical_catalogs_are_up_to_date() -> None:
    source, target = _stores({"en": {"a": "1"}}, {"en": {"a": "1"}})

    result = ReconciliationService(source, target).reconcile(force_source())

    assert result.status is ReconciliationStatus.UP_TO_DATE
    assert result.diff.is_empty
    assert target.writes == []


def test_stale_target_is_reloaded_and_decisions_are_reused() -> None:
    source, target = _stores(
        {"en": {"greeting": "Hi", "title": "Title"}},
        {"en": {"greeting": "Hello"}},
    )
    target.before_write = lambda store: store.replace(
        {"en": {"greeting": "Hello", "footer": "Footer"}}
    )
    prompt = ScriptedPrompt([PromptChoice.SOURCE])

    result = ReconciliationService(source, target).reconcile(InteractivePolicy(prompt))

    assert result.status is ReconciliationStatus.APPLIED
    assert result.attempts == 2
    assert len(prompt.asked) == 1
    assert target.catalog.to_nested() == {
        "en": {"footer": "Footer", "greeting": "Hi", "title": "Title"}
    }


def test_changed_conflict_is_asked_again_after_retry() -> None:
    source, target = _stores({"en": {"greeting": "Hi"}}, {"en": {"greeting": "Hello"}})
    target.before_write = lambda store: store.replace({"en": {"greeting": "Howdy"}})
    prompt = ScriptedPrompt([PromptChoice.SOURCE, PromptChoice.TARGET])

    result = ReconciliationService(source, target).reconcile(InteractivePolicy(prompt))

    assert [conflict.target_value for conflict, _, _ in prompt.asked] == ["Hello", "Howdy"]
    assert result.status is ReconciliationStatus.UP_TO_DATE
    assert target.catalog.value("en", "greeting") == "Howdy"


def test_retryable_failures_give_up_after_max_attempts() -> None:
    source, target = _stores({"en": {"a": "1"}}, {})
    target.failures = [CatalogWriteError("busy") for _ in range(3)]

    with pytest.raises(ReconciliationRetryError) as excinfo:
        ReconciliationService(source, target, max_attempts=3).reconcile(force_source())

    assert excinfo.value.attempts == 3
    assert str(excinfo.value.last_error) == "busy"
    assert target.loads == 3
    assert target.writes == []


def test_non_retryable_failure_propagates_immediately() -> None:
    source, target = _stores({"en": {"a": "1"}}, {})
    failure = CatalogWriteError("disk full", retryable=False)
    target.failures = [failure]

    with pytest.raises(CatalogWriteError) as excinfo:
        ReconciliationService(source, target).reconcile(force_source())

    assert excinfo.value is failure
    assert target.loads == 1


def test_languages_restrict_both_sides() -> None:
    source, target = _stores(
        {"en": {"a": "new"}, "es": {"a": "uno"}},
        {"en": {"a": "old"}, "fr": {"a": "un"}},
    )

    result = ReconciliationService(source, target).reconcile(
        ExplicitResolutionPolicy([]), languages=["es"], delete_unmatched=True
    )

    assert result.status is ReconciliationStatus.APPLIED
    assert target.catalog.to_nested() == {
        "en": {"a": "old"},
        "es": {"a": "uno"},
        "fr": {"a": "un"},
    }


def test_missing_source_is_reported() -> None:
    source, target = _stores({}, {})
    source.missing = True

    with pytest.raises(CatalogNotFoundError):
        ReconciliationService(source, target).diff()


def test_service_uses_injected_differ() -> None:
    source, target = _stores({"en": {"a": "1"}}, {})
    seen: list[tuple[Catalog, Catalog]] = []

    def differ(a: Catalog, b: Catalog) -> DiffResult:
        seen.append((a, b))
        return DiffResult()

    result = ReconciliationService(source, target, differ=differ).reconcile(force_source())

    assert result.status is ReconciliationStatus.UP_TO_DATE
    assert len(seen) == 1
    assert seen[0][0].value("en", "a") == "1"


def test_max_attempts_must_be_positive() -> None:
    source, target = _stores({}, {})

    with pytest.raises(ValueError, match="max_attempts"):
        ReconciliationService(source, target, max_attempts=0)
