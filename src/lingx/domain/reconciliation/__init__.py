"""Catalog reconciliation: diff, resolve, plan, apply.

Stage order:
1. ``diff``: classify every ``(language, key)`` of two snapshots
2. ``policy``: decide a winner per conflict
3. ``plan``: derive upserts/deletes, refusing undecided conflicts
4. ``apply``: pure application and per-language summaries
5. ``engine``: load, run the stages, write, retry on concurrent change
"""

from __future__ import annotations

from .apply import LanguageSummary, MergeSummary, apply_plan, summarize_plan
from .contracts import (
    ChangeKind,
    KeyResolution,
    PromptChoice,
    ReconciliationStatus,
    Resolution,
    Winner,
    expand_key_resolutions,
)
from .diff import AddedEntry, Conflict, DiffResult, RemovedEntry, diff_catalogs
from .engine import ReconciliationResult, ReconciliationService
from .plan import Delete, MergePlan, Upsert, build_plan
from .policy import (
    ConflictPolicy,
    ExplicitResolutionPolicy,
    ForceWinnerPolicy,
    InteractivePolicy,
    PolicyOutcome,
    ResolutionMode,
    build_policy,
    force_source,
    force_target,
    resolve_conflicts,
)

__all__ = [
    "AddedEntry",
    "ChangeKind",
    "Conflict",
    "ConflictPolicy",
    "Delete",
    "DiffResult",
    "ExplicitResolutionPolicy",
    "ForceWinnerPolicy",
    "InteractivePolicy",
    "KeyResolution",
    "LanguageSummary",
    "MergePlan",
    "MergeSummary",
    "PolicyOutcome",
    "PromptChoice",
    "ReconciliationResult",
    "ReconciliationService",
    "ReconciliationStatus",
    "RemovedEntry",
    "Resolution",
    "ResolutionMode",
    "Upsert",
    "Winner",
    "apply_plan",
    "build_plan",
    "build_policy",
    "diff_catalogs",
    "expand_key_resolutions",
    "force_source",
    "force_target",
    "resolve_conflicts",
    "summarize_plan",
]
