"""Shared reconciliation contract components.

This module holds only the small value types that travel between stages:
which side wins a conflict, the per-identity and per-key resolution records,
and the status enums reported back to callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from lingx.domain.model import Identity

    from .diff import Conflict

log = logging.getLogger(__name__)


class Winner(StrEnum):
    """Side whose value survives a conflict."""

    SOURCE = "source"
    TARGET = "target"


class PromptChoice(StrEnum):
    """Answer returned by an interactive conflict prompt."""

    SOURCE = "source"
    TARGET = "target"
    SOURCE_ALL = "source-all"
    TARGET_ALL = "target-all"

    @property
    def winner(self) -> Winner:
        if self in (PromptChoice.SOURCE, PromptChoice.SOURCE_ALL):
            return Winner.SOURCE
        return Winner.TARGET

    @property
    def applies_to_rest(self) -> bool:
        return self in (PromptChoice.SOURCE_ALL, PromptChoice.TARGET_ALL)


class ChangeKind(StrEnum):
    ADDED = "added"
    UPDATED = "updated"


class ReconciliationStatus(StrEnum):
    APPLIED = "applied"
    UP_TO_DATE = "up_to_date"
    CANCELLED = "cancelled"
    DRY_RUN = "dry_run"


@dataclass(frozen=True, slots=True, kw_only=True)
class Resolution:
    """Decision for exactly one conflicting ``(language, key)``."""

    language: str
    key: str
    winner: Winner

    @property
    def identity(self) -> Identity:
        return (self.language, self.key)


@dataclass(frozen=True, slots=True, kw_only=True)
class KeyResolution:
    """Decision addressed by key, as sent with a merge request.

    Without a ``language`` the decision covers every language in which the key
    conflicts. A language-specific decision takes precedence over a key-wide
    one.
    """

    key: str
    winner: Winner
    language: str | None = None


def expand_key_resolutions(
    key_resolutions: Iterable[KeyResolution],
    conflicts: Sequence[Conflict],
) -> tuple[Resolution, ...]:
    """Turn key-level decisions into one :class:`Resolution` per matching conflict.

    Decisions that match no conflict are dropped (and logged). Two decisions of
    the same specificity that disagree about one key raise ``ValueError``.
    """

    by_key: dict[str, Winner] = {}
    by_identity: dict[Identity, Winner] = {}
    for item in key_resolutions:
        if item.language is None:
            previous = by_key.setdefault(item.key, item.winner)
        else:
            previous = by_identity.setdefault((item.language, item.key), item.winner)
        if previous is not item.winner:
            raise ValueError(f"Contradictory resolutions for key {item.key!r}")

    resolutions: list[Resolution] = []
    matched_keys: set[str] = set()
    matched_identities: set[Identity] = set()
    for conflict in conflicts:
        winner = by_identity.get(conflict.identity)
        if winner is not None:
            matched_identities.add(conflict.identity)
        if conflict.key in by_key:
            matched_keys.add(conflict.key)
            winner = winner or by_key[conflict.key]
        if winner is None:
            continue
        resolutions.append(
            Resolution(language=conflict.language, key=conflict.key, winner=winner)
        )

    unmatched = sorted(set(by_key) - matched_keys) + sorted(
        f"{language}:{key}" for language, key in set(by_identity) - matched_identities
    )
    if unmatched:
        log.info("Ignoring resolutions that match no conflict: %s", ", ".join(unmatched))
    return tuple(resolutions)
