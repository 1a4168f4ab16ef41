"""Conflict resolution policies.

Responsibilities of this stage:
- turn the changed entries of a diff into per-identity resolutions
- never invent a resolution that the chosen mode did not ask for
- leave anything it could not decide in ``rejected`` so the merge executor
  refuses to write

Modes:
- ``force-source``: every conflict keeps the source value
- ``force-target``: every conflict keeps the target value
- ``interactive``: a :class:`~lingx.domain.ports.prompting.ConflictPrompt` is
  asked once per conflict, in diff order, until it answers "all" or cancels
- ``explicit``: the caller hands in the decisions (e.g. a merge request)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from lingx.domain.errors import ResolutionCancelled

from .contracts import KeyResolution, Resolution, Winner, expand_key_resolutions

if TYPE_CHECKING:
    from collections.abc import Sequence

    from lingx.domain.ports.prompting import ConflictPrompt

    from .diff import Conflict

log = logging.getLogger(__name__)


class ResolutionMode(StrEnum):
    FORCE_SOURCE = "force-source"
    FORCE_TARGET = "force-target"
    INTERACTIVE = "interactive"
    EXPLICIT = "explicit"


@dataclass(frozen=True, slots=True, kw_only=True)
class PolicyOutcome:
    accepted: tuple[Resolution, ...] = ()
    rejected: tuple[Conflict, ...] = ()
    cancelled: bool = False

    @property
    def is_complete(self) -> bool:
        return not self.rejected and not self.cancelled


class ConflictPolicy(Protocol):
    """Decide the winner of each conflict."""

    def __call__(self, conflicts: Sequence[Conflict]) -> PolicyOutcome: ...


@dataclass(frozen=True, slots=True)
class ForceWinnerPolicy:
    winner: Winner

    def __call__(self, conflicts: Sequence[Conflict]) -> PolicyOutcome:
        return PolicyOutcome(
            accepted=tuple(
                Resolution(language=c.language, key=c.key, winner=self.winner) for c in conflicts
            )
        )


def force_source() -> ForceWinnerPolicy:
    return ForceWinnerPolicy(Winner.SOURCE)


def force_target() -> ForceWinnerPolicy:
    return ForceWinnerPolicy(Winner.TARGET)


@dataclass(slots=True)
class InteractivePolicy:
    """Ask ``prompt`` about each conflict in order.

    A "source-all"/"target-all" answer settles the current conflict and every
    one after it. Cancelling keeps the answers given so far and rejects the
    rest, with ``cancelled`` set on the outcome.
    """

    prompt: ConflictPrompt

    def __call__(self, conflicts: Sequence[Conflict]) -> PolicyOutcome:
        accepted: list[Resolution] = []
        total = len(conflicts)
        sticky: Winner | None = None
        for position, conflict in enumerate(conflicts, start=1):
            if sticky is None:
                try:
                    choice = self.prompt(conflict, position=position, total=total)
                except ResolutionCancelled:
                    log.info("Conflict resolution cancelled at %s of %s", position, total)
                    return PolicyOutcome(
                        accepted=tuple(accepted),
                        rejected=tuple(conflicts[position - 1 :]),
                        cancelled=True,
                    )
                winner = choice.winner
                if choice.applies_to_rest:
                    sticky = winner
            else:
                winner = sticky
            accepted.append(
                Resolution(language=conflict.language, key=conflict.key, winner=winner)
            )
        return PolicyOutcome(accepted=tuple(accepted))


@dataclass(frozen=True, slots=True)
class ExplicitResolutionPolicy:
    """Apply decisions supplied up front; conflicts without one are rejected."""

    resolutions: Sequence[Resolution | KeyResolution]

    def __call__(self, conflicts: Sequence[Conflict]) -> PolicyOutcome:
        exact = [r for r in self.resolutions if isinstance(r, Resolution)]
        by_key = [r for r in self.resolutions if isinstance(r, KeyResolution)]
        # exact resolutions are language-specific key resolutions
        expanded = expand_key_resolutions(
            [
                *by_key,
                *(KeyResolution(key=r.key, winner=r.winner, language=r.language) for r in exact),
            ],
            conflicts,
        )
        decided = {resolution.identity for resolution in expanded}
        return PolicyOutcome(
            accepted=expanded,
            rejected=tuple(c for c in conflicts if c.identity not in decided),
        )


def build_policy(
    mode: ResolutionMode,
    *,
    prompt: ConflictPrompt | None = None,
    resolutions: Sequence[Resolution | KeyResolution] | None = None,
) -> ConflictPolicy:
    if mode is ResolutionMode.FORCE_SOURCE:
        return force_source()
    if mode is ResolutionMode.FORCE_TARGET:
        return force_target()
    if mode is ResolutionMode.INTERACTIVE:
        if prompt is None:
            raise ValueError("Interactive resolution needs a prompt")
        return InteractivePolicy(prompt)
    if resolutions is None:
        raise ValueError("Explicit resolution needs a list of resolutions")
    return ExplicitResolutionPolicy(resolutions)


def resolve_conflicts(
    conflicts: Sequence[Conflict],
    mode: ResolutionMode,
    *,
    prompt: ConflictPrompt | None = None,
    resolutions: Sequence[Resolution | KeyResolution] | None = None,
) -> PolicyOutcome:
    """Resolve ``conflicts`` according to ``mode``."""

    policy = build_policy(mode, prompt=prompt, resolutions=resolutions)
    return policy(conflicts)
