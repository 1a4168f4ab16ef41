"""Port for asking a human to settle a conflict."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from lingx.domain.reconciliation.contracts import PromptChoice
    from lingx.domain.reconciliation.diff import Conflict


@runtime_checkable
class ConflictPrompt(Protocol):
    """Ask which side of ``conflict`` should win.

    ``position`` is 1-based within ``total`` conflicts. Implementations raise
    :class:`lingx.domain.errors.ResolutionCancelled` when the user aborts.
    """

    def __call__(self, conflict: Conflict, *, position: int, total: int) -> PromptChoice: ...
