"""Terminal prompt for interactive conflict resolution."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, Final, TextIO

from lingx.domain.errors import ResolutionCancelled
from lingx.domain.model import to_user_key
from lingx.domain.reconciliation import PromptChoice

if TYPE_CHECKING:
    from collections.abc import Callable

    from lingx.domain.reconciliation import Conflict

PREVIEW_LENGTH: Final[int] = 60

_ANSWERS: Final[dict[str, PromptChoice]] = {
    "s": PromptChoice.SOURCE,
    "t": PromptChoice.TARGET,
    "S": PromptChoice.SOURCE_ALL,
    "T": PromptChoice.TARGET_ALL,
}
_CANCEL: Final[frozenset[str]] = frozenset({"q", "Q"})


def preview(value: str, *, limit: int = PREVIEW_LENGTH) -> str:
    flat = value.replace("\n", "\\n")
    if len(flat) <= limit:
        return flat
    return flat[: limit - 3] + "..."


class TerminalConflictPrompt:
    """Ask on the terminal which side wins a conflict.

    There is no default answer: an empty or unknown answer asks again. ``q``,
    end of input and Ctrl+C all cancel the whole resolution.
    """

    def __init__(
        self,
        *,
        source_label: str = "source",
        target_label: str = "target",
        input_func: Callable[[str], str] = input,
        output: TextIO | None = None,
    ) -> None:
        self.source_label = source_label
        self.target_label = target_label
        self._input = input_func
        self._output = output

    def __call__(self, conflict: Conflict, *, position: int, total: int) -> PromptChoice:
        self._write(
            f"\n[{position}/{total}] {to_user_key(conflict.key)} ({conflict.language})\n"
            f"  {self.source_label}: {preview(conflict.source_value)}\n"
            f"  {self.target_label}: {preview(conflict.target_value)}\n"
        )
        question = (
            f"Keep [s]{self.source_label}, [t]{self.target_label}, "
            f"[S] {self.source_label} for all, [T] {self.target_label} for all, [q]uit: "
        )
        while True:
            try:
                answer = self._input(question).strip()
            except (EOFError, KeyboardInterrupt) as exc:
                raise ResolutionCancelled("Conflict resolution aborted") from exc
            if answer in _CANCEL:
                raise ResolutionCancelled("Conflict resolution aborted")
            choice = _ANSWERS.get(answer)
            if choice is not None:
                return choice
            self._write("Please answer s, t, S, T or q.\n")

    def _write(self, text: str) -> None:
        stream = self._output or sys.stdout
        stream.write(text)
        stream.flush()
