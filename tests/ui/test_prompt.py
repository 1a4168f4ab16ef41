from __future__ import annotations

import io

import pytest

from lingx.domain.errors import ResolutionCancelled
from lingx.domain.reconciliation import Conflict, PromptChoice
from lingx.ui.prompt import TerminalConflictPrompt, preview

CONFLICT = Conflict("en", "checkout\x1fpay", "Pay now", "Pay")


def _prompt(answers: list[str], output: io.StringIO) -> TerminalConflictPrompt:
    remaining = iter(answers)

    def fake_input(_question: str) -> str:
        return next(remaining)

    return TerminalConflictPrompt(
        source_label="local",
        target_label="remote",
        input_func=fake_input,
        output=output,
    )


def test_preview_escapes_newlines_and_truncates() -> None:
    assert preview("line one\nline two") == "line one\\nline two"
    assert preview("x" * 70, limit=10) == "xxxxxxx..."


@pytest.mark.parametrize(
    ("answer", "choice"),
    [
        ("s", PromptChoice.SOURCE),
        ("t", PromptChoice.TARGET),
        ("S", PromptChoice.SOURCE_ALL),
        (" T ", PromptChoice.TARGET_ALL),
    ],
)
def test_answers_map_to_choices(answer: str, choice: PromptChoice) -> None:
    output = io.StringIO()

    assert _prompt([answer], output)(CONFLICT, position=2, total=5) is choice
    assert "[2/5] checkout:pay (en)" in output.getvalue()
    assert "local: Pay now" in output.getvalue()
    assert "remote: Pay" in output.getvalue()


def test_unknown_answers_ask_again() -> None:
    output = io.StringIO()

    choice = _prompt(["", "x", "t"], output)(CONFLICT, position=1, total=1)

    assert choice is PromptChoice.TARGET
    assert output.getvalue().count("Please answer s, t, S, T or q.") == 2


def test_quit_cancels() -> None:
    with pytest.raises(ResolutionCancelled):
        _prompt(["q"], io.StringIO())(CONFLICT, position=1, total=1)


def test_end_of_input_cancels() -> None:
    def closed(_question: str) -> str:
        raise EOFError

    prompt = TerminalConflictPrompt(input_func=closed, output=io.StringIO())

    with pytest.raises(ResolutionCancelled):
        prompt(CONFLICT, position=1, total=1)
