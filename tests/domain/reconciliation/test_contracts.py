from __future__ import annotations

import logging

import pytest

from lingx.domain.reconciliation import (
    Conflict,
    KeyResolution,
    PromptChoice,
    Resolution,
    Winner,
    expand_key_resolutions,
)

CONFLICTS = (
    Conflict("de", "cart", "Korb", "Warenkorb"),
    Conflict("en", "cart", "Basket", "Cart"),
    Conflict("en", "checkout", "Pay", "Checkout"),
)


def test_key_resolution_without_language_covers_every_language() -> None:
    expanded = expand_key_resolutions([KeyResolution(key="cart", winner=Winner.SOURCE)], CONFLICTS)

    assert expanded == (
        Resolution(language="de", key="cart", winner=Winner.SOURCE),
        Resolution(language="en", key="cart", winner=Winner.SOURCE),
    )


def test_language_specific_resolution_wins_over_key_wide() -> None:
    expanded = expand_key_resolutions(
        [
            KeyResolution(key="cart", winner=Winner.SOURCE, language="en"),
            KeyResolution(key="cart", winner=Winner.TARGET),
        ],
        CONFLICTS,
    )

    assert {r.identity: r.winner for r in expanded} == {
        ("de", "cart"): Winner.TARGET,
        ("en", "cart"): Winner.SOURCE,
    }


def test_unmatched_resolutions_are_logged_and_dropped(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="lingx.domain.reconciliation.contracts"):
        expanded = expand_key_resolutions(
            [
                KeyResolution(key="missing", winner=Winner.SOURCE),
                KeyResolution(key="checkout", winner=Winner.TARGET, language="fr"),
            ],
            CONFLICTS,
        )

    assert expanded == ()
    assert "missing" in caplog.text
    assert "fr:checkout" in caplog.text


def test_repeated_identical_resolutions_are_accepted() -> None:
    expanded = expand_key_resolutions(
        [
            KeyResolution(key="checkout", winner=Winner.TARGET),
            KeyResolution(key="checkout", winner=Winner.TARGET),
        ],
        CONFLICTS,
    )

    assert expanded == (Resolution(language="en", key="checkout", winner=Winner.TARGET),)


def test_contradicting_language_resolutions_raise() -> None:
    with pytest.raises(ValueError, match="cart"):
        expand_key_resolutions(
            [
                KeyResolution(key="cart", winner=Winner.SOURCE, language="de"),
                KeyResolution(key="cart", winner=Winner.TARGET, language="de"),
            ],
            CONFLICTS,
        )


@pytest.mark.parametrize(
    ("choice", "winner", "sticky"),
    [
        (PromptChoice.SOURCE, Winner.SOURCE, False),
        (PromptChoice.TARGET, Winner.TARGET, False),
        (PromptChoice.SOURCE_ALL, Winner.SOURCE, True),
        (PromptChoice.TARGET_ALL, Winner.TARGET, True),
    ],
)
def test_prompt_choices_map_to_winners(choice: PromptChoice, winner: Winner, sticky: bool) -> None:
    assert choice.winner is winner
    assert choice.applies_to_rest is sticky
