from __future__ import annotations

import uuid

import pytest

from lingx.domain.model import Branch, slugify


@pytest.mark.parametrize(
    ("name", "slug"),
    [("Main", "main"), ("  Feature / Checkout 2 ", "feature-checkout-2"), ("a--b", "a-b")],
)
def test_slugify(name: str, slug: str) -> None:
    assert slugify(name) == slug


def test_slugify_rejects_names_without_letters_or_digits() -> None:
    with pytest.raises(ValueError, match="slug"):
        slugify("!!!")


def test_new_branch_starts_at_revision_zero() -> None:
    branch = Branch(space_id=uuid.uuid4(), name="main", slug="main", is_default=True)

    assert branch.revision == 0
    assert branch.source_branch_id is None
