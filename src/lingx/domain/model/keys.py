"""Key identity helpers.

Catalog keys may live in a namespace. Internally the namespace and the key name
are joined with the unit separator (U+001F) so that ``.`` and ``:`` stay
available inside key names; users type ``namespace:key``. These helpers are the
only place where keys are split or joined.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

NAMESPACE_DELIMITER: Final[str] = "\x1f"
USER_NAMESPACE_DELIMITER: Final[str] = ":"


@dataclass(frozen=True, slots=True)
class NamespacedKey:
    name: str
    namespace: str | None = None

    @property
    def combined(self) -> str:
        return combine_key(self.name, self.namespace)

    @property
    def user_key(self) -> str:
        return to_user_key(self.combined)


def combine_key(name: str, namespace: str | None = None) -> str:
    """Join ``namespace`` and ``name`` into the internal key form."""

    if not name:
        raise ValueError("Key name must not be empty")
    if NAMESPACE_DELIMITER in name:
        raise ValueError(f"Key name {name!r} contains the namespace delimiter")
    if namespace is None or namespace == "":
        return name
    if NAMESPACE_DELIMITER in namespace:
        raise ValueError(f"Namespace {namespace!r} contains the namespace delimiter")
    return f"{namespace}{NAMESPACE_DELIMITER}{name}"


def parse_namespaced_key(key: str) -> NamespacedKey:
    """Split an internal key into namespace and name."""

    namespace, delimiter, name = key.partition(NAMESPACE_DELIMITER)
    if not delimiter:
        return NamespacedKey(name=key)
    return NamespacedKey(name=name, namespace=namespace or None)


def parse_user_key(user_key: str) -> NamespacedKey:
    """Parse the ``namespace:key`` form typed by users.

    Only the first ``:`` separates the namespace; a leading ``:`` means "no
    namespace".
    """

    namespace, delimiter, name = user_key.partition(USER_NAMESPACE_DELIMITER)
    if not delimiter:
        return NamespacedKey(name=user_key)
    if not name:
        raise ValueError(f"Key {user_key!r} has an empty name")
    return NamespacedKey(name=name, namespace=namespace or None)


def to_user_key(key: str) -> str:
    """Render an internal key in the ``namespace:key`` form."""

    parsed = parse_namespaced_key(key)
    if parsed.namespace is None:
        return parsed.name
    return f"{parsed.namespace}{USER_NAMESPACE_DELIMITER}{parsed.name}"


def from_user_key(user_key: str) -> str:
    """Convert a user-typed key to the internal form."""

    return parse_user_key(user_key).combined
