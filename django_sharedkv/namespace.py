"""Per-caller key namespaces on a shared connection."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from django_sharedkv.types import OwnerT

logger = logging.getLogger(__name__)


class _IdentityKey:
    """Dictionary key comparing the wrapped object by identity.

    Two structurally equal owners never share a namespace. The wrapper
    holds a strong reference so the object's id cannot be reused while it
    is registered.
    """

    __slots__ = ("obj",)

    def __init__(self, obj: OwnerT) -> None:
        self.obj = obj

    def __eq__(self, other: object) -> bool:
        return isinstance(other, _IdentityKey) and other.obj is self.obj

    def __hash__(self) -> int:
        key = id(self.obj)
        return key ^ (key >> 16)


def _describe(owner: OwnerT) -> str:
    # AppConfig has a label; anything else falls back to its repr
    return getattr(owner, "label", None) or repr(owner)


class NamespaceRegistry:
    """Maps caller identities to the prefix prepended to their keys."""

    def __init__(self) -> None:
        self._prefixes: dict[_IdentityKey, bytes] = {}

    def __len__(self) -> int:
        return len(self._prefixes)

    def __contains__(self, owner: OwnerT) -> bool:
        return _IdentityKey(owner) in self._prefixes

    def __iter__(self) -> Iterator[OwnerT]:
        return (key.obj for key in self._prefixes)

    def set_prefix(self, owner: OwnerT, prefix: str | bytes | None) -> None:
        """Set, replace, or (with ``None``) remove the prefix for ``owner``."""
        key = _IdentityKey(owner)
        if prefix is None:
            # A None prefix means the caller is removing their mapping
            self._prefixes.pop(key, None)
            logger.debug("removed namespace prefix for %s", _describe(owner))
            return

        if isinstance(prefix, str):
            prefix = prefix.encode()
        self._prefixes[key] = prefix
        logger.debug("set namespace prefix %r for %s", prefix, _describe(owner))

    def get_prefix(self, owner: OwnerT) -> bytes | None:
        return self._prefixes.get(_IdentityKey(owner))

    def resolve(self, owner: OwnerT, key: bytes) -> bytes:
        """Return ``prefix + key`` if ``owner`` has a prefix, else ``key``."""
        prefix = self.get_prefix(owner)
        if prefix is None:
            return key
        logger.debug("using namespace prefix %r for %s", prefix, _describe(owner))
        return prefix + key

    def clear(self) -> None:
        self._prefixes.clear()
