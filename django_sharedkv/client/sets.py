from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django_sharedkv.client.executor import INTEGER
from django_sharedkv.exceptions import AlreadyExistsError, NotFoundError

if TYPE_CHECKING:
    from django_sharedkv.types import KeyT, OwnerT, ValueT


class SetMixin:
    """Set operations: unordered unique members stored under one key."""

    # Type hints for base class attributes
    _make_key: Any
    _check_value: Any
    _execute: Any
    remove: Any

    def set_add(self, owner: OwnerT, key: KeyT, value: ValueT) -> None:
        """Add ``value`` to the set.

        Membership is checked with SISMEMBER before SADD; another client
        adding the same member in between is not detected.

        Raises:
            AlreadyExistsError: If ``value`` is already a member.
        """
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value, allow_empty=False)
        if self.set_exists(owner, key, value):
            raise AlreadyExistsError(nkey, nvalue)

        self._execute("SADD", nkey, nvalue, expect=INTEGER)

    def set_count(self, owner: OwnerT, key: KeyT) -> int:
        nkey = self._make_key(owner, key)
        return self._execute("SCARD", nkey, expect=INTEGER).value

    def set_delete(self, owner: OwnerT, key: KeyT, value: ValueT) -> None:
        """Remove ``value``; raises ``NotFoundError`` if it was not a member."""
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value, allow_empty=False)
        reply = self._execute("SREM", nkey, nvalue, expect=INTEGER)
        if reply.value == 0:
            raise NotFoundError(nkey, nvalue)

    def set_exists(self, owner: OwnerT, key: KeyT, value: ValueT) -> bool:
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value, allow_empty=False)
        return bool(self._execute("SISMEMBER", nkey, nvalue, expect=INTEGER).value)

    def set_remove(self, owner: OwnerT, key: KeyT) -> None:
        """Delete the whole set."""
        self.remove(owner, key)
