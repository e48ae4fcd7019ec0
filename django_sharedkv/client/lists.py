from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django_sharedkv.client.executor import INTEGER, STRING_OR_NIL, STRING_OR_STATUS
from django_sharedkv.exceptions import InvalidArgumentError, NotFoundError, OutOfRangeError
from django_sharedkv.types import ReplyType

if TYPE_CHECKING:
    from django_sharedkv.types import KeyT, OwnerT, ValueT

logger = logging.getLogger(__name__)


def _check_index(index: int) -> int:
    if isinstance(index, bool) or not isinstance(index, int) or index < 0:
        msg = f"index must be a non-negative integer, got {index!r}"
        raise InvalidArgumentError(msg)
    return index


class ListMixin:
    """List operations: an ordered sequence stored under one key."""

    # Type hints for base class attributes
    _make_key: Any
    _check_value: Any
    _execute: Any
    remove: Any

    def list_append(self, owner: OwnerT, key: KeyT, value: ValueT) -> None:
        """Append ``value`` to the tail of the list."""
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value, allow_empty=False)
        self._execute("RPUSH", nkey, nvalue, expect=INTEGER)

    def list_count(self, owner: OwnerT, key: KeyT) -> int:
        nkey = self._make_key(owner, key)
        return self._execute("LLEN", nkey, expect=INTEGER).value

    def list_delete(self, owner: OwnerT, key: KeyT, value: ValueT) -> None:
        """Remove every occurrence of ``value``.

        Raises:
            NotFoundError: If no element was removed.
        """
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value, allow_empty=False)
        reply = self._execute("LREM", nkey, 0, nvalue, expect=INTEGER)
        if reply.value == 0:
            raise NotFoundError(nkey, nvalue)

    def list_exists(self, owner: OwnerT, key: KeyT, index: int) -> bool:
        """Check whether there is an element at ``index``.

        The index is checked against the list length first; the element
        lookup is only sent when it is in range. The two round trips are
        not atomic.

        Raises:
            OutOfRangeError: If ``index`` is at or beyond the list length.
        """
        index = _check_index(index)
        count = self.list_count(owner, key)
        nkey = self._make_key(owner, key)
        if index >= count:
            logger.debug("request index %d exceeds list length %d", index, count)
            raise OutOfRangeError(nkey, index, count)

        reply = self._execute("LINDEX", nkey, index, expect=STRING_OR_NIL)
        return reply.type == ReplyType.STRING

    def list_remove(self, owner: OwnerT, key: KeyT) -> None:
        """Delete the whole list."""
        self.remove(owner, key)

    def list_set(self, owner: OwnerT, key: KeyT, index: int, value: ValueT) -> None:
        """Replace the element at ``index``."""
        nkey = self._make_key(owner, key)
        index = _check_index(index)
        nvalue = self._check_value(value, allow_empty=False)
        self._execute("LSET", nkey, index, nvalue, expect=STRING_OR_STATUS)
