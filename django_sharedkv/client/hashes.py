from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django_sharedkv.client.executor import ARRAY, INTEGER, STRING_OR_NIL, STRING_OR_STATUS
from django_sharedkv.exceptions import InvalidArgumentError, NotFoundError
from django_sharedkv.types import ReplyType

if TYPE_CHECKING:
    from collections.abc import Mapping

    from django_sharedkv.client.executor import Reply
    from django_sharedkv.types import KeyT, OwnerT, ValueT

logger = logging.getLogger(__name__)


class HashMixin:
    """Hash operations: a field -> value map stored under one key."""

    # Type hints for base class attributes
    _make_key: Any
    _check_value: Any
    _execute: Any
    remove: Any

    def _check_field(self, field: KeyT) -> bytes:
        return self._check_value(field, allow_empty=False)

    def _string_elements(self, command: str, reply: Reply) -> list[bytes]:
        """Collect STRING elements of an array reply, skipping anything else."""
        values = []
        for i, elt in enumerate(reply.elements):
            if elt.type != ReplyType.STRING:
                logger.warning("expected STRING element at index %d of %s, got %s", i, command, elt.type.upper())
                continue
            values.append(elt.value)
        return values

    def hash_count(self, owner: OwnerT, key: KeyT) -> int:
        """Number of fields in the hash (0 if the key does not exist)."""
        nkey = self._make_key(owner, key)
        return self._execute("HLEN", nkey, expect=INTEGER).value

    def hash_delete(self, owner: OwnerT, key: KeyT, field: KeyT) -> None:
        """Delete ``field``; raises ``NotFoundError`` if it was not there."""
        nkey = self._make_key(owner, key)
        nfield = self._check_field(field)
        reply = self._execute("HDEL", nkey, nfield, expect=INTEGER)
        if reply.value == 0:
            raise NotFoundError(nkey, nfield)

    def hash_exists(self, owner: OwnerT, key: KeyT, field: KeyT) -> bool:
        nkey = self._make_key(owner, key)
        nfield = self._check_field(field)
        return bool(self._execute("HEXISTS", nkey, nfield, expect=INTEGER).value)

    def hash_get(self, owner: OwnerT, key: KeyT, field: KeyT) -> bytes:
        nkey = self._make_key(owner, key)
        nfield = self._check_field(field)
        reply = self._execute("HGET", nkey, nfield, expect=STRING_OR_NIL)
        if reply.type == ReplyType.NIL:
            raise NotFoundError(nkey, nfield)
        return reply.value

    def hash_getall(self, owner: OwnerT, key: KeyT) -> dict[bytes, bytes]:
        """Fetch the whole hash as a dict, in the order the server returned it.

        Malformed field/value pairs are logged and skipped rather than
        failing the whole call.

        Raises:
            NotFoundError: If the hash is empty or does not exist.
        """
        nkey = self._make_key(owner, key)
        reply = self._execute("HGETALL", nkey, expect=ARRAY)
        elements = reply.elements
        if not elements:
            raise NotFoundError(nkey)

        if len(elements) % 2:
            logger.warning("HGETALL returned an odd number of elements (%d), ignoring the last", len(elements))

        result: dict[bytes, bytes] = {}
        for i in range(0, len(elements) - 1, 2):
            field_elt, value_elt = elements[i], elements[i + 1]
            if field_elt.type != ReplyType.STRING:
                logger.warning("expected STRING element at index %d, got %s", i, field_elt.type.upper())
                continue
            if value_elt.type != ReplyType.STRING:
                logger.warning("expected STRING element at index %d, got %s", i + 1, value_elt.type.upper())
                continue
            result[field_elt.value] = value_elt.value
        return result

    def hash_incr(self, owner: OwnerT, key: KeyT, field: KeyT, delta: int = 1) -> int:
        """Add ``delta`` to an existing integer field and return the new value.

        The field must already exist. The existence check and the increment
        are two separate round trips, so a concurrent HDEL in between lets
        HINCRBY recreate the field.

        Raises:
            NotFoundError: If the field does not exist.
        """
        if isinstance(delta, bool) or not isinstance(delta, int) or delta == 0:
            msg = f"delta must be a non-zero integer, got {delta!r}"
            raise InvalidArgumentError(msg)

        nkey = self._make_key(owner, key)
        nfield = self._check_field(field)
        if not self.hash_exists(owner, key, field):
            raise NotFoundError(nkey, nfield)

        return self._execute("HINCRBY", nkey, nfield, delta, expect=INTEGER).value

    def hash_keys(self, owner: OwnerT, key: KeyT) -> list[bytes]:
        """All field names; raises ``NotFoundError`` if there are none."""
        nkey = self._make_key(owner, key)
        reply = self._execute("HKEYS", nkey, expect=ARRAY)
        if not reply.elements:
            raise NotFoundError(nkey)
        return self._string_elements("HKEYS", reply)

    def hash_values(self, owner: OwnerT, key: KeyT) -> list[bytes]:
        """All field values; raises ``NotFoundError`` if there are none."""
        nkey = self._make_key(owner, key)
        reply = self._execute("HVALS", nkey, expect=ARRAY)
        if not reply.elements:
            raise NotFoundError(nkey)
        return self._string_elements("HVALS", reply)

    def hash_remove(self, owner: OwnerT, key: KeyT) -> None:
        """Delete the whole hash."""
        self.remove(owner, key)

    def hash_set(self, owner: OwnerT, key: KeyT, field: KeyT, value: ValueT) -> None:
        nkey = self._make_key(owner, key)
        nfield = self._check_field(field)
        nvalue = self._check_value(value, allow_empty=False)
        self._execute("HSET", nkey, nfield, nvalue, expect=INTEGER)

    def hash_setall(self, owner: OwnerT, key: KeyT, mapping: Mapping[KeyT, ValueT]) -> None:
        """Set every field in ``mapping`` with a single HMSET.

        Raises:
            InvalidArgumentError: If ``mapping`` is empty.
        """
        nkey = self._make_key(owner, key)
        if not mapping:
            msg = "mapping must not be empty"
            raise InvalidArgumentError(msg)

        args: list[bytes] = []
        for field, value in mapping.items():
            args.append(self._check_field(field))
            args.append(self._check_value(value, allow_empty=False))
        self._execute("HMSET", nkey, *args, expect=STRING_OR_STATUS)
