"""Key/value operations on the shared connection.

Architecture:
- KeyValueClient: key namespacing, argument validation, and the scalar
  string operations (GET/SET/SETEX/DEL/INCRBY/DECRBY)
- HashMixin, ListMixin, SetMixin: collection operations built on top
- SharedConnection (``django_sharedkv.connection``): combines all of the
  above with the transport and its reference count

Every public method takes the caller identity (``owner``) first. The
owner is only used to look up the caller's namespace prefix and is never
stored with the data.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from django_sharedkv.client.executor import INTEGER, STRING_OR_NIL, STRING_OR_STATUS, CommandExecutor
from django_sharedkv.exceptions import InvalidArgumentError, InvalidResponseError, NotFoundError
from django_sharedkv.types import ReplyType

if TYPE_CHECKING:
    from django_sharedkv.client.executor import Reply
    from django_sharedkv.namespace import NamespaceRegistry
    from django_sharedkv.types import KeyT, OwnerT, ValueT

logger = logging.getLogger(__name__)


def to_bytes(value: KeyT | ValueT, what: str = "value") -> bytes:
    """Encode ``str`` as UTF-8; reject anything that is not bytes-like."""
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        return value.encode()
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    msg = f"{what} must be str or bytes, not {type(value).__name__}"
    raise InvalidArgumentError(msg)


class KeyValueClient:
    """Scalar operations plus the plumbing shared by the collection mixins."""

    _namespaces: NamespaceRegistry | None

    def __init__(self) -> None:
        self._namespaces = None
        self._executor = CommandExecutor(self._get_transport)

    def _get_transport(self) -> Any:
        """Return the live transport, or fail if the connection is torn down."""
        raise NotImplementedError

    # =========================================================================
    # Key / Argument Helpers
    # =========================================================================

    def _make_key(self, owner: OwnerT, key: KeyT) -> bytes:
        """Validate ``owner`` and ``key`` and apply the owner's namespace."""
        if owner is None:
            msg = "owner is required"
            raise InvalidArgumentError(msg)
        nkey = to_bytes(key, "key")
        if not nkey:
            msg = "key must not be empty"
            raise InvalidArgumentError(msg)

        if self._namespaces is None:
            return nkey
        return self._namespaces.resolve(owner, nkey)

    def _check_value(self, value: ValueT | None, *, allow_empty: bool = True) -> bytes:
        if value is None:
            msg = "value is required"
            raise InvalidArgumentError(msg)
        nvalue = to_bytes(value)
        if not allow_empty and not nvalue:
            msg = "value must not be empty"
            raise InvalidArgumentError(msg)
        return nvalue

    def _execute(self, command: str, *args: Any, expect: frozenset[ReplyType]) -> Reply:
        return self._executor.execute(command, *args, expect=expect)

    def _delete(self, nkey: bytes) -> None:
        """DEL an already-namespaced key; zero removed means not found."""
        reply = self._execute("DEL", nkey, expect=INTEGER)
        if reply.value == 0:
            raise NotFoundError(nkey)

    # =========================================================================
    # Scalar Operations
    # =========================================================================

    def set(self, owner: OwnerT, key: KeyT, value: ValueT, timeout: int | None = None) -> None:
        """Store ``value`` under ``key``, expiring after ``timeout`` seconds if positive."""
        nkey = self._make_key(owner, key)
        nvalue = self._check_value(value)

        if timeout is not None and timeout > 0:
            self._execute("SETEX", nkey, timeout, nvalue, expect=STRING_OR_STATUS)
        else:
            self._execute("SET", nkey, nvalue, expect=STRING_OR_STATUS)

    def add(self, owner: OwnerT, key: KeyT, value: ValueT, timeout: int | None = None) -> None:
        """Same as ``set()``; there is no existence precondition."""
        self.set(owner, key, value, timeout)

    def get(self, owner: OwnerT, key: KeyT) -> bytes:
        """Fetch the raw bytes stored under ``key``.

        Raises:
            NotFoundError: If the key does not exist.
        """
        nkey = self._make_key(owner, key)
        reply = self._execute("GET", nkey, expect=STRING_OR_NIL)
        if reply.type == ReplyType.NIL:
            raise NotFoundError(nkey)
        return reply.value

    def get_str(self, owner: OwnerT, key: KeyT) -> str:
        """Fetch the value under ``key`` decoded as UTF-8.

        Raises:
            NotFoundError: If the key does not exist.
            InvalidResponseError: If the value is not valid UTF-8.
        """
        value = self.get(owner, key)
        try:
            return value.decode()
        except UnicodeDecodeError as e:
            raise InvalidResponseError("GET", message=f"value is not valid UTF-8: {e}") from e

    def remove(self, owner: OwnerT, key: KeyT) -> None:
        """Delete ``key``.

        Raises:
            NotFoundError: If nothing was removed.
        """
        self._delete(self._make_key(owner, key))

    def _incr(self, command: str, owner: OwnerT, key: KeyT, delta: int, created: int) -> int:
        if isinstance(delta, bool) or not isinstance(delta, int) or delta <= 0:
            msg = f"delta must be a positive integer, got {delta!r}"
            raise InvalidArgumentError(msg)

        nkey = self._make_key(owner, key)
        reply = self._execute(command, nkey, delta, expect=INTEGER)

        # INCRBY/DECRBY create a missing key at zero before applying the
        # delta, so a result of exactly +/-delta means the key did not
        # exist. A key that legitimately held 0 (incr) or delta (decr)
        # is indistinguishable and is reported as missing too.
        if reply.value == created:
            logger.debug("%s auto-created %r, removing it", command, nkey)
            self._delete(nkey)
            raise NotFoundError(nkey)

        return reply.value

    def incr(self, owner: OwnerT, key: KeyT, delta: int = 1) -> int:
        """Increment an existing integer value by ``delta`` and return it.

        Raises:
            InvalidArgumentError: If ``delta`` is not a positive integer.
            NotFoundError: If the key did not exist (see ``_incr``).
        """
        return self._incr("INCRBY", owner, key, delta, delta)

    def decr(self, owner: OwnerT, key: KeyT, delta: int = 1) -> int:
        """Decrement an existing integer value by ``delta`` and return it."""
        return self._incr("DECRBY", owner, key, delta, -delta)
