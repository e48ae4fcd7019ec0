"""Exceptions for django-sharedkv.

Every failure raised by the shared connection derives from
``SharedKVError`` and carries an ``ErrorKind`` in its ``kind`` attribute,
so callers can branch on the class or on the kind, whichever reads better.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.core.exceptions import ImproperlyConfigured

from django_sharedkv.types import ConnectErrorKind, ErrorKind, ReplyType


class SharedKVError(Exception):
    """Base class for all django-sharedkv errors."""

    kind: ClassVar[ErrorKind]


class InvalidArgumentError(SharedKVError, ValueError):
    """Raised for missing or malformed input, or a torn-down connection.

    Examples are an empty key, a ``None`` caller identity, a zero delta,
    or an empty mapping passed to ``hash_setall``.
    """

    kind = ErrorKind.INVALID_ARGUMENT


class NotConfiguredError(SharedKVError, ImproperlyConfigured):
    """Raised when a connection is requested but no server is configured.

    Set ``SHAREDKV_SERVER`` in your Django settings, or call
    ``django_sharedkv.conf.set_server()`` before the first connection.
    """

    kind = ErrorKind.NOT_CONFIGURED


class ConnectFailedError(SharedKVError):
    """Raised when the transport cannot establish a connection.

    Attributes:
        reason: Transport-level classification of the failure.
        detail: Human-readable detail (the OS error string for ``io``).
    """

    kind = ErrorKind.CONNECT_FAILED

    def __init__(self, reason: ConnectErrorKind, detail: str, address: str | None = None) -> None:
        self.reason = reason
        self.detail = detail
        self.address = address
        super().__init__(reason, detail)

    def __str__(self) -> str:
        msg = f"[{self.reason}] {self.detail}"
        if self.address:
            msg = f"error connecting to {self.address}: {msg}"
        return msg


class ConnectionInterruptedError(SharedKVError):  # noqa: A001
    """Raised when a command could not be sent or its reply not received.

    This includes I/O timeouts. The underlying transport exception is
    chained as ``__cause__``.
    """

    kind = ErrorKind.IO

    def __init__(self, command: str | None = None, connection: Any = None) -> None:
        self.command = command
        self.connection = connection
        super().__init__(command)

    def __str__(self) -> str:
        error_type = type(self.__cause__).__name__ if self.__cause__ is not None else "unknown"
        error_msg = str(self.__cause__) if self.__cause__ is not None else "connection interrupted"
        if self.command:
            return f"Error {error_type} while sending {self.command}: {error_msg}"
        return f"Error {error_type}: {error_msg}"


class InvalidResponseError(SharedKVError):
    """Raised when a reply's structural type does not match the command.

    Attributes:
        command: The command whose reply was rejected.
        reply_type: The type actually received, if a reply was parsed.
        expected: The reply types the command accepts.
    """

    kind = ErrorKind.INVALID_RESPONSE

    def __init__(
        self,
        command: str,
        reply_type: ReplyType | None = None,
        expected: frozenset[ReplyType] | None = None,
        message: str | None = None,
    ) -> None:
        self.command = command
        self.reply_type = reply_type
        self.expected = expected
        self.message = message
        super().__init__(command, reply_type)

    def __str__(self) -> str:
        if self.message:
            return f"Invalid response for {self.command}: {self.message}"
        expected = " or ".join(sorted(t.upper() for t in self.expected or ()))
        got = self.reply_type.upper() if self.reply_type is not None else "nothing"
        return f"Expected {expected} reply for {self.command}, got {got}"


class NotFoundError(SharedKVError, KeyError):
    """Raised when a key, field or member is absent.

    Also raised when a mutating command reports zero affected items, and
    when an increment auto-created the key it was asked to change.
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(self, key: bytes, field: bytes | int | None = None) -> None:
        self.key = key
        self.field = field
        super().__init__(key)

    def __str__(self) -> str:
        if self.field is not None:
            return f"{self.field!r} not found in {self.key!r}"
        return f"Key {self.key!r} not found"


class AlreadyExistsError(SharedKVError):
    """Raised by ``set_add`` when the member is already in the set."""

    kind = ErrorKind.ALREADY_EXISTS

    def __init__(self, key: bytes, member: bytes) -> None:
        self.key = key
        self.member = member
        super().__init__(key, member)

    def __str__(self) -> str:
        return f"{self.member!r} already exists in {self.key!r}"


class OutOfRangeError(SharedKVError, IndexError):
    """Raised when a list index is at or beyond the list's current length.

    The check happens before the element lookup is sent.
    """

    kind = ErrorKind.OUT_OF_RANGE

    def __init__(self, key: bytes, index: int, length: int) -> None:
        self.key = key
        self.index = index
        self.length = length
        super().__init__(key, index)

    def __str__(self) -> str:
        return f"Index {self.index} exceeds length {self.length} of list {self.key!r}"
