"""Type aliases and enums for django-sharedkv.

Compatible with redis-py's own type system, defined locally to keep
annotations independent of the transport library.
"""

from __future__ import annotations

from enum import StrEnum

# Key and value types - keys are addressed as raw bytes on the wire
type KeyT = bytes | str
type ValueT = bytes | str

# Caller identity: any object, compared by identity (usually a Django AppConfig)
type OwnerT = object


class ReplyType(StrEnum):
    """Structural type of a single server reply."""

    STATUS = "status"
    STRING = "string"
    INTEGER = "integer"
    ARRAY = "array"
    NIL = "nil"
    ERROR = "error"


class ErrorKind(StrEnum):
    """Error classes surfaced uniformly to every caller."""

    INVALID_ARGUMENT = "invalid_argument"
    NOT_CONFIGURED = "not_configured"
    CONNECT_FAILED = "connect_failed"
    IO = "io"
    INVALID_RESPONSE = "invalid_response"
    NOT_FOUND = "not_found"
    ALREADY_EXISTS = "already_exists"
    OUT_OF_RANGE = "out_of_range"


class ConnectErrorKind(StrEnum):
    """Transport-level reason a connection could not be established."""

    IO = "io"
    EOF = "eof"
    PROTOCOL = "protocol"
    OOM = "oom"
    OTHER = "other"
    UNKNOWN = "unknown"
