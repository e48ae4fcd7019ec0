"""Command execution and reply classification.

Every command goes through ``CommandExecutor.execute()``, which sends it
on the transport, turns the raw reply into a tagged ``Reply``, and checks
the reply's type against what the calling operation accepts.
"""

from __future__ import annotations

import logging
import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import InvalidResponse, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from django_sharedkv.exceptions import ConnectionInterruptedError, InvalidResponseError
from django_sharedkv.parser import StatusReply
from django_sharedkv.types import ReplyType

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)

# Transport failures that mean the command never completed
_io_exceptions = (RedisConnectionError, RedisTimeoutError, socket.timeout, OSError)

# Expected reply shapes
INTEGER = frozenset({ReplyType.INTEGER})
STRING = frozenset({ReplyType.STRING})
STRING_OR_NIL = frozenset({ReplyType.STRING, ReplyType.NIL})
STRING_OR_STATUS = frozenset({ReplyType.STRING, ReplyType.STATUS})
ARRAY = frozenset({ReplyType.ARRAY})
ANY_SUCCESS = frozenset(ReplyType) - {ReplyType.ERROR}


@dataclass(frozen=True, slots=True)
class Reply:
    """A single typed reply.

    ``value`` holds ``bytes`` for STATUS and STRING, ``int`` for INTEGER,
    a list of ``Reply`` for ARRAY, ``None`` for NIL and the error text for
    ERROR.
    """

    type: ReplyType
    value: Any = None

    @classmethod
    def from_response(cls, raw: Any, command: str = "?") -> Reply:
        """Classify a raw transport reply."""
        # StatusReply subclasses bytes, so check it first
        if isinstance(raw, StatusReply):
            return cls(ReplyType.STATUS, bytes(raw))
        if isinstance(raw, bytes):
            return cls(ReplyType.STRING, raw)
        # bool subclasses int but never comes off the wire
        if isinstance(raw, int) and not isinstance(raw, bool):
            return cls(ReplyType.INTEGER, raw)
        if raw is None:
            return cls(ReplyType.NIL)
        if isinstance(raw, list):
            return cls(ReplyType.ARRAY, [cls.from_response(item, command) for item in raw])
        if isinstance(raw, ResponseError):
            return cls(ReplyType.ERROR, str(raw))
        raise InvalidResponseError(command, message=f"unrecognized reply object {type(raw).__name__}")

    @property
    def elements(self) -> list[Reply]:
        return self.value if self.type == ReplyType.ARRAY else []

    def describe(self) -> str:
        """Short form for logging, without payload bytes."""
        if self.type == ReplyType.INTEGER:
            return f"{self.value}"
        if self.type == ReplyType.ARRAY:
            return f"{len(self.value)} elements"
        if self.type in (ReplyType.STRING, ReplyType.STATUS):
            return f"{len(self.value)} bytes"
        return self.type.upper()


class CommandExecutor:
    """Runs commands on a transport and validates the reply types.

    The executor does not rewrite keys; callers pass keys that already
    carry their namespace prefix.
    """

    def __init__(self, get_transport: Callable[[], Any]) -> None:
        self._get_transport = get_transport

    def _send(self, transport: Any, command: str, args: tuple) -> Any:
        transport.send_command(command, *args)
        return transport.read_response()

    def execute(self, command: str, *args: Any, expect: frozenset[ReplyType] = ANY_SUCCESS) -> Reply:
        """Send ``command`` with ``args`` and return its reply.

        Raises:
            ConnectionInterruptedError: If sending or receiving failed,
                including timeouts.
            InvalidResponseError: If the reply type is not in ``expect``.
        """
        transport = self._get_transport()
        logger.debug("sending command: %s", command)

        try:
            raw = self._send(transport, command, args)
        except ResponseError as e:
            # Connection.read_response() raises error replies
            raw = e
        except InvalidResponse as e:
            raise InvalidResponseError(command, message=str(e)) from e
        except _io_exceptions as e:
            logger.warning("error sending %s command: %s", command, e)
            raise ConnectionInterruptedError(command=command, connection=transport) from e

        reply = Reply.from_response(raw, command)

        if reply.type not in expect:
            expected = " or ".join(sorted(t.upper() for t in expect))
            logger.warning("expected %s reply for %s, got %s", expected, command, reply.type.upper())
            if reply.type == ReplyType.ERROR:
                logger.warning("%s error: %s", command, reply.value)
            raise InvalidResponseError(command, reply.type, expect)

        logger.debug("%s reply: %s", command, reply.describe())
        return reply
