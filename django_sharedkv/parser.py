"""RESP2 parser that keeps status replies distinct from bulk strings.

redis-py's stock parser returns both ``+OK`` and ``$2\\r\\nOK`` as plain
``bytes``. The command layer needs to tell them apart to check each
command's expected reply shape, so simple-string replies are returned as
``StatusReply`` instead. Everything else parses exactly like redis-py.

Use it by passing ``parser_class`` to the connection (the default for
connections built by ``django_sharedkv.transport.ConnectionFactory``).
"""

from __future__ import annotations

from typing import Any

from redis._parsers.resp2 import _RESP2Parser
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import InvalidResponse

SERVER_CLOSED_CONNECTION_ERROR = "Connection closed by server."

# Older redis-py buffers take no timeout argument; only forward one when given
_NO_TIMEOUT = object()


class StatusReply(bytes):
    """A simple-string (``+``) reply payload."""

    __slots__ = ()

    def __repr__(self) -> str:
        return f"StatusReply({bytes(self)!r})"


class TaggedRESP2Parser(_RESP2Parser):
    """RESP2 parser returning ``StatusReply`` for simple-string frames."""

    def _read_response(self, disable_decoding: bool = False, timeout: Any = _NO_TIMEOUT) -> Any:
        timeout_kwargs = {} if timeout is _NO_TIMEOUT else {"timeout": timeout}
        raw = self._buffer.readline(**timeout_kwargs)
        if not raw:
            raise RedisConnectionError(SERVER_CLOSED_CONNECTION_ERROR)

        byte, response = raw[:1], raw[1:]

        if byte == b"-":
            error = self.parse_error(response.decode("utf-8", errors="replace"))
            if isinstance(error, RedisConnectionError):
                raise error
            # Connection.read_response() raises ResponseError instances
            return error
        if byte == b"+":
            return StatusReply(response)
        if byte == b":":
            return int(response)
        if byte == b"$":
            if response == b"-1":
                return None
            return self._buffer.read(int(response), **timeout_kwargs)
        if byte == b"*":
            if response == b"-1":
                return None
            return [
                self._read_response(disable_decoding=disable_decoding, timeout=timeout) for _ in range(int(response))
            ]

        msg = f"Protocol Error: {raw!r}"
        raise InvalidResponse(msg)
