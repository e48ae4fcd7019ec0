"""Connection factory for the single shared transport.

The transport is one redis-py connection object, never a pool. The classes
used to build it are configurable through ``SHAREDKV_OPTIONS``:

- ``connection_class``: TCP connection class or import path
  (default ``redis.connection.Connection``)
- ``unix_connection_class``: Unix socket connection class or import path
  (default ``redis.connection.UnixDomainSocketConnection``)
- ``parser_class``: reply parser class or import path
  (default ``django_sharedkv.parser.TaggedRESP2Parser``)
- ``connection_factory``: factory class or import path

Any other option is passed straight to the connection constructor
(``password``, ``username``, ``db``, ...).
"""

from __future__ import annotations

import errno
import logging
import os
from typing import TYPE_CHECKING, Any

from django.conf import settings
from django.utils.module_loading import import_string
from redis.connection import Connection as RedisConnection
from redis.connection import UnixDomainSocketConnection
from redis.exceptions import AuthenticationError, DataError, InvalidResponse, RedisError
from redis.exceptions import ConnectionError as RedisConnectionError

from django_sharedkv.exceptions import ConnectFailedError
from django_sharedkv.parser import SERVER_CLOSED_CONNECTION_ERROR, TaggedRESP2Parser
from django_sharedkv.types import ConnectErrorKind

if TYPE_CHECKING:
    from django_sharedkv.conf import ServerConfig

logger = logging.getLogger(__name__)

# Options that we handle explicitly (not passed to the connection)
_KNOWN_OPTIONS = frozenset(
    {
        "connection_class",
        "unix_connection_class",
        "parser_class",
        "connection_factory",
    },
)


def _load_class(value: str | type) -> type:
    if isinstance(value, str):
        return import_string(value)
    return value


def _seconds(millis: int) -> float | None:
    # A zero socket timeout would make the socket non-blocking; 0 means no timeout
    if millis == 0:
        return None
    return millis / 1000


def classify_connect_error(exc: BaseException) -> tuple[ConnectErrorKind, str]:
    """Map a transport exception raised while connecting to a reason and detail."""
    if isinstance(exc, MemoryError):
        return ConnectErrorKind.OOM, str(exc) or "out of memory"

    if isinstance(exc, (InvalidResponse, DataError, AuthenticationError)):
        return ConnectErrorKind.PROTOCOL, str(exc)

    # redis-py wraps the socket error; the OS errno lives on the context
    os_error = exc if isinstance(exc, OSError) else None
    if os_error is None:
        for inner in (exc.__cause__, exc.__context__):
            if isinstance(inner, OSError):
                os_error = inner
                break

    if os_error is not None:
        if os_error.errno is not None:
            return ConnectErrorKind.IO, os.strerror(os_error.errno)
        if isinstance(os_error, TimeoutError):
            return ConnectErrorKind.IO, os.strerror(errno.ETIMEDOUT)
        return ConnectErrorKind.IO, str(os_error)

    if isinstance(exc, RedisConnectionError):
        if SERVER_CLOSED_CONNECTION_ERROR in str(exc):
            return ConnectErrorKind.EOF, str(exc)
        return ConnectErrorKind.IO, str(exc)

    if isinstance(exc, RedisError):
        return ConnectErrorKind.OTHER, str(exc)

    return ConnectErrorKind.UNKNOWN, str(exc)


class ConnectionFactory:
    """Builds and tears down the transport for a ``SharedConnection``."""

    def __init__(self, options: dict) -> None:
        self.options = options
        self.connection_class = _load_class(options.get("connection_class", RedisConnection))
        self.unix_connection_class = _load_class(
            options.get("unix_connection_class", UnixDomainSocketConnection),
        )
        self.parser_class = _load_class(options.get("parser_class", TaggedRESP2Parser))

    def _get_connection_options(self, config: ServerConfig) -> dict:
        """Get keyword arguments for the connection constructor.

        Unknown options are passed through to the connection. The protocol
        is always RESP2, and a timeout of 0 means no timeout.
        """
        connection_options: dict[str, Any] = {
            "parser_class": self.parser_class,
            "socket_connect_timeout": _seconds(config.connect_timeout),
            "socket_timeout": _seconds(config.io_timeout),
        }
        for key, value in self.options.items():
            if key not in _KNOWN_OPTIONS:
                connection_options[key] = value
        # Replies are parsed as RESP2; redis-py 8 defaults to RESP3 otherwise
        connection_options["protocol"] = 2
        return connection_options

    def create(self, config: ServerConfig) -> Any:
        """Instantiate (but do not connect) the transport for ``config``."""
        connection_options = self._get_connection_options(config)
        if config.uses_unix_socket:
            logger.debug("keepalive not applicable to Unix socket %s", config.address)
            return self.unix_connection_class(path=config.server, **connection_options)

        connection_options.setdefault("socket_keepalive", True)
        return self.connection_class(host=config.server, port=config.port, **connection_options)

    def connect(self, config: ServerConfig) -> Any:
        """Create a connected transport for the given configuration.

        Raises:
            ConnectFailedError: If the transport could not connect.
        """
        connection = self.create(config)
        try:
            connection.connect()
        except (RedisError, OSError, MemoryError) as e:
            reason, detail = classify_connect_error(e)
            logger.warning("error connecting to %s: [%s] %s", config.address, reason, detail)
            raise ConnectFailedError(reason, detail, address=config.address) from e

        logger.debug(
            "connected to %s (connect timeout %d ms, io timeout %d ms)",
            config.address,
            config.connect_timeout,
            config.io_timeout,
        )
        return connection

    def disconnect(self, connection: Any) -> None:
        """Disconnect the transport."""
        connection.disconnect()


def get_connection_factory(options: dict) -> ConnectionFactory:
    """Get the appropriate connection factory for the given options."""
    # Check for explicit connection_factory option
    factory_path = options.get("connection_factory")

    # Fall back to global setting
    if not factory_path:
        factory_path = getattr(
            settings,
            "SHAREDKV_CONNECTION_FACTORY",
            "django_sharedkv.transport.ConnectionFactory",
        )

    return _load_class(factory_path)(options)
