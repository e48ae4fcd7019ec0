"""Server address and timeout configuration.

Values come from Django settings unless overridden at runtime with
``set_server()`` / ``set_timeouts()``. Runtime overrides win until
``reset()`` is called.

Settings:
    SHAREDKV_SERVER: Host name, or an absolute Unix socket path.
    SHAREDKV_PORT: TCP port (default 6379), ignored for socket paths.
    SHAREDKV_CONNECT_TIMEOUT: Connect timeout in milliseconds (default 500).
    SHAREDKV_IO_TIMEOUT: Per-command I/O timeout in milliseconds (default 500).
    SHAREDKV_OPTIONS: Transport options, see ``django_sharedkv.transport``.

A timeout of 0 means no timeout.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from django.conf import settings

from django_sharedkv.exceptions import InvalidArgumentError, NotConfiguredError

DEFAULT_PORT = 6379
DEFAULT_CONNECT_TIMEOUT = 500
DEFAULT_IO_TIMEOUT = 500

_overrides: dict[str, Any] = {}


@dataclass(frozen=True)
class ServerConfig:
    """Effective connection settings for one connection attempt."""

    server: str
    port: int = DEFAULT_PORT
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT
    io_timeout: int = DEFAULT_IO_TIMEOUT
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def uses_unix_socket(self) -> bool:
        return self.server.startswith("/")

    @property
    def address(self) -> str:
        if self.uses_unix_socket:
            return f"'{self.server}'"
        return f"{self.server}#{self.port}"


def set_server(server: str, port: int = DEFAULT_PORT) -> None:
    """Override the configured server address."""
    if not server or port < 1:
        msg = f"Invalid server address {server!r} port {port!r}"
        raise InvalidArgumentError(msg)

    _overrides["server"] = server
    _overrides["port"] = port


def set_timeouts(connect_millis: int, io_millis: int) -> None:
    """Override the connect and I/O timeouts, both in milliseconds.

    A timeout of 0 disables that timeout.
    """
    if connect_millis < 0 or io_millis < 0:
        msg = f"Timeouts must not be negative (connect={connect_millis}, io={io_millis})"
        raise InvalidArgumentError(msg)

    _overrides["connect_timeout"] = connect_millis
    _overrides["io_timeout"] = io_millis


def reset() -> None:
    """Drop runtime overrides so Django settings apply again."""
    _overrides.clear()


def _setting(name: str, override: str, default: Any) -> Any:
    if override in _overrides:
        return _overrides[override]
    return getattr(settings, name, default)


def get_server_config() -> ServerConfig:
    """Resolve the effective configuration.

    Raises:
        NotConfiguredError: If no server address has been set.
    """
    server = _setting("SHAREDKV_SERVER", "server", None)
    if not server:
        msg = "unable to create new connection: No server configured"
        raise NotConfiguredError(msg)

    return ServerConfig(
        server=server,
        port=int(_setting("SHAREDKV_PORT", "port", DEFAULT_PORT)),
        connect_timeout=int(_setting("SHAREDKV_CONNECT_TIMEOUT", "connect_timeout", DEFAULT_CONNECT_TIMEOUT)),
        io_timeout=int(_setting("SHAREDKV_IO_TIMEOUT", "io_timeout", DEFAULT_IO_TIMEOUT)),
        options=dict(getattr(settings, "SHAREDKV_OPTIONS", {})),
    )
