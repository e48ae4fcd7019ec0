"""The shared, reference-counted connection.

One ``SharedConnection`` serves every caller in the process. Each caller
acquires it with ``conn_get()`` and releases it with ``conn_close()``;
the transport is only torn down when the last reference is released.

Usage:
    from django.apps import apps
    from django_sharedkv.connection import conn_get

    app = apps.get_app_config("myapp")
    with conn_get() as conn:
        conn.set_namespace(app, "myapp:")
        conn.set(app, "greeting", b"hello")

Reference counting is thread-safe. Issuing commands is not: callers that
share the connection across threads must serialize their commands.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any, Self

from django_sharedkv.client import HashMixin, KeyValueClient, ListMixin, SetMixin
from django_sharedkv.client.executor import ANY_SUCCESS, CommandExecutor
from django_sharedkv.conf import get_server_config
from django_sharedkv.exceptions import InvalidArgumentError, SharedKVError
from django_sharedkv.namespace import NamespaceRegistry
from django_sharedkv.transport import get_connection_factory

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from django_sharedkv.transport import ConnectionFactory
    from django_sharedkv.types import OwnerT

logger = logging.getLogger(__name__)

_session_lock = threading.RLock()
_session_connection: SharedConnection | None = None


class SharedConnection(ListMixin, SetMixin, HashMixin, KeyValueClient):
    """A single transport shared by many independent callers.

    Attributes:
        owner: Identity of the caller that created the connection, if given.
        flags: Creation flags, kept for the caller's use.
    """

    def __init__(
        self,
        transport: Any,
        factory: ConnectionFactory,
        *,
        owner: OwnerT | None = None,
        flags: int = 0,
    ) -> None:
        super().__init__()
        self._transport = transport
        self._factory = factory
        self.owner = owner
        self.flags = flags
        self._refcount = 1
        self._lock = threading.Lock()
        self._destroyed = False
        self._teardown_callbacks: list[Callable[[SharedConnection], None]] = []

    def __repr__(self) -> str:
        state = "connected" if self.connected else "closed"
        return f"<{type(self).__name__} {state} refcount={self._refcount}>"

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def refcount(self) -> int:
        return self._refcount

    @property
    def connected(self) -> bool:
        return self._transport is not None

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def _get_transport(self) -> Any:
        if self._transport is None:
            msg = "connection is closed"
            raise InvalidArgumentError(msg)
        return self._transport

    # =========================================================================
    # Reference Counting / Lifecycle
    # =========================================================================

    def add_teardown_callback(self, callback: Callable[[SharedConnection], None]) -> None:
        """Register ``callback`` to run once when the transport is torn down."""
        self._teardown_callbacks.append(callback)

    def acquire(self) -> Self:
        """Take another reference to this connection."""
        with self._lock:
            self._get_transport()
            self._refcount += 1
            logger.debug("acquired connection, refcount %d", self._refcount)
        return self

    def close(self) -> None:
        """Release one reference; the last release tears down the transport."""
        with self._lock:
            if self._refcount > 0:
                self._refcount -= 1
            logger.debug("released connection, refcount %d", self._refcount)
            if self._refcount > 0:
                return
            callbacks = self._teardown()
        self._run_callbacks(callbacks)

    def destroy(self) -> None:
        """Release one reference, then tear down regardless of other holders."""
        if self._refcount > 1:
            logger.warning(
                "destroying connection with %d outstanding references",
                self._refcount - 1,
            )
        self.close()
        with self._lock:
            self._refcount = 0
            callbacks = self._teardown()
            self._destroyed = True
        self._run_callbacks(callbacks)

    def clone(self) -> None:
        """Cloning is not implemented; this is a no-op."""

    def _teardown(self) -> list[Callable[[SharedConnection], None]]:
        """Drop the transport and namespaces; return the callbacks still to run."""
        # Caller holds self._lock
        transport, self._transport = self._transport, None
        if transport is not None:
            try:
                CommandExecutor(lambda: transport).execute("QUIT")
            except SharedKVError as e:
                logger.debug("error sending QUIT: %s", e)
            self._factory.disconnect(transport)

        if self._namespaces is not None:
            self._namespaces.clear()
            self._namespaces = None

        callbacks, self._teardown_callbacks = self._teardown_callbacks, []
        return callbacks

    def _run_callbacks(self, callbacks: list[Callable[[SharedConnection], None]]) -> None:
        # Run outside self._lock, callbacks may take the session lock
        for callback in callbacks:
            callback(self)

    def _probe(self) -> None:
        """Check that the server answers PING and INFO."""
        self._execute("PING", expect=ANY_SUCCESS)
        # Make sure we are connected to the configured server by querying
        # some stats/info from it
        self._execute("INFO", expect=ANY_SUCCESS)

    # =========================================================================
    # Namespaces
    # =========================================================================

    def set_namespace(self, owner: OwnerT, prefix: str | bytes | None) -> None:
        """Prefix every key ``owner`` addresses with ``prefix``.

        Passing ``None`` removes the owner's prefix.
        """
        if owner is None:
            msg = "owner is required"
            raise InvalidArgumentError(msg)
        self._get_transport()

        if self._namespaces is None:
            self._namespaces = NamespaceRegistry()
        self._namespaces.set_prefix(owner, prefix)

    def get_namespace(self, owner: OwnerT) -> bytes | None:
        if self._namespaces is None:
            return None
        return self._namespaces.get_prefix(owner)


def _clear_session(connection: SharedConnection) -> None:
    global _session_connection  # noqa: PLW0603
    with _session_lock:
        if _session_connection is connection:
            _session_connection = None


def conn_new(owner: OwnerT | None = None, flags: int = 0) -> SharedConnection:
    """Open a new connection to the configured server.

    The first connection opened becomes the session connection returned by
    ``conn_get()``; it stops being the session connection once torn down.

    Raises:
        NotConfiguredError: If no server is configured.
        ConnectFailedError: If the transport could not connect.
        ConnectionInterruptedError: If PING or INFO could not be sent.
        InvalidResponseError: If PING or INFO returned an error.
    """
    global _session_connection  # noqa: PLW0603

    config = get_server_config()
    factory = get_connection_factory(config.options)
    transport = factory.connect(config)

    connection = SharedConnection(transport, factory, owner=owner, flags=flags)
    try:
        connection._probe()  # noqa: SLF001
    except BaseException:
        connection.destroy()
        raise

    with _session_lock:
        if _session_connection is None:
            _session_connection = connection
            connection.add_teardown_callback(_clear_session)

    return connection


def conn_get() -> SharedConnection:
    """Acquire the session connection, creating it if needed."""
    global _session_connection  # noqa: PLW0603
    with _session_lock:
        if _session_connection is not None:
            try:
                return _session_connection.acquire()
            except InvalidArgumentError:
                # Torn down by another thread, its teardown callback has not run yet
                logger.debug("session connection was torn down, opening a new one")
                _session_connection = None
        return conn_new()


def conn_close(connection: SharedConnection | None) -> None:
    if connection is None:
        msg = "connection is required"
        raise InvalidArgumentError(msg)
    connection.close()


def conn_destroy(connection: SharedConnection | None) -> None:
    if connection is None:
        msg = "connection is required"
        raise InvalidArgumentError(msg)
    connection.destroy()


def conn_clone(connection: SharedConnection | None) -> None:
    """Reserved; cloning a connection is currently a no-op."""


def clear() -> None:
    """Destroy the session connection, if there is one."""
    global _session_connection  # noqa: PLW0603
    with _session_lock:
        connection, _session_connection = _session_connection, None
    if connection is not None:
        connection.destroy()
