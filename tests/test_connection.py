import logging
import threading

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

import django_sharedkv
from django_sharedkv import conf, connection
from django_sharedkv.connection import (
    SharedConnection,
    clear,
    conn_clone,
    conn_close,
    conn_destroy,
    conn_get,
    conn_new,
)
from django_sharedkv.exceptions import (
    ConnectFailedError,
    ConnectionInterruptedError,
    InvalidArgumentError,
    InvalidResponseError,
    NotConfiguredError,
)
from tests.fixtures.fakes import FakeUnixConnection


class TestConnGet:
    def test_not_configured(self, settings):
        settings.SHAREDKV_SERVER = None
        with pytest.raises(NotConfiguredError):
            conn_get()
        assert connection._session_connection is None

    def test_creates_connection(self, fake_server):
        conn = conn_get()
        assert isinstance(conn, SharedConnection)
        assert conn.connected
        assert conn.refcount == 1
        assert fake_server.command_names() == ["PING", "INFO"]

    def test_returns_shared_connection(self, fake_server):
        first = conn_get()
        second = conn_get()
        assert first is second
        assert first.refcount == 2
        assert len(fake_server.connections) == 1

    def test_package_helper(self, fake_server):
        conn = django_sharedkv.get_connection()
        assert conn is conn_get()
        assert conn.refcount == 2

    def test_new_connection_after_teardown(self, fake_server):
        first = conn_get()
        conn_close(first)
        second = conn_get()
        assert second is not first
        assert second.connected
        assert len(fake_server.connections) == 2

    def test_unix_socket(self, fake_server):
        conf.set_server("/tmp/test.sock")
        conn = conn_get()
        assert isinstance(conn._transport, FakeUnixConnection)
        assert conn._transport.kwargs["path"] == "/tmp/test.sock"

    def test_thread_safe_refcount(self, fake_server):
        conn = conn_get()

        def worker():
            for _ in range(100):
                conn_get()
                conn_close(conn)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert conn.refcount == 1
        assert conn.connected


class TestConnNew:
    def test_owner_and_flags(self, fake_server, owner):
        conn = conn_new(owner, flags=4)
        assert conn.owner is owner
        assert conn.flags == 4

    def test_first_becomes_session(self, fake_server):
        first = conn_new()
        second = conn_new()
        assert first is not second
        assert conn_get() is first
        assert second.refcount == 1

    def test_connect_failure(self, fake_server):
        fake_server.connect_error = RedisConnectionError("Error 111 connecting to kv.example.com:6379.")
        with pytest.raises(ConnectFailedError) as exc_info:
            conn_new()
        assert "kv.example.com#6379" in str(exc_info.value)
        assert connection._session_connection is None

    def test_ping_failure(self, fake_server):
        fake_server.send_errors["PING"] = RedisConnectionError("Connection reset")
        with pytest.raises(ConnectionInterruptedError):
            conn_new()
        assert not fake_server.connections[0].connected
        assert connection._session_connection is None

    def test_info_error_reply(self, fake_server):
        fake_server.replies["INFO"] = ResponseError("NOPERM this user has no permissions")
        with pytest.raises(InvalidResponseError):
            conn_new()
        assert not fake_server.connections[0].connected
        assert connection._session_connection is None

    def test_unexpected_probe_error_disconnects(self, fake_server):
        fake_server.send_errors["INFO"] = TypeError("unexpected keyword argument")
        with pytest.raises(TypeError):
            conn_new()
        assert not fake_server.connections[0].connected
        assert connection._session_connection is None


class TestClose:
    def test_close_decrements(self, conn, fake_server):
        conn.acquire()
        conn_close(conn)
        assert conn.refcount == 1
        assert conn.connected
        assert "QUIT" not in fake_server.command_names()

    def test_last_close_tears_down(self, conn, fake_server):
        transport = conn._transport
        conn_close(conn)
        assert conn.refcount == 0
        assert not conn.connected
        assert not transport.connected
        assert fake_server.command_names()[-1] == "QUIT"
        assert connection._session_connection is None

    def test_close_twice(self, conn):
        conn_close(conn)
        conn_close(conn)
        assert conn.refcount == 0

    def test_operations_rejected_after_close(self, conn, owner):
        conn_close(conn)
        with pytest.raises(InvalidArgumentError):
            conn.set(owner, "k", "v")
        with pytest.raises(InvalidArgumentError):
            conn.acquire()
        with pytest.raises(InvalidArgumentError):
            conn.set_namespace(owner, "x:")

    def test_quit_failure_is_not_raised(self, conn, fake_server, caplog):
        fake_server.send_errors["QUIT"] = RedisConnectionError("Connection reset")
        with caplog.at_level(logging.DEBUG, logger="django_sharedkv.connection"):
            conn_close(conn)
        assert not conn.connected
        assert "error sending QUIT" in caplog.text

    def test_namespaces_cleared(self, conn, owner):
        conn.set_namespace(owner, "auth:")
        conn_close(conn)
        assert conn.get_namespace(owner) is None

    def test_context_manager(self, fake_server):
        with conn_get() as conn:
            assert conn.refcount == 1
        assert not conn.connected

    def test_none(self):
        with pytest.raises(InvalidArgumentError):
            conn_close(None)


class TestDestroy:
    def test_destroy_with_outstanding_references(self, conn, caplog):
        conn.acquire()
        conn.acquire()
        with caplog.at_level(logging.WARNING):
            conn_destroy(conn)
        assert conn.refcount == 0
        assert not conn.connected
        assert conn.destroyed
        assert "outstanding references" in caplog.text

    def test_destroy_last_reference(self, conn, fake_server):
        conn_destroy(conn)
        assert not conn.connected
        assert fake_server.command_names().count("QUIT") == 1

    def test_destroy_clears_session(self, conn, fake_server):
        conn_destroy(conn)
        assert conn_get() is not conn

    def test_destroy_after_close(self, conn):
        conn_close(conn)
        conn_destroy(conn)
        assert conn.destroyed

    def test_none(self):
        with pytest.raises(InvalidArgumentError):
            conn_destroy(None)


class TestClone:
    def test_noop(self, conn):
        assert conn_clone(conn) is None
        assert conn.refcount == 1

    def test_none(self):
        assert conn_clone(None) is None


class TestClear:
    def test_clear(self, conn):
        conn.acquire()
        clear()
        assert not conn.connected
        assert connection._session_connection is None

    def test_clear_without_connection(self):
        clear()
        assert connection._session_connection is None


class TestNamespaces:
    def test_set_and_get(self, conn, owner, other_owner):
        conn.set_namespace(owner, "auth:")
        assert conn.get_namespace(owner) == b"auth:"
        assert conn.get_namespace(other_owner) is None

    def test_no_registry(self, conn, owner):
        assert conn.get_namespace(owner) is None

    def test_remove(self, conn, owner):
        conn.set_namespace(owner, "auth:")
        conn.set_namespace(owner, None)
        assert conn.get_namespace(owner) is None

    def test_owner_required(self, conn):
        with pytest.raises(InvalidArgumentError):
            conn.set_namespace(None, "x:")

    def test_prefix_applied_to_commands(self, conn, fake_server, owner):
        conn.set_namespace(owner, "auth:")
        conn.set(owner, "k", "v")
        assert fake_server.data_commands() == [("SET", (b"auth:k", b"v"))]
