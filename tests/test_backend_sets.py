"""Tests for set operations."""

import pytest

from django_sharedkv.connection import SharedConnection
from django_sharedkv.exceptions import AlreadyExistsError, InvalidArgumentError, NotFoundError
from django_sharedkv.types import ErrorKind


class TestSetOperations:
    def test_set_add(self, conn: SharedConnection, owner):
        conn.set_add(owner, "s", "a")
        conn.set_add(owner, "s", "b")
        assert conn.set_count(owner, "s") == 2
        assert conn.set_exists(owner, "s", "a")

    def test_set_add_existing(self, conn: SharedConnection, fake_server, owner):
        conn.set_add(owner, "s", "a")
        with pytest.raises(AlreadyExistsError) as exc_info:
            conn.set_add(owner, "s", "a")
        assert exc_info.value.kind == ErrorKind.ALREADY_EXISTS
        assert exc_info.value.member == b"a"
        assert fake_server.command_names().count("SADD") == 1

    def test_set_add_checks_membership_first(self, conn: SharedConnection, fake_server, owner):
        conn.set_add(owner, "s", "a")
        assert fake_server.data_commands() == [
            ("SISMEMBER", (b"s", b"a")),
            ("SADD", (b"s", b"a")),
        ]

    def test_set_add_empty_value(self, conn: SharedConnection, owner):
        with pytest.raises(InvalidArgumentError):
            conn.set_add(owner, "s", "")

    def test_set_count_missing(self, conn: SharedConnection, owner):
        assert conn.set_count(owner, "s") == 0

    def test_set_delete(self, conn: SharedConnection, owner):
        conn.set_add(owner, "s", "a")
        conn.set_add(owner, "s", "b")
        conn.set_delete(owner, "s", "a")
        assert not conn.set_exists(owner, "s", "a")
        assert conn.set_count(owner, "s") == 1

    def test_set_delete_missing(self, conn: SharedConnection, owner):
        with pytest.raises(NotFoundError):
            conn.set_delete(owner, "s", "a")

    def test_set_exists(self, conn: SharedConnection, owner):
        assert not conn.set_exists(owner, "s", "a")
        conn.set_add(owner, "s", "a")
        assert conn.set_exists(owner, "s", "a")

    def test_set_remove(self, conn: SharedConnection, owner):
        conn.set_add(owner, "s", "a")
        conn.set_remove(owner, "s")
        assert conn.set_count(owner, "s") == 0

    def test_set_remove_missing(self, conn: SharedConnection, owner):
        with pytest.raises(NotFoundError):
            conn.set_remove(owner, "s")

    def test_binary_members(self, conn: SharedConnection, owner):
        conn.set_add(owner, "s", b"\x00\x01")
        assert conn.set_exists(owner, "s", b"\x00\x01")
        assert not conn.set_exists(owner, "s", b"\x00")


def test_prefix_applied(conn: SharedConnection, fake_server, owner, other_owner):
    conn.set_namespace(owner, "auth:")
    conn.set_add(owner, "s", "a")
    assert b"auth:s" in fake_server.data
    assert not conn.set_exists(other_owner, "s", "a")
