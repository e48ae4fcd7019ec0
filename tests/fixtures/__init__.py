"""Test fixtures for django-sharedkv."""

from tests.fixtures.connection import (
    FAKE_HOST,
    FAKE_OPTIONS,
    conn,
    fake_server,
    other_owner,
    owner,
    reset_sharedkv,
)
from tests.fixtures.containers import ContainerInfo, live_server, redis_container
from tests.fixtures.resp import RespServer, RespStore, resp_server

__all__ = [
    "FAKE_HOST",
    "FAKE_OPTIONS",
    "ContainerInfo",
    "RespServer",
    "RespStore",
    "conn",
    "fake_server",
    "live_server",
    "other_owner",
    "owner",
    "redis_container",
    "reset_sharedkv",
    "resp_server",
]
