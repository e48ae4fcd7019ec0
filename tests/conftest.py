"""Pytest configuration for django-sharedkv tests."""

from tests.fixtures import (
    conn,
    fake_server,
    live_server,
    other_owner,
    owner,
    redis_container,
    reset_sharedkv,
    resp_server,
)

# Re-export fixtures so pytest can discover them
__all__ = [
    "conn",
    "fake_server",
    "live_server",
    "other_owner",
    "owner",
    "redis_container",
    "reset_sharedkv",
    "resp_server",
]
