from django_sharedkv.client.default import KeyValueClient
from django_sharedkv.client.executor import CommandExecutor, Reply
from django_sharedkv.client.hashes import HashMixin
from django_sharedkv.client.lists import ListMixin
from django_sharedkv.client.sets import SetMixin

__all__ = [
    "CommandExecutor",
    "HashMixin",
    "KeyValueClient",
    "ListMixin",
    "Reply",
    "SetMixin",
]
