"""Persistent router state."""

from __future__ import annotations

from .kv import FileKeyValueStore, KeyValueStore, RemoteKeyValueStore, create_kv_store
from .last_channel import LAST_REQ_CHANNEL, LastChannelStore

__all__ = [
    "FileKeyValueStore",
    "KeyValueStore",
    "LAST_REQ_CHANNEL",
    "LastChannelStore",
    "RemoteKeyValueStore",
    "create_kv_store",
]
