# src/supernova/storage/__init__.py
"""
Storage module for the Supernova library.

This package provides the durable key-value byte stores that hold the
serialized session collection and the entitlement flag.
"""

from .base_kv import BaseKeyValueStore
from .file_kv import FileKeyValueStore
from .manager import StorageManager
from .memory_kv import MemoryKeyValueStore
from .sqlite_kv import SqliteKeyValueStore

__all__ = [
    "StorageManager",
    "BaseKeyValueStore",
    "MemoryKeyValueStore",
    "FileKeyValueStore",
    "SqliteKeyValueStore",
]
