# src/supernova/storage/base_kv.py
"""
Abstract Base Class for durable key-value byte stores.

The session collection and the entitlement flag are each persisted as a
single opaque value under a fixed key. Every backend must implement this
interface; values are written whole, never patched.
"""

import abc
from typing import Any, Dict, Optional


class BaseKeyValueStore(abc.ABC):
    """
    Abstract Base Class for key-value byte storage.

    Concrete implementations handle the specifics of storing values
    (in process memory, one file per key, a SQLite table).
    """

    @abc.abstractmethod
    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the storage backend with given configuration.

        Args:
            config: Backend-specific configuration dictionary derived from
                    the ``[storage]`` section of the configuration.
        """
        pass

    @abc.abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        """
        Retrieve the value stored under ``key``.

        Returns:
            The stored bytes, or None if the key is absent.
        """
        pass

    @abc.abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """
        Store ``value`` under ``key``, replacing any previous value atomically.
        """
        pass

    @abc.abstractmethod
    async def delete(self, key: str) -> bool:
        """
        Remove ``key``.

        Returns:
            True if the key existed and was removed, False otherwise.
        """
        pass

    @abc.abstractmethod
    async def close(self) -> None:
        """Release any resources (connections, file handles) held by the backend."""
        pass
