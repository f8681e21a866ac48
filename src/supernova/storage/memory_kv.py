# src/supernova/storage/memory_kv.py
"""In-process key-value store. Nothing survives the process; used for ephemeral runs and tests."""

import logging
from typing import Any, Dict, Optional

from .base_kv import BaseKeyValueStore

logger = logging.getLogger(__name__)


class MemoryKeyValueStore(BaseKeyValueStore):
    """Keeps values in a dictionary."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    async def initialize(self, config: Dict[str, Any]) -> None:
        logger.debug("In-memory key-value store initialized.")

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"Value for key '{key}' must be bytes, got {type(value).__name__}.")
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    async def close(self) -> None:
        self._data.clear()
