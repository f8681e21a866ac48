# src/supernova/storage/manager.py
"""
Storage Manager for Supernova.

Handles the selection and initialization of the key-value storage backend
based on the ``[storage]`` configuration section.
"""

import logging
from typing import Any, Dict, Optional, Type

# Assume ConfyConfig type for hinting
try:
    from confy.loader import Config as ConfyConfig
except ImportError:
    ConfyConfig = Dict[str, Any]  # type: ignore

from ..exceptions import ConfigError, StorageError
from .base_kv import BaseKeyValueStore
from .file_kv import FileKeyValueStore
from .memory_kv import MemoryKeyValueStore
from .sqlite_kv import SqliteKeyValueStore

logger = logging.getLogger(__name__)

# --- Mapping from config type string to class ---
KV_STORAGE_MAP: Dict[str, Type[BaseKeyValueStore]] = {
    "memory": MemoryKeyValueStore,
    "file": FileKeyValueStore,
    "sqlite": SqliteKeyValueStore,
}
# --- End Mapping ---


class StorageManager:
    """
    Manages the initialization and access to the key-value storage backend.

    Reads the ``[storage]`` section, instantiates the configured backend and
    hands the initialized instance to the session and entitlement layers.
    """
    _config: ConfyConfig
    _store: Optional[BaseKeyValueStore] = None

    def __init__(self, config: ConfyConfig):
        """
        Initializes the StorageManager.

        Args:
            config: The main configuration object (ConfyConfig instance or plain dict).
        """
        self._config = config
        self._store = None
        logger.debug("StorageManager created.")

    async def initialize_storage(self) -> BaseKeyValueStore:
        """
        Instantiates and initializes the configured backend.

        Returns:
            The initialized key-value store.

        Raises:
            ConfigError: If the storage type is missing or unsupported.
            StorageError: If the backend fails to initialize.
        """
        storage_config = self._config.get("storage", {}) or {}
        if not hasattr(storage_config, "items"):
            raise ConfigError("'[storage]' section in config is not a valid table.")
        storage_config = dict(storage_config.items())

        storage_type = str(storage_config.get("type", "")).lower()
        if not storage_type:
            raise ConfigError("No storage type configured ('storage.type').")

        storage_cls = KV_STORAGE_MAP.get(storage_type)
        if storage_cls is None:
            raise ConfigError(f"Unsupported storage type configured: '{storage_type}'. "
                              f"Available types: {list(KV_STORAGE_MAP.keys())}")

        store = storage_cls()
        try:
            await store.initialize(storage_config)
        except (ConfigError, StorageError):
            raise
        except Exception as e:
            logger.error(f"Failed to initialize storage backend '{storage_type}': {e}", exc_info=True)
            raise StorageError(f"Storage initialization failed: {e}")

        self._store = store
        logger.info(f"Key-value storage backend '{storage_type}' initialized.")
        return store

    def get_store(self) -> BaseKeyValueStore:
        """
        Returns the initialized backend.

        Raises:
            StorageError: If initialize_storage() has not completed.
        """
        if self._store is None:
            raise StorageError("Storage is not initialized. Call initialize_storage() first.")
        return self._store

    async def close_storage(self) -> None:
        """Closes the backend, logging (not raising) errors during shutdown."""
        if self._store is None:
            return
        try:
            await self._store.close()
            logger.info("Key-value storage closed.")
        except Exception as e:
            logger.error(f"Error closing key-value storage: {e}", exc_info=True)
        finally:
            self._store = None
