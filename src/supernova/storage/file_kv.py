# src/supernova/storage/file_kv.py
"""
File-based key-value storage.

Each key is stored as a separate file in a configured directory. Writes go
to a temporary file that is then renamed over the target, so a reader never
observes a half-written value. It uses aiofiles for asynchronous file
operations.
"""

import logging
import os
import pathlib
import re
import uuid
from typing import Any, Dict, Optional

import aiofiles
import aiofiles.os as aios

from ..exceptions import ConfigError, StorageError
from .base_kv import BaseKeyValueStore

logger = logging.getLogger(__name__)


class FileKeyValueStore(BaseKeyValueStore):
    """
    Manages persistence of opaque values as files.

    File operations are performed asynchronously.
    """
    _storage_dir: pathlib.Path
    _file_extension: str

    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the file store, creating the storage directory if needed.

        Args:
            config: Configuration dictionary. Expected keys:
                    'path': The directory path for storing value files.
                    'file_extension' (optional): Extension for value files (default: '.json').

        Raises:
            ConfigError: If the 'path' is not provided in the config.
            StorageError: If the storage directory cannot be created.
        """
        storage_path_str = config.get("path")
        if not storage_path_str:
            raise ConfigError("File key-value storage 'path' not specified in configuration.")

        self._storage_dir = pathlib.Path(os.path.expanduser(str(storage_path_str)))
        self._file_extension = config.get("file_extension", ".json")
        if not self._file_extension.startswith('.'):
            self._file_extension = f".{self._file_extension}"

        try:
            await aios.makedirs(self._storage_dir, exist_ok=True)
            logger.info(f"File key-value storage initialized at: {self._storage_dir.resolve()}")
        except OSError as e:
            logger.error(f"Failed to create storage directory {self._storage_dir}: {e}")
            raise StorageError(f"Could not create storage directory: {e}")

    def _get_path(self, key: str) -> pathlib.Path:
        """Constructs the file path for a key."""
        sane_filename = re.sub(r'[^\w\-.]', '_', key)
        return self._storage_dir / f"{sane_filename}{self._file_extension}"

    async def get(self, key: str) -> Optional[bytes]:
        """
        Read the file stored for ``key``.

        Raises:
            StorageError: If the file exists but cannot be read.
        """
        file_path = self._get_path(key)
        try:
            if not await aios.path.exists(file_path):
                logger.debug(f"No value stored for key '{key}' at {file_path}")
                return None
            async with aiofiles.open(file_path, mode="rb") as f:
                return await f.read()
        except OSError as e:
            logger.error(f"Error reading key '{key}' from {file_path}: {e}")
            raise StorageError(f"Failed to read value for '{key}': {e}")

    async def set(self, key: str, value: bytes) -> None:
        """
        Write ``value`` for ``key`` via a temporary file and an atomic rename.

        Raises:
            StorageError: If the file cannot be written.
        """
        file_path = self._get_path(key)
        tmp_path = file_path.with_name(f".{file_path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, mode="wb") as f:
                await f.write(value)
            await aios.replace(tmp_path, file_path)
            logger.debug(f"Stored {len(value)} bytes for key '{key}' at {file_path}")
        except OSError as e:
            logger.error(f"Error writing key '{key}' to {file_path}: {e}")
            try:
                if await aios.path.exists(tmp_path):
                    await aios.remove(tmp_path)
            except OSError:
                logger.warning(f"Could not remove temporary file {tmp_path}")
            raise StorageError(f"Failed to write value for '{key}': {e}")

    async def delete(self, key: str) -> bool:
        file_path = self._get_path(key)
        try:
            if not await aios.path.exists(file_path):
                return False
            await aios.remove(file_path)
            logger.debug(f"Deleted key '{key}' ({file_path})")
            return True
        except OSError as e:
            logger.error(f"Error deleting key '{key}' at {file_path}: {e}")
            raise StorageError(f"Failed to delete value for '{key}': {e}")

    async def close(self) -> None:
        """File storage holds no open handles between operations."""
        logger.debug("File key-value storage closed (no-op).")
