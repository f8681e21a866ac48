# src/supernova/storage/sqlite_kv.py
"""
SQLite key-value storage using aiosqlite.

Values live in a single two-column table inside one database file, which
keeps the session collection and the entitlement flag together on disk.
"""

import logging
import os
import pathlib
from typing import Any, Dict, Optional

try:
    import aiosqlite
    aiosqlite_available = True
except ImportError:
    aiosqlite_available = False
    aiosqlite = None  # type: ignore

from ..exceptions import ConfigError, StorageError
from .base_kv import BaseKeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "kv_store"


class SqliteKeyValueStore(BaseKeyValueStore):
    """Manages persistence of opaque values in a SQLite table."""
    _db_path: pathlib.Path
    _conn: Optional["aiosqlite.Connection"] = None
    _table_name: str

    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Open the database and create the table if it doesn't exist.

        Args:
            config: Configuration dictionary. Expected keys:
                    'path': The database file path.
                    'table_name' (optional)

        Raises:
            ConfigError: If 'path' is not provided or aiosqlite is not installed.
            StorageError: If the database cannot be initialized.
        """
        if not aiosqlite_available:
            raise ConfigError("aiosqlite library is not installed. Please install `aiosqlite` or `supernova[sqlite]`.")

        db_path_str = config.get("path")
        if not db_path_str:
            raise ConfigError("SQLite key-value storage 'path' not specified in configuration.")

        self._db_path = pathlib.Path(os.path.expanduser(str(db_path_str)))
        self._table_name = config.get("table_name", DEFAULT_TABLE)

        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = await aiosqlite.connect(self._db_path)
            await self._conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {self._table_name} (
                    key TEXT PRIMARY KEY, value BLOB NOT NULL
                )
            """)
            await self._conn.commit()
            logger.info(f"SQLite key-value storage initialized at: {self._db_path.resolve()} (table: {self._table_name})")
        except aiosqlite.Error as e:
            logger.error(f"Failed to initialize aiosqlite database at {self._db_path}: {e}")
            if self._conn:
                await self._conn.close()
                self._conn = None
            raise StorageError(f"Could not initialize SQLite database: {e}")

    def _require_conn(self) -> "aiosqlite.Connection":
        if not self._conn:
            raise StorageError("Database connection not initialized.")
        return self._conn

    async def get(self, key: str) -> Optional[bytes]:
        conn = self._require_conn()
        try:
            async with conn.execute(f"SELECT value FROM {self._table_name} WHERE key = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            logger.error(f"aiosqlite error reading key '{key}': {e}")
            raise StorageError(f"Failed to read value for '{key}': {e}")
        return bytes(row[0]) if row else None

    async def set(self, key: str, value: bytes) -> None:
        conn = self._require_conn()
        try:
            await conn.execute(
                f"INSERT INTO {self._table_name} (key, value) VALUES (?, ?) "
                "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
                (key, bytes(value)),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            logger.error(f"aiosqlite error writing key '{key}': {e}")
            await conn.rollback()
            raise StorageError(f"Failed to write value for '{key}': {e}")

    async def delete(self, key: str) -> bool:
        conn = self._require_conn()
        try:
            cursor = await conn.execute(f"DELETE FROM {self._table_name} WHERE key = ?", (key,))
            await conn.commit()
            return cursor.rowcount > 0
        except aiosqlite.Error as e:
            logger.error(f"aiosqlite error deleting key '{key}': {e}")
            raise StorageError(f"Failed to delete value for '{key}': {e}")

    async def close(self) -> None:
        """Close the database connection."""
        if self._conn:
            try:
                await self._conn.close()
                logger.info("aiosqlite key-value storage connection closed.")
            except aiosqlite.Error as e:
                logger.error(f"Error closing aiosqlite connection: {e}")
            finally:
                self._conn = None
