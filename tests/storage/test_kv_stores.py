# tests/storage/test_kv_stores.py
"""
Tests for the key-value storage backends and the StorageManager.

The same behavioural contract is checked against the memory, file and
SQLite backends.
"""

import pytest

from supernova.exceptions import ConfigError, StorageError
from supernova.storage import (
    FileKeyValueStore,
    MemoryKeyValueStore,
    SqliteKeyValueStore,
    StorageManager,
)


async def _open_store(kind, tmp_path):
    if kind == "memory":
        store = MemoryKeyValueStore()
        await store.initialize({})
    elif kind == "file":
        store = FileKeyValueStore()
        await store.initialize({"path": str(tmp_path / "kv")})
    else:
        pytest.importorskip("aiosqlite")
        store = SqliteKeyValueStore()
        await store.initialize({"path": str(tmp_path / "db" / "supernova.db")})
    return store


@pytest.mark.parametrize("kind", ["memory", "file", "sqlite"])
class TestKeyValueContract:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_missing_key(self, kind, tmp_path):
        store = await _open_store(kind, tmp_path)
        try:
            assert await store.get("gemini-chat-sessions") is None
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_set_get_overwrite(self, kind, tmp_path):
        store = await _open_store(kind, tmp_path)
        try:
            await store.set("supernova-premium", b"true")
            assert await store.get("supernova-premium") == b"true"
            await store.set("supernova-premium", b"false")
            assert await store.get("supernova-premium") == b"false"
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_delete(self, kind, tmp_path):
        store = await _open_store(kind, tmp_path)
        try:
            await store.set("k", b"v")
            assert await store.delete("k") is True
            assert await store.delete("k") is False
            assert await store.get("k") is None
        finally:
            await store.close()


class TestFileStore:
    """File backend specifics."""

    @pytest.mark.asyncio
    async def test_requires_path(self):
        with pytest.raises(ConfigError):
            await FileKeyValueStore().initialize({})

    @pytest.mark.asyncio
    async def test_values_survive_reopen(self, tmp_path):
        first = FileKeyValueStore()
        await first.initialize({"path": str(tmp_path)})
        await first.set("gemini-chat-sessions", b"[]")

        second = FileKeyValueStore()
        await second.initialize({"path": str(tmp_path)})
        assert await second.get("gemini-chat-sessions") == b"[]"

    @pytest.mark.asyncio
    async def test_no_temporary_files_left(self, tmp_path):
        store = FileKeyValueStore()
        await store.initialize({"path": str(tmp_path), "file_extension": "dat"})
        await store.set("a/b", b"1")
        assert [p.name for p in tmp_path.iterdir()] == ["a_b.dat"]

    @pytest.mark.asyncio
    async def test_unreadable_value_raises_storage_error(self, tmp_path):
        store = FileKeyValueStore()
        await store.initialize({"path": str(tmp_path)})
        # A directory where the value file should be cannot be read.
        (tmp_path / "broken.json").mkdir()
        with pytest.raises(StorageError):
            await store.get("broken")


class TestMemoryStore:

    @pytest.mark.asyncio
    async def test_rejects_non_bytes(self):
        store = MemoryKeyValueStore()
        with pytest.raises(TypeError):
            await store.set("k", "text")


class TestSqliteStore:

    @pytest.mark.asyncio
    async def test_requires_path(self):
        pytest.importorskip("aiosqlite")
        with pytest.raises(ConfigError):
            await SqliteKeyValueStore().initialize({})

    @pytest.mark.asyncio
    async def test_values_survive_reopen(self, tmp_path):
        pytest.importorskip("aiosqlite")
        db = str(tmp_path / "kv.db")
        first = SqliteKeyValueStore()
        await first.initialize({"path": db})
        await first.set("k", b"v")
        await first.close()

        second = SqliteKeyValueStore()
        await second.initialize({"path": db})
        try:
            assert await second.get("k") == b"v"
        finally:
            await second.close()

    @pytest.mark.asyncio
    async def test_closed_store_raises(self, tmp_path):
        pytest.importorskip("aiosqlite")
        store = SqliteKeyValueStore()
        await store.initialize({"path": str(tmp_path / "kv.db")})
        await store.close()
        with pytest.raises(StorageError):
            await store.get("k")


class TestStorageManager:
    """Backend selection from the [storage] table."""

    @pytest.mark.asyncio
    async def test_memory_backend(self):
        manager = StorageManager({"storage": {"type": "memory"}})
        store = await manager.initialize_storage()
        assert isinstance(store, MemoryKeyValueStore)
        assert manager.get_store() is store
        await manager.close_storage()

    @pytest.mark.asyncio
    async def test_file_backend(self, tmp_path):
        manager = StorageManager({"storage": {"type": "FILE", "path": str(tmp_path)}})
        assert isinstance(await manager.initialize_storage(), FileKeyValueStore)

    @pytest.mark.asyncio
    async def test_unknown_type(self):
        with pytest.raises(ConfigError):
            await StorageManager({"storage": {"type": "redis"}}).initialize_storage()

    @pytest.mark.asyncio
    async def test_missing_type(self):
        with pytest.raises(ConfigError):
            await StorageManager({}).initialize_storage()

    def test_get_store_before_initialize(self):
        with pytest.raises(StorageError):
            StorageManager({}).get_store()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        manager = StorageManager({"storage": {"type": "memory"}})
        await manager.initialize_storage()
        await manager.close_storage()
        await manager.close_storage()
        with pytest.raises(StorageError):
            manager.get_store()
