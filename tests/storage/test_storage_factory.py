"""Tests for storage creation and the fallback chain."""

import logging

import pytest
from unittest.mock import AsyncMock, Mock

from fhevmkit.storage import (
    KeyFileStorage,
    MemoryStorage,
    SqliteStorage,
    StorageError,
    StorageErrorCode,
    StorageOptions,
    StorageType,
    create_storage,
    create_storage_with_fallback,
    detect_storage_type,
)
from fhevmkit.storage.factory import SMOKE_TEST_KEY


def failing_factory(options):
    raise StorageError(StorageErrorCode.NOT_AVAILABLE, "database disabled")


class TestCreateStorage:
    """Test create_storage."""

    def test_database(self, tmp_path):
        """Test the database type builds SQLite storage."""
        storage = create_storage(StorageOptions(type=StorageType.DATABASE, directory=tmp_path))
        assert isinstance(storage, SqliteStorage)
        assert storage.directory == tmp_path

    def test_keyfile(self, tmp_path):
        """Test the keyfile type uses the configured directory and prefix."""
        storage = create_storage(
            StorageOptions(type=StorageType.KEYFILE, prefix="app:", directory=tmp_path)
        )
        assert isinstance(storage, KeyFileStorage)
        assert storage.prefix == "app:"
        assert storage.path == tmp_path / "keyfile.json"

    def test_memory_from_string_type(self):
        """Test plain string types are accepted."""
        assert isinstance(create_storage(StorageOptions(type="memory")), MemoryStorage)

    def test_custom(self):
        """Test a custom backend is returned as-is."""
        custom = MemoryStorage()
        storage = create_storage(StorageOptions(type=StorageType.CUSTOM, custom=custom))
        assert storage is custom

    def test_custom_without_instance(self):
        """Test custom type without an implementation is rejected."""
        with pytest.raises(StorageError) as exc_info:
            create_storage(StorageOptions(type=StorageType.CUSTOM))
        assert exc_info.value.code == StorageErrorCode.INVALID_INPUT

    def test_invalid_type(self):
        """Test unknown types are rejected."""
        with pytest.raises(StorageError) as exc_info:
            create_storage(StorageOptions(type="cloud"))
        assert exc_info.value.code == StorageErrorCode.INVALID_INPUT
        assert "cloud" in str(exc_info.value)

    def test_options_default_from_settings(self, isolated_storage_directory):
        """Test options pick up the configured defaults."""
        options = StorageOptions.from_settings(StorageType.KEYFILE)
        assert options.type == StorageType.KEYFILE
        assert options.db_name == "fhevm-storage"
        assert options.prefix == "fhevm:"
        assert options.directory == isolated_storage_directory


class TestFallback:
    """Test create_storage_with_fallback."""

    @pytest.mark.asyncio
    async def test_prefers_database(self):
        """Test the database backend is used when it works."""
        storage = await create_storage_with_fallback()
        assert isinstance(storage, SqliteStorage)
        assert await storage.get_item(SMOKE_TEST_KEY) is None
        storage.close()

    @pytest.mark.asyncio
    async def test_falls_back_to_keyfile(self, tmp_path, caplog):
        """Test an unavailable database falls through to the key file."""
        options = StorageOptions(directory=tmp_path)
        factories = [
            ("database", failing_factory),
            ("keyfile", lambda o: create_storage(StorageOptions(type="keyfile", directory=o.directory))),
        ]

        with caplog.at_level(logging.WARNING, logger="fhevmkit.storage.factory"):
            storage = await create_storage_with_fallback(options, factories)

        assert isinstance(storage, KeyFileStorage)
        assert "database storage not available" in caplog.text

        # Full contract still holds on the fallback
        await storage.set_item("k", "v")
        assert await storage.get_item("k") == "v"
        assert storage.size == 1
        await storage.remove_item("k")
        assert await storage.get_item("k") is None
        await storage.set_item("a", "1")
        await storage.clear()
        assert storage.size == 0

    @pytest.mark.asyncio
    async def test_smoke_test_failure_skips_backend(self, tmp_path):
        """Test a backend that constructs but cannot write is skipped."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")

        storage = await create_storage_with_fallback(StorageOptions(directory=blocker))

        assert isinstance(storage, MemoryStorage)

    @pytest.mark.asyncio
    async def test_rejected_database_is_closed(self, tmp_path):
        """Test a database that connects but fails the smoke test is closed."""
        database = SqliteStorage(db_name="half-broken", directory=tmp_path)
        database.remove_item = AsyncMock(
            side_effect=StorageError(StorageErrorCode.OPERATION_FAILED, "readonly")
        )
        database.close = Mock(wraps=database.close)

        storage = await create_storage_with_fallback(factories=[("database", lambda o: database)])

        assert isinstance(storage, MemoryStorage)
        database.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_all_fail_returns_memory(self, caplog):
        """Test memory storage is the last resort."""
        factories = [("database", failing_factory), ("keyfile", failing_factory)]

        with caplog.at_level(logging.WARNING, logger="fhevmkit.storage.factory"):
            storage = await create_storage_with_fallback(factories=factories)

        assert isinstance(storage, MemoryStorage)
        assert "falling back to memory storage" in caplog.text
        await storage.set_item("k", "v")
        assert await storage.get_item("k") == "v"

    @pytest.mark.asyncio
    async def test_smoke_test_leaves_no_test_key(self, tmp_path):
        """Test the smoke test key is removed from the chosen backend."""
        options = StorageOptions(directory=tmp_path)
        factories = [("keyfile", lambda o: create_storage(StorageOptions(type="keyfile", directory=o.directory)))]

        storage = await create_storage_with_fallback(options, factories)

        assert storage.size == 0


class TestDetectStorageType:
    """Test detect_storage_type."""

    @pytest.mark.asyncio
    async def test_database_available(self):
        """Test database is detected in a writable directory."""
        assert await detect_storage_type() == StorageType.DATABASE

    @pytest.mark.asyncio
    async def test_nothing_available(self, tmp_path):
        """Test memory is reported when no persistent backend works."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        assert await detect_storage_type(StorageOptions(directory=blocker)) == StorageType.MEMORY
