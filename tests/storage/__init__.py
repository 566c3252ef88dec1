"""Tests for storage module."""

import pytest


def test_storage_imports():
    """Test that storage module can be imported."""
    from fhevmkit.storage import (
        StorageBackend,
        MemoryStorage,
        SqliteStorage,
        KeyFileStorage,
        create_storage_with_fallback,
    )

    assert StorageBackend is not None
    assert MemoryStorage is not None
    assert SqliteStorage is not None
    assert KeyFileStorage is not None
    assert create_storage_with_fallback is not None
