"""Async key-value storage with backend fallback.

This module provides:
- The StorageBackend contract and StorageError
- Memory, SQLite, and key file backends
- Factory helpers with database -> key file -> memory fallback
"""

from .base import StorageBackend, StorageError, StorageErrorCode
from .factory import (
    StorageOptions,
    StorageType,
    create_storage,
    create_storage_with_fallback,
    detect_storage_type,
)
from .keyfile import KeyFileStorage
from .memory import MemoryStorage
from .sqlite import SqliteStorage

__all__ = [
    "StorageBackend",
    "StorageError",
    "StorageErrorCode",
    "MemoryStorage",
    "SqliteStorage",
    "KeyFileStorage",
    "StorageOptions",
    "StorageType",
    "create_storage",
    "create_storage_with_fallback",
    "detect_storage_type",
]
