"""Async key-value storage contract shared by every backend.

Provides:
- StorageError with machine-readable codes
- Key/value validation applied before any backend I/O
- Snapshot helpers (size, keys, values, entries, to_json)
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional


class StorageErrorCode(str, Enum):
    """Failure kinds reported by storage backends."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_AVAILABLE = "NOT_AVAILABLE"
    OPERATION_FAILED = "OPERATION_FAILED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"


class StorageError(Exception):
    """Raised when a storage operation is rejected or fails."""

    def __init__(
        self,
        code: StorageErrorCode,
        message: str = "",
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message or code.value)
        self.code = code
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for logging or API responses."""
        return {
            "name": type(self).__name__,
            "code": self.code.value,
            "message": str(self),
        }


def validate_key(key: Any) -> str:
    """Reject anything that is not a non-empty string."""
    if not isinstance(key, str) or not key:
        raise StorageError(StorageErrorCode.INVALID_INPUT, "Key must be a non-empty string")
    return key


def validate_value(value: Any) -> str:
    """Reject non-string values (no implicit coercion)."""
    if not isinstance(value, str):
        raise StorageError(StorageErrorCode.INVALID_INPUT, "Value must be a string")
    return value


class StorageBackend(ABC):
    """Interface for async string key-value storage.

    Public methods validate their arguments and then delegate to the
    backend hooks (``_get``, ``_set``, ``_remove``, ``_clear``,
    ``_snapshot``), so a malformed key never reaches the backing store.

    Usage:
        storage = MemoryStorage()
        await storage.set_item("publicKey", "0x123...")
        key = await storage.get_item("publicKey")
    """

    async def get_item(self, key: str) -> Optional[str]:
        """Return the value stored under ``key`` or None."""
        validate_key(key)
        return await self._get(key)

    async def set_item(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, overwriting any previous value."""
        validate_key(key)
        validate_value(value)
        await self._set(key, value)

    async def remove_item(self, key: str) -> None:
        """Remove ``key``. Removing an absent key is not an error."""
        validate_key(key)
        await self._remove(key)

    async def clear(self) -> None:
        """Remove every entry owned by this instance."""
        await self._clear()

    @property
    def size(self) -> int:
        """Number of stored entries."""
        return len(self._snapshot())

    def keys(self) -> list[str]:
        return list(self._snapshot().keys())

    def values(self) -> list[str]:
        return list(self._snapshot().values())

    def entries(self) -> list[tuple[str, str]]:
        return list(self._snapshot().items())

    def to_json(self) -> dict[str, str]:
        """Plain dict copy of the stored data."""
        return dict(self._snapshot())

    @abstractmethod
    async def _get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    async def _set(self, key: str, value: str) -> None:
        ...

    @abstractmethod
    async def _remove(self, key: str) -> None:
        ...

    @abstractmethod
    async def _clear(self) -> None:
        ...

    @abstractmethod
    def _snapshot(self) -> dict[str, str]:
        """Return a new dict with the current contents."""
        ...
