"""In-memory storage backend."""

from typing import Optional

from .base import StorageBackend, validate_key, validate_value


class MemoryStorage(StorageBackend):
    """In-memory implementation of StorageBackend.

    Data lives in a private dict and is lost when the instance goes away.
    Used for tests, for isolated per-instance state, and as the last
    resort of the fallback chain (it cannot fail to initialize).
    """

    def __init__(self, initial_data: Optional[dict[str, str]] = None):
        self._store: dict[str, str] = {}
        for key, value in (initial_data or {}).items():
            self._store[validate_key(key)] = validate_value(value)

    async def _get(self, key: str) -> Optional[str]:
        return self._store.get(key)

    async def _set(self, key: str, value: str) -> None:
        self._store[key] = value

    async def _remove(self, key: str) -> None:
        self._store.pop(key, None)

    async def _clear(self) -> None:
        self._store.clear()

    def _snapshot(self) -> dict[str, str]:
        return dict(self._store)
