"""Storage construction and backend fallback.

Provides:
- create_storage: build one backend by type
- create_storage_with_fallback: database -> key file -> memory
- detect_storage_type: first backend type that passes a smoke test
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Sequence

from ..config import settings
from .base import StorageBackend, StorageError, StorageErrorCode
from .keyfile import KeyFileStorage
from .memory import MemoryStorage
from .sqlite import SqliteStorage

logger = logging.getLogger(__name__)

SMOKE_TEST_KEY = "__fhevm_storage_test__"


class StorageType(str, Enum):
    """Storage backends known to the factory."""

    DATABASE = "database"  # SQLite
    KEYFILE = "keyfile"  # JSON key file
    MEMORY = "memory"
    CUSTOM = "custom"  # caller-supplied StorageBackend


@dataclass
class StorageOptions:
    """Configuration for storage creation."""

    type: StorageType = StorageType.DATABASE
    custom: Optional[StorageBackend] = None
    db_name: str = field(default_factory=lambda: settings.storage_db_name)
    store_name: str = field(default_factory=lambda: settings.storage_store_name)
    prefix: str = field(default_factory=lambda: settings.storage_prefix)
    directory: Path = field(default_factory=lambda: Path(settings.storage_directory))

    @classmethod
    def from_settings(cls, storage_type: StorageType = StorageType.DATABASE) -> "StorageOptions":
        """Create options from the configured settings."""
        return cls(
            type=storage_type,
            db_name=settings.storage_db_name,
            store_name=settings.storage_store_name,
            prefix=settings.storage_prefix,
            directory=Path(settings.storage_directory),
        )


StorageFactory = Callable[[StorageOptions], StorageBackend]


def create_storage(options: Optional[StorageOptions] = None) -> StorageBackend:
    """Create a storage instance for ``options.type``.

    Args:
        options: Storage options (defaults to the database backend)

    Returns:
        A StorageBackend instance

    Raises:
        StorageError: INVALID_INPUT for an unknown type or a missing custom backend
    """
    options = options or StorageOptions()

    try:
        storage_type = StorageType(options.type)
    except ValueError:
        raise StorageError(
            StorageErrorCode.INVALID_INPUT,
            f"Invalid storage type: {options.type!r}. Must be one of: "
            + ", ".join(t.value for t in StorageType),
        ) from None

    if storage_type == StorageType.DATABASE:
        return SqliteStorage(
            db_name=options.db_name,
            store_name=options.store_name,
            directory=options.directory,
        )

    if storage_type == StorageType.KEYFILE:
        return KeyFileStorage(
            prefix=options.prefix,
            path=Path(options.directory) / settings.storage_keyfile_name,
        )

    if storage_type == StorageType.MEMORY:
        return MemoryStorage()

    if options.custom is None:
        raise StorageError(
            StorageErrorCode.INVALID_INPUT,
            'Custom storage implementation must be provided when type is "custom"',
        )
    return options.custom


def _factory_for(storage_type: StorageType) -> StorageFactory:
    def factory(options: StorageOptions) -> StorageBackend:
        options = StorageOptions(
            type=storage_type,
            db_name=options.db_name,
            store_name=options.store_name,
            prefix=options.prefix,
            directory=options.directory,
        )
        return create_storage(options)

    factory.__name__ = f"create_{storage_type.value}_storage"
    return factory


# Tried in order; memory is last because it cannot fail
DEFAULT_FALLBACK_CHAIN: tuple[tuple[str, StorageFactory], ...] = (
    (StorageType.DATABASE.value, _factory_for(StorageType.DATABASE)),
    (StorageType.KEYFILE.value, _factory_for(StorageType.KEYFILE)),
)


def _close(storage: Optional[StorageBackend]) -> None:
    """Release a backend's connection, if it holds one."""
    if isinstance(storage, SqliteStorage):
        storage.close()


async def smoke_test(storage: StorageBackend) -> None:
    """Write and delete a test key; raises if the backend is unusable."""
    await storage.set_item(SMOKE_TEST_KEY, "test")
    await storage.remove_item(SMOKE_TEST_KEY)


async def create_storage_with_fallback(
    options: Optional[StorageOptions] = None,
    factories: Optional[Sequence[tuple[str, StorageFactory]]] = None,
) -> StorageBackend:
    """Create the best available storage.

    Tries each factory in order, constructing the backend and running a
    write/delete smoke test. The first backend that passes is returned.
    If every factory fails, an in-memory storage is returned.

    Args:
        options: Storage options shared by all candidates
        factories: Ordered (name, factory) pairs (default: database, key file)

    Returns:
        A working StorageBackend (possibly non-persistent)
    """
    options = options or StorageOptions()
    chain = DEFAULT_FALLBACK_CHAIN if factories is None else tuple(factories)

    for name, factory in chain:
        storage = None
        try:
            storage = factory(options)
            await smoke_test(storage)
        except Exception as e:
            logger.warning(f"{name} storage not available, trying next backend: {e}")
            _close(storage)
            continue
        logger.info(f"Using {name} storage")
        return storage

    logger.warning("No persistent storage available, falling back to memory storage")
    return MemoryStorage()


async def detect_storage_type(options: Optional[StorageOptions] = None) -> StorageType:
    """Return the first storage type that passes the smoke test.

    Test data is removed again, and test connections are closed.
    """
    options = options or StorageOptions()

    for name, factory in DEFAULT_FALLBACK_CHAIN:
        storage = None
        try:
            storage = factory(options)
            await smoke_test(storage)
        except Exception as e:
            logger.debug(f"{name} storage not available: {e}")
            continue
        finally:
            _close(storage)
        return StorageType(name)

    return StorageType.MEMORY
