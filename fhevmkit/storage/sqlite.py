"""SQLite-backed persistent storage.

The preferred backend for durable credential storage:
- One database file per ``db_name`` under the storage directory
- One table per ``store_name`` (key TEXT PRIMARY KEY, value TEXT)
- Connection opened lazily on first use and reused afterwards
"""

import logging
import re
import sqlite3
from pathlib import Path
from typing import Optional, Union

from ..config import settings
from .base import StorageBackend, StorageError, StorageErrorCode

logger = logging.getLogger(__name__)

# Table names are interpolated into SQL, so they must be plain identifiers
_STORE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

MEMORY_DB = ":memory:"


class SqliteStorage(StorageBackend):
    """Persistent storage in a local SQLite database.

    The async methods run their queries synchronously on the calling thread,
    so each call blocks the event loop for the duration of one local query.
    Each operation completes without yielding to other coroutines.

    Usage:
        storage = SqliteStorage(db_name="my-app", store_name="keys")
        await storage.set_item("publicKey", "0x123...")
    """

    def __init__(
        self,
        db_name: Optional[str] = None,
        store_name: Optional[str] = None,
        directory: Optional[Union[str, Path]] = None,
    ):
        """Initialize SQLite storage.

        Args:
            db_name: Database name, used as the file stem (":memory:" for a
                private in-process database)
            store_name: Table holding the entries
            directory: Directory for the database file
        """
        self.db_name = db_name or settings.storage_db_name
        self.store_name = store_name or settings.storage_store_name
        self.directory = Path(directory or settings.storage_directory).expanduser()
        self._conn: Optional[sqlite3.Connection] = None

        if not _STORE_NAME_PATTERN.match(self.store_name):
            raise StorageError(
                StorageErrorCode.INVALID_INPUT,
                f"Invalid store name: {self.store_name!r}",
            )

    @property
    def path(self) -> Union[str, Path]:
        """Location of the database file."""
        if self.db_name == MEMORY_DB:
            return MEMORY_DB
        return self.directory / f"{self.db_name}.sqlite3"

    def _connect(self) -> sqlite3.Connection:
        """Open the database and create the table if needed."""
        if self._conn is not None:
            return self._conn

        try:
            if self.db_name != MEMORY_DB:
                self.directory.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.path), isolation_level=None)
            conn.execute(
                f'CREATE TABLE IF NOT EXISTS "{self.store_name}" '
                "(key TEXT PRIMARY KEY, value TEXT NOT NULL)"
            )
        except (OSError, sqlite3.Error) as e:
            raise StorageError(
                StorageErrorCode.NOT_AVAILABLE,
                f"Failed to initialize SQLite storage at {self.path}: {e}",
                e,
            ) from e

        logger.debug(f"Opened SQLite storage {self.path} (table {self.store_name})")
        self._conn = conn
        return conn

    def _execute(self, sql: str, params: tuple = ()) -> list[tuple]:
        conn = self._connect()
        try:
            return conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            if getattr(e, "sqlite_errorname", "") == "SQLITE_FULL":
                raise StorageError(
                    StorageErrorCode.QUOTA_EXCEEDED,
                    "Storage quota exceeded. Free up disk space or clear old data.",
                    e,
                ) from e
            raise StorageError(
                StorageErrorCode.OPERATION_FAILED,
                f"SQLite operation failed: {e}",
                e,
            ) from e

    async def _get(self, key: str) -> Optional[str]:
        rows = self._execute(
            f'SELECT value FROM "{self.store_name}" WHERE key = ?', (key,)
        )
        return rows[0][0] if rows else None

    async def _set(self, key: str, value: str) -> None:
        self._execute(
            f'INSERT INTO "{self.store_name}"(key, value) VALUES(?, ?) '
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )

    async def _remove(self, key: str) -> None:
        self._execute(f'DELETE FROM "{self.store_name}" WHERE key = ?', (key,))

    async def _clear(self) -> None:
        self._execute(f'DELETE FROM "{self.store_name}"')

    def _snapshot(self) -> dict[str, str]:
        rows = self._execute(f'SELECT key, value FROM "{self.store_name}" ORDER BY rowid')
        return {key: value for key, value in rows}

    def close(self) -> None:
        """Close the underlying connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
