"""Simple persistent key file storage.

Stores entries in a single JSON document, one flat object of prefixed keys
to string values. Several instances with different prefixes may share the
same file; each only sees and clears its own keys.

## Storage Format

    {
        "fhevm:publicKey": "0x123...",
        "other-app:token": "..."
    }

## Durability

- The file is rewritten atomically (temp file + rename)
- The temp file is created with 600 permissions (owner read/write only)
  and keeps them after the rename
"""

import errno
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from ..config import settings
from .base import StorageBackend, StorageError, StorageErrorCode

logger = logging.getLogger(__name__)


class KeyFileStorage(StorageBackend):
    """Key file implementation of StorageBackend.

    File reads and writes are blocking calls made on the event loop thread.
    Each read-modify-write completes without yielding, so concurrent
    coroutines sharing an instance never lose updates.

    Usage:
        storage = KeyFileStorage(prefix="myapp:")
        await storage.set_item("publicKey", "0x123...")
    """

    def __init__(
        self,
        prefix: Optional[str] = None,
        path: Optional[Union[str, Path]] = None,
    ):
        """Initialize key file storage.

        Args:
            prefix: Prefix added to every key to avoid clashes in a shared file
            path: Key file location (defaults to the configured storage directory)
        """
        self.prefix = prefix if prefix is not None else settings.storage_prefix
        self.path = Path(
            path or Path(settings.storage_directory) / settings.storage_keyfile_name
        ).expanduser()
        self.is_available = self._check_availability()

    def _check_availability(self) -> bool:
        """Check that the key file directory exists and is writable."""
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning(f"Key file directory {self.path.parent} unavailable: {e}")
            return False
        if self.path.exists():
            return os.access(self.path, os.R_OK | os.W_OK)
        return os.access(self.path.parent, os.W_OK)

    def _ensure_available(self) -> None:
        if not self.is_available:
            raise StorageError(
                StorageErrorCode.NOT_AVAILABLE,
                f"Key file storage is not available at {self.path}",
            )

    def _prefixed(self, key: str) -> str:
        return self.prefix + key

    def _read(self) -> dict[str, str]:
        """Load the whole document (empty if the file does not exist yet)."""
        self._ensure_available()
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise StorageError(
                StorageErrorCode.OPERATION_FAILED,
                f"Failed to read key file {self.path}: {e}",
                e,
            ) from e
        if not isinstance(data, dict):
            raise StorageError(
                StorageErrorCode.OPERATION_FAILED,
                f"Key file {self.path} does not contain a JSON object",
            )
        return data

    def _write(self, data: dict[str, str]) -> None:
        """Atomically replace the document."""
        self._ensure_available()
        tmp_name = None
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            code = (
                StorageErrorCode.QUOTA_EXCEEDED
                if e.errno == errno.ENOSPC
                else StorageErrorCode.OPERATION_FAILED
            )
            raise StorageError(code, f"Failed to write key file {self.path}: {e}", e) from e

    async def _get(self, key: str) -> Optional[str]:
        return self._read().get(self._prefixed(key))

    async def _set(self, key: str, value: str) -> None:
        data = self._read()
        data[self._prefixed(key)] = value
        self._write(data)

    async def _remove(self, key: str) -> None:
        data = self._read()
        if data.pop(self._prefixed(key), None) is not None:
            self._write(data)

    async def _clear(self) -> None:
        data = self._read()
        kept = {k: v for k, v in data.items() if not k.startswith(self.prefix)}
        if len(kept) != len(data):
            self._write(kept)

    def _snapshot(self) -> dict[str, str]:
        return {
            k[len(self.prefix):]: v
            for k, v in self._read().items()
            if k.startswith(self.prefix)
        }
