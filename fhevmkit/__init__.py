"""fhevmkit: resilience helpers for FHEVM clients."""

__version__ = "0.1.0"

from .resilience import RetryPolicy, retry, retry_with_progress
from .security import DecryptionCredential, SignatureCache
from .storage import StorageBackend, StorageError, create_storage_with_fallback

__all__ = [
    "retry",
    "retry_with_progress",
    "RetryPolicy",
    "SignatureCache",
    "DecryptionCredential",
    "StorageBackend",
    "StorageError",
    "create_storage_with_fallback",
]
