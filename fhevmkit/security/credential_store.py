"""Persistence of decryption credentials in a StorageBackend."""

import json
import logging
from typing import Iterable, Optional

from ..storage.base import StorageBackend
from .signature import DecryptionCredential, is_signature_valid

logger = logging.getLogger(__name__)

KEY_PREFIX = "fhevm.decryption-signature"


def credential_key(user_address: str, contract_addresses: Iterable[str]) -> str:
    """Storage key for a user and a set of contracts (order-insensitive)."""
    contracts = ",".join(sorted({a.lower() for a in contract_addresses}))
    return f"{KEY_PREFIX}:{user_address.lower()}:{contracts}"


class CredentialStore:
    """Saves and loads credentials as JSON documents.

    Usage:
        store = CredentialStore(await create_storage_with_fallback())
        await store.save(credential)
        credential = await store.load(user_address, [contract_address])
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    async def save(self, credential: DecryptionCredential) -> None:
        """Store ``credential``, replacing any previous one for the same scope."""
        key = credential_key(credential.user_address, credential.contract_addresses)
        await self.storage.set_item(key, json.dumps(credential.to_dict()))

    async def load(
        self,
        user_address: str,
        contract_addresses: Iterable[str],
        now: Optional[float] = None,
    ) -> Optional[DecryptionCredential]:
        """Return the stored credential if present and still valid.

        Expired or unreadable entries are removed and None is returned.
        """
        key = credential_key(user_address, contract_addresses)
        raw = await self.storage.get_item(key)
        if raw is None:
            return None

        try:
            credential = DecryptionCredential.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError) as e:
            logger.warning(f"Discarding unreadable credential {key}: {e}")
            await self.storage.remove_item(key)
            return None

        if not is_signature_valid(credential, now):
            logger.info(f"Stored credential {key} expired, removing")
            await self.storage.remove_item(key)
            return None

        return credential

    async def remove(self, user_address: str, contract_addresses: Iterable[str]) -> None:
        await self.storage.remove_item(credential_key(user_address, contract_addresses))
