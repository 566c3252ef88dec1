"""Cached decryption signature.

Signing a decryption request prompts the user's wallet, so the signed
credential is kept and reused until it expires (365 days by default).

Provides:
- Single-slot credential cache, most recent credential wins
- Generation via an injected FHEVM issuer and wallet signer
- Optional persistence through a CredentialStore
- Optional de-duplication of concurrent generations (single_flight)

Two concurrent get_or_create() calls that both find the slot empty will each
sign and the last one to finish is cached, unless single_flight is enabled.
Both credentials are valid; the cost is a duplicate wallet prompt.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from ..config import settings
from .credential_store import CredentialStore
from .signature import (
    CredentialIssuer,
    DecryptionCredential,
    EIP712Payload,
    Keypair,
    TypedDataSigner,
    is_signature_valid,
    resolve,
)

logger = logging.getLogger(__name__)


class SignatureCache:
    """Holds at most one decryption credential.

    Usage:
        cache = SignatureCache()
        credential = await cache.get_or_create(instance, wallet, contract_address)
        ...
        cache.clear()  # on shutdown or between tests
    """

    def __init__(
        self,
        duration_days: Optional[int] = None,
        store: Optional[CredentialStore] = None,
        single_flight: bool = False,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize signature cache.

        Args:
            duration_days: Validity window for new credentials (default from settings)
            store: Optional persistent store consulted on a miss and updated on generation
            single_flight: Share one in-flight generation between concurrent callers
            clock: Source of the current Unix time in seconds
        """
        self.duration_days = (
            duration_days if duration_days is not None else settings.signature_duration_days
        )
        self.store = store
        self.single_flight = single_flight
        self._clock = clock
        self._cached: Optional[DecryptionCredential] = None
        self._pending: Optional[asyncio.Task] = None
        # Bumped by clear(); generations started earlier must not repopulate the slot
        self._generation = 0

    @property
    def cached(self) -> Optional[DecryptionCredential]:
        """The credential currently held, valid or not."""
        return self._cached

    def is_valid(self, credential: DecryptionCredential) -> bool:
        """True while the cache clock is before the credential's expiry."""
        return is_signature_valid(credential, self._clock())

    def clear(self) -> None:
        """Drop the cached credential and abandon any generation in flight.

        A generation already running still completes for its caller, but its
        credential is neither cached nor persisted.
        """
        self._cached = None
        self._pending = None
        self._generation += 1
        logger.debug("Signature cache cleared")

    async def get_or_create(
        self,
        issuer: CredentialIssuer,
        signer: TypedDataSigner,
        contract_address: str,
    ) -> DecryptionCredential:
        """Return the cached credential or sign a new one.

        Args:
            issuer: FHEVM instance issuing keypairs and EIP-712 payloads
            signer: Wallet producing the EIP-712 signature
            contract_address: Contract the new credential authorizes

        Returns:
            A valid DecryptionCredential

        Raises:
            Exception: Whatever the issuer or signer raised (not retried here)
        """
        cached = self._cached
        if cached is not None and self.is_valid(cached):
            logger.debug("Using cached decryption signature (still valid)")
            return cached

        generation = self._generation
        if not self.single_flight:
            return await self._refresh(issuer, signer, contract_address, generation)

        if self._pending is None or self._pending.done():
            self._pending = asyncio.ensure_future(
                self._refresh(issuer, signer, contract_address, generation)
            )
        return await asyncio.shield(self._pending)

    async def _refresh(
        self,
        issuer: CredentialIssuer,
        signer: TypedDataSigner,
        contract_address: str,
        generation: int,
    ) -> DecryptionCredential:
        if self.store is not None:
            stored = await self._load_stored(signer.address, contract_address)
            if stored is not None:
                if generation == self._generation:
                    self._cached = stored
                return stored

        credential = await self._generate(issuer, signer, contract_address)
        if generation != self._generation:
            logger.debug("Signature cache cleared during generation, discarding result")
            return credential
        self._cached = credential

        if self.store is not None:
            try:
                await self.store.save(credential)
            except Exception as e:
                logger.warning(f"Failed to persist decryption signature: {e}")

        return credential

    async def _load_stored(
        self, user_address: str, contract_address: str
    ) -> Optional[DecryptionCredential]:
        try:
            return await self.store.load(user_address, [contract_address], now=self._clock())
        except Exception as e:
            logger.warning(f"Failed to load stored decryption signature: {e}")
            return None

    async def _generate(
        self,
        issuer: CredentialIssuer,
        signer: TypedDataSigner,
        contract_address: str,
    ) -> DecryptionCredential:
        logger.info("Generating new decryption signature")

        keypair = Keypair.coerce(await resolve(issuer.generate_keypair()))
        start_timestamp = int(self._clock())
        contract_addresses = [contract_address]

        payload = EIP712Payload.coerce(
            await resolve(
                issuer.create_signing_payload(
                    keypair.public_key,
                    contract_addresses,
                    start_timestamp,
                    self.duration_days,
                )
            )
        )
        signature = await resolve(
            signer.sign_typed_data(payload.domain, payload.signing_types(), payload.message)
        )

        credential = DecryptionCredential(
            public_key=keypair.public_key,
            private_key=keypair.private_key,
            signature=signature,
            contract_addresses=tuple(contract_addresses),
            user_address=signer.address,
            start_timestamp=start_timestamp,
            duration_days=self.duration_days,
        )

        expiry = datetime.fromtimestamp(credential.expires_at, tz=timezone.utc)
        logger.info(f"Signature cached (valid until {expiry.isoformat()})")
        return credential
