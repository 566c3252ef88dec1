"""eth-account wallet adapter for EIP-712 signing."""

import logging
from typing import Any

from eth_account import Account

logger = logging.getLogger(__name__)


class EthAccountSigner:
    """TypedDataSigner backed by a local eth-account key.

    Usage:
        signer = EthAccountSigner.from_key(os.environ["PRIVATE_KEY"])
        credential = await cache.get_or_create(instance, signer, contract_address)
    """

    def __init__(self, account: Any):
        """Initialize signer.

        Args:
            account: An eth_account LocalAccount (or anything with
                ``address`` and ``sign_typed_data``)
        """
        self.account = account
        self.address: str = account.address

    @classmethod
    def from_key(cls, private_key: str) -> "EthAccountSigner":
        """Create a signer from a hex private key."""
        return cls(Account.from_key(private_key))

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        message: dict[str, Any],
    ) -> str:
        """Sign EIP-712 data and return the 0x-prefixed signature."""
        signed = self.account.sign_typed_data(
            domain_data=domain,
            message_types=types,
            message_data=message,
        )
        signature = bytes(signed.signature).hex()
        logger.debug(f"Signed typed data for {self.address}")
        return "0x" + signature
