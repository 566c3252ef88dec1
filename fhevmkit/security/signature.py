"""Decryption credential types and collaborator protocols.

A decryption credential bundles a keypair from the FHEVM instance with the
user's EIP-712 signature authorizing decryption for a set of contracts. It
stays valid for ``duration_days`` from ``start_timestamp``.
"""

import inspect
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

SECONDS_PER_DAY = 24 * 60 * 60

# Wallet libraries derive the domain type themselves and reject it in ``types``
EIP712_DOMAIN_TYPE = "EIP712Domain"


@dataclass(frozen=True)
class Keypair:
    """Asymmetric keypair issued by the FHEVM instance (hex strings)."""

    public_key: str
    private_key: str

    @classmethod
    def coerce(cls, value: Union["Keypair", Mapping[str, str]]) -> "Keypair":
        """Accept a Keypair or an SDK-style ``{"publicKey", "privateKey"}`` mapping."""
        if isinstance(value, cls):
            return value
        return cls(public_key=value["publicKey"], private_key=value["privateKey"])


@dataclass(frozen=True)
class EIP712Payload:
    """Structured data to be signed (EIP-712)."""

    domain: dict[str, Any]
    types: dict[str, list[dict[str, str]]]
    message: dict[str, Any]
    primary_type: Optional[str] = None

    @classmethod
    def coerce(cls, value: Union["EIP712Payload", Mapping[str, Any]]) -> "EIP712Payload":
        """Accept an EIP712Payload or a ``{"domain", "types", "message"}`` mapping."""
        if isinstance(value, cls):
            return value
        return cls(
            domain=dict(value["domain"]),
            types=dict(value["types"]),
            message=dict(value["message"]),
            primary_type=value.get("primaryType"),
        )

    def signing_types(self) -> dict[str, list[dict[str, str]]]:
        """Types without the EIP712Domain entry, as signers expect them."""
        return {name: fields for name, fields in self.types.items() if name != EIP712_DOMAIN_TYPE}


@dataclass(frozen=True)
class DecryptionCredential:
    """Signed, time-bounded authorization to decrypt."""

    public_key: str
    private_key: str
    signature: str
    contract_addresses: tuple[str, ...]
    user_address: str
    start_timestamp: int  # Unix seconds
    duration_days: int

    @property
    def expires_at(self) -> int:
        """Unix timestamp at which the credential stops being valid."""
        return self.start_timestamp + self.duration_days * SECONDS_PER_DAY

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the SDK's camelCase field names."""
        return {
            "publicKey": self.public_key,
            "privateKey": self.private_key,
            "signature": self.signature,
            "contractAddresses": list(self.contract_addresses),
            "userAddress": self.user_address,
            "startTimestamp": self.start_timestamp,
            "durationDays": self.duration_days,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecryptionCredential":
        """Inverse of to_dict(). Raises KeyError/TypeError/ValueError on bad data."""
        addresses = data["contractAddresses"]
        if isinstance(addresses, str) or not isinstance(addresses, Sequence):
            raise TypeError("contractAddresses must be a list")
        return cls(
            public_key=str(data["publicKey"]),
            private_key=str(data["privateKey"]),
            signature=str(data["signature"]),
            contract_addresses=tuple(str(a) for a in addresses),
            user_address=str(data["userAddress"]),
            start_timestamp=int(data["startTimestamp"]),
            duration_days=int(data["durationDays"]),
        )


def is_signature_valid(credential: DecryptionCredential, now: Optional[float] = None) -> bool:
    """Check that ``now`` (Unix seconds, default current time) is before expiry."""
    if now is None:
        now = time.time()
    return int(now) < credential.expires_at


@runtime_checkable
class CredentialIssuer(Protocol):
    """FHEVM instance methods needed to issue a decryption credential.

    Both methods may be plain or async; SDK-style dict results are accepted.
    """

    def generate_keypair(self) -> Union[Keypair, Mapping[str, str], Awaitable[Any]]:
        ...

    def create_signing_payload(
        self,
        public_key: str,
        contract_addresses: list[str],
        start_timestamp: int,
        duration_days: int,
    ) -> Union[EIP712Payload, Mapping[str, Any], Awaitable[Any]]:
        ...


@runtime_checkable
class TypedDataSigner(Protocol):
    """Wallet able to produce EIP-712 signatures."""

    address: str

    def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        message: dict[str, Any],
    ) -> Union[str, Awaitable[str]]:
        ...


async def resolve(value: Any) -> Any:
    """Await ``value`` if it is awaitable."""
    if inspect.isawaitable(value):
        return await value
    return value
