"""Decryption credential management for fhevmkit.

This module provides:
- Decryption credential types and collaborator protocols
- Single-slot signature cache with time-bounded validity
- Credential persistence on top of the storage layer
- eth-account signer adapter
"""

from .credential_store import CredentialStore, credential_key
from .signature import (
    CredentialIssuer,
    DecryptionCredential,
    EIP712Payload,
    Keypair,
    TypedDataSigner,
    is_signature_valid,
)
from .signature_cache import SignatureCache
from .signer import EthAccountSigner

__all__ = [
    "DecryptionCredential",
    "Keypair",
    "EIP712Payload",
    "CredentialIssuer",
    "TypedDataSigner",
    "is_signature_valid",
    "SignatureCache",
    "CredentialStore",
    "credential_key",
    "EthAccountSigner",
]
