"""Tests for security module."""

import pytest


def test_security_imports():
    """Test that security module can be imported."""
    from fhevmkit.security import (
        SignatureCache,
        DecryptionCredential,
        CredentialStore,
        EthAccountSigner,
        is_signature_valid,
    )

    assert SignatureCache is not None
    assert DecryptionCredential is not None
    assert CredentialStore is not None
    assert EthAccountSigner is not None
    assert is_signature_valid is not None
