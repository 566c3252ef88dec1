"""Pytest configuration and fixtures for fhevmkit tests."""

import pytest
from unittest.mock import Mock

from fhevmkit.config import settings

USER_ADDRESS = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CONTRACT_ADDRESS = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


@pytest.fixture(autouse=True)
def isolated_storage_directory(tmp_path, monkeypatch):
    """Keep every backend's files inside the test's temp directory."""
    directory = tmp_path / "fhevm"
    monkeypatch.setattr(settings, "storage_directory", directory)
    return directory


class FakeClock:
    """Controllable Unix clock."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    """Fake clock starting at a fixed timestamp."""
    return FakeClock()


@pytest.fixture
def issuer():
    """Mock FHEVM instance with SDK-style dict results."""
    instance = Mock()
    instance.generate_keypair = Mock(
        return_value={"publicKey": "0xpub", "privateKey": "0xpriv"}
    )

    def create_signing_payload(public_key, contract_addresses, start_timestamp, duration_days):
        return {
            "domain": {
                "name": "Decryption",
                "version": "1",
                "chainId": 11155111,
                "verifyingContract": CONTRACT_ADDRESS,
            },
            "types": {
                "EIP712Domain": [{"name": "name", "type": "string"}],
                "UserDecryptRequestVerification": [
                    {"name": "publicKey", "type": "bytes"},
                    {"name": "contractAddresses", "type": "address[]"},
                    {"name": "startTimestamp", "type": "uint256"},
                    {"name": "durationDays", "type": "uint256"},
                ],
            },
            "message": {
                "publicKey": public_key,
                "contractAddresses": contract_addresses,
                "startTimestamp": start_timestamp,
                "durationDays": duration_days,
            },
        }

    instance.create_signing_payload = Mock(side_effect=create_signing_payload)
    return instance


@pytest.fixture
def signer():
    """Mock wallet returning a fixed signature."""
    wallet = Mock()
    wallet.address = USER_ADDRESS
    wallet.sign_typed_data = Mock(return_value="0xsignature")
    return wallet
