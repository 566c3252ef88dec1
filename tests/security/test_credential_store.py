"""Tests for credential persistence."""

import json

import pytest

from fhevmkit.security import CredentialStore, DecryptionCredential, credential_key
from fhevmkit.storage import MemoryStorage, SqliteStorage

USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
VAULT = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
NOW = 1_700_000_000


def make_credential(contracts=(TOKEN,), start=NOW, days=365):
    return DecryptionCredential(
        public_key="0xpub",
        private_key="0xpriv",
        signature="0xsig",
        contract_addresses=tuple(contracts),
        user_address=USER,
        start_timestamp=start,
        duration_days=days,
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


class TestCredentialKey:
    """Test storage key derivation."""

    def test_case_and_order_insensitive(self):
        assert credential_key(USER, [TOKEN, VAULT]) == credential_key(
            USER.lower(), [VAULT.lower(), TOKEN]
        )

    def test_duplicates_ignored(self):
        assert credential_key(USER, [TOKEN, TOKEN]) == credential_key(USER, [TOKEN])

    def test_distinct_scopes(self):
        assert credential_key(USER, [TOKEN]) != credential_key(USER, [VAULT])

    def test_prefix(self):
        assert credential_key(USER, [TOKEN]).startswith("fhevm.decryption-signature:")


class TestCredentialStore:
    """Test save/load/remove."""

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        credential = make_credential()
        await store.save(credential)
        assert await store.load(USER, [TOKEN], now=NOW + 60) == credential

    @pytest.mark.asyncio
    async def test_load_missing(self, store):
        assert await store.load(USER, [TOKEN], now=NOW) is None

    @pytest.mark.asyncio
    async def test_stored_as_json(self, store, storage):
        """Test the stored value is the camelCase JSON document."""
        await store.save(make_credential())
        raw = await storage.get_item(credential_key(USER, [TOKEN]))
        assert json.loads(raw)["userAddress"] == USER

    @pytest.mark.asyncio
    async def test_expired_is_removed(self, store, storage):
        """Test an expired credential is deleted on load."""
        await store.save(make_credential(days=1))

        assert await store.load(USER, [TOKEN], now=NOW + 24 * 60 * 60) is None
        assert storage.size == 0

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_removed(self, store, storage, caplog):
        """Test unreadable entries are discarded with a warning."""
        key = credential_key(USER, [TOKEN])
        await storage.set_item(key, "{not json")

        assert await store.load(USER, [TOKEN], now=NOW) is None
        assert await storage.get_item(key) is None
        assert "Discarding unreadable credential" in caplog.text

    @pytest.mark.asyncio
    async def test_incomplete_entry_is_removed(self, store, storage):
        key = credential_key(USER, [TOKEN])
        await storage.set_item(key, json.dumps({"publicKey": "0xpub"}))

        assert await store.load(USER, [TOKEN], now=NOW) is None
        assert storage.size == 0

    @pytest.mark.asyncio
    async def test_remove(self, store, storage):
        await store.save(make_credential())
        await store.remove(USER, [TOKEN])
        assert storage.size == 0

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        """Test credentials persist in a database across store instances."""
        first = SqliteStorage(db_name="creds", directory=tmp_path)
        await CredentialStore(first).save(make_credential(contracts=(TOKEN, VAULT)))
        first.close()

        second = SqliteStorage(db_name="creds", directory=tmp_path)
        loaded = await CredentialStore(second).load(USER, [VAULT, TOKEN], now=NOW)
        second.close()

        assert loaded is not None
        assert loaded.contract_addresses == (TOKEN, VAULT)
