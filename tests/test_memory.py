"""Tests for the in-memory signer."""

import json

import base58
import pytest
from solders.keypair import Keypair

from custody_signers.signing.base import ConfigError, RemoteSigner, SignerType
from custody_signers.signing.memory import MemorySigner, keypair_from_string


class TestKeypairFromString:
    """Tests for private key parsing."""

    def test_base58(self, keypair):
        encoded = base58.b58encode(bytes(keypair)).decode()
        assert keypair_from_string(encoded) == keypair

    def test_byte_array(self, keypair):
        assert keypair_from_string(json.dumps(list(bytes(keypair)))) == keypair

    def test_keypair_file(self, keypair, tmp_path):
        path = tmp_path / "id.json"
        path.write_text(json.dumps(list(bytes(keypair))))

        assert keypair_from_string(str(path)) == keypair

    @pytest.mark.parametrize(
        "value",
        ["", "   ", "[1, 2, 3]", "[not json", "0OIl", "3" * 20],
    )
    def test_invalid(self, value):
        with pytest.raises(ConfigError):
            keypair_from_string(value)

    def test_file_without_array(self, tmp_path):
        path = tmp_path / "id.json"
        path.write_text(json.dumps({"key": "value"}))

        with pytest.raises(ConfigError, match="byte array"):
            keypair_from_string(str(path))


class TestMemorySigner:
    """Tests for MemorySigner."""

    def test_properties(self, keypair, address):
        signer = MemorySigner(keypair)

        assert signer.signer_type == SignerType.MEMORY
        assert signer.address == address
        assert isinstance(signer, RemoteSigner)
        assert base58.b58encode(bytes(keypair)).decode() not in repr(signer)

    def test_from_bytes(self, keypair, address):
        assert MemorySigner.from_bytes(bytes(keypair)).address == address

    def test_from_bytes_invalid(self):
        with pytest.raises(ConfigError):
            MemorySigner.from_bytes(b"\x01" * 10)

    @pytest.mark.asyncio
    async def test_sign_messages(self, keypair, address):
        signer = MemorySigner.from_private_key_string(base58.b58encode(bytes(keypair)).decode())
        messages = [b"one", b"two"]

        records = await signer.sign_messages(messages)

        assert len(records) == 2
        for message, record in zip(messages, records):
            signature = keypair.sign_message(message)
            assert record == {address: bytes(signature)}
            assert signature.verify(keypair.pubkey(), message)

    @pytest.mark.asyncio
    async def test_sign_transactions(self, keypair, address, unsigned_transaction):
        signer = MemorySigner(keypair)

        records = await signer.sign_transactions([unsigned_transaction])

        expected = keypair.sign_message(unsigned_transaction.message_data())
        assert records[0][address] == bytes(expected)

    @pytest.mark.asyncio
    async def test_is_available(self, keypair):
        assert await MemorySigner(keypair).is_available() is True

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await MemorySigner(Keypair()).sign_messages([]) == []
