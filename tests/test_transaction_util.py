"""Tests for transaction signing helpers."""

import base64

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from custody_signers.signing.base import SigningFailed
from custody_signers.signing.memory import MemorySigner
from custody_signers.signing.transaction_util import (
    add_signature,
    message_bytes,
    serialize_transaction,
    sign_and_serialize,
    signing_position,
)


def build_two_signer_transaction(payer: Keypair, cosigner: Keypair) -> Transaction:
    instruction = transfer(
        TransferParams(from_pubkey=cosigner.pubkey(), to_pubkey=Keypair().pubkey(), lamports=5)
    )
    message = Message.new_with_blockhash([instruction], payer.pubkey(), Hash.default())
    return Transaction.new_unsigned(message)


class TestMessageBytes:
    def test_legacy(self, unsigned_transaction):
        assert message_bytes(unsigned_transaction) == bytes(unsigned_transaction.message_data())

    def test_versioned(self, keypair):
        instruction = transfer(
            TransferParams(from_pubkey=keypair.pubkey(), to_pubkey=Keypair().pubkey(), lamports=1)
        )
        message = MessageV0.try_compile(keypair.pubkey(), [instruction], [], Hash.default())
        transaction = VersionedTransaction(message, [keypair])

        assert message_bytes(transaction) == bytes(to_bytes_versioned(message))


class TestAddSignature:
    """Tests for signature placement."""

    def test_places_in_signer_slot(self, keypair, unsigned_transaction):
        signature = keypair.sign_message(unsigned_transaction.message_data())

        signed = add_signature(unsigned_transaction, keypair.pubkey(), bytes(signature))

        assert signed.signatures[0] == signature
        signed.verify()

    def test_partial_signing_keeps_other_slots(self, keypair):
        cosigner = Keypair()
        transaction = build_two_signer_transaction(keypair, cosigner)
        message = transaction.message_data()

        partial = add_signature(transaction, cosigner.pubkey(), bytes(cosigner.sign_message(message)))

        assert signing_position(partial, cosigner.pubkey()) == 1
        assert partial.signatures[0] == Signature.default()
        assert partial.signatures[1] == cosigner.sign_message(message)

        full = add_signature(partial, keypair.pubkey(), bytes(keypair.sign_message(message)))
        full.verify()

    def test_not_a_signer(self, unsigned_transaction):
        with pytest.raises(SigningFailed, match="not found"):
            add_signature(unsigned_transaction, Keypair().pubkey(), b"\x01" * 64)

    def test_wrong_length(self, keypair, unsigned_transaction):
        with pytest.raises(SigningFailed, match="Invalid signature length"):
            add_signature(unsigned_transaction, keypair.pubkey(), b"\x01" * 63)


class TestSignAndSerialize:
    @pytest.mark.asyncio
    async def test_round_trip(self, keypair, unsigned_transaction):
        signer = MemorySigner(keypair)

        wire, signature = await sign_and_serialize(signer, unsigned_transaction)

        decoded = Transaction.from_bytes(base64.b64decode(wire))
        assert decoded.signatures[0] == signature
        decoded.verify()

    @pytest.mark.asyncio
    async def test_partial_transaction(self, keypair):
        cosigner = Keypair()
        transaction = build_two_signer_transaction(keypair, cosigner)

        wire, _ = await MemorySigner(cosigner).sign_partial_transaction(transaction)

        decoded = Transaction.from_bytes(base64.b64decode(wire))
        assert decoded.signatures[0] == Signature.default()
        assert decoded.signatures[1] != Signature.default()

    def test_serialize(self, unsigned_transaction):
        assert base64.b64decode(serialize_transaction(unsigned_transaction)) == bytes(
            unsigned_transaction
        )
