"""Pytest configuration and fixtures."""

import pytest
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction

VAULT_ADDR = "https://vault.test"
PRIVY_BASE_URL = "https://privy.test/v1"
TURNKEY_BASE_URL = "https://turnkey.test"


@pytest.fixture
def keypair() -> Keypair:
    """Solana keypair standing in for the remote custody key."""
    return Keypair()


@pytest.fixture
def address(keypair) -> str:
    return str(keypair.pubkey())


@pytest.fixture
def api_key_pair() -> tuple[str, str, ec.EllipticCurvePrivateKey]:
    """Turnkey-style P-256 API key pair: (private hex, compressed public hex, key)."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    private_hex = private_key.private_numbers().private_value.to_bytes(32, "big").hex()
    public_hex = private_key.public_key().public_bytes(
        Encoding.X962, PublicFormat.CompressedPoint
    ).hex()
    return private_hex, public_hex, private_key


def build_transfer(payer: Keypair, signers: list[Keypair] | None = None) -> Transaction:
    """Transfer paid by `payer`; signed by `signers` (unsigned if None)."""
    recipient = Keypair().pubkey()
    instruction = transfer(
        TransferParams(from_pubkey=payer.pubkey(), to_pubkey=recipient, lamports=1_000)
    )
    message = Message.new_with_blockhash([instruction], payer.pubkey(), Hash.default())
    if signers is None:
        return Transaction.new_unsigned(message)
    return Transaction(signers, message, Hash.default())


@pytest.fixture
def unsigned_transaction(keypair) -> Transaction:
    return build_transfer(keypair)


def sign_with(transaction: Transaction, signers: list[Keypair]) -> Transaction:
    """Signed copy of `transaction` (same message, same blockhash)."""
    return Transaction(signers, transaction.message, transaction.message.recent_blockhash)
