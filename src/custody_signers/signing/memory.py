"""Memory signing backend.

Holds a Solana keypair in process memory. Suitable for:
- Development/testing
- Fee payers and hot wallets with small balances

WARNING: The private key lives in memory. Use Vault, Privy or Turnkey for
keys that control significant funds.
"""

import json
import logging
from pathlib import Path
from typing import Sequence

import base58
from solders.keypair import Keypair

from custody_signers.signing.base import ConfigError, SignatureRecord, SignerType, SolanaTransaction
from custody_signers.signing.codec import create_signature_record
from custody_signers.signing.transaction_util import message_bytes, sign_and_serialize

logger = logging.getLogger(__name__)

KEYPAIR_LENGTH = 64


def _keypair_from_byte_list(values: list) -> Keypair:
    if len(values) != KEYPAIR_LENGTH or not all(isinstance(v, int) and 0 <= v <= 255 for v in values):
        raise ConfigError(f"Keypair array must contain {KEYPAIR_LENGTH} byte values")
    try:
        return Keypair.from_bytes(bytes(values))
    except ValueError as e:
        raise ConfigError("Invalid private key bytes") from e


def keypair_from_string(private_key: str) -> Keypair:
    """Parse a keypair from one of the common Solana formats.

    Accepted formats:
    - Base58 encoded 64-byte keypair
    - Byte array: "[41, 99, 180, ...]"
    - Path to a JSON keypair file (as written by `solana-keygen`)

    Raises:
        ConfigError: If the value matches none of the formats
    """
    value = private_key.strip()
    if not value:
        raise ConfigError("Missing private key")

    if value.startswith("["):
        try:
            return _keypair_from_byte_list(json.loads(value))
        except json.JSONDecodeError as e:
            raise ConfigError("Invalid keypair byte array") from e

    path = Path(value).expanduser()
    if path.is_file():
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Failed to read keypair file {path}") from e
        if not isinstance(data, list):
            raise ConfigError(f"Keypair file {path} must contain a byte array")
        return _keypair_from_byte_list(data)

    try:
        raw = base58.b58decode(value)
    except ValueError as e:
        raise ConfigError("Invalid private key format") from e
    return _keypair_from_byte_list(list(raw))


class MemorySigner:
    """Local signer backed by an in-memory solders Keypair."""

    signer_type = SignerType.MEMORY

    def __init__(self, keypair: Keypair):
        self._keypair = keypair
        self._address = str(keypair.pubkey())

    @classmethod
    def from_private_key_string(cls, private_key: str) -> "MemorySigner":
        """Build from base58, byte-array text, or a keypair file path."""
        signer = cls(keypair_from_string(private_key))
        logger.info(f"Loaded memory keypair for {signer.address}")
        return signer

    @classmethod
    def from_bytes(cls, private_key: bytes) -> "MemorySigner":
        """Build from 64 raw keypair bytes."""
        if len(private_key) != KEYPAIR_LENGTH:
            raise ConfigError(f"Keypair must be {KEYPAIR_LENGTH} bytes, got {len(private_key)}")
        try:
            return cls(Keypair.from_bytes(private_key))
        except ValueError as e:
            raise ConfigError(f"Invalid private key bytes: {e}") from e

    @property
    def address(self) -> str:
        return self._address

    def _sign(self, data: bytes) -> SignatureRecord:
        signature = bytes(self._keypair.sign_message(data))
        return create_signature_record(signature, self._address)

    async def sign_messages(self, messages: Sequence[bytes]) -> list[SignatureRecord]:
        return [self._sign(bytes(m)) for m in messages]

    async def sign_transactions(
        self, transactions: Sequence[SolanaTransaction]
    ) -> list[SignatureRecord]:
        return [self._sign(message_bytes(tx)) for tx in transactions]

    async def sign_transaction(self, transaction: SolanaTransaction):
        """Sign one transaction; returns (base64 transaction, signature)."""
        return await sign_and_serialize(self, transaction)

    async def sign_partial_transaction(self, transaction: SolanaTransaction):
        """Sign as one of several signers; other slots are left untouched."""
        return await sign_and_serialize(self, transaction)

    async def is_available(self) -> bool:
        # Memory signer is always available
        return True

    def __repr__(self) -> str:
        # Never include key material
        return f"MemorySigner(address={self._address})"
