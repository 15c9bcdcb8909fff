"""Helpers for legacy and versioned Solana transactions."""

import base64
import logging

from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from custody_signers.signing.base import (
    SIGNATURE_LENGTH,
    RemoteSigner,
    SigningFailed,
    SolanaTransaction,
)

logger = logging.getLogger(__name__)


def message_bytes(transaction: SolanaTransaction) -> bytes:
    """Serialized message: the bytes each required signer signs."""
    if isinstance(transaction, VersionedTransaction):
        return bytes(to_bytes_versioned(transaction.message))
    return bytes(transaction.message_data())


def wire_bytes(transaction: SolanaTransaction) -> bytes:
    """Full wire encoding (signatures + message)."""
    return bytes(transaction)


def serialize_transaction(transaction: SolanaTransaction) -> str:
    """Encode a transaction as base64 wire format."""
    return base64.b64encode(wire_bytes(transaction)).decode("ascii")


def signing_position(transaction: SolanaTransaction, pubkey: Pubkey) -> int:
    """Index of `pubkey` among the transaction's required signers.

    Raises:
        SigningFailed: If the key is not a required signer
    """
    message = transaction.message
    required = message.header.num_required_signatures
    account_keys = list(message.account_keys)

    if len(account_keys) < required:
        raise SigningFailed("Invalid account index: not enough account keys")

    try:
        return account_keys[:required].index(pubkey)
    except ValueError:
        raise SigningFailed(f"Pubkey {pubkey} not found in transaction signers")


def add_signature(
    transaction: SolanaTransaction,
    pubkey: Pubkey,
    signature: bytes,
) -> SolanaTransaction:
    """Return a copy of `transaction` with `signature` in the slot for `pubkey`.

    The signature list is grown to the number of required signers (filled
    with default signatures) if it is shorter.
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise SigningFailed(f"Invalid signature length: {len(signature)}")

    position = signing_position(transaction, pubkey)
    required = transaction.message.header.num_required_signatures

    signatures = list(transaction.signatures)
    if len(signatures) < required:
        signatures.extend(Signature.default() for _ in range(required - len(signatures)))
    signatures[position] = Signature.from_bytes(signature)

    if isinstance(transaction, VersionedTransaction):
        return VersionedTransaction.populate(transaction.message, signatures)
    return Transaction.populate(transaction.message, signatures)


def place_signature(
    transaction: SolanaTransaction,
    address: str,
    signature: bytes,
) -> tuple[str, Signature]:
    """Put `signature` into the slot for `address` and serialize.

    Returns:
        (base64 wire transaction, signature)
    """
    signed = add_signature(transaction, Pubkey.from_string(address), signature)
    logger.debug(f"Placed signature for {address} into transaction")

    return serialize_transaction(signed), Signature.from_bytes(signature)


async def sign_and_serialize(
    signer: RemoteSigner,
    transaction: SolanaTransaction,
) -> tuple[str, Signature]:
    """Sign one transaction through any signer and place the signature.

    Args:
        signer: Any signer implementing the RemoteSigner protocol
        transaction: Transaction in which the signer is a required signer

    Returns:
        (base64 wire transaction, signature)
    """
    records = await signer.sign_transactions([transaction])
    return place_signature(transaction, signer.address, records[0][signer.address])
