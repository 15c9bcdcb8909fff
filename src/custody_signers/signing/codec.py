"""Signature normalization shared by all backends.

Backends return signature material in different shapes:
- Vault: tag-prefixed base64 ("vault:v1:<base64>")
- Privy: plain base64, or a fully signed wire transaction
- Turnkey: hex r/s components, or a fully signed hex transaction

Everything here reduces that material to exactly 64 bytes or raises
SigningFailed. Nothing in this module performs I/O.
"""

import base64
import binascii
import re

from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from custody_signers.signing.base import (
    SIGNATURE_LENGTH,
    ConfigError,
    ParsingError,
    SignatureRecord,
    SigningFailed,
)

COMPONENT_LENGTH = 32

# "<tag>:v<version>:" as emitted by Vault ("vault:v1:")
_VERSION_TAG = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*:v\d+:")


def pad_component(hex_value: str, target: int = COMPONENT_LENGTH) -> bytes:
    """Left-pad a big-endian hex integer component with zeros.

    Args:
        hex_value: Hex string, optionally 0x-prefixed, possibly odd-length
        target: Exact output length in bytes

    Returns:
        `target` bytes with the same numeric value

    Raises:
        SigningFailed: If the value is not hex or is longer than `target` bytes
    """
    cleaned = hex_value[2:] if hex_value[:2].lower() == "0x" else hex_value
    if len(cleaned) % 2:
        cleaned = "0" + cleaned

    try:
        raw = bytes.fromhex(cleaned)
    except ValueError as e:
        raise SigningFailed(f"Malformed signature component: {e}") from e

    if len(raw) > target:
        raise SigningFailed(
            f"Invalid signature component length: {len(raw)} (max {target})",
            {"length": len(raw), "max": target},
        )

    return raw.rjust(target, b"\x00")


def combine(r: bytes, s: bytes) -> bytes:
    """Concatenate two 32-byte components into one 64-byte signature (r first)."""
    if len(r) != COMPONENT_LENGTH or len(s) != COMPONENT_LENGTH:
        raise SigningFailed(
            f"Signature components must be {COMPONENT_LENGTH} bytes, got r={len(r)} s={len(s)}"
        )
    return r + s


def b64decode_lenient(value: str) -> bytes:
    """Strict base64 decode that tolerates stripped '=' padding."""
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded, validate=True)


def decode_tagged_signature(value: str) -> bytes:
    """Decode a base64 signature with an optional "<tag>:v<N>:" prefix.

    "vault:v1:" + B and B decode to the same bytes.

    Raises:
        SigningFailed: If the body is empty or not valid base64
    """
    body = _VERSION_TAG.sub("", value, count=1)
    if not body:
        raise SigningFailed("Empty signature in backend response")

    try:
        return b64decode_lenient(body)
    except (binascii.Error, ValueError) as e:
        raise SigningFailed(f"Malformed base64 signature: {e}") from e


def extract_at_offset(buffer: bytes, offset: int = 1, length: int = SIGNATURE_LENGTH) -> bytes:
    """Slice a fixed-width signature out of a fully signed transaction.

    Solana wire transactions start with a compact-u16 signature count (one
    byte for fewer than 128 signatures) followed by 64 bytes per signature,
    so the first signature starts at offset 1. An all-zero (unsigned) slot
    raises SigningFailed.
    """
    end = offset + length
    if len(buffer) < end:
        raise SigningFailed(
            f"Signed transaction too short: {len(buffer)} bytes, need {end}"
        )

    signature = bytes(buffer[offset:end])
    if signature == bytes(length):
        raise SigningFailed(
            f"No signature found at offset {offset}", {"offset": offset}
        )
    return signature


def extract_by_address(wire_transaction: str, address: str) -> bytes:
    """Return the signature for `address` from a base64 wire transaction.

    Args:
        wire_transaction: Base64-encoded, fully or partially signed transaction
        address: Base58 public key whose signature slot to read

    Returns:
        64-byte signature

    Raises:
        ParsingError: If the envelope cannot be decoded
        SigningFailed: If the transaction holds no signature for `address`
    """
    try:
        raw = b64decode_lenient(wire_transaction)
    except (binascii.Error, ValueError) as e:
        raise ParsingError(f"Signed transaction is not valid base64: {e}") from e

    try:
        transaction = VersionedTransaction.from_bytes(raw)
    except Exception as e:
        raise ParsingError(f"Failed to decode signed transaction: {e}") from e

    message = transaction.message
    required = message.header.num_required_signatures
    signers = message.account_keys[:required]

    for signer, signature in zip(signers, transaction.signatures):
        if str(signer) != address:
            continue
        signature_bytes = bytes(signature)
        if signature_bytes == bytes(SIGNATURE_LENGTH):
            break
        return signature_bytes

    raise SigningFailed(
        f"No signature found for address {address}", {"address": address}
    )


def create_signature_record(signature: bytes, address: str) -> SignatureRecord:
    """Build the single-entry address -> signature record.

    Raises:
        SigningFailed: If the signature is not exactly 64 bytes
    """
    if len(signature) != SIGNATURE_LENGTH:
        raise SigningFailed(
            f"Invalid signature length: {len(signature)} (expected {SIGNATURE_LENGTH})",
            {"address": address},
        )
    return {address: bytes(signature)}


def validate_address(address: str) -> str:
    """Check that `address` is a base58 32-byte public key.

    Raises:
        ConfigError: If missing or malformed
    """
    if not address:
        raise ConfigError("Missing required public key")
    try:
        Pubkey.from_string(address)
    except ValueError as e:
        raise ConfigError(f"Invalid Solana public key format: {address}") from e
    return address
