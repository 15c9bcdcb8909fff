"""Turnkey API request stamping.

Every Turnkey request carries an X-Stamp header: the request body signed with
a dedicated P-256 API key (not the Solana signing key), wrapped as JSON and
base64url-encoded.

Stamp layout (before encoding):
    {"publicKey": "<compressed hex>",
     "scheme": "SIGNATURE_SCHEME_TK_API_P256",
     "signature": "<DER hex>"}

ECDSA nonces are random, so two stamps over the same body differ.
"""

import base64
import json
import logging
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec

from custody_signers.signing.base import ConfigError, SigningFailed

logger = logging.getLogger(__name__)

STAMP_HEADER_NAME = "X-Stamp"
STAMP_SCHEME = "SIGNATURE_SCHEME_TK_API_P256"

JWK_MEMBER_BYTE_LENGTH = 32       # P-256 scalars and coordinates
COMPRESSED_PUBLIC_KEY_LENGTH = 33  # 0x02/0x03 prefix + x


@dataclass(frozen=True)
class Stamp:
    """Authentication header produced for one request body."""
    header_name: str
    header_value: str


def base64url(data: bytes) -> str:
    """Unpadded URL-safe base64 (RFC 4648 section 5)."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def _hex_to_bytes(hex_value: str, label: str) -> bytes:
    cleaned = hex_value[2:] if hex_value[:2].lower() == "0x" else hex_value
    if len(cleaned) % 2:
        cleaned = "0" + cleaned
    try:
        return bytes.fromhex(cleaned)
    except ValueError as e:
        raise ConfigError(f"API to JWK conversion failed: {label} is not valid hex") from e


def _pad_member(value: bytes, label: str) -> bytes:
    if len(value) > JWK_MEMBER_BYTE_LENGTH:
        raise ConfigError(
            f"API to JWK conversion failed: {label} too long: "
            f"{len(value)} bytes (max {JWK_MEMBER_BYTE_LENGTH})"
        )
    return value.rjust(JWK_MEMBER_BYTE_LENGTH, b"\x00")


def api_key_to_jwk(private_key_hex: str, public_key_hex: str) -> dict[str, str]:
    """Convert a Turnkey API key pair into P-256 JWK members.

    The compressed public point is decompressed to recover x and y. Every
    member (d, x, y) is exactly 32 bytes.

    Args:
        private_key_hex: 32-byte private scalar, hex
        public_key_hex: 33-byte compressed public point, hex

    Returns:
        JWK dict with kty, crv, d, x, y

    Raises:
        ConfigError: On any length or curve violation
    """
    public_bytes = _hex_to_bytes(public_key_hex, "public key")
    if len(public_bytes) != COMPRESSED_PUBLIC_KEY_LENGTH:
        raise ConfigError(
            "API to JWK conversion failed: public key must be "
            f"{COMPRESSED_PUBLIC_KEY_LENGTH} bytes (compressed P-256), got {len(public_bytes)}"
        )

    d = _pad_member(_hex_to_bytes(private_key_hex, "private key"), "private key")

    try:
        point = ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), public_bytes)
    except ValueError as e:
        raise ConfigError("API to JWK conversion failed: public key is not a P-256 point") from e

    numbers = point.public_numbers()
    x = numbers.x.to_bytes(JWK_MEMBER_BYTE_LENGTH, "big")
    y = numbers.y.to_bytes(JWK_MEMBER_BYTE_LENGTH, "big")

    return {
        "kty": "EC",
        "crv": "P-256",
        "d": base64url(d),
        "x": base64url(x),
        "y": base64url(y),
    }


def _jwk_int(member: str) -> int:
    padded = member + "=" * (-len(member) % 4)
    return int.from_bytes(base64.urlsafe_b64decode(padded), "big")


def load_private_key(jwk: dict[str, str]) -> ec.EllipticCurvePrivateKey:
    """Load a P-256 private key from JWK members, checking d against (x, y)."""
    public_numbers = ec.EllipticCurvePublicNumbers(
        _jwk_int(jwk["x"]), _jwk_int(jwk["y"]), ec.SECP256R1()
    )
    private_numbers = ec.EllipticCurvePrivateNumbers(_jwk_int(jwk["d"]), public_numbers)
    try:
        return private_numbers.private_key()
    except (ValueError, UnsupportedAlgorithm) as e:
        raise ConfigError("Failed to convert API key to JWK: key pair is invalid") from e


class ApiKeyStamper:
    """Creates X-Stamp headers for Turnkey API authentication.

    The key pair is converted and validated once, at construction.
    """

    def __init__(self, api_private_key: str, api_public_key: str):
        """Initialize stamper.

        Args:
            api_private_key: Turnkey API private key (hex, 32 bytes)
            api_public_key: Turnkey API public key (hex, compressed, 33 bytes)

        Raises:
            ConfigError: If the key pair is malformed
        """
        self.api_public_key = api_public_key
        self._private_key = load_private_key(api_key_to_jwk(api_private_key, api_public_key))

    def stamp(self, message: str) -> Stamp:
        """Stamp a request body.

        Args:
            message: Exact serialized request body that will be sent

        Returns:
            Stamp with header name and base64url value

        Raises:
            SigningFailed: If signing fails
        """
        try:
            signature = self._private_key.sign(
                message.encode("utf-8"), ec.ECDSA(hashes.SHA256())
            )
        except Exception as e:
            logger.error(f"Failed to create authentication stamp: {e}")
            raise SigningFailed("Failed to create authentication stamp") from e

        stamp = {
            "publicKey": self.api_public_key,
            "scheme": STAMP_SCHEME,
            "signature": signature.hex(),
        }
        stamp_json = json.dumps(stamp, separators=(",", ":"))

        return Stamp(
            header_name=STAMP_HEADER_NAME,
            header_value=base64url(stamp_json.encode("utf-8")),
        )

    def __repr__(self) -> str:
        return f"ApiKeyStamper(public_key={self.api_public_key})"
