"""HashiCorp Vault signing backend.

Uses Vault's transit engine. The private key never leaves Vault - only the
signature is returned.

Setup:
1. Enable the transit engine: `vault secrets enable transit`
2. Create an ED25519 key: `vault write transit/keys/my-key type=ed25519`
3. Read its public key and convert it to base58 (the Solana address)
4. Set VAULT_ADDR, VAULT_TOKEN, VAULT_KEY_NAME and VAULT_PUBKEY

Reference:
- https://developer.hashicorp.com/vault/api-docs/secret/transit
"""

import base64
import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from custody_signers.signing.base import (
    ConfigError,
    SignatureRecord,
    SignerType,
    SigningFailed,
    SolanaTransaction,
)
from custody_signers.signing.codec import (
    create_signature_record,
    decode_tagged_signature,
    validate_address,
)
from custody_signers.signing.pacer import RequestPacer
from custody_signers.signing.transaction_util import message_bytes, sign_and_serialize
from custody_signers.signing.transport import DEFAULT_TIMEOUT, parse_model, request_json

logger = logging.getLogger(__name__)

EXPECTED_KEY_TYPE = "ed25519"


class VaultSignData(BaseModel):
    signature: Optional[str] = None
    key_version: Optional[int] = None


class VaultSignResponse(BaseModel):
    """Response from POST /v1/transit/sign/{key}."""
    data: VaultSignData


class VaultKeyData(BaseModel):
    type: Optional[str] = None
    supports_signing: bool = False
    latest_version: Optional[int] = None


class VaultKeyResponse(BaseModel):
    """Response from GET /v1/transit/keys/{key}."""
    data: VaultKeyData


class VaultSigner:
    """Vault transit engine signer.

    The Vault key must be an ED25519 key created in the transit engine.
    """

    signer_type = SignerType.VAULT

    def __init__(
        self,
        vault_addr: str,
        vault_token: str,
        key_name: str,
        public_key: str,
        request_delay_ms: float = 0,
        timeout: float = DEFAULT_TIMEOUT,
        unsafe_debug: bool = False,
    ):
        """Initialize Vault signer.

        Args:
            vault_addr: Vault server address (e.g. https://vault.example.com)
            vault_token: Vault authentication token
            key_name: Name of the transit key
            public_key: Base58 Solana public key matching the transit key
            request_delay_ms: Delay between concurrent requests in a batch
            timeout: Per-request timeout in seconds
            unsafe_debug: Log raw error bodies

        Raises:
            ConfigError: If any field is missing or invalid
        """
        if not vault_addr or not vault_token or not key_name:
            raise ConfigError(
                "Missing required configuration fields (vault_addr, vault_token, or key_name)"
            )

        self._address = validate_address(public_key)
        self.vault_addr = vault_addr.rstrip("/")
        self._vault_token = vault_token
        self.key_name = key_name
        self.timeout = timeout
        self.unsafe_debug = unsafe_debug
        self._pacer = RequestPacer(request_delay_ms)

    @property
    def address(self) -> str:
        return self._address

    def _headers(self) -> dict[str, str]:
        return {"X-Vault-Token": self._vault_token}

    async def _sign_bytes(self, data: bytes) -> bytes:
        """Sign bytes with the transit key."""
        url = f"{self.vault_addr}/v1/transit/sign/{self.key_name}"
        payload = {"input": base64.b64encode(data).decode("ascii")}

        body = await request_json(
            "POST",
            url,
            backend="Vault",
            headers=self._headers(),
            json_body=payload,
            timeout=self.timeout,
            unsafe_debug=self.unsafe_debug,
        )
        response = parse_model(VaultSignResponse, body, "Vault")

        if not response.data.signature:
            raise SigningFailed("Missing signature in Vault response")

        return decode_tagged_signature(response.data.signature)

    async def _sign_record(self, data: bytes) -> SignatureRecord:
        signature = await self._sign_bytes(data)
        return create_signature_record(signature, self._address)

    async def sign_messages(self, messages: Sequence[bytes]) -> list[SignatureRecord]:
        """Sign raw messages with the transit key."""
        return await self._pacer.run(messages, lambda m: self._sign_record(bytes(m)))

    async def sign_transactions(
        self, transactions: Sequence[SolanaTransaction]
    ) -> list[SignatureRecord]:
        """Sign the message bytes of each transaction."""
        return await self._pacer.run(
            transactions, lambda tx: self._sign_record(message_bytes(tx))
        )

    async def sign_transaction(self, transaction: SolanaTransaction):
        """Sign one transaction; returns (base64 transaction, signature)."""
        return await sign_and_serialize(self, transaction)

    async def sign_partial_transaction(self, transaction: SolanaTransaction):
        """Sign as one of several signers; other slots are left untouched."""
        return await sign_and_serialize(self, transaction)

    async def is_available(self) -> bool:
        """Check the key exists, supports signing and is ED25519."""
        url = f"{self.vault_addr}/v1/transit/keys/{self.key_name}"
        try:
            body = await request_json(
                "GET",
                url,
                backend="Vault",
                headers=self._headers(),
                timeout=self.timeout,
                unsafe_debug=self.unsafe_debug,
            )
            key = parse_model(VaultKeyResponse, body, "Vault").data
            return key.supports_signing is True and key.type == EXPECTED_KEY_TYPE
        except Exception as e:
            logger.warning(f"Vault health check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"VaultSigner(address={self._address}, key_name={self.key_name})"
