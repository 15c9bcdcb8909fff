"""Turnkey signing backend.

Uses Turnkey's activity API. Each request body is authenticated with an
X-Stamp header signed by a P-256 API key (see stamper.py); the Solana key
itself is an ED25519 private key held by Turnkey.

Setup:
1. Create an API key pair for a Turnkey user (P-256)
2. Create an ED25519 private key and note its ID and Solana address
3. Set TURNKEY_API_PUBLIC_KEY, TURNKEY_API_PRIVATE_KEY,
   TURNKEY_ORGANIZATION_ID, TURNKEY_PRIVATE_KEY_ID and TURNKEY_PUBLIC_KEY

Reference:
- https://docs.turnkey.com/api-reference/activities/sign-raw-payload
- https://docs.turnkey.com/api-reference/activities/sign-transaction
"""

import json
import logging
import time
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from custody_signers.signing.base import (
    ConfigError,
    RemoteApiError,
    SignatureRecord,
    SignerType,
    SigningFailed,
    SolanaTransaction,
)
from custody_signers.signing.codec import (
    combine,
    create_signature_record,
    extract_at_offset,
    pad_component,
    validate_address,
)
from custody_signers.signing.pacer import RequestPacer
from custody_signers.signing.stamper import ApiKeyStamper
from custody_signers.signing.transaction_util import message_bytes, place_signature, wire_bytes
from custody_signers.signing.transport import DEFAULT_TIMEOUT, parse_model, request_json

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.turnkey.com"

ACTIVITY_SIGN_RAW_PAYLOAD = "ACTIVITY_TYPE_SIGN_RAW_PAYLOAD_V2"
ACTIVITY_SIGN_TRANSACTION = "ACTIVITY_TYPE_SIGN_TRANSACTION_V2"

# Statuses that mean the activity will not produce a signature
FAILED_ACTIVITY_STATUSES = frozenset({
    "ACTIVITY_STATUS_FAILED",
    "ACTIVITY_STATUS_REJECTED",
    "ACTIVITY_STATUS_CONSENSUS_NEEDED",
})


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SignRawPayloadResult(_WireModel):
    r: Optional[str] = None
    s: Optional[str] = None


class SignTransactionResult(_WireModel):
    signed_transaction: Optional[str] = Field(default=None, alias="signedTransaction")


class ActivityResult(_WireModel):
    sign_raw_payload_result: Optional[SignRawPayloadResult] = Field(
        default=None, alias="signRawPayloadResult"
    )
    sign_transaction_result: Optional[SignTransactionResult] = Field(
        default=None, alias="signTransactionResult"
    )


class Activity(_WireModel):
    status: Optional[str] = None
    result: Optional[ActivityResult] = None


class ActivityResponse(_WireModel):
    """Response from POST /public/v1/submit/*."""
    activity: Activity


class WhoAmIResponse(_WireModel):
    """Response from POST /public/v1/query/whoami."""
    organization_id: Optional[str] = Field(default=None, alias="organizationId")
    organization_name: Optional[str] = Field(default=None, alias="organizationName")
    user_id: Optional[str] = Field(default=None, alias="userId")


class TurnkeySigner:
    """Turnkey activity API signer.

    Uses P-256 ECDSA for API authentication and ED25519 for Solana signing.
    """

    signer_type = SignerType.TURNKEY

    def __init__(
        self,
        api_public_key: str,
        api_private_key: str,
        organization_id: str,
        private_key_id: str,
        public_key: str,
        api_base_url: Optional[str] = None,
        request_delay_ms: float = 0,
        timeout: float = DEFAULT_TIMEOUT,
        unsafe_debug: bool = False,
    ):
        """Initialize Turnkey signer.

        Args:
            api_public_key: Turnkey API public key (hex, compressed P-256)
            api_private_key: Turnkey API private key (hex)
            organization_id: Turnkey organization ID
            private_key_id: ID of the Turnkey private key used for signing
            public_key: Base58 Solana public key of that private key
            api_base_url: API base URL (defaults to https://api.turnkey.com)
            request_delay_ms: Delay between concurrent requests in a batch
            timeout: Per-request timeout in seconds
            unsafe_debug: Log raw error bodies

        Raises:
            ConfigError: If any field is missing or invalid
        """
        if not api_public_key or not api_private_key or not organization_id or not private_key_id:
            raise ConfigError(
                "Missing required configuration fields "
                "(api_public_key, api_private_key, organization_id, or private_key_id)"
            )

        self._address = validate_address(public_key)
        self.organization_id = organization_id
        self.private_key_id = private_key_id
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.unsafe_debug = unsafe_debug
        self._stamper = ApiKeyStamper(api_private_key, api_public_key)
        self._pacer = RequestPacer(request_delay_ms)

    @property
    def address(self) -> str:
        return self._address

    async def _post_stamped(self, path: str, request: dict[str, Any]) -> Any:
        """POST a JSON body with an X-Stamp header over the exact bytes sent."""
        body = json.dumps(request, separators=(",", ":"))
        stamp = self._stamper.stamp(body)

        return await request_json(
            "POST",
            f"{self.api_base_url}{path}",
            backend="Turnkey",
            headers={
                "Content-Type": "application/json",
                stamp.header_name: stamp.header_value,
            },
            content=body,
            timeout=self.timeout,
            unsafe_debug=self.unsafe_debug,
        )

    async def _submit_activity(self, path: str, activity_type: str, parameters: dict) -> ActivityResult:
        request = {
            "organizationId": self.organization_id,
            "parameters": parameters,
            "timestampMs": str(int(time.time() * 1000)),
            "type": activity_type,
        }
        body = await self._post_stamped(path, request)
        activity = parse_model(ActivityResponse, body, "Turnkey").activity

        if activity.status in FAILED_ACTIVITY_STATUSES:
            logger.error(f"Turnkey activity {activity_type} ended with {activity.status}")
            raise RemoteApiError(f"Turnkey activity not completed: {activity.status}")

        return activity.result or ActivityResult()

    async def _sign_raw(self, payload: bytes) -> SignatureRecord:
        """Sign raw bytes (sign_raw_payload) and assemble r || s."""
        result = await self._submit_activity(
            "/public/v1/submit/sign_raw_payload",
            ACTIVITY_SIGN_RAW_PAYLOAD,
            {
                "encoding": "PAYLOAD_ENCODING_HEXADECIMAL",
                "hashFunction": "HASH_FUNCTION_NOT_APPLICABLE",
                "payload": payload.hex(),
                "signWith": self.private_key_id,
            },
        )

        components = result.sign_raw_payload_result
        if components is None or not components.r or not components.s:
            raise SigningFailed("Missing signature components in Turnkey response")

        signature = combine(pad_component(components.r), pad_component(components.s))
        return create_signature_record(signature, self._address)

    async def _sign_transaction(self, transaction: SolanaTransaction) -> SignatureRecord:
        """Sign via sign_transaction; Turnkey returns the fully signed tx."""
        result = await self._submit_activity(
            "/public/v1/submit/sign_transaction",
            ACTIVITY_SIGN_TRANSACTION,
            {
                "signWith": self.private_key_id,
                "type": "TRANSACTION_TYPE_SOLANA",
                "unsignedTransaction": wire_bytes(transaction).hex(),
            },
        )

        tx_result = result.sign_transaction_result
        if tx_result is None or not tx_result.signed_transaction:
            raise SigningFailed("Missing signedTransaction in Turnkey response")

        try:
            signed = bytes.fromhex(tx_result.signed_transaction)
        except ValueError as e:
            raise SigningFailed(f"Malformed signed transaction hex: {e}") from e

        return create_signature_record(extract_at_offset(signed), self._address)

    async def sign_messages(self, messages: Sequence[bytes]) -> list[SignatureRecord]:
        """Sign raw messages via sign_raw_payload."""
        return await self._pacer.run(messages, lambda m: self._sign_raw(bytes(m)))

    async def sign_transactions(
        self, transactions: Sequence[SolanaTransaction]
    ) -> list[SignatureRecord]:
        """Sign transactions via sign_transaction."""
        return await self._pacer.run(transactions, self._sign_transaction)

    async def _sign_and_place(self, transaction: SolanaTransaction):
        """Sign the message bytes via sign_raw_payload and place the result.

        sign_transaction results are read from slot 0, the fee payer slot.
        """
        record = await self._sign_raw(message_bytes(transaction))
        return place_signature(transaction, self._address, record[self._address])

    async def sign_transaction(self, transaction: SolanaTransaction):
        """Sign one transaction; returns (base64 transaction, signature)."""
        return await self._sign_and_place(transaction)

    async def sign_partial_transaction(self, transaction: SolanaTransaction):
        """Sign as one of several signers; other slots are left untouched."""
        return await self._sign_and_place(transaction)

    async def is_available(self) -> bool:
        """whoami probe; available if the organization ID matches."""
        try:
            body = await self._post_stamped(
                "/public/v1/query/whoami",
                {"organizationId": self.organization_id},
            )
            whoami = parse_model(WhoAmIResponse, body, "Turnkey")
            return whoami.organization_id == self.organization_id
        except Exception as e:
            logger.warning(f"Turnkey health check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"TurnkeySigner(address={self._address}, organization_id={self.organization_id})"
