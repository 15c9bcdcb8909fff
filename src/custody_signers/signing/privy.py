"""Privy signing backend.

Uses Privy's server wallet RPC API. Privy holds the key; the wallet ID is the
only handle we need. The Solana address is not configured locally - it is
fetched from Privy once, when the signer is created.

Setup:
1. Create a Privy app and a Solana server wallet
2. Set PRIVY_APP_ID, PRIVY_APP_SECRET and PRIVY_WALLET_ID

Reference:
- https://docs.privy.io/api-reference/wallets/solana/sign-transaction
"""

import base64
import binascii
import logging
from typing import Optional, Sequence

from pydantic import BaseModel

from custody_signers.signing.base import (
    ConfigError,
    ParsingError,
    SignatureRecord,
    SignerType,
    SigningFailed,
    SolanaTransaction,
)
from custody_signers.signing.codec import (
    b64decode_lenient,
    create_signature_record,
    extract_by_address,
    validate_address,
)
from custody_signers.signing.pacer import RequestPacer
from custody_signers.signing.transaction_util import sign_and_serialize, wire_bytes
from custody_signers.signing.transport import DEFAULT_TIMEOUT, parse_model, request_json

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = "https://api.privy.io/v1"


class WalletResponse(BaseModel):
    """Response from GET /wallets/{wallet_id}."""
    address: Optional[str] = None
    chain_type: Optional[str] = None
    id: Optional[str] = None


class SignMessageData(BaseModel):
    encoding: Optional[str] = None
    signature: Optional[str] = None


class SignMessageResponse(BaseModel):
    method: Optional[str] = None
    data: SignMessageData


class SignTransactionData(BaseModel):
    encoding: Optional[str] = None
    signed_transaction: Optional[str] = None


class SignTransactionResponse(BaseModel):
    method: Optional[str] = None
    data: SignTransactionData


class PrivyCredentials:
    """Validated Privy connection settings and auth headers."""

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        wallet_id: str,
        api_base_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        unsafe_debug: bool = False,
    ):
        if not app_id or not app_secret or not wallet_id:
            raise ConfigError(
                "Missing required configuration fields (app_id, app_secret, or wallet_id)"
            )
        self.app_id = app_id
        self._app_secret = app_secret
        self.wallet_id = wallet_id
        self.api_base_url = (api_base_url or DEFAULT_API_BASE_URL).rstrip("/")
        self.timeout = timeout
        self.unsafe_debug = unsafe_debug

    def headers(self) -> dict[str, str]:
        """Basic auth plus the app ID header."""
        credentials = f"{self.app_id}:{self._app_secret}".encode("utf-8")
        return {
            "Authorization": f"Basic {base64.b64encode(credentials).decode('ascii')}",
            "privy-app-id": self.app_id,
        }

    @property
    def wallet_url(self) -> str:
        return f"{self.api_base_url}/wallets/{self.wallet_id}"

    async def fetch_address(self) -> str:
        """Fetch the wallet's Solana address from Privy.

        Raises:
            HttpError, RemoteApiError: On transport or API failure
            ParsingError: If the wallet has no valid Solana address
        """
        body = await request_json(
            "GET",
            self.wallet_url,
            backend="Privy",
            headers=self.headers(),
            timeout=self.timeout,
            unsafe_debug=self.unsafe_debug,
        )
        wallet = parse_model(WalletResponse, body, "Privy")

        try:
            return validate_address(wallet.address or "")
        except ConfigError as e:
            raise ParsingError(f"Privy wallet returned an invalid address: {wallet.address}") from e


class PrivySigner:
    """Privy server wallet signer.

    Build with `await PrivySigner.create(...)`: the address is resolved from
    Privy before the instance exists, so a signer never has an unknown address.
    """

    signer_type = SignerType.PRIVY

    def __init__(
        self,
        credentials: PrivyCredentials,
        address: str,
        request_delay_ms: float = 0,
    ):
        self._credentials = credentials
        self._address = validate_address(address)
        self._pacer = RequestPacer(request_delay_ms)

    @classmethod
    async def create(
        cls,
        app_id: str,
        app_secret: str,
        wallet_id: str,
        api_base_url: Optional[str] = None,
        request_delay_ms: float = 0,
        timeout: float = DEFAULT_TIMEOUT,
        unsafe_debug: bool = False,
    ) -> "PrivySigner":
        """Validate config, fetch the wallet address, return a ready signer.

        Args:
            app_id: Privy application ID
            app_secret: Privy application secret
            wallet_id: Privy wallet ID
            api_base_url: API base URL (defaults to https://api.privy.io/v1)
            request_delay_ms: Delay between concurrent requests in a batch
            timeout: Per-request timeout in seconds
            unsafe_debug: Log raw error bodies

        Raises:
            ConfigError: If configuration is invalid (before any network call)
            HttpError, RemoteApiError, ParsingError: If the address fetch fails
        """
        credentials = PrivyCredentials(
            app_id, app_secret, wallet_id, api_base_url, timeout, unsafe_debug
        )
        # Validate the delay before the network call
        RequestPacer(request_delay_ms)

        address = await credentials.fetch_address()
        logger.info(f"Privy wallet {wallet_id} resolved to {address}")
        return cls(credentials, address, request_delay_ms)

    @property
    def address(self) -> str:
        return self._address

    @property
    def wallet_id(self) -> str:
        return self._credentials.wallet_id

    async def _rpc(self, method: str, params: dict) -> object:
        creds = self._credentials
        return await request_json(
            "POST",
            f"{creds.wallet_url}/rpc",
            backend="Privy",
            headers=creds.headers(),
            json_body={"method": method, "params": params},
            timeout=creds.timeout,
            unsafe_debug=creds.unsafe_debug,
        )

    async def _sign_message(self, message: bytes) -> SignatureRecord:
        body = await self._rpc(
            "signMessage",
            {"encoding": "base64", "message": base64.b64encode(message).decode("ascii")},
        )
        response = parse_model(SignMessageResponse, body, "Privy")

        if not response.data.signature:
            raise SigningFailed("Missing signature in Privy response")
        try:
            signature = b64decode_lenient(response.data.signature)
        except (binascii.Error, ValueError) as e:
            raise SigningFailed(f"Malformed base64 signature: {e}") from e

        return create_signature_record(signature, self._address)

    async def _sign_transaction(self, transaction: SolanaTransaction) -> SignatureRecord:
        wire = base64.b64encode(wire_bytes(transaction)).decode("ascii")
        body = await self._rpc(
            "signTransaction",
            {"encoding": "base64", "transaction": wire},
        )
        response = parse_model(SignTransactionResponse, body, "Privy")

        if not response.data.signed_transaction:
            raise SigningFailed("Missing signed_transaction in Privy response")

        signature = extract_by_address(response.data.signed_transaction, self._address)
        return create_signature_record(signature, self._address)

    async def sign_messages(self, messages: Sequence[bytes]) -> list[SignatureRecord]:
        """Sign raw messages via the signMessage RPC."""
        return await self._pacer.run(messages, lambda m: self._sign_message(bytes(m)))

    async def sign_transactions(
        self, transactions: Sequence[SolanaTransaction]
    ) -> list[SignatureRecord]:
        """Sign transactions via the signTransaction RPC.

        Privy returns the whole signed transaction; our signature is read
        from the slot keyed by this wallet's address.
        """
        return await self._pacer.run(transactions, self._sign_transaction)

    async def sign_transaction(self, transaction: SolanaTransaction):
        """Sign one transaction; returns (base64 transaction, signature)."""
        return await sign_and_serialize(self, transaction)

    async def sign_partial_transaction(self, transaction: SolanaTransaction):
        """Sign as one of several signers; other slots are left untouched."""
        return await sign_and_serialize(self, transaction)

    async def is_available(self) -> bool:
        """Re-fetch the wallet; available if it still has a valid address."""
        try:
            await self._credentials.fetch_address()
            return True
        except Exception as e:
            logger.warning(f"Privy health check failed: {e}")
            return False

    def __repr__(self) -> str:
        return f"PrivySigner(address={self._address}, wallet_id={self.wallet_id})"
