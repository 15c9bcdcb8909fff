"""Base interfaces for remote signing.

Signing flow:
1. Caller hands payloads (messages or transactions) to a signer
2. Signer authenticates and submits each payload to its custody backend
3. Backend returns signature material (never the private key)
4. Signer normalizes the material to a 64-byte ed25519 signature
5. Caller receives one address-keyed record per payload, in input order
"""

from enum import Enum
from typing import Any, Optional, Protocol, Sequence, Union, runtime_checkable

from solders.transaction import Transaction, VersionedTransaction

SIGNATURE_LENGTH = 64

# Address -> 64-byte signature, always exactly one entry
SignatureRecord = dict[str, bytes]

SolanaTransaction = Union[Transaction, VersionedTransaction]


class SignerType(str, Enum):
    """Type of signing backend."""
    MEMORY = "memory"         # Keypair in process memory
    VAULT = "vault"           # HashiCorp Vault transit engine
    PRIVY = "privy"           # Privy wallet RPC
    TURNKEY = "turnkey"       # Turnkey activity API


@runtime_checkable
class RemoteSigner(Protocol):
    """Capability shared by every signing backend.

    Implementations never expose private keys. All batch operations are
    all-or-nothing: a single failing payload fails the whole call.
    """

    signer_type: SignerType

    @property
    def address(self) -> str:
        """Base58 public key of the signing key."""
        ...

    async def sign_messages(self, messages: Sequence[bytes]) -> list[SignatureRecord]:
        """Sign raw messages.

        Args:
            messages: Message bytes, one per signature

        Returns:
            One signature record per message, in input order
        """
        ...

    async def sign_transactions(
        self, transactions: Sequence[SolanaTransaction]
    ) -> list[SignatureRecord]:
        """Sign transactions.

        Args:
            transactions: Transactions in which this signer is a required signer

        Returns:
            One signature record per transaction, in input order
        """
        ...

    async def is_available(self) -> bool:
        """Probe the backend. Never raises."""
        ...


class SignerError(Exception):
    """Base exception for all signing errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (details: {self.details})"
        return self.message


class ConfigError(SignerError):
    """Invalid or missing construction input."""
    pass


class HttpError(SignerError):
    """Exception raised when the backend cannot be reached."""

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message, {"url": url} if url else None)
        self.url = url


class RemoteApiError(SignerError):
    """Backend was reached but rejected the request.

    Attributes:
        status: HTTP status code (None for business-rule rejections on a 2xx)
        body: Raw response body, truncated
    """

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message, {"status": status} if status is not None else None)
        self.status = status
        self.body = body


class ParsingError(SignerError):
    """Exception raised when a response body does not have the expected shape."""
    pass


class SigningFailed(SignerError):
    """Signature material is missing or violates its byte-length contract."""
    pass
