"""Solana signing services.

Provides signing implementations behind one contract:
- MemorySigner: Keypair in process memory (development, fee payers)
- VaultSigner: HashiCorp Vault transit engine
- PrivySigner: Privy server wallets
- TurnkeySigner: Turnkey activity API
"""

from custody_signers.signing.base import (
    ConfigError,
    HttpError,
    ParsingError,
    RemoteApiError,
    RemoteSigner,
    SignatureRecord,
    SignerError,
    SignerType,
    SigningFailed,
)
from custody_signers.signing.factory import Signer, create_signer, get_signer_info
from custody_signers.signing.memory import MemorySigner
from custody_signers.signing.privy import PrivySigner
from custody_signers.signing.turnkey import TurnkeySigner
from custody_signers.signing.vault import VaultSigner

__all__ = [
    "ConfigError",
    "HttpError",
    "ParsingError",
    "RemoteApiError",
    "RemoteSigner",
    "SignatureRecord",
    "SignerError",
    "SignerType",
    "SigningFailed",
    "Signer",
    "MemorySigner",
    "PrivySigner",
    "TurnkeySigner",
    "VaultSigner",
    "create_signer",
    "get_signer_info",
]
