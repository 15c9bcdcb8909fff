"""Signer factory.

Creates the appropriate signing backend based on configuration.
"""

import logging
from typing import Optional, Union

from custody_signers.config import Settings, get_settings
from custody_signers.signing.base import ConfigError, SignerType
from custody_signers.signing.memory import MemorySigner
from custody_signers.signing.privy import PrivySigner
from custody_signers.signing.turnkey import TurnkeySigner
from custody_signers.signing.vault import VaultSigner

logger = logging.getLogger(__name__)

# Closed set of signer variants
Signer = Union[MemorySigner, VaultSigner, PrivySigner, TurnkeySigner]


def get_signer_type(settings: Optional[Settings] = None) -> SignerType:
    """Determine which signer to use.

    Priority:
    1. SIGNER_BACKEND (explicit)
    2. Turnkey credentials present -> Turnkey
    3. Privy credentials present -> Privy
    4. Vault credentials present -> Vault
    5. Default to Memory

    Raises:
        ConfigError: If SIGNER_BACKEND names an unknown backend
    """
    settings = settings or get_settings()
    explicit = settings.signer_backend.strip().lower()

    if explicit:
        try:
            return SignerType(explicit)
        except ValueError:
            raise ConfigError(f"Unknown signer backend: {settings.signer_backend}")

    if settings.has_turnkey:
        return SignerType.TURNKEY
    if settings.has_privy:
        return SignerType.PRIVY
    if settings.has_vault:
        return SignerType.VAULT

    return SignerType.MEMORY


async def create_signer(settings: Optional[Settings] = None) -> Signer:
    """Build the configured signer.

    Async because the Privy signer resolves its address over the network
    before it is returned.

    Raises:
        ConfigError: If the selected backend is misconfigured
    """
    settings = settings or get_settings()
    signer_type = get_signer_type(settings)
    logger.info(f"Initializing {signer_type.value} signer")

    common = {
        "request_delay_ms": settings.request_delay_ms,
        "timeout": settings.http_timeout,
        "unsafe_debug": settings.unsafe_debug,
    }

    if signer_type == SignerType.VAULT:
        return VaultSigner(
            vault_addr=settings.vault_addr or "",
            vault_token=settings.vault_token or "",
            key_name=settings.vault_key_name or "",
            public_key=settings.vault_pubkey or "",
            **common,
        )

    if signer_type == SignerType.PRIVY:
        return await PrivySigner.create(
            app_id=settings.privy_app_id or "",
            app_secret=settings.privy_app_secret or "",
            wallet_id=settings.privy_wallet_id or "",
            api_base_url=settings.privy_api_base_url,
            **common,
        )

    if signer_type == SignerType.TURNKEY:
        return TurnkeySigner(
            api_public_key=settings.turnkey_api_public_key or "",
            api_private_key=settings.turnkey_api_private_key or "",
            organization_id=settings.turnkey_organization_id or "",
            private_key_id=settings.turnkey_private_key_id or "",
            public_key=settings.turnkey_public_key or "",
            api_base_url=settings.turnkey_api_base_url,
            **common,
        )

    # MEMORY
    if not settings.memory_private_key:
        raise ConfigError("MEMORY_PRIVATE_KEY is required for the memory signer")
    return MemorySigner.from_private_key_string(settings.memory_private_key)


async def get_signer_info(signer: Signer) -> dict:
    """Get information about a signer.

    Returns:
        Dict with signer type, address, health status and class
    """
    healthy = await signer.is_available()

    return {
        "type": signer.signer_type.value,
        "address": signer.address,
        "healthy": healthy,
        "class": signer.__class__.__name__,
    }
