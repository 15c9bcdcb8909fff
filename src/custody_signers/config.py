"""Application configuration using pydantic-settings.

Every signer backend can be configured from environment variables (or a
.env file). Only the selected backend's fields need to be set.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Signer settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # General
    # ======================
    signer_backend: str = Field(
        default="", description="Explicit backend: memory, vault, privy or turnkey"
    )
    request_delay_ms: float = Field(
        default=0, description="Delay between concurrent signing requests (ms)"
    )
    http_timeout: float = Field(default=30.0, description="Backend request timeout (s)")
    unsafe_debug: bool = Field(
        default=False, description="Log raw backend error bodies (may leak sensitive data)"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    # ======================
    # Memory
    # ======================
    memory_private_key: Optional[str] = Field(
        default=None, description="Base58 keypair, byte array, or keypair file path"
    )

    # ======================
    # HashiCorp Vault
    # ======================
    vault_addr: Optional[str] = Field(default=None, description="Vault server address")
    vault_token: Optional[str] = Field(default=None, description="Vault token")
    vault_key_name: Optional[str] = Field(default=None, description="Transit key name")
    vault_pubkey: Optional[str] = Field(default=None, description="Base58 public key of the transit key")

    # ======================
    # Privy
    # ======================
    privy_app_id: Optional[str] = Field(default=None, description="Privy application ID")
    privy_app_secret: Optional[str] = Field(default=None, description="Privy application secret")
    privy_wallet_id: Optional[str] = Field(default=None, description="Privy wallet ID")
    privy_api_base_url: Optional[str] = Field(default=None, description="Privy API base URL override")

    # ======================
    # Turnkey
    # ======================
    turnkey_api_public_key: Optional[str] = Field(default=None, description="Turnkey API public key (hex)")
    turnkey_api_private_key: Optional[str] = Field(default=None, description="Turnkey API private key (hex)")
    turnkey_organization_id: Optional[str] = Field(default=None, description="Turnkey organization ID")
    turnkey_private_key_id: Optional[str] = Field(default=None, description="Turnkey private key ID")
    turnkey_public_key: Optional[str] = Field(default=None, description="Base58 Solana public key")
    turnkey_api_base_url: Optional[str] = Field(default=None, description="Turnkey API base URL override")

    @property
    def has_vault(self) -> bool:
        return bool(self.vault_addr and self.vault_token and self.vault_key_name)

    @property
    def has_privy(self) -> bool:
        return bool(self.privy_app_id and self.privy_app_secret and self.privy_wallet_id)

    @property
    def has_turnkey(self) -> bool:
        return bool(
            self.turnkey_api_public_key
            and self.turnkey_api_private_key
            and self.turnkey_organization_id
            and self.turnkey_private_key_id
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""

        def secret(value: Optional[str]) -> str:
            return "***" if value else "(not set)"

        return {
            "signer_backend": self.signer_backend or "(auto)",
            "request_delay_ms": self.request_delay_ms,
            "http_timeout": self.http_timeout,
            "unsafe_debug": self.unsafe_debug,
            "memory": {"private_key": secret(self.memory_private_key)},
            "vault": {
                "addr": self.vault_addr or "(not set)",
                "token": secret(self.vault_token),
                "key_name": self.vault_key_name or "(not set)",
                "pubkey": self.vault_pubkey or "(not set)",
            },
            "privy": {
                "app_id": self.privy_app_id or "(not set)",
                "app_secret": secret(self.privy_app_secret),
                "wallet_id": self.privy_wallet_id or "(not set)",
            },
            "turnkey": {
                "api_public_key": self.turnkey_api_public_key or "(not set)",
                "api_private_key": secret(self.turnkey_api_private_key),
                "organization_id": self.turnkey_organization_id or "(not set)",
                "private_key_id": self.turnkey_private_key_id or "(not set)",
                "public_key": self.turnkey_public_key or "(not set)",
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
