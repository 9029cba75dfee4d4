"""Application configuration using pydantic-settings.

Covers the ledger RPC endpoint, confirmation policy, bearer-token
verification and the HTTP server.
"""

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

CommitmentLevel = Literal["processed", "confirmed", "finalized"]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Ledger RPC
    # ======================
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com", description="Solana RPC URL"
    )
    commitment: CommitmentLevel = Field(
        default="confirmed", description="Commitment level a transfer must reach"
    )
    rpc_timeout: float = Field(default=10.0, description="Timeout for one RPC round trip (seconds)")
    confirm_timeout: float = Field(
        default=30.0, description="Maximum wait for transfer confirmation (seconds)"
    )
    confirm_poll_interval: float = Field(
        default=0.5, description="Delay between signature status polls (seconds)"
    )
    read_retries: int = Field(
        default=2, ge=0, description="Extra attempts for read-only RPC calls"
    )
    retry_backoff: float = Field(
        default=0.5, ge=0, description="Backoff step between read retries (seconds)"
    )

    # ======================
    # Signing
    # ======================
    enforce_sender_match: bool = Field(
        default=True,
        description="Reject transfers whose secret key does not belong to senderAddress",
    )

    # ======================
    # Session tokens
    # ======================
    jwt_secret: str = Field(default="", description="Shared secret for bearer token signatures")
    jwt_algorithm: str = Field(default="HS256", description="Bearer token signature algorithm")
    token_ttl_seconds: int = Field(default=3600, description="Lifetime of issued tokens")
    token_leeway_seconds: int = Field(
        default=0, ge=0, description="Clock skew tolerated on token expiry"
    )
    token_cookie_name: str = Field(default="token", description="Session cookie carrying the token")

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("API_PORT", "PORT"),
        description="API server port",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=False, description="Enable debug mode")
    allowed_origin: str = Field(default="", description="CORS origin allowed in production")
    dev_origin: str = Field(
        default="http://localhost:5173", description="CORS origin allowed outside production"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> list[str]:
        """Origins allowed by the CORS middleware for this environment."""
        origin = self.allowed_origin if self.is_production else self.dev_origin
        return [origin] if origin else []

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "ledger": {
                "rpc": self.solana_rpc_url,
                "commitment": self.commitment,
                "confirm_timeout": self.confirm_timeout,
                "read_retries": self.read_retries,
            },
            "auth": {
                "jwt_secret": "***" if self.jwt_secret else "(not set)",
                "algorithm": self.jwt_algorithm,
                "token_ttl_seconds": self.token_ttl_seconds,
            },
            "cors_origins": self.cors_origins,
            "enforce_sender_match": self.enforce_sender_match,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Drop the cached settings (for testing)."""
    get_settings.cache_clear()
