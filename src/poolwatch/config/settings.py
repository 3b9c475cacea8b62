"""Application settings using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from poolwatch.constants import RAYDIUM_AMM_V4_PROGRAM_ID


class Settings(BaseSettings):
    """PoolWatch configuration from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Ignore extra env vars
    )

    # Application
    app_name: str = Field(default="PoolWatch", description="Application name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level"
    )

    # Solana RPC
    solana_rpc_url: str = Field(
        default="https://api.mainnet-beta.solana.com",
        description="Solana RPC endpoint URL",
    )
    solana_ws_url: str | None = Field(
        default=None,
        description="Solana websocket URL (derived from solana_rpc_url if unset)",
    )
    rpc_commitment: Literal["processed", "confirmed", "finalized"] = Field(
        default="confirmed", description="Commitment for transaction lookups"
    )
    rpc_timeout_seconds: float = Field(
        default=10.0, gt=0, description="HTTP timeout for RPC calls"
    )
    log_filter_mentions: str = Field(
        default=RAYDIUM_AMM_V4_PROGRAM_ID,
        description="Program id whose logs are watched, or 'all'",
    )

    # Filtering
    token_symbol_filter: str = Field(default="", description="Target token symbol")
    use_pending_snipe_list: bool = Field(
        default=False, description="Dispatch mints on the pending list unconditionally"
    )
    check_token_symbol: bool = Field(
        default=True, description="Compare token symbol against the target"
    )
    pending_snipe_list: str = Field(
        default="", description="Comma-separated base mints on the pending list"
    )
    snipe_list_file: str | None = Field(
        default=None, description="File with one base mint per line"
    )
    snipe_list_refresh_seconds: int = Field(
        default=30, ge=1, description="Seconds between snipe list file reloads"
    )

    # Dedup
    seen_signatures_max_size: int = Field(
        default=50_000, ge=1, description="Max remembered signatures"
    )
    seen_signatures_ttl_seconds: int = Field(
        default=3600, ge=1, description="Seconds a signature is remembered"
    )

    # Circuit Breaker
    circuit_breaker_threshold: int = Field(
        default=5, ge=1, description="Failures before circuit opens"
    )
    circuit_breaker_cooldown: int = Field(
        default=30, ge=1, description="Seconds before half-open"
    )

    @field_validator("solana_rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate RPC URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("Solana RPC URL must start with http:// or https://")
        return v

    @field_validator("solana_ws_url")
    @classmethod
    def validate_ws_url(cls, v: str | None) -> str | None:
        """Validate websocket URL format."""
        if v is not None and not v.startswith(("ws://", "wss://")):
            raise ValueError("Solana websocket URL must start with ws:// or wss://")
        return v

    @property
    def websocket_url(self) -> str:
        """Websocket endpoint, derived from the RPC URL when not configured."""
        if self.solana_ws_url:
            return self.solana_ws_url
        return "ws" + self.solana_rpc_url.removeprefix("http")

    @property
    def pending_mints(self) -> list[str]:
        """Mints from PENDING_SNIPE_LIST, in order, blanks dropped."""
        return [m.strip() for m in self.pending_snipe_list.split(",") if m.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
