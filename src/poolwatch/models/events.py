"""Domain models for the log-event dispatch path."""

from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LogNotification(BaseModel):
    """One logsSubscribe notification."""

    signature: str
    logs: list[str] = Field(default_factory=list)
    err: Any | None = None


class MarketLpInfo(BaseModel):
    """Fields decoded from a Raydium pool-init ray_log record."""

    market_id: str
    open_time: int = Field(..., ge=0)
    base_decimals: int = Field(default=0, ge=0)
    quote_decimals: int = Field(default=0, ge=0)
    base_amount: int = Field(default=0, ge=0)
    quote_amount: int = Field(default=0, ge=0)


class PoolKeys(BaseModel):
    """Subset of the AMM v4 pool account needed to decide on a pool."""

    model_config = ConfigDict(frozen=True)

    pool_id: str
    base_mint: str
    quote_mint: str
    lp_mint: str
    market_id: str
    pool_open_time: int = Field(..., ge=0)


class TokenMetadata(BaseModel):
    """Metaplex token metadata."""

    mint: str
    name: str = ""
    symbol: str = ""
    uri: str = ""


class PoolCandidate(BaseModel):
    """A resolved pool under consideration for dispatch."""

    signature: str
    market_id: str
    pool_keys: PoolKeys
    metadata: TokenMetadata | None = None
    is_pending: bool = False

    @property
    def base_mint(self) -> str:
        return self.pool_keys.base_mint


class DispatchDecision(BaseModel):
    """Hand-off record for the execution collaborator."""

    candidate: PoolCandidate
    delayed_seconds: int = Field(default=0, ge=0)
    decided_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class SkipReason(str, Enum):
    """Why a log event did not lead to a dispatch."""

    ERRORED = "errored"
    DUPLICATE = "duplicate"
    TRANSACTION_UNAVAILABLE = "transaction_unavailable"
    TRANSACTION_FAILED = "transaction_failed"
    UNPARSEABLE_LOGS = "unparseable_logs"
    POOL_KEYS_UNRESOLVED = "pool_keys_unresolved"
    METADATA_MISSING = "metadata_missing"
    SYMBOL_MISMATCH = "symbol_mismatch"
    LOOKUP_FAILED = "lookup_failed"
    CANCELLED = "cancelled"


class Skipped(BaseModel):
    """Outcome for an event that was dropped."""

    signature: str
    reason: SkipReason
    detail: str = ""
