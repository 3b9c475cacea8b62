"""Resolve an OpenBook market id to its Raydium AMM v4 pool keys."""

import base64
import struct

import base58
import structlog

from poolwatch.constants import (
    AMM_V4_ACCOUNT_SIZE,
    AMM_V4_BASE_MINT_OFFSET,
    AMM_V4_LP_MINT_OFFSET,
    AMM_V4_MARKET_ID_OFFSET,
    AMM_V4_POOL_OPEN_TIME_OFFSET,
    AMM_V4_QUOTE_MINT_OFFSET,
    RAYDIUM_AMM_V4_PROGRAM_ID,
)
from poolwatch.models.events import PoolKeys
from poolwatch.services.solana.rpc_client import SolanaRPCClient

logger = structlog.get_logger(__name__)


def _pubkey_at(data: bytes, offset: int) -> str:
    return base58.b58encode(data[offset : offset + 32]).decode()


def decode_pool_keys(pool_id: str, data: bytes) -> PoolKeys:
    """Decode the fields PoolWatch needs from an AMM v4 pool account.

    Raises:
        ValueError: If ``data`` is shorter than a pool account.
    """
    if len(data) < AMM_V4_ACCOUNT_SIZE:
        raise ValueError(
            f"AMM v4 account too short: {len(data)} < {AMM_V4_ACCOUNT_SIZE}"
        )

    (pool_open_time,) = struct.unpack_from("<Q", data, AMM_V4_POOL_OPEN_TIME_OFFSET)
    return PoolKeys(
        pool_id=pool_id,
        base_mint=_pubkey_at(data, AMM_V4_BASE_MINT_OFFSET),
        quote_mint=_pubkey_at(data, AMM_V4_QUOTE_MINT_OFFSET),
        lp_mint=_pubkey_at(data, AMM_V4_LP_MINT_OFFSET),
        market_id=_pubkey_at(data, AMM_V4_MARKET_ID_OFFSET),
        pool_open_time=pool_open_time,
    )


class PoolKeysResolver:
    """Looks up the AMM v4 pool account created for a market."""

    def __init__(
        self,
        rpc_client: SolanaRPCClient,
        program_id: str = RAYDIUM_AMM_V4_PROGRAM_ID,
    ) -> None:
        self.rpc_client = rpc_client
        self.program_id = program_id

    async def resolve(self, market_id: str) -> PoolKeys | None:
        """Resolve ``market_id`` to pool keys.

        Returns:
            PoolKeys of the first matching pool, or None if no pool exists yet.

        Raises:
            ExternalServiceError: If the RPC call fails.
            ValueError: If the returned account cannot be decoded.
        """
        accounts = await self.rpc_client.get_program_accounts(
            self.program_id,
            filters=[
                {"dataSize": AMM_V4_ACCOUNT_SIZE},
                {"memcmp": {"offset": AMM_V4_MARKET_ID_OFFSET, "bytes": market_id}},
            ],
        )
        if not accounts:
            logger.debug("pool_keys_not_found", market_id=market_id[:8] + "...")
            return None

        entry = accounts[0]
        encoded, _encoding = entry["account"]["data"]
        keys = decode_pool_keys(entry["pubkey"], base64.b64decode(encoded))

        logger.debug(
            "pool_keys_resolved",
            market_id=market_id[:8] + "...",
            pool_id=keys.pool_id[:8] + "...",
            base_mint=keys.base_mint[:8] + "...",
        )
        return keys
