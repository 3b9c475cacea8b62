"""On-chain program ids and account offsets."""

from typing import Final

RAYDIUM_AMM_V4_PROGRAM_ID: Final[str] = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
METAPLEX_METADATA_PROGRAM_ID: Final[str] = "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s"

# Raydium AMM v4 pool state account
AMM_V4_ACCOUNT_SIZE: Final[int] = 752
AMM_V4_POOL_OPEN_TIME_OFFSET: Final[int] = 224
AMM_V4_BASE_MINT_OFFSET: Final[int] = 400
AMM_V4_QUOTE_MINT_OFFSET: Final[int] = 432
AMM_V4_LP_MINT_OFFSET: Final[int] = 464
AMM_V4_MARKET_ID_OFFSET: Final[int] = 528

# Instruction that creates a pool and emits the init ray_log
RAYDIUM_INIT_INSTRUCTION: Final[str] = "initialize2"
RAY_LOG_PREFIX: Final[str] = "ray_log: "
