"""Token metadata lookup via the Metaplex metadata account."""

import base64
import struct

import structlog
from solders.pubkey import Pubkey

from poolwatch.constants import METAPLEX_METADATA_PROGRAM_ID
from poolwatch.models.events import TokenMetadata
from poolwatch.services.solana.rpc_client import SolanaRPCClient

logger = structlog.get_logger(__name__)

METADATA_PROGRAM = Pubkey.from_string(METAPLEX_METADATA_PROGRAM_ID)

# key u8 | update_authority [32] | mint [32]
_STRINGS_OFFSET = 1 + 32 + 32


def metadata_address(mint: str) -> str:
    """Derive the metadata PDA for ``mint``."""
    pda, _bump = Pubkey.find_program_address(
        [b"metadata", bytes(METADATA_PROGRAM), bytes(Pubkey.from_string(mint))],
        METADATA_PROGRAM,
    )
    return str(pda)


def _read_string(data: bytes, offset: int) -> tuple[str, int]:
    (length,) = struct.unpack_from("<I", data, offset)
    start = offset + 4
    end = start + length
    if end > len(data):
        raise ValueError("metadata string runs past end of account")
    value = data[start:end].decode("utf-8", errors="replace").rstrip("\x00").strip()
    return value, end


def decode_metadata(mint: str, data: bytes) -> TokenMetadata:
    """Decode name, symbol and uri from a metadata account.

    Raises:
        ValueError: If the account is truncated.
        struct.error: If a length prefix cannot be read.
    """
    name, offset = _read_string(data, _STRINGS_OFFSET)
    symbol, offset = _read_string(data, offset)
    uri, _ = _read_string(data, offset)
    return TokenMetadata(mint=mint, name=name, symbol=symbol, uri=uri)


class TokenMetadataFetcher:
    """Fetches token metadata for a mint."""

    def __init__(self, rpc_client: SolanaRPCClient) -> None:
        self.rpc_client = rpc_client

    async def fetch(self, mint: str) -> TokenMetadata | None:
        """Fetch metadata for ``mint``.

        Returns:
            TokenMetadata, or None if the mint has no metadata account.

        Raises:
            ExternalServiceError: If the RPC call fails.
            ValueError: If the account cannot be decoded.
        """
        account = await self.rpc_client.get_account_info(metadata_address(mint))
        if account is None:
            logger.debug("token_metadata_account_missing", mint=mint[:8] + "...")
            return None

        encoded, _encoding = account["data"]
        metadata = decode_metadata(mint, base64.b64decode(encoded))

        logger.debug(
            "token_metadata_fetched",
            mint=mint[:8] + "...",
            symbol=metadata.symbol,
        )
        return metadata
