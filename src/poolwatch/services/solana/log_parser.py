"""Extract market and LP info from Raydium program logs.

When Raydium AMM v4 runs ``initialize2`` it prints a ``ray_log`` line holding
a base64 init record::

    log_type u8 | open_time u64 | pc_decimals u8 | coin_decimals u8 |
    pc_lot_size u64 | coin_lot_size u64 | pc_amount u64 | coin_amount u64 |
    market [32]

All integers are little endian. Parsing is pure; nothing here touches the
network.
"""

import base64
import binascii
import struct

import base58
import structlog

from poolwatch.constants import RAY_LOG_PREFIX, RAYDIUM_INIT_INSTRUCTION
from poolwatch.models.events import MarketLpInfo

logger = structlog.get_logger(__name__)

INIT_LOG_TYPE = 0
_INIT_RECORD = struct.Struct("<BQBBQQQQ32s")


def decode_init_record(encoded: str) -> MarketLpInfo | None:
    """Decode a base64 ray_log payload.

    Returns:
        MarketLpInfo for an init record, None for any other record type
        or malformed payload.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return None

    if len(raw) < _INIT_RECORD.size or raw[0] != INIT_LOG_TYPE:
        return None

    (
        _log_type,
        open_time,
        pc_decimals,
        coin_decimals,
        _pc_lot_size,
        _coin_lot_size,
        pc_amount,
        coin_amount,
        market,
    ) = _INIT_RECORD.unpack_from(raw)

    return MarketLpInfo(
        market_id=base58.b58encode(market).decode(),
        open_time=open_time,
        base_decimals=coin_decimals,
        quote_decimals=pc_decimals,
        base_amount=coin_amount,
        quote_amount=pc_amount,
    )


def extract_market_and_lp_info(logs: list[str]) -> MarketLpInfo | None:
    """Find the pool-init record in a transaction's log lines.

    Args:
        logs: Log lines as delivered by logsSubscribe.

    Returns:
        MarketLpInfo, or None if the logs do not describe a new pool.
    """
    if not any(RAYDIUM_INIT_INSTRUCTION in line for line in logs):
        return None

    for line in logs:
        _, sep, payload = line.partition(RAY_LOG_PREFIX)
        if not sep:
            continue
        info = decode_init_record(payload.strip())
        if info is not None:
            return info

    logger.debug("ray_log_init_record_missing", lines=len(logs))
    return None
