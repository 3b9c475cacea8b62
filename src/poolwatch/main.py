"""PoolWatch - main entry point."""

import asyncio
import signal
import sys

import structlog
from pydantic import ValidationError

from poolwatch.config import get_settings
from poolwatch.config.logging import configure_logging
from poolwatch.core.dispatcher import EventDispatcher
from poolwatch.core.exceptions import PoolWatchError
from poolwatch.services.execution.executor import LoggingExecutor
from poolwatch.services.raydium.pool_keys import PoolKeysResolver
from poolwatch.services.solana.log_subscriber import LogSubscriber
from poolwatch.services.solana.rpc_client import SolanaRPCClient
from poolwatch.services.token.metadata import TokenMetadataFetcher

log = structlog.get_logger()


async def monitor_new_pools() -> None:
    """Watch for new pools until interrupted.

    Raises:
        PoolWatchError: If startup or the log subscription fails.
    """
    settings = get_settings()
    rpc_client = SolanaRPCClient(settings)
    dispatcher = EventDispatcher.from_settings(
        settings,
        rpc_client=rpc_client,
        pool_keys_resolver=PoolKeysResolver(rpc_client),
        metadata_fetcher=TokenMetadataFetcher(rpc_client),
        executor=LoggingExecutor(),
    )
    subscriber = LogSubscriber(
        ws_url=settings.websocket_url,
        mentions=settings.log_filter_mentions,
        commitment=settings.rpc_commitment,
    )

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, subscriber.stop)

    log.info(
        "monitoring_new_pools",
        target_symbol=settings.token_symbol_filter,
        use_pending_list=settings.use_pending_snipe_list,
        check_symbol=settings.check_token_symbol,
        pending_mints=len(dispatcher.pending_list),
    )

    try:
        dispatcher.pending_list.start_monitoring()
        await subscriber.run(dispatcher)
    finally:
        await dispatcher.shutdown()
        await dispatcher.pending_list.stop_monitoring()
        await rpc_client.close()
        log.info("shutdown_complete", **dispatcher.get_status())


def main() -> None:
    """Run the watcher; exit non-zero on a fatal startup error."""
    try:
        configure_logging()
        asyncio.run(monitor_new_pools())
    except (PoolWatchError, ValidationError) as e:
        log.error("startup_failed", error=str(e), exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
