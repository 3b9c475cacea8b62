"""Event dispatcher for new-pool log notifications.

Each notification is handled in its own task:

    dedup -> fetch transaction -> parse logs -> resolve pool keys
          -> pending-list / symbol filter -> wait for open time -> hand off

Every recoverable failure becomes a ``Skipped`` outcome; the stream of
notifications is never interrupted by a single bad candidate.
"""

from __future__ import annotations

import asyncio
import time
from collections import Counter
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

import structlog

from poolwatch.core.pending_list import PendingList
from poolwatch.core.seen_signatures import SeenSignatureSet
from poolwatch.models.events import (
    DispatchDecision,
    LogNotification,
    MarketLpInfo,
    PoolCandidate,
    PoolKeys,
    SkipReason,
    Skipped,
    TokenMetadata,
)
from poolwatch.services.execution.executor import DispatchExecutor, LoggingExecutor
from poolwatch.services.solana.log_parser import extract_market_and_lp_info

if TYPE_CHECKING:
    from poolwatch.config.settings import Settings
    from poolwatch.services.raydium.pool_keys import PoolKeysResolver
    from poolwatch.services.solana.rpc_client import SolanaRPCClient
    from poolwatch.services.token.metadata import TokenMetadataFetcher

logger = structlog.get_logger(__name__)

Outcome = DispatchDecision | Skipped


class EventDispatcher:
    """Turns log notifications into dispatch decisions.

    Owns the dedup set, the pending list and the set of in-flight handler
    tasks. Collaborators are injected so each lookup can be replaced.
    """

    def __init__(
        self,
        rpc_client: SolanaRPCClient,
        pool_keys_resolver: PoolKeysResolver,
        metadata_fetcher: TokenMetadataFetcher,
        executor: DispatchExecutor | None = None,
        seen_signatures: SeenSignatureSet | None = None,
        pending_list: PendingList | None = None,
        target_symbol: str = "",
        use_pending_list: bool = False,
        check_symbol: bool = True,
        commitment: str = "confirmed",
        log_parser: Callable[[list[str]], MarketLpInfo | None] = extract_market_and_lp_info,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            rpc_client: Source of transaction records
            pool_keys_resolver: Market id to pool keys lookup
            metadata_fetcher: Token metadata lookup
            executor: Receives dispatch decisions (default: LoggingExecutor)
            seen_signatures: Dedup set (default: bounded SeenSignatureSet)
            pending_list: Mints that bypass the symbol filter
            target_symbol: Symbol to dispatch on, compared case-insensitively
            use_pending_list: Whether pending-list membership dispatches
            check_symbol: Whether the symbol comparison is enabled
            commitment: Commitment level for transaction lookups
            log_parser: Extracts market info from log lines
            clock: Wall clock in unix seconds
            sleep: Coroutine used to wait for pool open time
        """
        self.rpc_client = rpc_client
        self.pool_keys_resolver = pool_keys_resolver
        self.metadata_fetcher = metadata_fetcher
        self.executor = executor if executor is not None else LoggingExecutor()
        self.seen_signatures = (
            seen_signatures if seen_signatures is not None else SeenSignatureSet()
        )
        self.pending_list = pending_list if pending_list is not None else PendingList()
        self.target_symbol = target_symbol.lower()
        self.use_pending_list = use_pending_list
        self.check_symbol = check_symbol
        self.commitment = commitment
        self._log_parser = log_parser
        self._clock = clock
        self._sleep = sleep
        self._tasks: set[asyncio.Task[Outcome]] = set()
        self._outcomes: Counter[str] = Counter()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        rpc_client: SolanaRPCClient,
        pool_keys_resolver: PoolKeysResolver,
        metadata_fetcher: TokenMetadataFetcher,
        executor: DispatchExecutor | None = None,
    ) -> EventDispatcher:
        """Build a dispatcher from application settings."""
        return cls(
            rpc_client=rpc_client,
            pool_keys_resolver=pool_keys_resolver,
            metadata_fetcher=metadata_fetcher,
            executor=executor,
            seen_signatures=SeenSignatureSet(
                max_size=settings.seen_signatures_max_size,
                ttl_seconds=settings.seen_signatures_ttl_seconds,
            ),
            pending_list=PendingList(
                mints=settings.pending_mints,
                file_path=settings.snipe_list_file,
                refresh_seconds=settings.snipe_list_refresh_seconds,
            ),
            target_symbol=settings.token_symbol_filter,
            use_pending_list=settings.use_pending_snipe_list,
            check_symbol=settings.check_token_symbol,
            commitment=settings.rpc_commitment,
        )

    @property
    def in_flight(self) -> int:
        """Number of handler tasks still running."""
        return len(self._tasks)

    def get_status(self) -> dict[str, Any]:
        """Counters for monitoring."""
        return {
            "in_flight": self.in_flight,
            "seen_signatures": len(self.seen_signatures),
            "pending_mints": len(self.pending_list),
            "outcomes": dict(self._outcomes),
        }

    def submit(self, notification: LogNotification) -> asyncio.Task[Outcome]:
        """Handle ``notification`` in its own task and return the task."""
        task = asyncio.create_task(
            self.on_log_event(notification.signature, notification.logs, notification.err),
            name=f"log-event-{notification.signature[:8]}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def shutdown(self, drain: bool = False) -> None:
        """Stop in-flight handlers.

        Args:
            drain: Wait for handlers to finish instead of cancelling them.
        """
        tasks = list(self._tasks)
        if not tasks:
            return

        logger.info("dispatcher_shutting_down", in_flight=len(tasks), drain=drain)
        if not drain:
            for task in tasks:
                task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def on_log_event(
        self, signature: str, log_lines: list[str], err: Any | None
    ) -> Outcome:
        """Process one log notification.

        Returns:
            DispatchDecision if the pool was handed off, Skipped otherwise.
        """
        log = logger.bind(signature=signature)

        if err is not None:
            return self._skip(log, signature, SkipReason.ERRORED, quiet=True)
        if not self.seen_signatures.claim(signature):
            return self._skip(log, signature, SkipReason.DUPLICATE, quiet=True)

        log.info("new_log_event")

        try:
            return await self._process(log, signature, log_lines)
        except asyncio.CancelledError:
            self._skip(log, signature, SkipReason.CANCELLED)
            raise
        except Exception as e:
            log.error("log_event_processing_failed", error=str(e), exc_info=True)
            return self._skip(log, signature, SkipReason.LOOKUP_FAILED, detail=str(e))

    async def _process(
        self, log: Any, signature: str, log_lines: list[str]
    ) -> Outcome:
        transaction = await self.rpc_client.get_transaction(
            signature, commitment=self.commitment
        )
        if transaction is None:
            return self._skip(log, signature, SkipReason.TRANSACTION_UNAVAILABLE)
        if (transaction.get("meta") or {}).get("err") is not None:
            return self._skip(log, signature, SkipReason.TRANSACTION_FAILED)

        log.info("transaction_fetched")

        lp_info = self._log_parser(log_lines)
        if lp_info is None:
            log.error("market_info_unparseable", lines=len(log_lines))
            return self._skip(log, signature, SkipReason.UNPARSEABLE_LOGS)

        pool_keys = await self.pool_keys_resolver.resolve(lp_info.market_id)
        if pool_keys is None:
            log.error("pool_keys_unresolved", market_id=lp_info.market_id)
            return self._skip(log, signature, SkipReason.POOL_KEYS_UNRESOLVED)

        is_pending = self.use_pending_list and pool_keys.base_mint in self.pending_list

        metadata: TokenMetadata | None = None
        if not is_pending:
            metadata = await self.metadata_fetcher.fetch(pool_keys.base_mint)
            if metadata is None or not metadata.symbol:
                log.info("token_metadata_missing", base_mint=pool_keys.base_mint)
                return self._skip(log, signature, SkipReason.METADATA_MISSING)

            if not self._symbol_matches(metadata.symbol):
                log.info(
                    "token_symbol_mismatch",
                    base_mint=pool_keys.base_mint,
                    symbol=metadata.symbol,
                )
                return self._skip(
                    log, signature, SkipReason.SYMBOL_MISMATCH, detail=metadata.symbol
                )

        candidate = PoolCandidate(
            signature=signature,
            market_id=lp_info.market_id,
            pool_keys=pool_keys,
            metadata=metadata,
            is_pending=is_pending,
        )
        delayed = await self._wait_for_open(log, pool_keys)

        decision = DispatchDecision(candidate=candidate, delayed_seconds=delayed)
        log.info(
            "pool_candidate_dispatching",
            base_mint=pool_keys.base_mint,
            is_pending=is_pending,
        )
        await self._hand_off(log, decision)
        self._outcomes["dispatched"] += 1
        return decision

    def _symbol_matches(self, symbol: str) -> bool:
        return self.check_symbol and symbol.lower() == self.target_symbol

    async def _wait_for_open(self, log: Any, pool_keys: PoolKeys) -> int:
        delay = pool_keys.pool_open_time - int(self._clock())
        if delay <= 0:
            return 0

        log.info("pool_candidate_delayed", delay_seconds=delay)
        await self._sleep(delay)
        return delay

    async def _hand_off(self, log: Any, decision: DispatchDecision) -> None:
        try:
            await self.executor.execute(decision)
        except Exception as e:
            log.error("dispatch_executor_failed", error=str(e), exc_info=True)

    def _skip(
        self,
        log: Any,
        signature: str,
        reason: SkipReason,
        detail: str = "",
        quiet: bool = False,
    ) -> Skipped:
        self._outcomes[reason.value] += 1
        if quiet:
            log.debug("log_event_skipped", reason=reason.value)
        else:
            log.info("log_event_skipped", reason=reason.value, detail=detail or None)
        return Skipped(signature=signature, reason=reason, detail=detail)
