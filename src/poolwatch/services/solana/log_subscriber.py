"""logsSubscribe feed that drives the event dispatcher.

Uses solana-py's websocket client. Each notification is handed to the
dispatcher as its own task, so a candidate waiting for its pool open time
never blocks delivery of the next notification.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import structlog
from solana.rpc.commitment import Commitment
from solana.rpc.websocket_api import connect
from solders.pubkey import Pubkey
from solders.rpc.config import RpcTransactionLogsFilter, RpcTransactionLogsFilterMentions
from solders.rpc.responses import LogsNotification

from poolwatch.core.exceptions import SubscriptionError
from poolwatch.models.events import LogNotification

if TYPE_CHECKING:
    from poolwatch.core.dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)


def build_logs_filter(
    mentions: str,
) -> RpcTransactionLogsFilter | RpcTransactionLogsFilterMentions:
    """Map the configured mentions value to a logsSubscribe filter."""
    if mentions.lower() == "all":
        return RpcTransactionLogsFilter.All
    return RpcTransactionLogsFilterMentions(Pubkey.from_string(mentions))


def to_log_notification(message: LogsNotification) -> LogNotification:
    """Convert a solders notification into the dispatcher's model."""
    value = message.result.value
    return LogNotification(
        signature=str(value.signature),
        logs=list(value.logs),
        err=value.err,
    )


class LogSubscriber:
    """Subscribes to program logs and submits each one to a dispatcher."""

    def __init__(
        self,
        ws_url: str,
        mentions: str = "all",
        commitment: str = "confirmed",
        connect_factory: Callable[[str], Any] = connect,
    ) -> None:
        self.ws_url = ws_url
        self.mentions = mentions
        self.commitment = commitment
        self._connect = connect_factory
        self._stop = asyncio.Event()
        self.received = 0

    def stop(self) -> None:
        """Ask the receive loop to finish."""
        self._stop.set()

    async def run(self, dispatcher: EventDispatcher) -> None:
        """Subscribe and feed notifications until stopped or disconnected.

        Raises:
            SubscriptionError: If connecting or subscribing fails, or the
                stream drops. There is no reconnect; a supervisor restarts us.
        """
        try:
            websocket = await self._connect(self.ws_url)
        except Exception as e:
            logger.error("log_subscription_connect_failed", url=self.ws_url, error=str(e))
            raise SubscriptionError(f"Cannot connect to {self.ws_url}: {e}") from e

        try:
            subscription_id = await self._subscribe(websocket)
            logger.info(
                "log_subscription_started",
                url=self.ws_url,
                mentions=self.mentions,
                subscription_id=subscription_id,
            )
            await self._receive(websocket, dispatcher)

            # Only reached on a requested stop
            try:
                await websocket.logs_unsubscribe(subscription_id)
            except Exception as e:
                logger.warning("log_unsubscribe_failed", error=str(e))
        finally:
            await websocket.close()
            logger.info("log_subscription_closed", received=self.received)

    async def _subscribe(self, websocket: Any) -> int:
        try:
            await websocket.logs_subscribe(
                build_logs_filter(self.mentions),
                commitment=Commitment(self.commitment),
            )
            first = await websocket.recv()
            return first[0].result
        except Exception as e:
            logger.error("log_subscription_failed", error=str(e))
            raise SubscriptionError(f"logsSubscribe failed: {e}") from e

    async def _receive(self, websocket: Any, dispatcher: EventDispatcher) -> None:
        stop_wait = asyncio.create_task(self._stop.wait())
        recv: asyncio.Task[Any] | None = None
        try:
            while not self._stop.is_set():
                recv = asyncio.create_task(websocket.recv())
                done, _ = await asyncio.wait(
                    {recv, stop_wait}, return_when=asyncio.FIRST_COMPLETED
                )
                if recv not in done:
                    break

                try:
                    messages = recv.result()
                except Exception as e:
                    logger.error("log_stream_lost", error=str(e))
                    raise SubscriptionError(f"Log stream lost: {e}") from e

                for message in messages:
                    if isinstance(message, LogsNotification):
                        self.received += 1
                        dispatcher.submit(to_log_notification(message))
        finally:
            # recv must be finished before the caller closes the websocket
            pending = [t for t in (recv, stop_wait) if t is not None and not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
