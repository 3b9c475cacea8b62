"""Unit tests for the websocket log subscriber."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from solders.rpc.config import RpcTransactionLogsFilter, RpcTransactionLogsFilterMentions

from poolwatch.constants import RAYDIUM_AMM_V4_PROGRAM_ID
from poolwatch.core.exceptions import SubscriptionError
from poolwatch.models.events import LogNotification
from poolwatch.services.solana.log_subscriber import (
    LogSubscriber,
    build_logs_filter,
    to_log_notification,
)
from tests.factories.pool import init_logs, make_signature


class FakeLogsNotification:
    """Stand-in for solders LogsNotification."""

    def __init__(self, signature: str, logs: list[str], err=None) -> None:
        self.result = SimpleNamespace(
            value=SimpleNamespace(signature=signature, logs=logs, err=err)
        )


class FakeWebsocket:
    """Websocket that replays queued batches, then waits forever."""

    def __init__(self, batches: list) -> None:
        self._batches = list(batches)
        self.recv_cancelled = False
        self.recv_cancelled_before_close: bool | None = None
        self.logs_subscribe = AsyncMock()
        self.logs_unsubscribe = AsyncMock()
        self.close = AsyncMock(side_effect=self._on_close)

    async def _on_close(self) -> None:
        self.recv_cancelled_before_close = self.recv_cancelled

    async def recv(self):
        if self._batches:
            batch = self._batches.pop(0)
            if isinstance(batch, Exception):
                raise batch
            return batch
        try:
            await asyncio.Future()
        except asyncio.CancelledError:
            self.recv_cancelled = True
            raise


@pytest.fixture
def patched_notification_type():
    with patch(
        "poolwatch.services.solana.log_subscriber.LogsNotification", FakeLogsNotification
    ):
        yield


def subscription_ack(subscription_id: int = 42) -> list:
    return [SimpleNamespace(result=subscription_id)]


class TestBuildLogsFilter:
    """build_logs_filter()."""

    def test_all(self):
        assert build_logs_filter("all") == RpcTransactionLogsFilter.All
        assert build_logs_filter("ALL") == RpcTransactionLogsFilter.All

    def test_program_mentions(self):
        result = build_logs_filter(RAYDIUM_AMM_V4_PROGRAM_ID)
        assert isinstance(result, RpcTransactionLogsFilterMentions)


class TestToLogNotification:
    """Conversion to the dispatcher model."""

    def test_copies_fields(self):
        signature = make_signature()

        notification = to_log_notification(FakeLogsNotification(signature, init_logs()))

        assert notification == LogNotification(signature=signature, logs=init_logs(), err=None)


class TestLogSubscriberRun:
    """LogSubscriber.run()."""

    @pytest.mark.asyncio
    async def test_submits_each_notification(self, patched_notification_type):
        signatures = [make_signature(), make_signature()]
        websocket = FakeWebsocket(
            [
                subscription_ack(),
                [FakeLogsNotification(s, init_logs()) for s in signatures],
            ]
        )
        dispatcher = MagicMock()
        subscriber = LogSubscriber(
            "wss://node", mentions="all", connect_factory=AsyncMock(return_value=websocket)
        )

        task = asyncio.create_task(subscriber.run(dispatcher))
        for _ in range(50):
            if dispatcher.submit.call_count == 2:
                break
            await asyncio.sleep(0.01)
        subscriber.stop()
        await asyncio.wait_for(task, timeout=1)

        submitted = [call.args[0].signature for call in dispatcher.submit.call_args_list]
        assert submitted == signatures
        assert subscriber.received == 2
        websocket.logs_unsubscribe.assert_awaited_once_with(42)
        websocket.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ignores_other_messages(self, patched_notification_type):
        websocket = FakeWebsocket([subscription_ack(), [SimpleNamespace(result=True)]])
        dispatcher = MagicMock()
        subscriber = LogSubscriber("wss://node", connect_factory=AsyncMock(return_value=websocket))

        task = asyncio.create_task(subscriber.run(dispatcher))
        await asyncio.sleep(0.05)
        subscriber.stop()
        await asyncio.wait_for(task, timeout=1)

        dispatcher.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_connect_failure_is_fatal(self):
        subscriber = LogSubscriber(
            "wss://node", connect_factory=AsyncMock(side_effect=OSError("refused"))
        )

        with pytest.raises(SubscriptionError):
            await subscriber.run(MagicMock())

    @pytest.mark.asyncio
    async def test_subscribe_failure_is_fatal_and_closes(self):
        websocket = FakeWebsocket([])
        websocket.logs_subscribe.side_effect = RuntimeError("rejected")
        subscriber = LogSubscriber("wss://node", connect_factory=AsyncMock(return_value=websocket))

        with pytest.raises(SubscriptionError):
            await subscriber.run(MagicMock())

        websocket.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_lost_stream_raises(self, patched_notification_type):
        websocket = FakeWebsocket([subscription_ack(), ConnectionError("closed")])
        subscriber = LogSubscriber("wss://node", connect_factory=AsyncMock(return_value=websocket))

        with pytest.raises(SubscriptionError):
            await subscriber.run(MagicMock())

        websocket.logs_unsubscribe.assert_not_awaited()
        websocket.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_finishes_pending_recv_before_close(self, patched_notification_type):
        websocket = FakeWebsocket([subscription_ack()])
        subscriber = LogSubscriber("wss://node", connect_factory=AsyncMock(return_value=websocket))

        task = asyncio.create_task(subscriber.run(MagicMock()))
        await asyncio.sleep(0.05)
        subscriber.stop()
        await asyncio.wait_for(task, timeout=1)

        assert websocket.recv_cancelled_before_close is True
