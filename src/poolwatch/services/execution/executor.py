"""Execution hand-off for dispatch decisions.

The purchase itself is not implemented here; an executor receives the
decision and owns whatever happens next.
"""

from typing import Protocol

import structlog

from poolwatch.models.events import DispatchDecision

logger = structlog.get_logger(__name__)


class DispatchExecutor(Protocol):
    """Receives dispatch decisions."""

    async def execute(self, decision: DispatchDecision) -> None: ...


class LoggingExecutor:
    """Executor that only records the hand-off."""

    def __init__(self) -> None:
        self.dispatched = 0

    async def execute(self, decision: DispatchDecision) -> None:
        self.dispatched += 1
        candidate = decision.candidate
        logger.info(
            "dispatch_ready",
            signature=candidate.signature,
            base_mint=candidate.base_mint,
            pool_id=candidate.pool_keys.pool_id,
            symbol=candidate.metadata.symbol if candidate.metadata else None,
            is_pending=candidate.is_pending,
            delayed_seconds=decision.delayed_seconds,
        )
