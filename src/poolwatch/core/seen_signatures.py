"""Bounded set of already-processed transaction signatures."""

import time
from collections.abc import Callable

import structlog
from cachetools import TTLCache

logger = structlog.get_logger(__name__)


class SeenSignatureSet:
    """
    Remembers signatures for a bounded time and count.

    Entries expire after ``ttl_seconds``; when ``max_size`` is reached the
    least recently inserted entry is evicted first.
    """

    def __init__(
        self,
        max_size: int = 50_000,
        ttl_seconds: float = 3600,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the set.

        Args:
            max_size: Maximum remembered signatures
            ttl_seconds: Seconds a signature stays remembered
            timer: Clock used for expiry (injectable for tests)
        """
        self.max_size = max_size
        self.ttl_seconds = ttl_seconds
        self._entries: TTLCache[str, bool] = TTLCache(
            maxsize=max_size, ttl=ttl_seconds, timer=timer
        )

    def claim(self, signature: str) -> bool:
        """Record ``signature`` if it is new.

        Check and insert happen without yielding to the event loop, so two
        handlers for the same signature can never both win.

        Returns:
            True if the caller owns the signature, False if already seen.
        """
        if signature in self._entries:
            return False
        self._entries[signature] = True
        return True

    def __contains__(self, signature: object) -> bool:
        return signature in self._entries

    def __len__(self) -> int:
        return len(self._entries)
