"""HTTP client guarded by a circuit breaker.

Every request is a single attempt. A lookup on the dispatch path that fails
is reported to the caller, which skips the candidate; the breaker stops a
failing endpoint from being hammered by every new pool in the meantime.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx
import structlog

from poolwatch.core.exceptions import CircuitBreakerOpenError, ExternalServiceError

log = structlog.get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"  # one probe request allowed


@dataclass
class CircuitBreaker:
    """Consecutive-failure breaker for one endpoint.

    Opens after ``failure_threshold`` failures in a row. Once
    ``cooldown_seconds`` have passed a single probe is let through; its
    outcome closes or reopens the circuit.
    """

    failure_threshold: int = 5
    cooldown_seconds: float = 30
    clock: Callable[[], float] = time.monotonic
    failure_count: int = field(default=0, init=False)
    opened_at: float | None = field(default=None, init=False)
    state: CircuitState = field(default=CircuitState.CLOSED, init=False)

    def record_success(self) -> None:
        if self.state is not CircuitState.CLOSED:
            log.info("circuit_breaker_closed")
        self.failure_count = 0
        self.opened_at = None
        self.state = CircuitState.CLOSED

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.state is CircuitState.HALF_OPEN or (
            self.state is CircuitState.CLOSED
            and self.failure_count >= self.failure_threshold
        ):
            self.state = CircuitState.OPEN
            self.opened_at = self.clock()
            log.warning(
                "circuit_breaker_opened",
                failure_count=self.failure_count,
                cooldown_seconds=self.cooldown_seconds,
            )

    def remaining_cooldown(self) -> float:
        """Seconds until the next probe is allowed (0 when not open)."""
        if self.state is not CircuitState.OPEN or self.opened_at is None:
            return 0.0
        return max(0.0, self.cooldown_seconds - (self.clock() - self.opened_at))

    def before_request(self) -> None:
        """Admit or reject a request.

        Raises:
            CircuitBreakerOpenError: If the circuit is open and cooling down.
        """
        if self.state is not CircuitState.OPEN:
            return
        remaining = self.remaining_cooldown()
        if remaining > 0:
            raise CircuitBreakerOpenError(
                f"Circuit breaker is open. Next probe in {remaining:.1f} seconds."
            )
        self.state = CircuitState.HALF_OPEN
        log.info("circuit_breaker_half_open")


class BaseAPIClient:
    """httpx client with lazy creation and a circuit breaker.

    Example:
        client = BaseAPIClient(base_url="https://api.mainnet-beta.solana.com")
        response = await client.post("", json=payload)
        await client.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
        circuit_breaker_threshold: int = 5,
        circuit_breaker_cooldown: float = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            base_url: Base URL for all requests.
            timeout: Request timeout in seconds.
            headers: Default headers for all requests.
            circuit_breaker_threshold: Failures in a row before the circuit opens.
            circuit_breaker_cooldown: Seconds before a probe is allowed.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url
        self.timeout = timeout
        self.headers = headers or {}
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._circuit_breaker = CircuitBreaker(
            failure_threshold=circuit_breaker_threshold,
            cooldown_seconds=circuit_breaker_cooldown,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self.headers,
                transport=self._transport,
            )
            log.debug("httpx_client_created", base_url=self.base_url)
        return self._client

    async def close(self) -> None:
        """Close the underlying httpx client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            log.debug("httpx_client_closed", base_url=self.base_url)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        """POST once through the circuit breaker.

        Client errors (4xx other than 429) do not count against the endpoint;
        429, 5xx and transport errors do.

        Raises:
            CircuitBreakerOpenError: If the circuit is open.
            ExternalServiceError: If the request fails.
        """
        self._circuit_breaker.before_request()
        client = await self._get_client()

        try:
            response = await client.post(path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            if status_code == 429 or status_code >= 500:
                self._circuit_breaker.record_failure()
            log.warning("request_failed", path=path, status_code=status_code)
            raise ExternalServiceError(
                service=self.base_url, message=str(e), status_code=status_code
            ) from e
        except httpx.RequestError as e:
            self._circuit_breaker.record_failure()
            log.warning("request_connection_error", path=path, error=str(e))
            raise ExternalServiceError(service=self.base_url, message=str(e)) from e

        self._circuit_breaker.record_success()
        return response
