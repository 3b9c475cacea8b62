"""Tests for BaseAPIClient and CircuitBreaker."""

import httpx
import pytest
import respx

from poolwatch.core.exceptions import CircuitBreakerOpenError, ExternalServiceError
from poolwatch.services.base import BaseAPIClient, CircuitBreaker, CircuitState

BASE_URL = "https://rpc.example.com"


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


class TestCircuitBreaker:
    """State transitions."""

    def test_opens_at_threshold(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=2, cooldown_seconds=30, clock=clock)

        breaker.record_failure()
        assert breaker.state == CircuitState.CLOSED
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.remaining_cooldown() == 30
        with pytest.raises(CircuitBreakerOpenError):
            breaker.before_request()

    def test_probe_allowed_after_cooldown(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=1, cooldown_seconds=30, clock=clock)
        breaker.record_failure()

        clock.now += 30
        breaker.before_request()

        assert breaker.state == CircuitState.HALF_OPEN

    def test_failed_probe_reopens(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=5, cooldown_seconds=30, clock=clock)
        breaker.state = CircuitState.HALF_OPEN

        clock.now = 200.0
        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
        assert breaker.opened_at == 200.0

    def test_success_resets(self, clock: FakeClock) -> None:
        breaker = CircuitBreaker(failure_threshold=1, clock=clock)
        breaker.record_failure()

        breaker.record_success()

        assert breaker.state == CircuitState.CLOSED
        assert breaker.failure_count == 0
        assert breaker.remaining_cooldown() == 0.0


class TestBaseAPIClientPost:
    """Single-attempt requests."""

    def test_lazy_initialization(self) -> None:
        client = BaseAPIClient(base_url=BASE_URL)
        assert client._client is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_success_returns_response(self) -> None:
        respx.post(BASE_URL + "/").mock(return_value=httpx.Response(200, json={"ok": True}))
        client = BaseAPIClient(base_url=BASE_URL)

        response = await client.post("/", json={})

        assert response.json() == {"ok": True}
        await client.close()
        assert client._client is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_client_error_does_not_count_against_endpoint(self) -> None:
        respx.post(BASE_URL + "/").mock(return_value=httpx.Response(400))
        client = BaseAPIClient(base_url=BASE_URL)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.post("/")

        assert exc_info.value.status_code == 400
        assert client._circuit_breaker.failure_count == 0
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_server_error_is_single_attempt(self) -> None:
        route = respx.post(BASE_URL + "/").mock(
            side_effect=[httpx.Response(503), httpx.Response(200, json={})]
        )
        client = BaseAPIClient(base_url=BASE_URL)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.post("/")

        assert exc_info.value.status_code == 503
        assert route.call_count == 1
        assert client._circuit_breaker.failure_count == 1
        await client.close()

    @pytest.mark.asyncio
    @respx.mock
    async def test_open_circuit_blocks_requests(self) -> None:
        route = respx.post(BASE_URL + "/").mock(side_effect=httpx.ConnectError("refused"))
        client = BaseAPIClient(base_url=BASE_URL, circuit_breaker_threshold=2)

        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await client.post("/")

        with pytest.raises(CircuitBreakerOpenError):
            await client.post("/")

        assert route.call_count == 2
        await client.close()
