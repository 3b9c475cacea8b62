"""Shared pytest fixtures for PoolWatch tests.

This module provides fixtures for:
- Environment isolation and settings cache reset
- Mocked RPC, pool-key, metadata and executor collaborators
- A dispatcher wired to those mocks with a fixed clock

Usage:
    @pytest.mark.asyncio
    async def test_something(dispatcher, mock_rpc_client):
        ...
"""

import os
from collections.abc import Generator
from unittest.mock import AsyncMock, MagicMock

import pytest

from poolwatch.config.settings import get_settings
from poolwatch.core.dispatcher import EventDispatcher
from poolwatch.core.pending_list import PendingList
from poolwatch.core.seen_signatures import SeenSignatureSet
from tests.factories.pool import NOW, PoolKeysFactory, TokenMetadataFactory

# =============================================================================
# Environment Configuration
# =============================================================================


@pytest.fixture(autouse=True)
def isolated_environment() -> Generator[None, None, None]:
    """Isolate env vars and the cached settings per test."""
    original_env = os.environ.copy()
    get_settings.cache_clear()

    yield

    os.environ.clear()
    os.environ.update(original_env)
    get_settings.cache_clear()


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def pool_keys_factory() -> type[PoolKeysFactory]:
    """Provide pool keys factory."""
    return PoolKeysFactory


@pytest.fixture
def metadata_factory() -> type[TokenMetadataFactory]:
    """Provide token metadata factory."""
    return TokenMetadataFactory


# =============================================================================
# Mock Collaborators
# =============================================================================


@pytest.fixture
def mock_rpc_client() -> MagicMock:
    """RPC client whose transaction lookup succeeds."""
    client = MagicMock()
    client.get_transaction = AsyncMock(return_value={"slot": 1, "meta": {"err": None}})
    return client


@pytest.fixture
def mock_pool_keys_resolver() -> MagicMock:
    """Resolver returning pool keys whose open time has passed."""
    resolver = MagicMock()
    resolver.resolve = AsyncMock(return_value=PoolKeysFactory())
    return resolver


@pytest.fixture
def mock_metadata_fetcher() -> MagicMock:
    """Metadata fetcher returning symbol FOO."""
    fetcher = MagicMock()
    fetcher.fetch = AsyncMock(return_value=TokenMetadataFactory())
    return fetcher


@pytest.fixture
def mock_executor() -> MagicMock:
    """Executor recording hand-offs."""
    executor = MagicMock()
    executor.execute = AsyncMock(return_value=None)
    return executor


@pytest.fixture
def recording_sleep() -> AsyncMock:
    """Sleep replacement that returns immediately and records delays."""
    return AsyncMock(return_value=None)


@pytest.fixture
def dispatcher(
    mock_rpc_client: MagicMock,
    mock_pool_keys_resolver: MagicMock,
    mock_metadata_fetcher: MagicMock,
    mock_executor: MagicMock,
    recording_sleep: AsyncMock,
) -> EventDispatcher:
    """Dispatcher targeting symbol FOO with a fixed clock."""
    return EventDispatcher(
        rpc_client=mock_rpc_client,
        pool_keys_resolver=mock_pool_keys_resolver,
        metadata_fetcher=mock_metadata_fetcher,
        executor=mock_executor,
        seen_signatures=SeenSignatureSet(max_size=100, ttl_seconds=60),
        pending_list=PendingList(),
        target_symbol="FOO",
        use_pending_list=False,
        check_symbol=True,
        clock=lambda: float(NOW),
        sleep=recording_sleep,
    )
