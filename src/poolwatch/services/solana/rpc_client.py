"""Solana JSON-RPC client.

Requests go through BaseAPIClient, so each call is a single attempt behind
the endpoint circuit breaker. Callers on the dispatch path turn failures
into a skipped candidate.
"""

from itertools import count
from typing import Any

import httpx
import structlog

from poolwatch.config.settings import Settings, get_settings
from poolwatch.core.exceptions import RPCError
from poolwatch.services.base import BaseAPIClient

log = structlog.get_logger(__name__)


class SolanaRPCClient(BaseAPIClient):
    """Client for the Solana JSON-RPC methods the dispatcher needs.

    Example:
        client = SolanaRPCClient()
        tx = await client.get_transaction("5j7s...")
        await client.close()
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Solana RPC client with settings."""
        self._settings = settings or get_settings()
        super().__init__(
            base_url=self._settings.solana_rpc_url,
            timeout=self._settings.rpc_timeout_seconds,
            headers={"Content-Type": "application/json"},
            circuit_breaker_threshold=self._settings.circuit_breaker_threshold,
            circuit_breaker_cooldown=self._settings.circuit_breaker_cooldown,
            transport=transport,
        )
        self._ids = count(1)
        log.debug(
            "solana_rpc_client_initialized",
            base_url=self._settings.solana_rpc_url,
        )

    async def call(self, method: str, params: list[Any]) -> Any:
        """Send one JSON-RPC request and return its ``result``.

        Raises:
            RPCError: If the reply carries an ``error`` object.
            ExternalServiceError: If the HTTP request fails.
            CircuitBreakerOpenError: If the endpoint circuit is open.
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        response = await self.post("", json=payload)
        data = response.json()

        error = data.get("error")
        if error:
            raise RPCError(
                method=method,
                code=int(error.get("code", 0)),
                message=str(error.get("message", "unknown error")),
            )
        return data.get("result")

    async def get_transaction(
        self, signature: str, commitment: str | None = None
    ) -> dict[str, Any] | None:
        """Fetch a parsed transaction by signature.

        Args:
            signature: Transaction signature (base58).
            commitment: Commitment level (default: settings.rpc_commitment).

        Returns:
            Transaction dict, or None if the node does not have it.
        """
        result = await self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "jsonParsed",
                    "commitment": commitment or self._settings.rpc_commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )
        if result is None:
            log.debug("solana_transaction_not_found", signature=signature[:8] + "...")
        return result

    async def get_account_info(
        self, address: str, encoding: str = "base64"
    ) -> dict[str, Any] | None:
        """Fetch an account.

        Returns:
            The account ``value`` dict, or None if the account does not exist.
        """
        result = await self.call(
            "getAccountInfo",
            [address, {"encoding": encoding, "commitment": self._settings.rpc_commitment}],
        )
        if result is None:
            return None
        return result.get("value")

    async def get_program_accounts(
        self,
        program_id: str,
        filters: list[dict[str, Any]],
        encoding: str = "base64",
    ) -> list[dict[str, Any]]:
        """List accounts owned by ``program_id`` that match ``filters``.

        Returns:
            List of ``{"pubkey": ..., "account": {...}}`` entries.
        """
        result = await self.call(
            "getProgramAccounts",
            [
                program_id,
                {
                    "encoding": encoding,
                    "commitment": self._settings.rpc_commitment,
                    "filters": filters,
                },
            ],
        )
        return result or []
