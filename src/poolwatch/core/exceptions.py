"""PoolWatch exception hierarchy.

This module defines the base exception class and specialized exceptions
for different error categories across the application.
"""


class PoolWatchError(Exception):
    """Base exception for all PoolWatch errors.

    All custom exceptions in PoolWatch should inherit from this class
    to enable consistent error handling and logging.
    """

    pass


class ConfigurationError(PoolWatchError):
    """Raised when configuration is invalid or missing.

    Example:
        raise ConfigurationError("Snipe list file not readable: mints.txt")
    """

    pass


class ExternalServiceError(PoolWatchError):
    """Raised when an external service call fails.

    Attributes:
        service: Name of the external service that failed.
        status_code: HTTP status code if available, None otherwise.

    Example:
        raise ExternalServiceError(service="solana-rpc", message="Rate limited", status_code=429)
    """

    def __init__(
        self,
        service: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.service = service
        self.status_code = status_code
        super().__init__(f"{service}: {message}")


class RPCError(ExternalServiceError):
    """Raised when a JSON-RPC reply carries an error object.

    Attributes:
        code: JSON-RPC error code.
        method: RPC method that failed.
    """

    def __init__(self, method: str, code: int, message: str) -> None:
        self.method = method
        self.code = code
        super().__init__(service="solana-rpc", message=f"{method} [{code}] {message}")


class CircuitBreakerOpenError(PoolWatchError):
    """Raised when circuit breaker is open.

    Example:
        raise CircuitBreakerOpenError("Circuit is open for Solana RPC")
    """

    pass


class SubscriptionError(PoolWatchError):
    """Raised when the log subscription cannot be established.

    This is fatal: the process exits and relies on external supervision.
    """

    pass
