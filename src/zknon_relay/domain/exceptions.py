"""Domain exceptions for the relay service.

These exceptions are framework-agnostic. The orchestrator turns them into
terminal withdrawal results; the API layer's middleware translates the ones
raised elsewhere into HTTP responses.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "RELAY_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Caller input ---


class ValidationError(RelayError):
    """Raised when a withdrawal request is malformed. Never retried."""

    def __init__(self, message: str, code: str = "VALIDATION_ERROR") -> None:
        super().__init__(message=message, code=code)


class InvalidAddressError(ValidationError):
    """Raised when an address is not a valid base58 public key."""

    def __init__(self, address: str, reason: str = "not a valid public key") -> None:
        super().__init__(
            message=f"Invalid address {address!r}: {reason}",
            code="INVALID_ADDRESS",
        )
        self.address = address


class InvalidAmountError(ValidationError):
    """Raised when an amount is missing, non-positive, fractional or too large."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_AMOUNT")


# --- Admission ---


class RateLimitedError(RelayError):
    """Raised when the admission gate refuses a request."""

    def __init__(self, limit: int, window_seconds: float) -> None:
        super().__init__(
            message=f"Rate limit: at most {limit} requests per {window_seconds:g}s",
            code="RATE_LIMITED",
        )
        self.limit = limit
        self.window_seconds = window_seconds


class DuplicateOperationError(RelayError):
    """Raised when a withdrawal id is already in flight or already settled."""

    def __init__(self, withdrawal_id: str) -> None:
        super().__init__(
            message=f"Duplicate withdrawal detected for id: {withdrawal_id}",
            code="DUPLICATE_OPERATION",
        )
        self.withdrawal_id = withdrawal_id


class WithdrawalNotFoundError(RelayError):
    """Raised when no outcome is recorded for a withdrawal id."""

    def __init__(self, withdrawal_id: str) -> None:
        super().__init__(
            message=f"Withdrawal not found: {withdrawal_id}",
            code="WITHDRAWAL_NOT_FOUND",
        )


# --- Startup ---


class ConfigurationError(RelayError):
    """Raised at startup when required configuration is missing."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="CONFIGURATION_ERROR")


class KeyCustodyError(ConfigurationError):
    """Raised when the pool secret cannot be loaded or contradicts the pool address."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.code = "KEY_CUSTODY_ERROR"


# --- Network ---


class NetworkError(RelayError):
    """Transport-level failure: connection, timeout, or an unparsable response."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="NETWORK_ERROR")


class RemoteError(RelayError):
    """The node answered with an application-level error.

    Attributes:
        rpc_code: The JSON-RPC error code (or HTTP status if no body was given).
        data: The structured ``error.data`` payload, if any.
    """

    def __init__(
        self,
        message: str,
        rpc_code: int | None = None,
        data: object = None,
        code: str = "REMOTE_ERROR",
    ) -> None:
        super().__init__(message=message, code=code)
        self.rpc_code = rpc_code
        self.data = data


class HashExpiryError(RemoteError):
    """The transaction's blockhash is unknown to the node or past its validity window.

    A transaction rejected this way can never land, so rebuilding against a
    fresh blockhash is safe.
    """

    def __init__(self, message: str, rpc_code: int | None = None, data: object = None) -> None:
        super().__init__(message=message, rpc_code=rpc_code, data=data, code="BLOCKHASH_EXPIRED")


class InsufficientFundsError(RemoteError):
    """The pool cannot cover the transfer plus fees."""

    def __init__(self, message: str, rpc_code: int | None = None, data: object = None) -> None:
        super().__init__(message=message, rpc_code=rpc_code, data=data, code="INSUFFICIENT_FUNDS")


class InternalRelayError(RelayError):
    """Wraps an unexpected exception caught at the orchestrator boundary."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INTERNAL_ERROR")
