"""Pydantic API schemas."""

from zknon_relay.schemas.withdrawal import (
    BalanceResponse,
    BlockhashResponse,
    ErrorResponse,
    HealthResponse,
    RpcProxyRequest,
    RpcProxyResponse,
    WithdrawRequest,
    WithdrawResponse,
)

__all__ = [
    "BalanceResponse",
    "BlockhashResponse",
    "ErrorResponse",
    "HealthResponse",
    "RpcProxyRequest",
    "RpcProxyResponse",
    "WithdrawRequest",
    "WithdrawResponse",
]
