"""Pydantic schemas for the relay API.

Request schemas stay permissive about amount types: the orchestrator owns
amount validation so that a bad amount is reported the same way whether it
arrives over HTTP or from another caller. Field aliases keep the wire names
that existing frontends send (``amountLamports``, ``to``).
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class WithdrawRequest(BaseModel):
    """Request body for POST /withdraw (and its /relay aliases)."""

    model_config = ConfigDict(populate_by_name=True)

    recipient: Any = Field(
        default=None,
        validation_alias=AliasChoices("recipient", "to"),
        description="Base58 address that receives the lamports",
        examples=["9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"],
    )
    amount_lamports: Any = Field(
        default=None,
        validation_alias=AliasChoices("amountLamports", "amount_lamports"),
        description="Amount as an integer number of lamports",
        examples=[1000000],
    )
    amount: Any = Field(
        default=None,
        description="Amount in SOL as a decimal; mutually exclusive with amountLamports",
        examples=["0.001"],
    )
    reference: str | None = Field(
        default=None,
        max_length=256,
        validation_alias=AliasChoices("reference", "depositSignature"),
        description="Optional audit tag carried into logs and results",
    )


class RpcProxyRequest(BaseModel):
    """Request body for POST /rpc-proxy."""

    method: str | None = None
    params: Any = None
    id: Any = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    ok: bool = True
    service: str
    pool: str
    cors: list[str]


class BalanceResponse(BaseModel):
    ok: bool = True
    address: str
    lamports: int


class BlockhashResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    blockhash: str
    last_valid_block_height: int = Field(serialization_alias="lastValidBlockHeight")


class RpcProxyResponse(BaseModel):
    ok: bool = True
    result: Any = None


class WithdrawResponse(BaseModel):
    """Successful (or soft-successful) withdrawal."""

    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    id: str
    signature: str
    explorer: str
    last_valid_block_height: int | None = Field(
        default=None, serialization_alias="lastValidBlockHeight"
    )
    confirmation_status: str | None = Field(default=None, serialization_alias="confirmationStatus")
    retry: int | None = None
    note: str | None = None


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
    code: str
    signature: str | None = None
    note: str | None = None
