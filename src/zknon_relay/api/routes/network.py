"""Read-only network helpers for the frontend.

Routes:
    GET  /balance      Balance of an address (the pool by default)
    GET  /blockhash    Latest blockhash and its last valid block height
    POST /rpc-proxy    Generic JSON-RPC passthrough, rate limited

The frontend uses these so it never needs its own RPC key.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from zknon_relay.api.deps import admit_proxy_call, get_container
from zknon_relay.container import RelayContainer
from zknon_relay.domain.enums import Commitment
from zknon_relay.domain.exceptions import ValidationError
from zknon_relay.logging_config import get_logger
from zknon_relay.schemas.withdrawal import (
    BalanceResponse,
    BlockhashResponse,
    RpcProxyRequest,
    RpcProxyResponse,
)

router = APIRouter(tags=["Network"])
logger = get_logger(__name__)


@router.get(
    "/balance",
    response_model=BalanceResponse,
    summary="Get an account balance in lamports",
)
async def get_balance(
    address: str | None = Query(default=None, description="Base58 address; defaults to the pool"),
    container: RelayContainer = Depends(get_container),
) -> BalanceResponse:
    target = address if address is not None else container.pool_address
    lamports = await container.network.get_balance(target)
    return BalanceResponse(address=target.strip(), lamports=lamports)


@router.get(
    "/blockhash",
    response_model=BlockhashResponse,
    summary="Get the latest blockhash",
)
async def get_blockhash(container: RelayContainer = Depends(get_container)) -> BlockhashResponse:
    reference = await container.network.get_reference_hash(Commitment.CONFIRMED)
    return BlockhashResponse(
        blockhash=reference.blockhash,
        last_valid_block_height=reference.last_valid_block_height,
    )


@router.post(
    "/rpc-proxy",
    response_model=RpcProxyResponse,
    summary="Proxy a JSON-RPC call to the node",
    dependencies=[Depends(admit_proxy_call)],
)
async def rpc_proxy(
    request: RpcProxyRequest,
    container: RelayContainer = Depends(get_container),
) -> RpcProxyResponse:
    if not request.method:
        raise ValidationError("method required")
    logger.debug("rpc_proxy.call", method=request.method)
    result = await container.network.call(
        request.method,
        request.params if request.params is not None else [],
        request_id=request.id if request.id is not None else 1,
    )
    return RpcProxyResponse(result=result)
