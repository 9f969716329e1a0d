"""Health check endpoint.

Reports the pool address so operators and the frontend can confirm which
account this relay pays out from. It makes no RPC call, so it stays up when
the node is down.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from zknon_relay.api.deps import get_container
from zknon_relay.container import RelayContainer
from zknon_relay.schemas.withdrawal import HealthResponse

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
)
async def health_check(container: RelayContainer = Depends(get_container)) -> HealthResponse:
    return HealthResponse(
        service=container.service_name,
        pool=container.pool_address,
        cors=container.allowed_origins,
    )
