"""Withdrawal REST API routes.

Routes:
    POST /withdraw                 Pay out from the pool to a recipient
    POST /relay, /relay-withdraw   Legacy aliases used by older frontends
    GET  /withdrawals/{id}         Look up the outcome of a finished withdrawal

A withdrawal's id is its X-Request-ID. The handler waits for the
orchestrator, but a client that gives up does not stop it; the outcome can
be fetched afterwards by id.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from zknon_relay.api.deps import admit_withdrawal, get_container, get_request_id
from zknon_relay.api.middleware import error_response
from zknon_relay.container import RelayContainer
from zknon_relay.domain.enums import WithdrawalStatus
from zknon_relay.domain.exceptions import WithdrawalNotFoundError
from zknon_relay.domain.models import WithdrawalRequest, WithdrawalResult
from zknon_relay.schemas.withdrawal import WithdrawRequest, WithdrawResponse

router = APIRouter(tags=["Withdrawal"])


def _render(result: WithdrawalResult, container: RelayContainer) -> JSONResponse | WithdrawResponse:
    if result.status is WithdrawalStatus.FAILED or result.signature is None:
        if result.error is None:
            raise RuntimeError(f"Withdrawal {result.withdrawal_id} failed without an error")
        return error_response(result.error, signature=result.signature, note=result.note)
    return WithdrawResponse(
        id=result.withdrawal_id,
        signature=result.signature,
        explorer=container.explorer_url(result.signature),
        last_valid_block_height=result.last_valid_block_height,
        confirmation_status=str(result.finality) if result.finality else None,
        retry=result.retries or None,
        note=result.note,
    )


@router.post(
    "/withdraw",
    response_model=WithdrawResponse,
    response_model_exclude_none=True,
    summary="Withdraw lamports from the pool",
    dependencies=[Depends(admit_withdrawal)],
)
@router.post(
    "/relay",
    response_model=WithdrawResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
    dependencies=[Depends(admit_withdrawal)],
)
@router.post(
    "/relay-withdraw",
    response_model=WithdrawResponse,
    response_model_exclude_none=True,
    include_in_schema=False,
    dependencies=[Depends(admit_withdrawal)],
)
async def withdraw(
    request: WithdrawRequest,
    container: RelayContainer = Depends(get_container),
    request_id: str = Depends(get_request_id),
):
    """Run one withdrawal to a terminal state.

    SUCCEEDED and SUCCEEDED_UNCONFIRMED both answer 200 with the signature;
    the latter carries a ``note``. FAILED answers with the status mapped
    from its error.
    """
    result = await container.runner.run(
        WithdrawalRequest(
            withdrawal_id=request_id,
            recipient=request.recipient,
            amount_lamports=request.amount_lamports,
            amount_sol=request.amount,
            reference=request.reference,
        )
    )
    return _render(result, container)


@router.get(
    "/withdrawals/{withdrawal_id}",
    summary="Get the recorded outcome of a withdrawal",
)
async def get_withdrawal(
    withdrawal_id: str,
    container: RelayContainer = Depends(get_container),
) -> dict:
    if container.runner.is_in_flight(withdrawal_id):
        return {"ok": True, "id": withdrawal_id, "status": "IN_PROGRESS"}
    result = container.runner.get(withdrawal_id)
    if result is None:
        raise WithdrawalNotFoundError(withdrawal_id)
    body = result.to_dict()
    if result.signature:
        body["explorer"] = container.explorer_url(result.signature)
    return {"ok": result.ok, **body}
