"""Withdrawal Runner: detaches orchestration from the HTTP request.

Once a transaction is broadcast it cannot be called back, so a client that
disconnects or times out must not cancel confirmation polling. Each
withdrawal runs as its own task and the request handler awaits it through
``asyncio.shield``; if the handler is cancelled the task keeps going, and
its result is logged and kept in a bounded history for later lookup.
"""

from __future__ import annotations

import asyncio
from collections import OrderedDict
from typing import TYPE_CHECKING

from zknon_relay.domain.exceptions import DuplicateOperationError
from zknon_relay.logging_config import get_logger

if TYPE_CHECKING:
    from zknon_relay.domain.models import WithdrawalRequest, WithdrawalResult
    from zknon_relay.services.withdrawal_service import WithdrawalService

logger = get_logger(__name__)


class WithdrawalRunner:
    """Runs withdrawals as shielded tasks and remembers their outcomes."""

    def __init__(self, service: WithdrawalService, history_size: int = 1024) -> None:
        self._service = service
        self._history_size = max(1, history_size)
        self._outcomes: OrderedDict[str, WithdrawalResult] = OrderedDict()
        self._in_flight: dict[str, asyncio.Task[WithdrawalResult]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def is_in_flight(self, withdrawal_id: str) -> bool:
        return withdrawal_id in self._in_flight

    def get(self, withdrawal_id: str) -> WithdrawalResult | None:
        """Return the recorded outcome of a finished withdrawal, if still kept."""
        return self._outcomes.get(withdrawal_id)

    async def run(self, request: WithdrawalRequest) -> WithdrawalResult:
        """Start (or refuse) a withdrawal and wait for its result.

        Raises:
            DuplicateOperationError: the id is already running or already finished.
        """
        wid = request.withdrawal_id
        if wid in self._in_flight or wid in self._outcomes:
            raise DuplicateOperationError(wid)

        task = asyncio.create_task(self._execute(request), name=f"withdrawal-{wid}")
        self._in_flight[wid] = task
        try:
            return await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.done():
                logger.warning("withdrawal.caller_gone", withdrawal_id=wid)
            raise

    async def _execute(self, request: WithdrawalRequest) -> WithdrawalResult:
        try:
            result = await self._service.withdraw(request)
        finally:
            self._in_flight.pop(request.withdrawal_id, None)
        self._remember(result)
        logger.info("withdrawal.finished", **result.to_dict())
        return result

    def _remember(self, result: WithdrawalResult) -> None:
        self._outcomes[result.withdrawal_id] = result
        self._outcomes.move_to_end(result.withdrawal_id)
        while len(self._outcomes) > self._history_size:
            self._outcomes.popitem(last=False)

    async def drain(self, timeout: float) -> None:
        """Wait for in-flight withdrawals at shutdown."""
        pending = list(self._in_flight.values())
        if not pending:
            return
        logger.info("withdrawal.draining", in_flight=len(pending), timeout=timeout)
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            logger.error(
                "withdrawal.drain_incomplete",
                abandoned=[task.get_name() for task in still_running],
            )
