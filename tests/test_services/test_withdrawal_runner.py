"""Tests for the withdrawal runner: shielding, duplicates and outcome history."""

from __future__ import annotations

import asyncio

import pytest

from conftest import FakeNetworkClient
from zknon_relay.domain.enums import Commitment, WithdrawalStatus
from zknon_relay.domain.exceptions import DuplicateOperationError
from zknon_relay.domain.models import SubmissionOutcome, WithdrawalRequest
from zknon_relay.infrastructure.key_custody import PoolCredential
from zknon_relay.services.withdrawal_runner import WithdrawalRunner
from zknon_relay.services.withdrawal_service import WithdrawalService


class BlockingNetwork(FakeNetworkClient):
    """Holds every confirmation poll until ``release`` is set."""

    def __init__(self) -> None:
        super().__init__()
        self.polling = asyncio.Event()
        self.release = asyncio.Event()

    async def poll_status(
        self,
        signature: str,
        *,
        timeout: float,
        interval: float,
        finality: Commitment,
    ) -> SubmissionOutcome:
        self.calls.append("poll_status")
        self.polling.set()
        await self.release.wait()
        return SubmissionOutcome.confirmed(signature, finality)


def _runner(
    credential: PoolCredential, network: FakeNetworkClient, history_size: int = 16
) -> WithdrawalRunner:
    service = WithdrawalService(credential, network, confirm_timeout=1.0, poll_interval=0.0)
    return WithdrawalRunner(service, history_size=history_size)


def _request(withdrawal_id: str, recipient: str) -> WithdrawalRequest:
    return WithdrawalRequest(withdrawal_id=withdrawal_id, recipient=recipient, amount_lamports=10_000)


class TestRun:
    @pytest.mark.asyncio
    async def test_returns_and_records_result(
        self, credential: PoolCredential, network: FakeNetworkClient, recipient: str
    ) -> None:
        runner = _runner(credential, network)

        result = await runner.run(_request("wd-1", recipient))

        assert result.status is WithdrawalStatus.SUCCEEDED
        assert runner.get("wd-1") is result
        assert runner.in_flight == 0

    @pytest.mark.asyncio
    async def test_finished_id_is_a_duplicate(
        self, credential: PoolCredential, network: FakeNetworkClient, recipient: str
    ) -> None:
        runner = _runner(credential, network)
        await runner.run(_request("wd-1", recipient))

        with pytest.raises(DuplicateOperationError):
            await runner.run(_request("wd-1", recipient))
        assert network.count("submit") == 1

    @pytest.mark.asyncio
    async def test_in_flight_id_is_a_duplicate(self, credential: PoolCredential, recipient: str) -> None:
        network = BlockingNetwork()
        runner = _runner(credential, network)

        first = asyncio.create_task(runner.run(_request("wd-1", recipient)))
        await network.polling.wait()
        assert runner.is_in_flight("wd-1")

        with pytest.raises(DuplicateOperationError):
            await runner.run(_request("wd-1", recipient))

        network.release.set()
        assert (await first).status is WithdrawalStatus.SUCCEEDED

    @pytest.mark.asyncio
    async def test_failed_results_are_recorded(
        self, credential: PoolCredential, network: FakeNetworkClient
    ) -> None:
        runner = _runner(credential, network)
        result = await runner.run(_request("wd-bad", "nope"))
        assert result.status is WithdrawalStatus.FAILED
        assert runner.get("wd-bad") is result


class TestShielding:
    @pytest.mark.asyncio
    async def test_caller_cancellation_does_not_stop_withdrawal(
        self, credential: PoolCredential, recipient: str
    ) -> None:
        network = BlockingNetwork()
        runner = _runner(credential, network)

        caller = asyncio.create_task(runner.run(_request("wd-1", recipient)))
        await network.polling.wait()
        caller.cancel()
        with pytest.raises(asyncio.CancelledError):
            await caller

        assert runner.is_in_flight("wd-1")
        network.release.set()
        await runner.drain(timeout=1.0)

        result = runner.get("wd-1")
        assert result is not None
        assert result.status is WithdrawalStatus.SUCCEEDED
        assert runner.in_flight == 0


class TestHistory:
    @pytest.mark.asyncio
    async def test_history_is_bounded(
        self, credential: PoolCredential, network: FakeNetworkClient, recipient: str
    ) -> None:
        runner = _runner(credential, network, history_size=2)
        for i in range(3):
            await runner.run(_request(f"wd-{i}", recipient))

        assert runner.get("wd-0") is None
        assert runner.get("wd-1") is not None
        assert runner.get("wd-2") is not None


class TestDrain:
    @pytest.mark.asyncio
    async def test_drain_with_nothing_in_flight(
        self, credential: PoolCredential, network: FakeNetworkClient
    ) -> None:
        await _runner(credential, network).drain(timeout=0.1)

    @pytest.mark.asyncio
    async def test_drain_gives_up_after_timeout(self, credential: PoolCredential, recipient: str) -> None:
        network = BlockingNetwork()
        runner = _runner(credential, network)
        caller = asyncio.create_task(runner.run(_request("wd-1", recipient)))
        await network.polling.wait()

        await runner.drain(timeout=0.01)
        assert runner.is_in_flight("wd-1")

        network.release.set()
        await caller
