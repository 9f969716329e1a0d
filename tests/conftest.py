"""Shared test fixtures for the zknon relay test suite.

Provides:
    - A deterministic pool credential and recipient address
    - FakeNetworkClient: a scriptable, call-counting NetworkClient
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from zknon_relay.domain.amounts import LAMPORTS_PER_SOL
from zknon_relay.domain.enums import Commitment
from zknon_relay.domain.models import ReferenceHash, SubmissionOutcome
from zknon_relay.infrastructure.addresses import parse_address
from zknon_relay.infrastructure.key_custody import PoolCredential

POOL_SEED = bytes(range(32))
RECIPIENT = str(Pubkey(bytes([9] * 32)))


def make_reference(n: int = 1, last_valid_block_height: int = 1_000) -> ReferenceHash:
    """A valid blockhash distinct for each ``n``."""
    return ReferenceHash(
        blockhash=str(Hash(bytes([n % 256] * 32))),
        last_valid_block_height=last_valid_block_height,
    )


OutcomeFactory = Callable[[str], SubmissionOutcome]


class FakeNetworkClient:
    """In-memory NetworkClient.

    Every method records its name in ``calls``. Behaviour is scripted through
    queues: each entry of ``submit_script`` is either None (accept and return
    the transaction's real signature) or an exception to raise; each entry of
    ``poll_script`` builds the outcome for a signature. Empty queues fall back
    to accepting and confirming.
    """

    def __init__(self, balance: int = 10 * LAMPORTS_PER_SOL, block_height: int = 500) -> None:
        self.balance = balance
        self.block_height = block_height
        self.calls: list[str] = []
        self.submitted: list[bytes] = []
        self.references_served: list[ReferenceHash] = []
        self.submit_script: list[Exception | None] = []
        self.poll_script: list[OutcomeFactory] = []
        self.call_results: dict[str, Any] = {}

    def count(self, method: str) -> int:
        return self.calls.count(method)

    async def call(self, method: str, params: Any = None, *, request_id: Any = None) -> Any:
        self.calls.append("call")
        return self.call_results.get(method, {"method": method, "params": params})

    async def get_reference_hash(self, commitment: Commitment = Commitment.CONFIRMED) -> ReferenceHash:
        self.calls.append("get_reference_hash")
        reference = make_reference(len(self.references_served) + 1)
        self.references_served.append(reference)
        return reference

    async def get_block_height(self, commitment: Commitment = Commitment.CONFIRMED) -> int:
        self.calls.append("get_block_height")
        return self.block_height

    async def get_balance(self, address: str) -> int:
        self.calls.append("get_balance")
        parse_address(address)
        return self.balance

    async def submit(self, raw: bytes, *, skip_validation: bool = False) -> str:
        self.calls.append("submit")
        self.submitted.append(raw)
        scripted = self.submit_script.pop(0) if self.submit_script else None
        if scripted is not None:
            raise scripted
        return str(VersionedTransaction.from_bytes(raw).signatures[0])

    async def poll_status(
        self,
        signature: str,
        *,
        timeout: float,
        interval: float,
        finality: Commitment,
    ) -> SubmissionOutcome:
        self.calls.append("poll_status")
        if self.poll_script:
            return self.poll_script.pop(0)(signature)
        return SubmissionOutcome.confirmed(signature, finality)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def credential() -> PoolCredential:
    """Pool credential derived from a fixed seed."""
    return PoolCredential(Keypair.from_seed(POOL_SEED))


@pytest.fixture
def recipient() -> str:
    return RECIPIENT


@pytest.fixture
def network() -> FakeNetworkClient:
    return FakeNetworkClient()
