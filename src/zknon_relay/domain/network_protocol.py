"""Network Client Protocol.

Defines the interface the withdrawal orchestrator needs from the network.
This is a Protocol (structural subtyping) so the real JSON-RPC client and
the in-memory fakes used in tests just need to match the shape.

Implementations raise the typed errors of domain/exceptions.py, so retry
decisions are made on exception type and never on message text.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from zknon_relay.domain.enums import Commitment
    from zknon_relay.domain.models import ReferenceHash, SubmissionOutcome


@runtime_checkable
class NetworkClient(Protocol):
    """Protocol that network client implementations must satisfy.

    Concrete implementations:
        - infrastructure/rpc_client.py (SolanaRpcClient, JSON-RPC over httpx)
    """

    async def call(self, method: str, params: Any = None, *, request_id: Any = None) -> Any:
        """Send a raw JSON-RPC request and return its result (used by the proxy)."""
        ...

    async def get_reference_hash(self, commitment: Commitment) -> ReferenceHash:
        """Fetch the latest blockhash and its last valid block height.

        Raises:
            NetworkError: transport or parse failure.
            RemoteError: the node reported an error.
        """
        ...

    async def get_block_height(self, commitment: Commitment) -> int:
        """Fetch the current block height."""
        ...

    async def get_balance(self, address: str) -> int:
        """Fetch an account balance in lamports.

        Raises:
            InvalidAddressError: the address does not parse.
        """
        ...

    async def submit(self, raw: bytes, *, skip_validation: bool = False) -> str:
        """Broadcast a signed transaction and return its signature.

        Acceptance into the node's queue is not inclusion.

        Raises:
            HashExpiryError: the blockhash is unknown or expired.
            InsufficientFundsError: the payer cannot cover transfer plus fee.
            RemoteError: any other node-side rejection.
            NetworkError: transport failure.
        """
        ...

    async def poll_status(
        self,
        signature: str,
        *,
        timeout: float,
        interval: float,
        finality: Commitment,
    ) -> SubmissionOutcome:
        """Poll by signature until ``finality`` is reached or ``timeout`` elapses.

        Never raises on timeout; returns an UNKNOWN outcome instead.
        """
        ...
