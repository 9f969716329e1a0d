"""Domain layer: pure business rules, no HTTP or RPC dependencies."""

from zknon_relay.domain.amounts import (
    LAMPORTS_PER_SOL,
    MAX_SAFE_LAMPORTS,
    normalize_lamports,
)
from zknon_relay.domain.enums import (
    Commitment,
    OutcomeKind,
    WithdrawalStatus,
)
from zknon_relay.domain.exceptions import (
    HashExpiryError,
    InsufficientFundsError,
    NetworkError,
    RelayError,
    RemoteError,
    ValidationError,
)
from zknon_relay.domain.models import (
    ReferenceHash,
    SignedTransfer,
    SubmissionOutcome,
    WithdrawalRequest,
    WithdrawalResult,
)
from zknon_relay.domain.network_protocol import NetworkClient
from zknon_relay.domain.state_machine import WithdrawalStateMachine

__all__ = [
    "LAMPORTS_PER_SOL",
    "MAX_SAFE_LAMPORTS",
    "normalize_lamports",
    "Commitment",
    "OutcomeKind",
    "WithdrawalStatus",
    "HashExpiryError",
    "InsufficientFundsError",
    "NetworkError",
    "RelayError",
    "RemoteError",
    "ValidationError",
    "ReferenceHash",
    "SignedTransfer",
    "SubmissionOutcome",
    "WithdrawalRequest",
    "WithdrawalResult",
    "NetworkClient",
    "WithdrawalStateMachine",
]
