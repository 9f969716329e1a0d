"""Domain enumerations for the relay service.

Framework-agnostic (no solders, no FastAPI imports).
"""

from __future__ import annotations

import enum


class WithdrawalStatus(enum.StrEnum):
    """Lifecycle states of one withdrawal.

    State transitions are enforced by the WithdrawalStateMachine guard.
    See domain/state_machine.py for the transition table.
    """

    VALIDATING = "VALIDATING"
    BUILDING = "BUILDING"
    SUBMITTING = "SUBMITTING"
    CONFIRMING = "CONFIRMING"
    SUCCEEDED = "SUCCEEDED"
    SUCCEEDED_UNCONFIRMED = "SUCCEEDED_UNCONFIRMED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {
        WithdrawalStatus.SUCCEEDED,
        WithdrawalStatus.SUCCEEDED_UNCONFIRMED,
        WithdrawalStatus.FAILED,
    }
)


class Commitment(enum.StrEnum):
    """Finality levels reported by the node, weakest first."""

    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"

    @property
    def rank(self) -> int:
        return _COMMITMENT_ORDER.index(self)

    def satisfies(self, target: Commitment) -> bool:
        """True if this level is at least as final as ``target``."""
        return self.rank >= target.rank


_COMMITMENT_ORDER = (Commitment.PROCESSED, Commitment.CONFIRMED, Commitment.FINALIZED)


class OutcomeKind(enum.StrEnum):
    """Terminal result of confirming one broadcast transaction."""

    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    UNKNOWN = "UNKNOWN"
