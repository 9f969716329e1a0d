"""Value objects passed between the relay's components.

All of them are frozen dataclasses: a signed transfer or an outcome is
never edited in place, a new one is built instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from zknon_relay.domain.enums import Commitment, OutcomeKind, WithdrawalStatus

if TYPE_CHECKING:
    from zknon_relay.domain.exceptions import RelayError


@dataclass(frozen=True)
class WithdrawalRequest:
    """Caller-supplied withdrawal, before validation.

    Attributes:
        withdrawal_id: Unique id of this request (the X-Request-ID).
        recipient: Base58 recipient address, as sent by the caller.
        amount_lamports: Integer lamports, if the caller sent them.
        amount_sol: Decimal SOL, if the caller sent that instead.
        reference: Optional audit tag (e.g. an upstream deposit signature).
            Carried through to logs and results, never checked on-chain.
    """

    withdrawal_id: str
    recipient: Any
    amount_lamports: Any = None
    amount_sol: Any = None
    reference: str | None = None


@dataclass(frozen=True)
class ReferenceHash:
    """A recent blockhash and the last block height at which it is valid."""

    blockhash: str
    last_valid_block_height: int


@dataclass(frozen=True)
class SignedTransfer:
    """A serialized, signed pool -> recipient transfer bound to one blockhash."""

    raw: bytes
    signature: str
    reference: ReferenceHash
    recipient: str
    lamports: int


@dataclass(frozen=True)
class SignatureStatus:
    """One entry of a getSignatureStatuses response."""

    slot: int
    confirmation_status: Commitment | None
    confirmations: int | None = None
    err: Any = None

    def to_dict(self) -> dict:
        return {
            "slot": self.slot,
            "confirmationStatus": str(self.confirmation_status) if self.confirmation_status else None,
            "confirmations": self.confirmations,
            "err": self.err,
        }


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of confirming one broadcast transaction.

    UNKNOWN is a legitimate terminal state: broadcast succeeded but the
    polling budget ran out, and the transaction may still land.
    """

    kind: OutcomeKind
    signature: str
    finality: Commitment | None = None
    last_seen_status: SignatureStatus | None = None
    error: RelayError | None = None

    @classmethod
    def confirmed(cls, signature: str, finality: Commitment) -> SubmissionOutcome:
        return cls(kind=OutcomeKind.CONFIRMED, signature=signature, finality=finality)

    @classmethod
    def rejected(
        cls, signature: str, error: RelayError, status: SignatureStatus | None = None
    ) -> SubmissionOutcome:
        return cls(
            kind=OutcomeKind.REJECTED,
            signature=signature,
            error=error,
            last_seen_status=status,
        )

    @classmethod
    def unknown(cls, signature: str, status: SignatureStatus | None = None) -> SubmissionOutcome:
        return cls(
            kind=OutcomeKind.UNKNOWN,
            signature=signature,
            finality=status.confirmation_status if status else None,
            last_seen_status=status,
        )


@dataclass(frozen=True)
class WithdrawalResult:
    """Terminal report of one withdrawal.

    Attributes:
        withdrawal_id: Id of the originating request.
        status: SUCCEEDED, SUCCEEDED_UNCONFIRMED or FAILED.
        signature: Signature of the last broadcast transaction, if any.
        retries: Number of rebuilds after a blockhash expiry.
        submissions: Number of transactions broadcast for this request.
        note: Caveat shown to the caller (set for unconfirmed successes).
        error: The error that ended a FAILED withdrawal.
        last_valid_block_height: Expiry height of the last blockhash used.
        finality: Last observed confirmation level.
        history: Every state visited, in order.
    """

    withdrawal_id: str
    status: WithdrawalStatus
    recipient: str | None = None
    lamports: int | None = None
    reference: str | None = None
    signature: str | None = None
    retries: int = 0
    submissions: int = 0
    note: str | None = None
    error: RelayError | None = None
    last_valid_block_height: int | None = None
    finality: Commitment | None = None
    history: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is not WithdrawalStatus.FAILED

    def to_dict(self) -> dict:
        """Serialize for logs and the outcome lookup endpoint."""
        return {
            "id": self.withdrawal_id,
            "status": str(self.status),
            "recipient": self.recipient,
            "lamports": self.lamports,
            "reference": self.reference,
            "signature": self.signature,
            "retries": self.retries,
            "submissions": self.submissions,
            "note": self.note,
            "error": self.error.message if self.error else None,
            "code": self.error.code if self.error else None,
            "lastValidBlockHeight": self.last_valid_block_height,
            "confirmationStatus": str(self.finality) if self.finality else None,
            "history": list(self.history),
        }
