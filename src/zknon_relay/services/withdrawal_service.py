"""Withdrawal Service: the orchestrator of one payout.

Drives the transfer builder and the network client through the
WithdrawalStateMachine until a terminal result:

    VALIDATING -> BUILDING -> SUBMITTING -> CONFIRMING
        -> SUCCEEDED | SUCCEEDED_UNCONFIRMED | FAILED

Retry policy:
    Only hash-expiry-class failures are retried, by going back to BUILDING
    with a freshly fetched blockhash and freshly signed bytes, at most
    ``max_expiry_retries`` times. A transaction rejected for an expired
    blockhash can never land, so rebuilding does not double-pay. The same
    signed bytes are never sent twice.

    A broadcast whose confirmation times out is reported as
    SUCCEEDED_UNCONFIRMED with its signature, unless the signature was never
    seen and the blockhash is provably past its last valid block height, in
    which case that transaction is dead and counts as hash expiry.

Residual risk: if a node accepts an expired-blockhash rejection and later
lands the first transaction anyway, two transfers can land for one request.
This is accepted in exchange for not running a two-phase commit.

Every failure is returned as a FAILED result; nothing escapes ``withdraw``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from zknon_relay.domain.amounts import normalize_lamports
from zknon_relay.domain.enums import Commitment, OutcomeKind, WithdrawalStatus
from zknon_relay.domain.exceptions import (
    HashExpiryError,
    InsufficientFundsError,
    InternalRelayError,
    InvalidAddressError,
    NetworkError,
    RelayError,
    ValidationError,
)
from zknon_relay.domain.models import SignedTransfer, WithdrawalRequest, WithdrawalResult
from zknon_relay.domain.state_machine import WithdrawalStateMachine
from zknon_relay.infrastructure.addresses import parse_address
from zknon_relay.logging_config import get_logger
from zknon_relay.services.transfer_builder import TransferBuilder

if TYPE_CHECKING:
    from solders.pubkey import Pubkey
    from structlog.stdlib import BoundLogger

    from zknon_relay.domain.models import SubmissionOutcome
    from zknon_relay.domain.network_protocol import NetworkClient
    from zknon_relay.infrastructure.key_custody import PoolCredential

logger = get_logger(__name__)

# Base fee for one signature; the pool is the only signer.
FEE_LAMPORTS_PER_SIGNATURE = 5000

UNCONFIRMED_NOTE = (
    "Transaction was broadcast but not confirmed within {timeout:g}s. It may "
    "still land; check the signature before retrying."
)

SUBMIT_UNKNOWN_NOTE = (
    "The connection failed while submitting. The transaction may have been "
    "received; check the signature before retrying."
)


class _Attempt:
    """Mutable bookkeeping for one withdrawal run."""

    def __init__(self) -> None:
        self.retries = 0
        self.submissions = 0
        self.signed: SignedTransfer | None = None
        self.signature: str | None = None
        self.finality: Commitment | None = None


class WithdrawalService:
    """Runs withdrawals to a terminal result."""

    def __init__(
        self,
        credential: PoolCredential,
        network: NetworkClient,
        *,
        reference_commitment: Commitment = Commitment.CONFIRMED,
        finality: Commitment = Commitment.CONFIRMED,
        confirm_timeout: float = 60.0,
        poll_interval: float = 1.25,
        max_expiry_retries: int = 1,
        skip_validation: bool = False,
        preflight_balance_check: bool = True,
    ) -> None:
        self._credential = credential
        self._network = network
        self._builder = TransferBuilder(credential)
        self._reference_commitment = reference_commitment
        self._finality = finality
        self._confirm_timeout = confirm_timeout
        self._poll_interval = poll_interval
        self._max_expiry_retries = max_expiry_retries
        self._skip_validation = skip_validation
        self._preflight_balance_check = preflight_balance_check

    @property
    def pool_address(self) -> str:
        return self._credential.public_address

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    async def withdraw(self, request: WithdrawalRequest) -> WithdrawalResult:
        """Run one withdrawal to SUCCEEDED, SUCCEEDED_UNCONFIRMED or FAILED."""
        sm = WithdrawalStateMachine()
        attempt = _Attempt()
        log = logger.bind(withdrawal_id=request.withdrawal_id, reference=request.reference)

        try:
            recipient, lamports = self._validate(request)
        except ValidationError as exc:
            log.info("withdrawal.invalid", error=exc.message, code=exc.code)
            sm.rejected()
            return self._result(request, sm, attempt, error=exc)
        except Exception as exc:
            log.exception("withdrawal.validation_crashed")
            sm.rejected()
            return self._result(
                request, sm, attempt, error=InternalRelayError(f"Unexpected error: {exc}")
            )

        sm.validated()
        log = log.bind(recipient=str(recipient), lamports=lamports)
        log.info("withdrawal.accepted")

        try:
            if self._preflight_balance_check:
                await self._check_pool_balance(lamports)
            return await self._run(request, sm, attempt, recipient, lamports, log)
        except RelayError as exc:
            log.warning("withdrawal.failed", error=exc.message, code=exc.code, state=sm.status)
            note = None
            if (
                isinstance(exc, NetworkError)
                and sm.status == WithdrawalStatus.SUBMITTING
                and attempt.signed is not None
            ):
                # The node may have queued it before the connection dropped
                attempt.signature = attempt.signed.signature
                note = SUBMIT_UNKNOWN_NOTE
            sm.rejected()
            return self._result(request, sm, attempt, recipient, lamports, error=exc, note=note)
        except Exception as exc:
            if sm.status == WithdrawalStatus.CONFIRMING and attempt.signature:
                # Broadcast succeeded; funds may already have moved
                log.exception("withdrawal.confirmation_crashed", signature=attempt.signature)
                sm.confirmation_timed_out()
                return self._result(
                    request, sm, attempt, recipient, lamports,
                    note=f"Transaction was broadcast but confirmation failed: {exc}. "
                    "Check the signature before retrying.",
                )
            log.exception("withdrawal.crashed", state=sm.status)
            sm.rejected()
            return self._result(
                request, sm, attempt, recipient, lamports,
                error=InternalRelayError(f"Unexpected error: {exc}"),
            )

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def _validate(self, request: WithdrawalRequest) -> tuple[Pubkey, int]:
        recipient = parse_address(request.recipient)
        if recipient == self._credential.pubkey:
            raise InvalidAddressError(str(recipient), "recipient is the pool itself")
        lamports = normalize_lamports(request.amount_lamports, request.amount_sol)
        return recipient, lamports

    async def _check_pool_balance(self, lamports: int) -> None:
        balance = await self._network.get_balance(self.pool_address)
        required = lamports + FEE_LAMPORTS_PER_SIGNATURE
        if balance < required:
            raise InsufficientFundsError(
                f"Pool balance {balance} lamports cannot cover {lamports} plus "
                f"{FEE_LAMPORTS_PER_SIGNATURE} fee"
            )

    async def _run(
        self,
        request: WithdrawalRequest,
        sm: WithdrawalStateMachine,
        attempt: _Attempt,
        recipient: Pubkey,
        lamports: int,
        log: BoundLogger,
    ) -> WithdrawalResult:
        while True:
            # BUILDING: a new blockhash and new signed bytes on every pass
            reference = await self._network.get_reference_hash(self._reference_commitment)
            attempt.signed = self._builder.build_signed(recipient, lamports, reference)
            attempt.signature = None
            attempt.finality = None
            sm.built()

            # SUBMITTING
            attempt.submissions += 1
            try:
                attempt.signature = await self._network.submit(
                    attempt.signed.raw, skip_validation=self._skip_validation
                )
            except HashExpiryError as exc:
                self._retry_or_raise(sm, attempt, exc, log)
                continue
            sm.broadcast_accepted()
            log.info(
                "withdrawal.submitted",
                signature=attempt.signature,
                blockhash=reference.blockhash,
                last_valid_block_height=reference.last_valid_block_height,
                attempt=attempt.submissions,
            )

            # CONFIRMING
            outcome = await self._network.poll_status(
                attempt.signature,
                timeout=self._confirm_timeout,
                interval=self._poll_interval,
                finality=self._finality,
            )
            attempt.finality = outcome.finality

            if outcome.kind is OutcomeKind.CONFIRMED:
                sm.finality_reached()
                log.info("withdrawal.confirmed", signature=attempt.signature, finality=outcome.finality)
                return self._result(request, sm, attempt, recipient, lamports)

            if outcome.kind is OutcomeKind.REJECTED:
                # Landed with an error: fee paid, transfer not made
                raise outcome.error or InternalRelayError("Rejected outcome without an error")

            if await self._expired_unseen(outcome, attempt.signed):
                self._retry_or_raise(
                    sm,
                    attempt,
                    HashExpiryError(
                        f"Transaction {attempt.signature} was never seen and its blockhash "
                        f"expired at block height {reference.last_valid_block_height}"
                    ),
                    log,
                )
                continue

            sm.confirmation_timed_out()
            log.warning(
                "withdrawal.unconfirmed",
                signature=attempt.signature,
                last_seen=outcome.last_seen_status.to_dict() if outcome.last_seen_status else None,
            )
            return self._result(
                request, sm, attempt, recipient, lamports,
                note=UNCONFIRMED_NOTE.format(timeout=self._confirm_timeout),
            )

    def _retry_or_raise(
        self,
        sm: WithdrawalStateMachine,
        attempt: _Attempt,
        exc: HashExpiryError,
        log: BoundLogger,
    ) -> None:
        if attempt.retries >= self._max_expiry_retries:
            raise exc
        attempt.retries += 1
        log.warning(
            "withdrawal.blockhash_expired",
            error=exc.message,
            retry=attempt.retries,
            abandoned_signature=attempt.signed.signature if attempt.signed else None,
        )
        sm.reference_expired()

    async def _expired_unseen(self, outcome: SubmissionOutcome, signed: SignedTransfer) -> bool:
        """True only if the transaction provably can no longer land."""
        if outcome.last_seen_status is not None:
            return False
        try:
            height = await self._network.get_block_height(self._finality)
        except RelayError as exc:
            logger.warning("withdrawal.block_height_unavailable", error=exc.message)
            return False
        return height > signed.reference.last_valid_block_height

    # ------------------------------------------------------------------
    # Result
    # ------------------------------------------------------------------

    def _result(
        self,
        request: WithdrawalRequest,
        sm: WithdrawalStateMachine,
        attempt: _Attempt,
        recipient: Pubkey | None = None,
        lamports: int | None = None,
        *,
        error: RelayError | None = None,
        note: str | None = None,
    ) -> WithdrawalResult:
        return WithdrawalResult(
            withdrawal_id=request.withdrawal_id,
            status=WithdrawalStatus(sm.status),
            recipient=str(recipient) if recipient is not None else None,
            lamports=lamports,
            reference=request.reference,
            signature=attempt.signature,
            retries=attempt.retries,
            submissions=attempt.submissions,
            note=note,
            error=error,
            last_valid_block_height=(
                attempt.signed.reference.last_valid_block_height if attempt.signed else None
            ),
            finality=attempt.finality,
            history=list(sm.history),
        )
