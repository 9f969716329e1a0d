"""Transfer Builder: one system-program transfer, compiled to a v0 message.

Building is pure and deterministic: the same pool, recipient, lamports and
blockhash always give the same message. Signing is ed25519, which is
deterministic too, so identical inputs give byte-identical transactions.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from solders.hash import Hash
from solders.message import MessageV0
from solders.system_program import TransferParams, transfer
from solders.transaction import VersionedTransaction

from zknon_relay.domain.amounts import MAX_SAFE_LAMPORTS
from zknon_relay.domain.exceptions import InvalidAmountError
from zknon_relay.domain.models import ReferenceHash, SignedTransfer
from zknon_relay.infrastructure.addresses import parse_address

if TYPE_CHECKING:
    from solders.pubkey import Pubkey

    from zknon_relay.infrastructure.key_custody import PoolCredential


def build_transfer(
    pool: Pubkey,
    recipient: Pubkey | str,
    lamports: int,
    reference: ReferenceHash,
) -> MessageV0:
    """Compile an unsigned pool -> recipient transfer bound to ``reference``.

    Raises:
        InvalidAddressError: the recipient does not parse.
        InvalidAmountError: lamports is not a positive integer in range.
    """
    to_pubkey = parse_address(recipient)
    if isinstance(lamports, bool) or not isinstance(lamports, int):
        raise InvalidAmountError(f"lamports must be an integer, got {type(lamports).__name__}")
    if lamports <= 0 or lamports > MAX_SAFE_LAMPORTS:
        raise InvalidAmountError(f"lamports out of range: {lamports}")

    instruction = transfer(
        TransferParams(from_pubkey=pool, to_pubkey=to_pubkey, lamports=lamports)
    )
    return MessageV0.try_compile(
        payer=pool,
        instructions=[instruction],
        address_lookup_table_accounts=[],
        recent_blockhash=Hash.from_string(reference.blockhash),
    )


def sign_transfer(
    message: MessageV0,
    credential: PoolCredential,
    *,
    reference: ReferenceHash,
    recipient: str,
    lamports: int,
) -> SignedTransfer:
    """Sign ``message`` with the pool key and freeze it into wire bytes."""
    transaction = VersionedTransaction(message, [credential.keypair])
    return SignedTransfer(
        raw=bytes(transaction),
        signature=str(transaction.signatures[0]),
        reference=reference,
        recipient=recipient,
        lamports=lamports,
    )


class TransferBuilder:
    """Builds and signs pool transfers with one credential."""

    def __init__(self, credential: PoolCredential) -> None:
        self._credential = credential

    @property
    def pool(self) -> Pubkey:
        return self._credential.pubkey

    def build(self, recipient: Pubkey | str, lamports: int, reference: ReferenceHash) -> MessageV0:
        return build_transfer(self.pool, recipient, lamports, reference)

    def build_signed(
        self, recipient: Pubkey | str, lamports: int, reference: ReferenceHash
    ) -> SignedTransfer:
        message = self.build(recipient, lamports, reference)
        return sign_transfer(
            message,
            self._credential,
            reference=reference,
            recipient=str(parse_address(recipient)),
            lamports=lamports,
        )
