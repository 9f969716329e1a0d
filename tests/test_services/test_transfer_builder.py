"""Tests for the transfer builder."""

from __future__ import annotations

import pytest
from solders.hash import Hash
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import VersionedTransaction

from conftest import make_reference
from zknon_relay.domain.exceptions import InvalidAddressError, InvalidAmountError
from zknon_relay.infrastructure.key_custody import PoolCredential
from zknon_relay.services.transfer_builder import TransferBuilder, build_transfer


def _transfer_data(lamports: int) -> bytes:
    # SystemInstruction::Transfer is variant 2, followed by the u64 amount
    return (2).to_bytes(4, "little") + lamports.to_bytes(8, "little")


class TestBuildTransfer:
    def test_message_shape(self, credential: PoolCredential, recipient: str) -> None:
        reference = make_reference(1)
        message = build_transfer(credential.pubkey, recipient, 1_000_000, reference)

        assert message.account_keys[0] == credential.pubkey
        assert Pubkey.from_string(recipient) in message.account_keys
        assert SYSTEM_PROGRAM_ID in message.account_keys
        assert message.recent_blockhash == Hash.from_string(reference.blockhash)
        assert len(message.instructions) == 1
        assert bytes(message.instructions[0].data) == _transfer_data(1_000_000)

    @pytest.mark.parametrize("lamports", [0, -1, True, 1.5, 2**53])
    def test_rejects_bad_lamports(
        self, credential: PoolCredential, recipient: str, lamports: object
    ) -> None:
        with pytest.raises(InvalidAmountError):
            build_transfer(credential.pubkey, recipient, lamports, make_reference())  # type: ignore[arg-type]

    def test_rejects_bad_recipient(self, credential: PoolCredential) -> None:
        with pytest.raises(InvalidAddressError):
            build_transfer(credential.pubkey, "not-an-address", 1, make_reference())


class TestTransferBuilder:
    def test_signed_by_pool(self, credential: PoolCredential, recipient: str) -> None:
        signed = TransferBuilder(credential).build_signed(recipient, 5_000, make_reference())

        transaction = VersionedTransaction.from_bytes(signed.raw)
        assert str(transaction.signatures[0]) == signed.signature
        assert transaction.signatures[0].verify(
            credential.pubkey, to_bytes_versioned(transaction.message)
        )
        assert signed.recipient == recipient
        assert signed.lamports == 5_000

    def test_deterministic(self, credential: PoolCredential, recipient: str) -> None:
        builder = TransferBuilder(credential)
        reference = make_reference(4)

        first = builder.build_signed(recipient, 123, reference)
        second = builder.build_signed(recipient, 123, reference)

        assert first.raw == second.raw
        assert first.signature == second.signature

    def test_new_blockhash_gives_new_signature(
        self, credential: PoolCredential, recipient: str
    ) -> None:
        builder = TransferBuilder(credential)
        first = builder.build_signed(recipient, 123, make_reference(1))
        second = builder.build_signed(recipient, 123, make_reference(2))
        assert first.signature != second.signature

    def test_carries_reference(self, credential: PoolCredential, recipient: str) -> None:
        reference = make_reference(7, last_valid_block_height=4242)
        signed = TransferBuilder(credential).build_signed(recipient, 1, reference)
        assert signed.reference is reference
