"""Tests for pool key custody and address parsing."""

from __future__ import annotations

import base58
import pytest
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from zknon_relay.domain.exceptions import InvalidAddressError, KeyCustodyError
from zknon_relay.infrastructure.addresses import parse_address
from zknon_relay.infrastructure.key_custody import load_pool_credential

SEED = bytes(range(32))


def _keypair() -> Keypair:
    return Keypair.from_seed(SEED)


class TestLoadPoolCredential:
    def test_loads_64_byte_secret(self) -> None:
        keypair = _keypair()
        secret = base58.b58encode(bytes(keypair)).decode()

        credential = load_pool_credential(secret)

        assert credential.public_address == str(keypair.pubkey())

    def test_loads_32_byte_seed(self) -> None:
        seed_b58 = base58.b58encode(SEED).decode()

        credential = load_pool_credential(seed_b58)

        assert credential.pubkey == _keypair().pubkey()

    def test_both_encodings_give_the_same_pool(self) -> None:
        from_secret = load_pool_credential(base58.b58encode(bytes(_keypair())).decode())
        from_seed = load_pool_credential(base58.b58encode(SEED).decode())
        assert from_secret.public_address == from_seed.public_address

    def test_matching_expected_address(self) -> None:
        keypair = _keypair()
        credential = load_pool_credential(
            base58.b58encode(SEED).decode(),
            expected_address=str(keypair.pubkey()),
        )
        assert credential.public_address == str(keypair.pubkey())

    @pytest.mark.parametrize("secret", ["", "   "])
    def test_missing_secret(self, secret: str) -> None:
        with pytest.raises(KeyCustodyError, match="not configured"):
            load_pool_credential(secret)

    def test_not_base58(self) -> None:
        with pytest.raises(KeyCustodyError, match="not valid base58"):
            load_pool_credential("0OIl")

    def test_wrong_length(self) -> None:
        with pytest.raises(KeyCustodyError, match="got 16"):
            load_pool_credential(base58.b58encode(bytes(16)).decode())

    def test_inconsistent_64_byte_secret(self) -> None:
        other = Keypair.from_seed(bytes([5] * 32))
        tampered = SEED + bytes(other.pubkey())
        with pytest.raises(KeyCustodyError, match="inconsistent"):
            load_pool_credential(base58.b58encode(tampered).decode())

    def test_address_mismatch_strict(self) -> None:
        other = str(Keypair.from_seed(bytes([5] * 32)).pubkey())
        with pytest.raises(KeyCustodyError, match="does not match"):
            load_pool_credential(base58.b58encode(SEED).decode(), expected_address=other)

    def test_address_mismatch_lenient_keeps_derived(self) -> None:
        other = str(Keypair.from_seed(bytes([5] * 32)).pubkey())
        credential = load_pool_credential(
            base58.b58encode(SEED).decode(), expected_address=other, strict=False
        )
        assert credential.pubkey == _keypair().pubkey()

    def test_invalid_expected_address(self) -> None:
        with pytest.raises(KeyCustodyError, match="POOL_ADDRESS is invalid"):
            load_pool_credential(base58.b58encode(SEED).decode(), expected_address="nope")

    def test_error_code(self) -> None:
        with pytest.raises(KeyCustodyError) as exc_info:
            load_pool_credential("")
        assert exc_info.value.code == "KEY_CUSTODY_ERROR"

    def test_repr_hides_secret(self) -> None:
        secret = base58.b58encode(bytes(_keypair())).decode()
        credential = load_pool_credential(secret)
        assert secret not in repr(credential)
        assert credential.public_address in repr(credential)


class TestParseAddress:
    def test_valid(self) -> None:
        pubkey = Pubkey(bytes([9] * 32))
        assert parse_address(f"  {pubkey}  ") == pubkey

    def test_passes_pubkey_through(self) -> None:
        pubkey = Pubkey(bytes([9] * 32))
        assert parse_address(pubkey) is pubkey

    @pytest.mark.parametrize("value", [None, "", 123, "not-base58!", "abc"])
    def test_invalid(self, value: object) -> None:
        with pytest.raises(InvalidAddressError) as exc_info:
            parse_address(value)
        assert exc_info.value.code == "INVALID_ADDRESS"
