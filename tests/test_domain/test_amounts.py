"""Tests for amount normalization."""

from __future__ import annotations

import pytest

from zknon_relay.domain.amounts import (
    MAX_SAFE_LAMPORTS,
    normalize_lamports,
)
from zknon_relay.domain.exceptions import InvalidAmountError


class TestLamports:
    @pytest.mark.parametrize("value", [1, 5000, 1.0, "42", " 42 "])
    def test_accepts_integer_like(self, value: object) -> None:
        assert normalize_lamports(amount_lamports=value) == int(float(str(value).strip()))

    @pytest.mark.parametrize("value", [0, -1, "-5", 1.5, "1.5", "abc", True, float("nan"), float("inf")])
    def test_rejects(self, value: object) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_lamports(amount_lamports=value)

    @pytest.mark.parametrize("value", ["--5", "-", "\u00b2", "\u0665", "1_000", "9" * 5000])
    def test_rejects_malformed_digit_strings(self, value: str) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_lamports(amount_lamports=value)

    def test_rejects_unsupported_type(self) -> None:
        with pytest.raises(InvalidAmountError, match="unsupported type"):
            normalize_lamports(amount_lamports=[1])

    def test_max_safe_boundary(self) -> None:
        assert normalize_lamports(amount_lamports=MAX_SAFE_LAMPORTS) == MAX_SAFE_LAMPORTS
        with pytest.raises(InvalidAmountError, match="maximum"):
            normalize_lamports(amount_lamports=MAX_SAFE_LAMPORTS + 1)


class TestSol:
    def test_decimal_sol(self) -> None:
        assert normalize_lamports(amount_sol="0.001") == 1_000_000
        assert normalize_lamports(amount_sol=1.5) == 1_500_000_000

    def test_one_lamport(self) -> None:
        assert normalize_lamports(amount_sol="0.000000001") == 1

    def test_sub_lamport_precision_rejected(self) -> None:
        with pytest.raises(InvalidAmountError, match="9 decimal places"):
            normalize_lamports(amount_sol="0.0000000001")

    @pytest.mark.parametrize("value", ["abc", "", "NaN", "Infinity", False, "0", "-1"])
    def test_rejects(self, value: object) -> None:
        with pytest.raises(InvalidAmountError):
            normalize_lamports(amount_sol=value)


class TestExactlyOne:
    def test_neither(self) -> None:
        with pytest.raises(InvalidAmountError, match="required"):
            normalize_lamports()

    def test_both(self) -> None:
        with pytest.raises(InvalidAmountError, match="not both"):
            normalize_lamports(amount_lamports=1, amount_sol="1")

    def test_error_code(self) -> None:
        with pytest.raises(InvalidAmountError) as exc_info:
            normalize_lamports(amount_lamports=0)
        assert exc_info.value.code == "INVALID_AMOUNT"
