"""Amount normalization.

A withdrawal names its amount either as an integer count of lamports or as
a human-scale SOL decimal. Both normalize to one positive integer of
lamports. Sub-lamport precision is rejected rather than rounded, so the
amount that lands is always exactly the amount that was asked for.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any

from zknon_relay.domain.exceptions import InvalidAmountError

LAMPORTS_PER_SOL = 1_000_000_000

# Largest integer a JSON consumer using IEEE doubles can round-trip exactly.
MAX_SAFE_LAMPORTS = 2**53 - 1

# ASCII digits only; str.isdigit also accepts superscripts and other scripts
_INTEGER_TEXT = re.compile(r"-?[0-9]+")
_MAX_INTEGER_DIGITS = len(str(MAX_SAFE_LAMPORTS))


def _lamports_from_integer_like(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidAmountError("amountLamports must be an integer, not a boolean")
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise InvalidAmountError("amountLamports must be finite")
        if not value.is_integer():
            raise InvalidAmountError("amountLamports must be a whole number of lamports")
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if not _INTEGER_TEXT.fullmatch(text):
            raise InvalidAmountError(f"amountLamports is not an integer: {text[:40]!r}")
        if len(text.lstrip("-")) > _MAX_INTEGER_DIGITS:
            raise InvalidAmountError(f"amount exceeds the maximum of {MAX_SAFE_LAMPORTS} lamports")
        return int(text)
    raise InvalidAmountError(f"amountLamports has unsupported type {type(value).__name__}")


def _lamports_from_sol(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidAmountError("amount must be a number, not a boolean")
    try:
        sol = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"amount is not a number: {value!r}") from exc
    if not sol.is_finite():
        raise InvalidAmountError("amount must be finite")
    try:
        lamports = sol * LAMPORTS_PER_SOL
    except ArithmeticError as exc:
        raise InvalidAmountError("amount is out of range") from exc
    if lamports != lamports.to_integral_value():
        raise InvalidAmountError("amount has more than 9 decimal places")
    return int(lamports)


def normalize_lamports(amount_lamports: Any = None, amount_sol: Any = None) -> int:
    """Return the withdrawal amount as a positive integer of lamports.

    Exactly one of ``amount_lamports`` and ``amount_sol`` must be given.

    Raises:
        InvalidAmountError: if neither or both are given, or the value is
            non-numeric, non-finite, fractional in lamports, not positive, or
            above MAX_SAFE_LAMPORTS.
    """
    if amount_lamports is None and amount_sol is None:
        raise InvalidAmountError("amountLamports or amount is required")
    if amount_lamports is not None and amount_sol is not None:
        raise InvalidAmountError("give either amountLamports or amount, not both")

    if amount_lamports is not None:
        lamports = _lamports_from_integer_like(amount_lamports)
    else:
        lamports = _lamports_from_sol(amount_sol)

    if lamports <= 0:
        raise InvalidAmountError("amount must be > 0")
    if lamports > MAX_SAFE_LAMPORTS:
        raise InvalidAmountError(f"amount exceeds the maximum of {MAX_SAFE_LAMPORTS} lamports")
    return lamports
