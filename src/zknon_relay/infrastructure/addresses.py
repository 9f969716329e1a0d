"""Base58 public key parsing shared by key custody, the builder and the RPC client."""

from __future__ import annotations

from typing import Any

import base58
from solders.pubkey import Pubkey

from zknon_relay.domain.exceptions import InvalidAddressError

PUBKEY_LENGTH = 32


def parse_address(value: Any) -> Pubkey:
    """Parse a base58 address into a Pubkey.

    Raises:
        InvalidAddressError: if the value is not a string, is not base58, or
            does not decode to exactly 32 bytes.
    """
    if isinstance(value, Pubkey):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidAddressError(str(value), "address is required")
    text = value.strip()
    try:
        raw = base58.b58decode(text)
    except ValueError as exc:
        raise InvalidAddressError(text, "not base58") from exc
    if len(raw) != PUBKEY_LENGTH:
        raise InvalidAddressError(text, f"decodes to {len(raw)} bytes, expected {PUBKEY_LENGTH}")
    return Pubkey(raw)
