"""Pool key custody.

Loads the pool keypair once at startup from a base58 secret in one of two
encodings:

    64 bytes  full secret key (seed followed by public key), as produced by
              `solana-keygen` and most wallets' "export private key"
    32 bytes  seed, from which the keypair is derived

The credential is read-only after loading and safe to share between
concurrent withdrawals without locking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import base58
from solders.keypair import Keypair

from zknon_relay.domain.exceptions import InvalidAddressError, KeyCustodyError
from zknon_relay.infrastructure.addresses import parse_address
from zknon_relay.logging_config import get_logger

if TYPE_CHECKING:
    from solders.pubkey import Pubkey

logger = get_logger(__name__)

SEED_LENGTH = 32
SECRET_KEY_LENGTH = 64


class PoolCredential:
    """The pool's signing keypair. Never logged, never persisted."""

    __slots__ = ("_keypair",)

    def __init__(self, keypair: Keypair) -> None:
        self._keypair = keypair

    @property
    def keypair(self) -> Keypair:
        return self._keypair

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def public_address(self) -> str:
        return str(self._keypair.pubkey())

    def __repr__(self) -> str:
        return f"PoolCredential(address={self.public_address})"

    __str__ = __repr__


def _keypair_from_secret(secret: bytes) -> Keypair:
    if len(secret) == SEED_LENGTH:
        return Keypair.from_seed(secret)
    if len(secret) == SECRET_KEY_LENGTH:
        derived = Keypair.from_seed(secret[:SEED_LENGTH])
        if bytes(derived.pubkey()) != secret[SEED_LENGTH:]:
            raise KeyCustodyError(
                "POOL_SECRET_B58 is inconsistent: its public half does not match its seed"
            )
        return Keypair.from_bytes(secret)
    raise KeyCustodyError(
        f"POOL_SECRET_B58 must be base58 of {SECRET_KEY_LENGTH} or {SEED_LENGTH} bytes, "
        f"got {len(secret)}"
    )


def load_pool_credential(
    secret_b58: str,
    expected_address: str | None = None,
    strict: bool = True,
) -> PoolCredential:
    """Decode the pool secret and cross-check it against the configured address.

    Args:
        secret_b58: Base58 secret key (64 bytes) or seed (32 bytes).
        expected_address: Independently configured pool address, if any.
        strict: If True, an address mismatch is fatal. If False it is logged
            and the derived address wins, since that is the key that signs.

    Raises:
        KeyCustodyError: missing or undecodable secret, unsupported length,
            inconsistent 64-byte secret, or (strict) address mismatch.
    """
    if not secret_b58 or not secret_b58.strip():
        raise KeyCustodyError("POOL_SECRET_B58 is not configured")

    try:
        secret = base58.b58decode(secret_b58.strip())
    except ValueError as exc:
        raise KeyCustodyError("POOL_SECRET_B58 is not valid base58") from exc

    credential = PoolCredential(_keypair_from_secret(secret))

    if expected_address:
        try:
            expected = parse_address(expected_address)
        except InvalidAddressError as exc:
            raise KeyCustodyError(f"POOL_ADDRESS is invalid: {exc.message}") from exc
        if expected != credential.pubkey:
            if strict:
                raise KeyCustodyError(
                    f"POOL_ADDRESS {expected} does not match the address derived "
                    f"from POOL_SECRET_B58 ({credential.public_address})"
                )
            logger.warning(
                "custody.address_mismatch",
                configured=str(expected),
                derived=credential.public_address,
            )

    logger.info(
        "custody.loaded",
        pool=credential.public_address,
        encoding="secret_key" if len(secret) == SECRET_KEY_LENGTH else "seed",
    )
    return credential
