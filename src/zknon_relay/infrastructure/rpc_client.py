"""Solana JSON-RPC client over httpx.

Talks to a remote node (a Tatum gateway in production) authenticated by a
static API-key header. Every failure leaves this module as a typed
exception:

    NetworkError            transport failure, timeout, unparsable body
    HashExpiryError         blockhash unknown to the node or past its window
    InsufficientFundsError  payer cannot cover the transfer plus the fee
    RemoteError             any other error reported by the node

Classification happens once, here, from the node's structured ``error.data``
so callers decide on retries by exception type alone.

Usage:
    async with SolanaRpcClient(url, api_key) as rpc:
        ref = await rpc.get_reference_hash(Commitment.CONFIRMED)
"""

from __future__ import annotations

import asyncio
import base64
import itertools
from typing import TYPE_CHECKING, Any

import httpx
from solders.hash import Hash
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from zknon_relay.domain.enums import Commitment
from zknon_relay.domain.exceptions import (
    HashExpiryError,
    InsufficientFundsError,
    NetworkError,
    RelayError,
    RemoteError,
)
from zknon_relay.domain.models import ReferenceHash, SignatureStatus, SubmissionOutcome
from zknon_relay.infrastructure.addresses import parse_address
from zknon_relay.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = get_logger(__name__)

# Transaction-level error names as reported in error.data.err / status.err
_EXPIRY_ERRORS = frozenset({"BlockhashNotFound"})
_FUNDS_ERRORS = frozenset({"InsufficientFundsForFee", "AccountNotFound"})

# SystemError::ResultWithNegativeLamports, raised by a transfer the source cannot cover
_SYSTEM_NEGATIVE_LAMPORTS = {"Custom": 1}

# Fallbacks for gateways that strip error.data
_EXPIRY_PHRASES = ("blockhash not found", "block height exceeded")
_FUNDS_PHRASES = ("insufficient funds", "insufficient lamports")

# Reads are idempotent and safe to repeat; sendTransaction is never retried here.
retry_reads = retry(
    retry=retry_if_exception_type(NetworkError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.25, max=2),
    reraise=True,
)


def _error_kind(err: Any, logs: Any, message: str) -> str | None:
    if isinstance(err, str):
        if err in _EXPIRY_ERRORS:
            return "expiry"
        if err in _FUNDS_ERRORS:
            return "funds"
        return None
    if isinstance(err, dict):
        instruction_error = err.get("InstructionError")
        if (
            isinstance(instruction_error, list)
            and len(instruction_error) == 2
            and instruction_error[1] == _SYSTEM_NEGATIVE_LAMPORTS
        ):
            return "funds"
        if isinstance(logs, list) and any(
            "insufficient lamports" in str(line).lower() for line in logs
        ):
            return "funds"
        return None

    lowered = message.lower()
    if any(phrase in lowered for phrase in _EXPIRY_PHRASES):
        return "expiry"
    if any(phrase in lowered for phrase in _FUNDS_PHRASES):
        return "funds"
    return None


def classify_transaction_error(
    err: Any,
    logs: Any = None,
    *,
    message: str,
    rpc_code: int | None = None,
    data: Any = None,
) -> RemoteError:
    """Map a transaction error (``data.err`` or a status ``err``) to a typed exception."""
    kind = _error_kind(err, logs, message)
    if kind == "expiry":
        return HashExpiryError(message, rpc_code=rpc_code, data=data)
    if kind == "funds":
        return InsufficientFundsError(message, rpc_code=rpc_code, data=data)
    return RemoteError(message, rpc_code=rpc_code, data=data)


def classify_rpc_error(error: Any, http_status: int | None = None, reason: str = "") -> RemoteError:
    """Map a JSON-RPC ``error`` object (or a bare HTTP failure) to a typed exception."""
    if isinstance(error, dict):
        message = str(error.get("message") or reason or "RPC error")
        rpc_code = error.get("code", http_status)
        data = error.get("data")
    else:
        message = str(error) if error else (reason or f"HTTP {http_status}")
        rpc_code = http_status
        data = None

    err = data.get("err") if isinstance(data, dict) else None
    logs = data.get("logs") if isinstance(data, dict) else None
    return classify_transaction_error(err, logs, message=message, rpc_code=rpc_code, data=data)


def parse_signature_status(entry: Any) -> SignatureStatus | None:
    """Parse one getSignatureStatuses entry; ``None`` means never seen."""
    if entry is None:
        return None
    if not isinstance(entry, dict):
        raise NetworkError(f"Malformed signature status: {entry!r}")
    raw_level = entry.get("confirmationStatus")
    confirmations = entry.get("confirmations")
    level: Commitment | None
    if raw_level in Commitment.__members__.values():
        level = Commitment(raw_level)
    elif confirmations is None:
        # Older nodes omit confirmationStatus; null confirmations means rooted
        level = Commitment.FINALIZED
    else:
        level = None
    return SignatureStatus(
        slot=int(entry.get("slot") or 0),
        confirmation_status=level,
        confirmations=confirmations,
        err=entry.get("err"),
    )


class SolanaRpcClient:
    """Thin async JSON-RPC 2.0 client for one Solana endpoint."""

    def __init__(
        self,
        url: str,
        api_key: str = "",
        *,
        api_key_header: str = "x-api-key",
        timeout: float = 30.0,
        preflight_commitment: Commitment = Commitment.CONFIRMED,
        send_max_retries: int | None = 3,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        headers = {"content-type": "application/json", "accept": "application/json"}
        if api_key:
            headers[api_key_header] = api_key
        self._url = url
        self._preflight_commitment = preflight_commitment
        self._send_max_retries = send_max_retries
        self._sleep = sleep
        self._ids = itertools.count(1)
        self._http = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)

    async def __aenter__(self) -> SolanaRpcClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Raw call
    # ------------------------------------------------------------------

    async def call(self, method: str, params: Any = None, *, request_id: Any = None) -> Any:
        """Send one JSON-RPC request and return its ``result``."""
        payload = {
            "jsonrpc": "2.0",
            "id": request_id if request_id is not None else next(self._ids),
            "method": method,
            "params": params if params is not None else [],
        }
        try:
            response = await self._http.post(self._url, json=payload)
        except httpx.HTTPError as exc:
            raise NetworkError(f"RPC transport error on {method}: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise NetworkError(f"RPC parse error: {response.text[:180]}") from exc

        error = body.get("error") if isinstance(body, dict) else None
        if error or response.is_error:
            remote = classify_rpc_error(error, response.status_code, response.reason_phrase)
            logger.warning(
                "rpc.error",
                method=method,
                rpc_code=remote.rpc_code,
                error=remote.message,
                kind=remote.code,
            )
            raise remote
        if not isinstance(body, dict) or "result" not in body:
            raise NetworkError(f"RPC response to {method} has no result")
        return body["result"]

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @retry_reads
    async def get_reference_hash(self, commitment: Commitment = Commitment.CONFIRMED) -> ReferenceHash:
        result = await self.call("getLatestBlockhash", [{"commitment": str(commitment)}])
        try:
            value = result["value"]
            blockhash = str(value["blockhash"])
            Hash.from_string(blockhash)
            return ReferenceHash(
                blockhash=blockhash,
                last_valid_block_height=int(value["lastValidBlockHeight"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"Malformed getLatestBlockhash result: {result!r}") from exc

    @retry_reads
    async def get_block_height(self, commitment: Commitment = Commitment.CONFIRMED) -> int:
        result = await self.call("getBlockHeight", [{"commitment": str(commitment)}])
        if not isinstance(result, int):
            raise NetworkError(f"Malformed getBlockHeight result: {result!r}")
        return result

    async def get_balance(self, address: str, commitment: Commitment = Commitment.CONFIRMED) -> int:
        pubkey = parse_address(address)
        return await self._get_balance(str(pubkey), commitment)

    @retry_reads
    async def _get_balance(self, address: str, commitment: Commitment) -> int:
        result = await self.call("getBalance", [address, {"commitment": str(commitment)}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise NetworkError(f"Malformed getBalance result: {result!r}") from exc

    @retry_reads
    async def get_signature_status(self, signature: str) -> SignatureStatus | None:
        result = await self.call(
            "getSignatureStatuses",
            [[signature], {"searchTransactionHistory": True}],
        )
        try:
            entries = result["value"]
        except (KeyError, TypeError) as exc:
            raise NetworkError(f"Malformed getSignatureStatuses result: {result!r}") from exc
        return parse_signature_status(entries[0] if entries else None)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def submit(self, raw: bytes, *, skip_validation: bool = False) -> str:
        """Broadcast signed bytes; returns the signature the node accepted."""
        config: dict[str, Any] = {
            "encoding": "base64",
            "skipPreflight": skip_validation,
            "preflightCommitment": str(self._preflight_commitment),
        }
        if self._send_max_retries is not None:
            config["maxRetries"] = self._send_max_retries
        result = await self.call(
            "sendTransaction",
            [base64.b64encode(raw).decode("ascii"), config],
        )
        if not isinstance(result, str) or not result:
            raise NetworkError(f"Malformed sendTransaction result: {result!r}")
        return result

    # ------------------------------------------------------------------
    # Confirmation
    # ------------------------------------------------------------------

    async def poll_status(
        self,
        signature: str,
        *,
        timeout: float,
        interval: float,
        finality: Commitment,
    ) -> SubmissionOutcome:
        """Poll by signature only; the blockhash's expiry plays no part here."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        last_status: SignatureStatus | None = None
        polls = 0

        while True:
            polls += 1
            try:
                status = await self.get_signature_status(signature)
            except RelayError as exc:
                logger.warning("rpc.poll_failed", signature=signature, error=exc.message)
            else:
                if status is not None:
                    last_status = status
                    if status.err is not None:
                        error = classify_transaction_error(
                            status.err,
                            message=f"Transaction {signature} failed on-chain: {status.err}",
                        )
                        return SubmissionOutcome.rejected(signature, error, status)
                    level = status.confirmation_status
                    if level is not None and level.satisfies(finality):
                        logger.debug("rpc.poll_confirmed", signature=signature, polls=polls)
                        return SubmissionOutcome.confirmed(signature, level)

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.info(
                    "rpc.poll_timeout",
                    signature=signature,
                    polls=polls,
                    last_status=last_status.to_dict() if last_status else None,
                )
                return SubmissionOutcome.unknown(signature, last_status)
            await self._sleep(min(interval, remaining))
