"""Process-wide components, built once at startup.

The lifespan hook builds a RelayContainer from Settings and stores it on
``app.state.relay``; tests build one by hand around fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from zknon_relay.domain.enums import Commitment
from zknon_relay.domain.exceptions import ConfigurationError
from zknon_relay.infrastructure.key_custody import load_pool_credential
from zknon_relay.infrastructure.rpc_client import SolanaRpcClient
from zknon_relay.logging_config import get_logger
from zknon_relay.services.admission_gate import FixedWindowGate, RedisFixedWindowGate
from zknon_relay.services.withdrawal_runner import WithdrawalRunner
from zknon_relay.services.withdrawal_service import WithdrawalService

if TYPE_CHECKING:
    from zknon_relay.config import Settings
    from zknon_relay.domain.network_protocol import NetworkClient
    from zknon_relay.infrastructure.key_custody import PoolCredential
    from zknon_relay.services.admission_gate import AdmissionGate

logger = get_logger(__name__)


@dataclass
class RelayContainer:
    """Everything a request handler needs."""

    credential: PoolCredential
    network: NetworkClient
    withdraw_gate: AdmissionGate
    proxy_gate: AdmissionGate
    runner: WithdrawalRunner
    service_name: str = "zknon-relay"
    allowed_origins: list[str] = field(default_factory=list)
    explorer_tx_url: str = "https://solscan.io/tx/{signature}"
    drain_timeout: float = 90.0
    closers: list[Any] = field(default_factory=list)

    @property
    def pool_address(self) -> str:
        return self.credential.public_address

    def explorer_url(self, signature: str) -> str:
        return self.explorer_tx_url.format(signature=signature)

    async def aclose(self) -> None:
        await self.runner.drain(self.drain_timeout)
        for close in reversed(self.closers):
            await close()


async def build_container(settings: Settings) -> RelayContainer:
    """Load the pool key, open clients, and wire the pipeline.

    Raises:
        ConfigurationError: RPC_URL or RPC_API_KEY missing.
        KeyCustodyError: the pool secret is missing, malformed, or does not
            match POOL_ADDRESS.
    """
    if not settings.rpc_url:
        raise ConfigurationError("RPC_URL is not configured")
    if not settings.rpc_api_key.get_secret_value():
        raise ConfigurationError("RPC_API_KEY (or TATUM_API_KEY) is not configured")

    credential = load_pool_credential(
        settings.pool_secret_b58.get_secret_value(),
        expected_address=settings.pool_address,
        strict=settings.pool_address_strict,
    )

    rpc = SolanaRpcClient(
        settings.rpc_url,
        settings.rpc_api_key.get_secret_value(),
        api_key_header=settings.rpc_api_key_header,
        timeout=settings.rpc_timeout_seconds,
        preflight_commitment=Commitment(settings.confirmation_commitment),
        send_max_retries=settings.send_max_retries,
    )
    closers: list[Any] = [rpc.aclose]

    if settings.rate_limit_backend == "redis":
        from zknon_relay.infrastructure.redis_client import connect_redis

        redis = await connect_redis(settings.redis_url)
        closers.append(redis.aclose)
        withdraw_gate: AdmissionGate = RedisFixedWindowGate(
            redis, settings.tx_ratelimit, settings.tx_ratelimit_window_seconds, name="withdraw"
        )
        proxy_gate: AdmissionGate = RedisFixedWindowGate(
            redis, settings.tx_ratelimit, settings.tx_ratelimit_window_seconds, name="rpc-proxy"
        )
    else:
        withdraw_gate = FixedWindowGate(
            settings.tx_ratelimit, settings.tx_ratelimit_window_seconds, name="withdraw"
        )
        proxy_gate = FixedWindowGate(
            settings.tx_ratelimit, settings.tx_ratelimit_window_seconds, name="rpc-proxy"
        )

    service = WithdrawalService(
        credential,
        rpc,
        reference_commitment=Commitment(settings.reference_commitment),
        finality=Commitment(settings.confirmation_commitment),
        confirm_timeout=settings.confirm_timeout_seconds,
        poll_interval=settings.poll_interval_seconds,
        max_expiry_retries=settings.max_expiry_retries,
        skip_validation=settings.skip_preflight,
        preflight_balance_check=settings.preflight_balance_check,
    )

    logger.info(
        "container.ready",
        pool=credential.public_address,
        rate_limit=settings.tx_ratelimit,
        rate_window=settings.tx_ratelimit_window_seconds,
        rate_backend=settings.rate_limit_backend,
    )
    return RelayContainer(
        credential=credential,
        network=rpc,
        withdraw_gate=withdraw_gate,
        proxy_gate=proxy_gate,
        runner=WithdrawalRunner(service, history_size=settings.outcome_history_size),
        allowed_origins=settings.allowed_origin_list,
        explorer_tx_url=settings.explorer_tx_url,
        drain_timeout=settings.drain_timeout_seconds,
        closers=closers,
    )
