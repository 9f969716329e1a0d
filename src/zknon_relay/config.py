"""Application configuration via pydantic-settings.

Reads from .env file or environment variables. Settings are read once here
and passed into constructors; no other module touches the environment.
Required secrets default to empty so the app object can be imported without
them, and the lifespan hook fails fast if they are missing.

Usage:
    from zknon_relay.config import get_settings
    settings = get_settings()
    print(settings.rpc_url)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

Commitment = Literal["processed", "confirmed", "finalized"]


class Settings(BaseSettings):
    """Central configuration for the relay service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Application ---
    app_env: Literal["development", "staging", "production"] = "development"
    app_debug: bool = False
    app_log_level: str = "INFO"
    app_host: str = "0.0.0.0"
    app_port: int = Field(default=10000, validation_alias=AliasChoices("app_port", "port"))
    allowed_origins: str = ""

    # --- RPC endpoint ---
    rpc_url: str = ""
    rpc_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias=AliasChoices("rpc_api_key", "tatum_api_key"),
    )
    rpc_api_key_header: str = "x-api-key"
    rpc_timeout_seconds: float = 30.0

    # --- Pool key custody ---
    pool_secret_b58: SecretStr = SecretStr("")
    pool_address: str | None = None
    pool_address_strict: bool = True

    # --- Admission gate ---
    tx_ratelimit: int = Field(default=8, ge=1)
    tx_ratelimit_window_seconds: float = Field(default=1.0, gt=0)
    rate_limit_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"

    # --- Withdrawal pipeline ---
    reference_commitment: Commitment = "confirmed"
    confirmation_commitment: Commitment = "confirmed"
    confirm_timeout_seconds: float = Field(default=60.0, gt=0)
    poll_interval_seconds: float = Field(default=1.25, gt=0)
    max_expiry_retries: int = Field(default=1, ge=0, le=3)
    skip_preflight: bool = False
    send_max_retries: int = 3
    preflight_balance_check: bool = True
    explorer_tx_url: str = "https://solscan.io/tx/{signature}"
    outcome_history_size: int = 1024
    drain_timeout_seconds: float = 90.0

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"

    @property
    def allowed_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if not self.allowed_origins:
            return []
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton of the application settings."""
    return Settings()
