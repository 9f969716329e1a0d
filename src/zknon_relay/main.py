"""FastAPI application entry point for the relay.

Lifecycle:
    1. Startup: configure logging, load the pool key, open the RPC client
       (and Redis, if the shared rate counter is enabled). Missing or
       inconsistent configuration aborts startup.
    2. Running: serve the withdrawal, network-helper and health routes.
    3. Shutdown: wait for in-flight withdrawals, then close clients.

Run with:
    uv run uvicorn zknon_relay.main:app --host 0.0.0.0 --port 10000
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from zknon_relay.config import get_settings
from zknon_relay.logging_config import get_logger, setup_logging

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from zknon_relay.container import RelayContainer


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application startup and shutdown lifecycle."""
    settings = get_settings()

    setup_logging(
        log_level=settings.app_log_level,
        json_logs=not settings.is_development,
    )
    logger = get_logger(__name__)
    logger.info("app.starting", env=settings.app_env)

    injected = getattr(app.state, "relay", None) is not None
    if not injected:
        from zknon_relay.container import build_container

        app.state.relay = await build_container(settings)

    container: RelayContainer = app.state.relay
    logger.info(
        "app.started",
        port=settings.app_port,
        pool=container.pool_address,
        cors=container.allowed_origins,
    )

    yield

    logger.info("app.shutting_down", in_flight=container.runner.in_flight)
    if not injected:
        await container.aclose()
    logger.info("app.stopped")


def create_app(container: RelayContainer | None = None) -> FastAPI:
    """Application factory: creates and configures the FastAPI app.

    Args:
        container: Prebuilt components. When given, startup uses it instead
            of building one from settings (tests pass fakes this way).
    """
    settings = get_settings()

    app = FastAPI(
        title="zknon relay",
        description="Custodial withdrawal relay for a Solana transfer pool.",
        version="0.1.0",
        lifespan=lifespan,
        debug=settings.app_debug,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
    )
    if container is not None:
        app.state.relay = container

    # --- Middleware ---
    from zknon_relay.api.middleware import setup_middleware

    allowed_origins = container.allowed_origins if container else settings.allowed_origin_list
    setup_middleware(app, allowed_origins)

    # --- Routes ---
    from zknon_relay.api.routes.health import router as health_router
    from zknon_relay.api.routes.network import router as network_router
    from zknon_relay.api.routes.withdraw import router as withdraw_router

    app.include_router(health_router)
    app.include_router(network_router)
    app.include_router(withdraw_router)

    return app


# The app instance used by Uvicorn
app = create_app()
