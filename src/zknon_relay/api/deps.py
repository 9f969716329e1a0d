"""FastAPI dependency injection providers.

Used with Depends() in route handlers to reach the components built at
startup, and to run the admission gates before a handler body executes.
"""

from __future__ import annotations

from fastapi import Depends, Request

from zknon_relay.container import RelayContainer
from zknon_relay.domain.exceptions import ConfigurationError, RateLimitedError


def get_container(request: Request) -> RelayContainer:
    """Provide the RelayContainer stored on the app at startup."""
    container = getattr(request.app.state, "relay", None)
    if container is None:
        raise ConfigurationError("Relay is not initialized")
    return container


def get_request_id(request: Request) -> str:
    """Provide the id bound by RequestIDMiddleware."""
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID", "")


async def admit_withdrawal(container: RelayContainer = Depends(get_container)) -> None:
    """Count one withdrawal attempt against the gate, or refuse it."""
    gate = container.withdraw_gate
    if not await gate.admit():
        raise RateLimitedError(gate.limit, gate.window_seconds)


async def admit_proxy_call(container: RelayContainer = Depends(get_container)) -> None:
    """Count one proxied RPC call against its gate, or refuse it."""
    gate = container.proxy_gate
    if not await gate.admit():
        raise RateLimitedError(gate.limit, gate.window_seconds)
