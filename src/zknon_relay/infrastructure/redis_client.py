"""Redis connection for the shared admission counter.

Only opened when RATE_LIMIT_BACKEND=redis, so that several relay replicas
draw from one withdrawal budget. The caller owns the returned client and
closes it at shutdown.
"""

from __future__ import annotations

from urllib.parse import urlsplit

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from zknon_relay.domain.exceptions import ConfigurationError
from zknon_relay.logging_config import get_logger

logger = get_logger(__name__)


async def connect_redis(url: str) -> aioredis.Redis:
    """Open a client and verify it answers PING.

    Raises:
        ConfigurationError: the server cannot be reached at startup.
    """
    client = aioredis.from_url(url, decode_responses=True)
    # Never log the URL itself: it may carry a password
    host = urlsplit(url).hostname
    try:
        await client.ping()
    except RedisError as exc:
        await client.aclose()
        raise ConfigurationError(f"Redis at {host} is unreachable: {exc}") from exc
    logger.info("redis.connected", host=host)
    return client
