"""Redis connection used by the session store."""

from __future__ import annotations

import logging
from functools import lru_cache

import redis.asyncio as redis

from safari_quote.core.config import get_settings

logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    # Drop credentials before logging
    scheme, _, rest = url.partition("://")
    return f"{scheme}://{rest.rsplit('@', 1)[-1]}" if rest else url


@lru_cache(maxsize=1)
def get_redis_client() -> redis.Redis:
    settings = get_settings()
    logger.info("Session store connecting to %s", _redacted(settings.redis_url))
    return redis.Redis.from_url(settings.redis_url, decode_responses=True, health_check_interval=30)


async def close_redis_client() -> None:
    if get_redis_client.cache_info().currsize == 0:
        return
    client = get_redis_client()
    get_redis_client.cache_clear()
    try:
        await client.aclose()
    except (redis.RedisError, OSError) as exc:
        logger.warning("Failed to close Redis client: %s", exc)


__all__ = ["get_redis_client", "close_redis_client"]
