from __future__ import annotations

import asyncpg

from safari_quote.core.config import get_settings

_pool: asyncpg.Pool | None = None


async def get_pool() -> asyncpg.Pool:
    global _pool
    if _pool is None:
        settings = get_settings()
        _pool = await asyncpg.create_pool(
            settings.database_url,
            min_size=settings.db_pool_min_size,
            max_size=settings.db_pool_max_size,
        )
    return _pool


async def reset_pool() -> None:
    global _pool
    if _pool is not None:
        await _pool.close()
    _pool = None


__all__ = ["get_pool", "reset_pool"]
