"""Storage for wizard sessions between HTTP requests.

A session holds the serialized controller state: ``{"draft": ..., "step": ...}``
plus the id of the user who opened it.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

import redis.asyncio as redis

from safari_quote.core.config import get_settings
from safari_quote.session.redis_client import close_redis_client, get_redis_client

logger = logging.getLogger(__name__)


class DraftSessionStore:
    """Interface shared by the Redis and in-memory session stores."""

    async def get(self, session_id: str) -> dict[str, Any] | None:
        raise NotImplementedError

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        raise NotImplementedError

    async def delete(self, session_id: str) -> None:
        raise NotImplementedError

    async def ping(self) -> bool:
        return True


class InMemoryDraftSessionStore(DraftSessionStore):
    """Process-local store with the same TTL semantics as Redis."""

    def __init__(self, ttl_seconds: int = 86400) -> None:
        self._ttl = ttl_seconds
        self._data: dict[str, tuple[float, str]] = {}

    async def get(self, session_id: str) -> dict[str, Any] | None:
        entry = self._data.get(session_id)
        if entry is None:
            return None
        expires_at, payload = entry
        if expires_at < time.monotonic():
            self._data.pop(session_id, None)
            return None
        return json.loads(payload)

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        now = time.monotonic()
        self._prune(now)
        self._data[session_id] = (now + self._ttl, json.dumps(data, ensure_ascii=False))

    def _prune(self, now: float) -> None:
        expired = [key for key, (expires_at, _) in self._data.items() if expires_at < now]
        for key in expired:
            del self._data[key]

    async def delete(self, session_id: str) -> None:
        self._data.pop(session_id, None)


class RedisDraftSessionStore(DraftSessionStore):
    key_prefix = "safari_quote:session:"

    def __init__(self, redis_client: redis.Redis, ttl_seconds: int = 86400) -> None:
        self._redis = redis_client
        self._ttl = ttl_seconds

    async def get(self, session_id: str) -> dict[str, Any] | None:
        data = await self._redis.get(self._build_key(session_id))
        if data is None:
            return None
        decoded = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else str(data)
        return json.loads(decoded)

    async def set(self, session_id: str, data: dict[str, Any]) -> None:
        payload = json.dumps(data, ensure_ascii=False).encode("utf-8")
        await self._redis.setex(self._build_key(session_id), self._ttl, payload)

    async def delete(self, session_id: str) -> None:
        await self._redis.delete(self._build_key(session_id))

    async def ping(self) -> bool:
        try:
            return bool(await self._redis.ping())
        except (redis.RedisError, OSError):
            return False

    def _build_key(self, session_id: str) -> str:
        return f"{self.key_prefix}{session_id}"


_DRAFT_SESSION_STORE: DraftSessionStore | None = None


def get_draft_session_store() -> DraftSessionStore:
    global _DRAFT_SESSION_STORE
    if _DRAFT_SESSION_STORE is None:
        settings = get_settings()
        if settings.use_redis_state_store:
            _DRAFT_SESSION_STORE = RedisDraftSessionStore(
                get_redis_client(), ttl_seconds=settings.session_ttl_seconds
            )
            logger.info("Using Redis for quote sessions")
        else:
            _DRAFT_SESSION_STORE = InMemoryDraftSessionStore(ttl_seconds=settings.session_ttl_seconds)
            logger.info("Using in-memory quote sessions")
    return _DRAFT_SESSION_STORE


async def close_draft_session_store() -> None:
    global _DRAFT_SESSION_STORE
    if isinstance(_DRAFT_SESSION_STORE, RedisDraftSessionStore):
        await close_redis_client()
    _DRAFT_SESSION_STORE = None


__all__ = [
    "DraftSessionStore",
    "InMemoryDraftSessionStore",
    "RedisDraftSessionStore",
    "get_draft_session_store",
    "close_draft_session_store",
]
