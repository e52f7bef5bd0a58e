import asyncio

import _helpers  # noqa: F401

from safari_quote.core import config
from safari_quote.session import store as session_store
from safari_quote.session.store import InMemoryDraftSessionStore, RedisDraftSessionStore


class FakeRedis:
    def __init__(self) -> None:
        self.values = {}
        self.ttls = {}

    async def get(self, key):
        return self.values.get(key)

    async def setex(self, key, ttl, value):
        self.values[key] = value
        self.ttls[key] = ttl

    async def delete(self, key):
        self.values.pop(key, None)

    async def ping(self):
        return True


def test_in_memory_store_round_trip():
    store = InMemoryDraftSessionStore()

    async def scenario():
        await store.set("abc", {"step": "parks", "owner": "user-1"})
        loaded = await store.get("abc")
        await store.delete("abc")
        return loaded, await store.get("abc")

    loaded, after_delete = asyncio.run(scenario())

    assert loaded == {"step": "parks", "owner": "user-1"}
    assert after_delete is None


def test_in_memory_store_expires_sessions():
    store = InMemoryDraftSessionStore(ttl_seconds=-1)

    async def scenario():
        await store.set("abc", {"step": "parks"})
        return await store.get("abc")

    assert asyncio.run(scenario()) is None


def test_in_memory_store_prunes_expired_sessions_on_write():
    store = InMemoryDraftSessionStore(ttl_seconds=60)
    store._data["stale"] = (0.0, "{}")

    asyncio.run(store.set("fresh", {"step": "hotels"}))

    assert set(store._data) == {"fresh"}


def test_redis_store_uses_prefixed_keys_and_ttl():
    redis_client = FakeRedis()
    store = RedisDraftSessionStore(redis_client, ttl_seconds=600)

    async def scenario():
        await store.set("abc", {"draft": {"clientName": "Jane"}})
        return await store.get("abc")

    assert asyncio.run(scenario()) == {"draft": {"clientName": "Jane"}}
    assert redis_client.ttls == {"safari_quote:session:abc": 600}
    assert asyncio.run(store.ping()) is True


def test_session_store_follows_settings(monkeypatch):
    monkeypatch.setenv("USE_REDIS_STATE_STORE", "false")
    monkeypatch.setenv("SESSION_TTL_SECONDS", "120")
    config.get_settings.cache_clear()
    asyncio.run(session_store.close_draft_session_store())

    try:
        chosen = session_store.get_draft_session_store()
        assert isinstance(chosen, InMemoryDraftSessionStore)
        assert chosen is session_store.get_draft_session_store()
    finally:
        asyncio.run(session_store.close_draft_session_store())
        config.get_settings.cache_clear()


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://quotes@db/quotes")
    monkeypatch.setenv("REFERENCE_RETRY_ATTEMPTS", "5")
    config.get_settings.cache_clear()

    try:
        settings = config.get_settings()
        assert settings.database_url == "postgresql://quotes@db/quotes"
        assert settings.reference_retry_attempts == 5
        assert settings.api_prefix == "/v1"
    finally:
        config.get_settings.cache_clear()
