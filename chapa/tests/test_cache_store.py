"""
Tests for the fail-open JSON cache over Redis.
"""

import json

import pytest

from chapa.cache import store
from chapa.config import ChapaConfig


@pytest.mark.asyncio
async def test_no_redis_url_means_no_client():
    assert await store.get_redis() is None


@pytest.mark.asyncio
async def test_configured_url_takes_precedence_over_environment(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://from-env:6379/0")
    store.configure_store(ChapaConfig(redis_url="redis://cache.internal:6380/2"))
    client = await store.get_redis()
    try:
        kwargs = client.connection_pool.connection_kwargs
        assert (kwargs["host"], kwargs["port"], kwargs["db"]) == ("cache.internal", 6380, 2)
        assert await store.get_redis() is client
    finally:
        await store.close_redis()


@pytest.mark.asyncio
async def test_unconfigured_store_reads_environment(monkeypatch):
    monkeypatch.setenv("REDIS_URL", "redis://from-env:6379/0")
    assert store.configured_redis_url() == "redis://from-env:6379/0"
    store.configure_store(ChapaConfig())
    assert await store.get_redis() is None


@pytest.mark.asyncio
async def test_rebinding_replaces_the_loop_client():
    store.configure_store(ChapaConfig(redis_url="redis://first:6379/0"))
    first = await store.get_redis()
    store.configure_store(ChapaConfig(redis_url="redis://second:6379/0"))
    second = await store.get_redis()
    try:
        assert second is not first
        assert second.connection_pool.connection_kwargs["host"] == "second"
    finally:
        await store.close_redis()


@pytest.mark.asyncio
async def test_without_client_reads_miss_and_writes_noop():
    await store.cache_set("k", {"a": 1})
    assert await store.cache_get("k") is None
    await store.cache_del("k")


@pytest.mark.asyncio
async def test_set_then_get(fake_redis):
    await store.cache_set("stats:octocat", {"handle": "octocat", "n": [1, 2]}, ttl_seconds=60)
    assert await store.cache_get("stats:octocat") == {"handle": "octocat", "n": [1, 2]}
    assert fake_redis.ttl("stats:octocat") == 60
    assert json.loads(fake_redis.data["stats:octocat"]) == {"handle": "octocat", "n": [1, 2]}


@pytest.mark.asyncio
async def test_ttl_none_stores_without_expiry(fake_redis):
    await store.cache_set("badge-config:octocat", {"theme": "midnight"}, ttl_seconds=None)
    assert fake_redis.ttl("badge-config:octocat") is None


@pytest.mark.asyncio
async def test_entries_expire(fake_redis):
    await store.cache_set("k", 1, ttl_seconds=10)
    fake_redis.advance(11)
    assert await store.cache_get("k") is None


@pytest.mark.asyncio
async def test_undecodable_value_reads_as_miss(fake_redis):
    fake_redis.data["k"] = "{not json"
    assert await store.cache_get("k") is None


@pytest.mark.asyncio
async def test_backend_errors_never_propagate(fake_redis):
    fake_redis.failing = True
    await store.cache_set("k", 1)
    assert await store.cache_get("k") is None
    await store.cache_del("k")


@pytest.mark.asyncio
async def test_delete(fake_redis):
    await store.cache_set("k", 1)
    await store.cache_del("k")
    assert await store.cache_get("k") is None
