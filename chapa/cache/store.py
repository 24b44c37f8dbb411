"""
chapa/cache/store.py — Shared key-value cache backed by Redis.

The cache is non-critical: every read degrades to a miss and every write to a
no-op when Redis is unconfigured or unreachable. Callers never see a cache
exception.

Values are stored as JSON strings so that stats snapshots, badge configs and
verification records are readable from any client sharing the store.
"""

import asyncio
import contextlib
import json
import logging
import weakref
from typing import Any, Optional, Tuple

from redis.asyncio import Redis as AsyncRedis

from chapa.config import ChapaConfig, config_from_env

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 86400

# One client per event loop: a redis.asyncio connection pool must not be
# shared across loops (TestClient and CLI runs each start their own).
_clients_by_loop: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, Tuple[str, AsyncRedis]]" = (
    weakref.WeakKeyDictionary()
)

# Set by configure_store(); None means "read REDIS_URL from the environment".
_configured: Optional[ChapaConfig] = None


def configure_store(config: Optional[ChapaConfig]) -> None:
    """
    Bind the store to `config.redis_url`.

    create_app() and the CLI call this with their resolved ChapaConfig so the
    cache and the rate limiter use the same Redis as the rest of the process.
    Passing None reverts to config_from_env().
    """
    global _configured
    _configured = config


def configured_redis_url() -> Optional[str]:
    config = _configured if _configured is not None else config_from_env()
    return config.redis_url


async def get_redis() -> Optional[AsyncRedis]:
    """
    Get or create the Redis client for the running event loop.

    Returns:
        AsyncRedis client, or None when no Redis URL is configured.
        Connection is lazy: an unreachable server surfaces on first command.
    """
    redis_url = configured_redis_url()
    if not redis_url:
        return None

    loop = asyncio.get_running_loop()
    existing = _clients_by_loop.get(loop)
    if existing is not None and existing[0] == redis_url:
        return existing[1]

    client = AsyncRedis.from_url(
        redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=2,
        socket_timeout=2,
    )
    _clients_by_loop[loop] = (redis_url, client)
    if existing is not None:
        with contextlib.suppress(Exception):
            await existing[1].aclose()
    logger.info("Redis cache client initialised for %s", redis_url.split("@")[-1])
    return client


async def close_redis() -> None:
    """Close the client bound to the running loop, if any."""
    loop = asyncio.get_running_loop()
    entry = _clients_by_loop.pop(loop, None)
    if entry is None:
        return
    with contextlib.suppress(Exception):
        await entry[1].aclose()


async def cache_get(key: str) -> Optional[Any]:
    """
    Read and JSON-decode `key`.

    Returns None on a miss, on undecodable data and on any backend error.
    Never raises.
    """
    try:
        client = await get_redis()
        if client is None:
            return None
        raw = await client.get(key)
    except Exception as exc:
        logger.warning("cache_get(%s) failed, treating as miss: %s", key, exc)
        return None

    if raw is None:
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("cache_get(%s): stored value is not valid JSON, ignoring", key)
        return None


async def cache_set(key: str, value: Any, ttl_seconds: Optional[int] = DEFAULT_TTL_SECONDS) -> None:
    """
    JSON-encode `value` and store it under `key`.

    Args:
        ttl_seconds: Expiry in seconds; None stores without expiry.
    """
    try:
        client = await get_redis()
        if client is None:
            return
        payload = json.dumps(value, separators=(",", ":"))
        if ttl_seconds is None:
            await client.set(key, payload)
        else:
            await client.set(key, payload, ex=ttl_seconds)
    except Exception as exc:
        logger.warning("cache_set(%s) failed, value not cached: %s", key, exc)


async def cache_del(key: str) -> None:
    try:
        client = await get_redis()
        if client is None:
            return
        await client.delete(key)
    except Exception as exc:
        logger.warning("cache_del(%s) failed: %s", key, exc)
