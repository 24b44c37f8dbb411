"""
chapa/cache/ratelimit.py — Fixed-window request limiter on the shared store.

Each (route, client) pair owns one counter key, ``ratelimit:<route>:<ip>``.
A request atomically increments the counter; the first increment of a window
sets the key's TTL to the window length, so the counter disappears (and the
count resets) when the window ends. INCR and EXPIRE run in one MULTI/EXEC
transaction, so concurrent requests from any number of processes are counted
exactly.

Failure policy: FAIL OPEN. If the store is unconfigured or unreachable the
request is allowed (current=0) and a warning is logged. An infrastructure
outage must never lock every user out of their badge. The only blocking
condition callers act on is ``allowed is False``.
"""

import logging
from dataclasses import dataclass

from chapa.cache import store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitResult:
    """
    Outcome of one rate-limit check.

    Fields:
        allowed:  True if the request may proceed (current <= limit).
        current:  Requests counted in this window, including this one.
                  0 when the store was unavailable.
        limit:    The cap that was applied.
    """

    allowed: bool
    current: int
    limit: int

    @property
    def remaining(self) -> int:
        return max(0, self.limit - self.current)


def rate_limit_key(route: str, client_ip: str) -> str:
    """Build the counter key for `route` and `client_ip`."""
    return f"ratelimit:{route}:{client_ip}"


async def rate_limit(key: str, limit: int, window_seconds: int) -> RateLimitResult:
    """
    Count one request against `key` and decide whether it is allowed.

    Args:
        key:            Counter key, normally from rate_limit_key().
        limit:          Maximum requests per window.
        window_seconds: Window length; TTL applied on the first increment.

    Returns:
        RateLimitResult with allowed = current <= limit.
    """
    try:
        client = await store.get_redis()
        if client is None:
            return RateLimitResult(allowed=True, current=0, limit=limit)
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            results = await pipe.execute()
        current = int(results[0])
    except Exception as exc:
        logger.warning("Rate limiter unavailable for %s, allowing request: %s", key, exc)
        return RateLimitResult(allowed=True, current=0, limit=limit)

    allowed = current <= limit
    if not allowed:
        logger.info("Rate limit exceeded for %s (%d/%d)", key, current, limit)
    return RateLimitResult(allowed=allowed, current=current, limit=limit)
