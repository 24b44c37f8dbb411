"""
chapa/verification/store.py — Verification records in the shared cache.

    verify:{hash}             → public record (see build_verification_record)
    verify-handle:{handle}    → latest hash issued for the handle

Both keys expire after ChapaConfig.verification_ttl_seconds (30 days).
Storage is fail-open: a cache outage only means a badge cannot be verified
later, never that the badge fails to render.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from chapa.cache.store import cache_get, cache_set
from chapa.config import DEFAULT_CONFIG

logger = logging.getLogger(__name__)


def verify_key(hash_code: str) -> str:
    return f"verify:{hash_code}"


def verify_handle_key(handle: str) -> str:
    return f"verify-handle:{handle.lower()}"


async def store_verification_record(
    hash_code: str,
    record: Dict[str, Any],
    ttl_seconds: int = DEFAULT_CONFIG.verification_ttl_seconds,
) -> None:
    await asyncio.gather(
        cache_set(verify_key(hash_code), record, ttl_seconds=ttl_seconds),
        cache_set(verify_handle_key(record["handle"]), hash_code, ttl_seconds=ttl_seconds),
    )
    logger.debug("Stored verification record %s for %s", hash_code, record["handle"])


async def get_verification_record(hash_code: str) -> Optional[Dict[str, Any]]:
    """Record for `hash_code`, or None on miss, bad data or cache outage."""
    record = await cache_get(verify_key(hash_code))
    if not isinstance(record, dict) or not isinstance(record.get("handle"), str):
        return None
    if not isinstance(record.get("dimensions"), dict):
        return None
    return record


async def get_latest_hash_for_handle(handle: str) -> Optional[str]:
    value = await cache_get(verify_handle_key(handle))
    return value if isinstance(value, str) else None
