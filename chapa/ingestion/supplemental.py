"""
Supplemental Stats — Linked-account uploads merged into a handle's snapshot.

A developer whose day-to-day work happens under an Enterprise Managed User
account (login_shortcode) can upload that account's Stats90d so it counts
towards their public badge. The upload is stored under supplemental:{handle}
for 24 hours and the handle's cached snapshot is dropped, so the next
get_stats_90d() call re-fetches and merges it.

Ownership is proven with the uploader's own GitHub token: the token must
resolve (GET /user) to the target handle.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import httpx

from chapa.cache.store import cache_del, cache_set
from chapa.config import DEFAULT_CONFIG, ChapaConfig
from chapa.errors import UpstreamUnavailable, ValidationError
from chapa.ingestion.github_client import stats_cache_key, supplemental_cache_key
from chapa.ingestion.stats import require_valid_handle, stats_from_dict, stats_to_dict

logger = logging.getLogger(__name__)

# EMU logins are a regular login plus an underscore and the enterprise shortcode.
_EMU_HANDLE_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?_[a-zA-Z0-9]{1,20}$")


def is_valid_emu_handle(handle: Any) -> bool:
    return isinstance(handle, str) and bool(_EMU_HANDLE_RE.match(handle))


async def fetch_github_login(
    token: str,
    config: ChapaConfig = DEFAULT_CONFIG,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[str]:
    """
    Resolve a GitHub token to the login that owns it.

    Returns:
        The login, or None when GitHub rejects the token (401/403).

    Raises:
        UpstreamUnavailable: network failure or any other non-200 response.
    """
    url = f"{config.github_api_url}/user"
    headers = {"Authorization": f"Bearer {token}", "Accept": "application/vnd.github+json"}
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.github_timeout_seconds) as own_client:
                resp = await own_client.get(url, headers=headers)
        else:
            resp = await client.get(url, headers=headers, timeout=config.github_timeout_seconds)
    except httpx.HTTPError as exc:
        logger.warning("GitHub /user lookup failed: %s", exc)
        raise UpstreamUnavailable("GitHub is unreachable right now.") from exc

    if resp.status_code in (401, 403):
        return None
    if resp.status_code != 200:
        logger.warning("GitHub /user returned HTTP %d", resp.status_code)
        raise UpstreamUnavailable(
            f"GitHub responded with HTTP {resp.status_code}.",
            details={"status": resp.status_code},
        )
    try:
        login = resp.json().get("login")
    except (ValueError, AttributeError) as exc:
        raise UpstreamUnavailable("GitHub returned a non-JSON response.") from exc
    return login if isinstance(login, str) else None


def build_supplemental_record(
    target_handle: Any,
    source_handle: Any,
    stats: Any,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Validate an upload and return the record stored under supplemental:{target}.

    The uploaded snapshot is re-keyed to `target_handle` and validated like any
    other Stats90d.

    Raises:
        InvalidHandle:   target_handle is not a GitHub login.
        ValidationError: source_handle is not an EMU login, or stats is malformed.
    """
    require_valid_handle(target_handle)
    if not is_valid_emu_handle(source_handle):
        raise ValidationError(
            f"'{source_handle}' is not a valid linked-account handle.",
            details={"sourceHandle": str(source_handle)[:64]},
        )
    if not isinstance(stats, Mapping):
        raise ValidationError("stats must be a JSON object.")

    snapshot = stats_from_dict({**stats, "handle": target_handle})
    now = now or datetime.now(tz=timezone.utc)
    return {
        "targetHandle": target_handle,
        "sourceHandle": source_handle,
        "stats": stats_to_dict(snapshot),
        "uploadedAt": now.isoformat(),
    }


async def store_supplemental(record: Mapping[str, Any], config: ChapaConfig = DEFAULT_CONFIG) -> None:
    """Persist `record` and drop the target's cached snapshot so the next read re-merges."""
    handle = record["targetHandle"]
    await cache_set(supplemental_cache_key(handle), dict(record),
                    ttl_seconds=config.supplemental_ttl_seconds)
    await cache_del(stats_cache_key(handle))
    logger.info("Stored supplemental stats for %s from %s", handle, record["sourceHandle"])
