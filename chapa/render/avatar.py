"""
Avatar Fetcher — Profile image for the badge header.

Only GitHub's avatar CDN is fetched, and the whole download (headers and
body) runs under one deadline. The body is streamed and abandoned as soon as
it passes MAX_AVATAR_BYTES. Every failure (disallowed host, timeout, network
error, non-2xx status, non-image content type, oversized body) returns None
and the renderer draws the placeholder icon instead: a slow or missing
avatar never fails a badge.
"""

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

ALLOWED_AVATAR_HOSTS = frozenset({"avatars.githubusercontent.com"})
ALLOWED_CONTENT_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/gif", "image/webp", "image/svg+xml"}
)
MAX_AVATAR_BYTES = 1_000_000


@dataclass(frozen=True)
class FetchedAvatar:
    content_type: str
    data: bytes

    @property
    def data_uri(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.content_type};base64,{encoded}"


def is_allowed_avatar_url(url: Optional[str]) -> bool:
    if not url:
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme == "https" and parsed.hostname in ALLOWED_AVATAR_HOSTS


async def _download(client: httpx.AsyncClient, url: str, timeout: float) -> Optional[FetchedAvatar]:
    async with client.stream("GET", url, timeout=timeout) as resp:
        if not resp.is_success:
            logger.warning("Avatar fetch returned HTTP %d for %s", resp.status_code, url)
            return None

        content_type = resp.headers.get("content-type", "").split(";")[0].strip().lower()
        if content_type not in ALLOWED_CONTENT_TYPES:
            logger.warning("Avatar for %s has non-image content type %r", url, content_type)
            return None

        declared = resp.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > MAX_AVATAR_BYTES:
            logger.warning("Avatar for %s is too large (%s bytes declared)", url, declared)
            return None

        data = bytearray()
        async for chunk in resp.aiter_bytes():
            data.extend(chunk)
            if len(data) > MAX_AVATAR_BYTES:
                logger.warning("Avatar for %s exceeds %d bytes, aborting", url, MAX_AVATAR_BYTES)
                return None

    if not data:
        logger.warning("Avatar for %s is empty", url)
        return None
    return FetchedAvatar(content_type=content_type, data=bytes(data))


async def fetch_avatar(
    url: Optional[str],
    timeout: float = 5.0,
    client: Optional[httpx.AsyncClient] = None,
) -> Optional[FetchedAvatar]:
    """
    Download an avatar image.

    Args:
        url:     Avatar URL from the stats snapshot.
        timeout: Total time budget in seconds for the whole download,
                 headers and body together.
        client:  Optional shared httpx.AsyncClient (tests inject a MockTransport).

    Returns:
        FetchedAvatar, or None on any failure.
    """
    if not is_allowed_avatar_url(url):
        if url:
            logger.debug("Avatar host not allowed: %s", url)
        return None

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=timeout) as own_client:
                return await asyncio.wait_for(_download(own_client, url, timeout), timeout)
        return await asyncio.wait_for(_download(client, url, timeout), timeout)
    except asyncio.TimeoutError:
        logger.warning("Avatar fetch for %s exceeded %.1fs, using placeholder", url, timeout)
        return None
    except httpx.HTTPError as exc:
        logger.warning("Avatar fetch failed for %s, using placeholder: %s", url, exc)
        return None
