"""
chapa/api/client_ip.py — Client address used as the rate-limit identity.

The service runs behind a proxy that sets X-Real-IP; X-Forwarded-For is the
fallback, where the left-most entry is the original client.
"""

from typing import Mapping

UNKNOWN_CLIENT = "unknown"


def get_client_ip(headers: Mapping[str, str]) -> str:
    """
    Resolve the client address from request headers.

    Order: X-Real-IP, then the first X-Forwarded-For entry (both trimmed),
    otherwise "unknown". Lookups are case-insensitive when `headers` is a
    Starlette Headers object; plain dicts must use lower-case names.
    """
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    forwarded = headers.get("x-forwarded-for") or ""
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return UNKNOWN_CLIENT
