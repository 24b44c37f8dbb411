"""
chapa/config.py — Runtime parameters for the chapa service.

Cache lifetimes, rate-limit caps, HTTP timeouts and deployment settings live
here so that an operational change is a single-file diff. Scoring calibration
(weights, caps, thresholds) is NOT here: it is private to chapa.scoring and is
never exposed through configuration, responses or rendered text.
"""

import os
from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True)
class ChapaConfig:
    """
    Immutable configuration for the chapa service.

    Override by constructing a new ChapaConfig with the desired values, or use
    config_from_env() to overlay deployment settings from the environment.
    """

    # ── Activity Window ───────────────────────────────────────────────────────
    window_days: int = 90
    # Trailing window covered by a Stats90d snapshot. The contribution
    # calendar is fetched for 13 full weeks (91 days), so active_days <= 91.

    # ── Cache Lifetimes ───────────────────────────────────────────────────────
    stats_cache_ttl_seconds: int = 21600
    # Stats90d snapshots are cached for 6 hours under stats:{handle}.

    verification_ttl_seconds: int = 2592000
    # Verification records (verify:{hash}, verify-handle:{handle}) live 30 days.

    supplemental_ttl_seconds: int = 86400
    # Linked-account uploads (supplemental:{handle}) live 24 hours.

    badge_s_maxage: int = 86400
    # CDN lifetime for badge.svg / og.png responses.

    badge_stale_while_revalidate: int = 604800
    # CDN may serve a stale badge for up to 7 days while it revalidates.

    verify_s_maxage: int = 3600
    verify_stale_while_revalidate: int = 86400

    # ── Rate Limits (requests per window, per client IP) ──────────────────────
    badge_rate_limit: int = 30
    badge_rate_window_seconds: int = 60

    og_rate_limit: int = 10
    og_rate_window_seconds: int = 60
    # PNG rasterisation is the most expensive route, so it gets the lowest cap.

    impact_rate_limit: int = 30
    impact_rate_window_seconds: int = 60

    verify_rate_limit: int = 30
    verify_rate_window_seconds: int = 60

    refresh_rate_limit: int = 5
    refresh_rate_window_seconds: int = 3600
    # Per handle, not per IP: a refresh always costs a GitHub round trip.

    supplemental_rate_limit: int = 10
    supplemental_rate_window_seconds: int = 86400
    # Per target handle.

    # ── Upstream HTTP ─────────────────────────────────────────────────────────
    avatar_timeout_seconds: float = 5.0
    # Hard bound on the avatar fetch; a slow avatar never blocks a badge.

    github_timeout_seconds: float = 10.0
    github_graphql_url: str = "https://api.github.com/graphql"
    github_api_url: str = "https://api.github.com"

    # ── Verification ──────────────────────────────────────────────────────────
    verification_hash_length: int = 8
    # Hex characters kept from the HMAC digest (8 or 16).

    verification_secret: Optional[str] = None
    # HMAC key. When unset, badges render without a verification strip.

    # ── Deployment ────────────────────────────────────────────────────────────
    base_url: str = "https://chapa.thecreativetoken.com"
    # Public origin used for verification links embedded in badges.

    redis_url: Optional[str] = None
    # Shared cache / rate-limit store. None disables caching entirely
    # (every read is a miss, every rate check is allowed).

    font_dir: Optional[str] = None
    # Directory holding JetBrainsMono-Bold.ttf and PlusJakartaSans-SemiBold.ttf
    # (CHAPA_FONT_DIR). The fonts are not bundled; when unset, og.png is drawn
    # with Pillow's built-in font.

    github_token: Optional[str] = None


# Singleton default — import this everywhere instead of constructing anew.
DEFAULT_CONFIG = ChapaConfig()


def config_from_env(base: ChapaConfig = DEFAULT_CONFIG) -> ChapaConfig:
    """
    Overlay deployment settings from environment variables onto `base`.

    Recognised variables: REDIS_URL, CHAPA_VERIFICATION_SECRET, CHAPA_BASE_URL,
    CHAPA_FONT_DIR, GITHUB_TOKEN. Unset or empty variables keep the base value.
    """
    overrides = {}
    env_map = {
        "REDIS_URL": "redis_url",
        "CHAPA_VERIFICATION_SECRET": "verification_secret",
        "CHAPA_BASE_URL": "base_url",
        "CHAPA_FONT_DIR": "font_dir",
        "GITHUB_TOKEN": "github_token",
    }
    for env_name, field_name in env_map.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            overrides[field_name] = value
    if "base_url" in overrides:
        overrides["base_url"] = overrides["base_url"].rstrip("/")
    return replace(base, **overrides)
