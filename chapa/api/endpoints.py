"""
chapa/api/endpoints.py — FastAPI surface for Chapa badges and scores.

Endpoint summary:
    GET  /api/v1/health            — Liveness probe.
    GET  /u/{handle}/badge.svg     — Animated SVG badge (CDN-cached).
    GET  /u/{handle}/og.png        — Static 1200×630 PNG for social cards.
    GET  /api/v1/impact/{handle}   — Public Impact v4 result as JSON.
    GET  /api/v1/verify/{hash}     — Look up a badge verification code.
    POST /api/v1/refresh/{handle}  — Drop the cached snapshot and re-score.
    POST /api/v1/supplemental      — Upload linked-account stats (Bearer token).

Every route is rate limited (fixed window, fail open): badge, og, impact and
verify per client IP, refresh and supplemental per handle. Errors
leave as JSON bodies built from ChapaError.to_payload(); a route never
answers 200 with a broken image.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Optional, Tuple

from fastapi import FastAPI, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from chapa import __version__
from chapa.api.client_ip import get_client_ip
from chapa.cache.ratelimit import rate_limit, rate_limit_key
from chapa.cache.store import cache_del, close_redis, configure_store
from chapa.config import ChapaConfig, config_from_env
from chapa.errors import (
    ChapaError,
    Forbidden,
    InvalidHash,
    RateLimited,
    Unauthorized,
    ValidationError,
)
from chapa.ingestion.github_client import get_stats_90d, stats_cache_key
from chapa.ingestion.stats import Stats90d, require_valid_handle, stats_to_dict
from chapa.ingestion.supplemental import (
    build_supplemental_record,
    fetch_github_login,
    store_supplemental,
)
from chapa.render.avatar import FetchedAvatar, fetch_avatar
from chapa.render.badge_config import BadgeConfig, load_badge_config
from chapa.render.badge_svg import render_badge_svg
from chapa.render.og_png import render_badge_png
from chapa.scoring.impact import ImpactV4Result, compute_impact_v4
from chapa.verification.hmac_code import (
    VerificationCode,
    build_verification_record,
    generate_verification_code,
    is_valid_hash,
)
from chapa.verification.store import get_verification_record, store_verification_record

logger = logging.getLogger(__name__)

StatsProvider = Callable[[str], Awaitable[Stats90d]]
LoginResolver = Callable[[str], Awaitable[Optional[str]]]


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str


def _cache_control(s_maxage: int, stale_while_revalidate: int) -> str:
    return f"public, s-maxage={s_maxage}, stale-while-revalidate={stale_while_revalidate}"


def create_app(
    stats_provider: Optional[StatsProvider] = None,
    config: Optional[ChapaConfig] = None,
    login_resolver: Optional[LoginResolver] = None,
) -> FastAPI:
    """
    Create and return the Chapa FastAPI application.

    Args:
        stats_provider: Async callable handle → Stats90d. Defaults to the
                        cached GitHub fetch (get_stats_90d); tests inject
                        a fixed snapshot.
        config:         Service configuration. Defaults to config_from_env().
                        Its redis_url is bound to the cache store.
        login_resolver: Async callable GitHub token → login (or None when
                        rejected). Defaults to fetch_github_login.

    Returns:
        Configured FastAPI application instance.
    """
    config = config or config_from_env()
    configure_store(config)

    if stats_provider is None:
        async def stats_provider(handle: str) -> Stats90d:
            return await get_stats_90d(handle, config=config)

    if login_resolver is None:
        async def login_resolver(token: str) -> Optional[str]:
            return await fetch_github_login(token, config=config)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await close_redis()

    app = FastAPI(
        title="Chapa API",
        version=__version__,
        description=(
            "Developer Impact badges: 90-day GitHub activity scored across "
            "Building, Guarding, Consistency and Breadth, rendered as SVG or PNG."
        ),
        lifespan=lifespan,
    )
    app.state.config = config

    badge_cache = _cache_control(config.badge_s_maxage, config.badge_stale_while_revalidate)
    verify_cache = _cache_control(config.verify_s_maxage, config.verify_stale_while_revalidate)

    # ── Error mapping ─────────────────────────────────────────────────────────

    @app.exception_handler(ChapaError)
    async def chapa_error_handler(request: Request, exc: ChapaError) -> JSONResponse:
        headers = None
        if isinstance(exc, RateLimited):
            headers = {"Retry-After": str(exc.retry_after)}
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s %s", request.method, request.url.path,
                         exc.code, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload(),
                            headers=headers)

    # ── Helpers ───────────────────────────────────────────────────────────────

    async def _check_limit(key: str, limit: int, window: int) -> None:
        result = await rate_limit(key, limit, window)
        if not result.allowed:
            raise RateLimited(
                "Too many requests. Try again shortly.",
                retry_after=window,
                details={"limit": limit, "windowSeconds": window},
            )

    async def _enforce_rate_limit(route: str, request: Request, limit: int, window: int) -> None:
        await _check_limit(rate_limit_key(route, get_client_ip(request.headers)), limit, window)

    async def _score(handle: str) -> Tuple[Stats90d, ImpactV4Result]:
        stats = await stats_provider(handle)
        return stats, compute_impact_v4(stats)

    async def _issue_verification(
        stats: Stats90d, impact: ImpactV4Result
    ) -> Optional[VerificationCode]:
        code = generate_verification_code(
            stats, impact, config.verification_secret,
            length=config.verification_hash_length,
        )
        if code is None:
            return None
        await store_verification_record(
            code.hash,
            build_verification_record(stats, impact, code),
            ttl_seconds=config.verification_ttl_seconds,
        )
        return code

    async def _badge_inputs(
        handle: str,
    ) -> Tuple[Stats90d, ImpactV4Result, BadgeConfig, Optional[FetchedAvatar], Optional[VerificationCode]]:
        stats, impact = await _score(handle)
        badge_config, avatar, verification = await asyncio.gather(
            load_badge_config(handle),
            fetch_avatar(stats.avatar_url, timeout=config.avatar_timeout_seconds),
            _issue_verification(stats, impact),
        )
        return stats, impact, badge_config, avatar, verification

    # ── Routes ────────────────────────────────────────────────────────────────

    @app.get("/api/v1/health", response_model=HealthResponse, tags=["system"])
    async def health() -> dict:
        """Liveness probe — returns service status and version."""
        return {"status": "ok", "version": __version__}

    @app.get("/u/{handle}/badge.svg", tags=["badge"])
    async def badge_svg(handle: str, request: Request) -> Response:
        """
        Render the SVG badge for `handle`.

        Raises:
            400: Invalid handle.  404: Unknown user.  429: Rate limited.
            503: GitHub unavailable.
        """
        require_valid_handle(handle)
        await _enforce_rate_limit("badge", request, config.badge_rate_limit,
                                  config.badge_rate_window_seconds)
        stats, impact, badge_config, avatar, verification = await _badge_inputs(handle)
        svg = render_badge_svg(stats, impact, badge_config, avatar=avatar,
                               verification=verification, base_url=config.base_url)
        return Response(content=svg, media_type="image/svg+xml",
                        headers={"Cache-Control": badge_cache})

    @app.get("/u/{handle}/og.png", tags=["badge"])
    async def og_png(handle: str, request: Request) -> Response:
        """Render the static PNG badge for `handle` (same errors as badge.svg)."""
        require_valid_handle(handle)
        await _enforce_rate_limit("og", request, config.og_rate_limit,
                                  config.og_rate_window_seconds)
        stats, impact, badge_config, avatar, verification = await _badge_inputs(handle)
        png = await run_in_threadpool(
            render_badge_png, stats, impact, badge_config, avatar, verification, config.font_dir
        )
        return Response(content=png, media_type="image/png",
                        headers={"Cache-Control": badge_cache})

    @app.get("/api/v1/impact/{handle}", tags=["impact"])
    async def impact_json(handle: str, request: Request) -> dict:
        """
        Return the public Impact v4 result for `handle`.

        Returns:
            ImpactV4Result.to_public_dict() plus a one-line narrative.
        """
        require_valid_handle(handle)
        await _enforce_rate_limit("impact", request, config.impact_rate_limit,
                                  config.impact_rate_window_seconds)
        _, impact = await _score(handle)
        payload = impact.to_public_dict()
        payload["narrative"] = impact.narrative
        return payload

    @app.get("/api/v1/verify/{hash_code}", tags=["verification"])
    async def verify(hash_code: str, request: Request) -> JSONResponse:
        """
        Look up a verification code printed on a badge.

        Returns:
            200 {"status": "verified", "hash", "data", "verifyUrl", "badgeUrl"}
            404 {"status": "not_found", "hash"}

        Raises:
            400: Malformed code.  429: Rate limited.
        """
        if not is_valid_hash(hash_code):
            raise InvalidHash(
                "Verification codes are 8 or 16 lowercase hex characters.",
                details={"hash": hash_code},
            )
        await _enforce_rate_limit("verify", request, config.verify_rate_limit,
                                  config.verify_rate_window_seconds)

        record = await get_verification_record(hash_code)
        if record is None:
            return JSONResponse(status_code=404,
                                content={"status": "not_found", "hash": hash_code})

        return JSONResponse(
            content={
                "status": "verified",
                "hash": hash_code,
                "data": record,
                "verifyUrl": f"{config.base_url}/verify/{hash_code}",
                "badgeUrl": f"{config.base_url}/u/{record['handle']}/badge.svg",
            },
            headers={"Cache-Control": verify_cache},
        )

    @app.post("/api/v1/refresh/{handle}", tags=["impact"])
    async def refresh(handle: str) -> dict:
        """
        Drop the cached snapshot for `handle`, re-fetch it and re-score.

        Returns:
            {"stats": Stats90d dict, "impact": public result with narrative}

        Raises:
            400: Invalid handle.  429: More than refresh_rate_limit refreshes
            for this handle in the window.  404/503: as for badge.svg.
        """
        require_valid_handle(handle)
        await _check_limit(rate_limit_key("refresh", handle.lower()), config.refresh_rate_limit,
                           config.refresh_rate_window_seconds)
        await cache_del(stats_cache_key(handle))
        stats, impact = await _score(handle)
        logger.info("Refreshed stats for %s", handle)
        payload = impact.to_public_dict()
        payload["narrative"] = impact.narrative
        return {"stats": stats_to_dict(stats), "impact": payload}

    @app.post("/api/v1/supplemental", tags=["impact"])
    async def supplemental(request: Request) -> dict:
        """
        Store linked-account stats for the handle that owns the Bearer token.

        Body: {"targetHandle", "sourceHandle", "stats"}

        Raises:
            401: Missing or rejected token.  403: Token belongs to another
            user.  400/422: Malformed body.  429: Rate limited.
        """
        auth = request.headers.get("authorization", "")
        token = auth[len("Bearer "):].strip() if auth.startswith("Bearer ") else ""
        if not token:
            raise Unauthorized("Missing or invalid Authorization header.")

        try:
            body = await request.json()
        except ValueError as exc:
            raise ValidationError("Request body must be valid JSON.") from exc
        if not isinstance(body, dict):
            raise ValidationError("Request body must be a JSON object.")
        missing = [name for name in ("targetHandle", "sourceHandle", "stats") if not body.get(name)]
        if missing:
            raise ValidationError(
                f"Missing required field(s): {', '.join(missing)}.",
                details={"missing": missing},
            )

        record = build_supplemental_record(body["targetHandle"], body["sourceHandle"], body["stats"])
        target = record["targetHandle"]
        await _check_limit(rate_limit_key("supplemental", target.lower()),
                           config.supplemental_rate_limit, config.supplemental_rate_window_seconds)

        login = await login_resolver(token)
        if login is None:
            raise Unauthorized("GitHub rejected the token.")
        if login.lower() != target.lower():
            raise Forbidden(
                "The token does not belong to the target handle.",
                details={"targetHandle": target},
            )

        await store_supplemental(record, config)
        return {"success": True}

    return app
