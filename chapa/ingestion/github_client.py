"""
GitHub Client — 90-day contribution data via the GraphQL API.

Fetches one user's contribution calendar, merged pull requests, review and
issue counts, recently pushed repositories and owned-repository community
signals in a single GraphQL round trip, then flattens the response into the
shape chapa.ingestion.stats_builder consumes.

get_stats_90d() is the cached entry point used by the API and the CLI:

    stats:{handle}          Stats90d JSON, 6-hour TTL.
    supplemental:{handle}   Linked-account upload, merged in when present.

Rate limit: 5000 points/hr authenticated (GITHUB_TOKEN), 60/hr anonymous.
Uses httpx.AsyncClient so the fetch never blocks the event loop.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import httpx

from chapa.cache.store import cache_get, cache_set
from chapa.config import DEFAULT_CONFIG, ChapaConfig
from chapa.errors import HandleNotFound, UpstreamUnavailable, ValidationError
from chapa.ingestion.stats import (
    Stats90d,
    require_valid_handle,
    stats_from_dict,
    stats_to_dict,
)
from chapa.ingestion.stats_builder import build_stats_from_raw, merge_stats

logger = logging.getLogger(__name__)

CONTRIBUTION_QUERY = """
query($login: String!, $since: DateTime!, $until: DateTime!, $historySince: GitTimestamp!, $historyUntil: GitTimestamp!) {
  user(login: $login) {
    login
    name
    avatarUrl
    contributionsCollection(from: $since, to: $until) {
      contributionCalendar {
        totalContributions
        weeks { contributionDays { date contributionCount } }
      }
      pullRequestContributions(first: 100) {
        totalCount
        nodes { pullRequest { additions deletions changedFiles merged } }
      }
      pullRequestReviewContributions(first: 1) { totalCount }
      issueContributions(first: 1) { totalCount }
    }
    repositories(first: 20, ownerAffiliations: [OWNER, COLLABORATOR], orderBy: {field: PUSHED_AT, direction: DESC}) {
      totalCount
      nodes {
        nameWithOwner
        defaultBranchRef {
          target {
            ... on Commit { history(since: $historySince, until: $historyUntil) { totalCount } }
          }
        }
      }
    }
    ownedRepoStars: repositories(first: 100, ownerAffiliations: [OWNER], isFork: false, orderBy: {field: STARGAZERS, direction: DESC}) {
      nodes { stargazerCount forkCount watchers { totalCount } }
    }
  }
}
"""


def stats_cache_key(handle: str) -> str:
    return f"stats:{handle.lower()}"


def supplemental_cache_key(handle: str) -> str:
    return f"supplemental:{handle.lower()}"


def unwrap_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flatten the GraphQL `user` object into the build_stats_from_raw() shape.

    Pull request contribution wrappers are unwrapped and null nodes dropped.
    """
    cc = user.get("contributionsCollection") or {}
    pr_contrib = cc.get("pullRequestContributions") or {}
    pr_nodes = [
        n["pullRequest"]
        for n in pr_contrib.get("nodes") or []
        if n is not None and n.get("pullRequest") is not None
    ]
    return {
        "login": user.get("login"),
        "name": user.get("name"),
        "avatarUrl": user.get("avatarUrl"),
        "contributionCalendar": cc.get("contributionCalendar"),
        "pullRequests": {"totalCount": pr_contrib.get("totalCount", 0), "nodes": pr_nodes},
        "reviews": {"totalCount": (cc.get("pullRequestReviewContributions") or {}).get("totalCount", 0)},
        "issues": {"totalCount": (cc.get("issueContributions") or {}).get("totalCount", 0)},
        "repositories": user.get("repositories") or {"totalCount": 0, "nodes": []},
        "ownedRepoStars": user.get("ownedRepoStars") or {"nodes": []},
    }


async def fetch_contribution_data(
    handle: str,
    token: Optional[str] = None,
    now: Optional[datetime] = None,
    config: ChapaConfig = DEFAULT_CONFIG,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """
    POST the contribution query for `handle` and return the flattened payload.

    Args:
        handle: GitHub login (already validated by the caller).
        token:  GitHub token; anonymous requests are heavily rate-limited.
        now:    End of the window (defaults to the current UTC time).
        client: Optional shared httpx.AsyncClient (tests inject a MockTransport).

    Raises:
        HandleNotFound:       GitHub returned no user for this login.
        UpstreamUnavailable:  Network error, timeout, non-2xx status or a
                              response without a `data` object.
    """
    now = now or datetime.now(tz=timezone.utc)
    since = now - timedelta(days=config.window_days)
    headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if token:
        headers["Authorization"] = f"Bearer {token}"
    body = {
        "query": CONTRIBUTION_QUERY,
        "variables": {
            "login": handle,
            "since": since.isoformat(),
            "until": now.isoformat(),
            "historySince": since.isoformat(),
            "historyUntil": now.isoformat(),
        },
    }

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.github_timeout_seconds) as own_client:
                resp = await own_client.post(config.github_graphql_url, json=body, headers=headers)
        else:
            resp = await client.post(config.github_graphql_url, json=body, headers=headers)
    except httpx.HTTPError as exc:
        logger.warning("GitHub network error for %s: %s", handle, exc)
        raise UpstreamUnavailable(
            "GitHub is unreachable right now.", details={"handle": handle}
        ) from exc

    if resp.status_code != 200:
        logger.warning("GitHub GraphQL HTTP %d for %s", resp.status_code, handle)
        raise UpstreamUnavailable(
            f"GitHub responded with HTTP {resp.status_code}.",
            details={"handle": handle, "status": resp.status_code},
        )

    try:
        payload = resp.json()
    except ValueError as exc:
        raise UpstreamUnavailable("GitHub returned a non-JSON response.") from exc

    if payload.get("errors"):
        logger.warning("GitHub GraphQL errors for %s: %s", handle, payload["errors"])

    data = payload.get("data")
    if not isinstance(data, dict):
        raise UpstreamUnavailable(
            "GitHub returned no data for the contribution query.", details={"handle": handle}
        )
    user = data.get("user")
    if not user:
        raise HandleNotFound(f"GitHub user '{handle}' was not found.", details={"handle": handle})

    return unwrap_user(user)


async def _load_supplemental(handle: str) -> Optional[Stats90d]:
    record = await cache_get(supplemental_cache_key(handle))
    if not record:
        return None
    try:
        return stats_from_dict(record["stats"])
    except (KeyError, TypeError, ValidationError) as exc:
        logger.warning("Ignoring unreadable supplemental stats for %s: %s", handle, exc)
        return None


async def get_stats_90d(
    handle: str,
    config: ChapaConfig = DEFAULT_CONFIG,
    now: Optional[datetime] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Stats90d:
    """
    Return the Stats90d for `handle`, from cache when possible.

    Cache miss → GitHub fetch → optional supplemental merge → cache write.
    A corrupt cache entry is treated as a miss. A failing supplemental
    lookup falls back to the primary stats.

    Raises:
        InvalidHandle:        `handle` is not a valid GitHub login.
        HandleNotFound:       GitHub has no such user.
        UpstreamUnavailable:  GitHub could not be reached.
    """
    require_valid_handle(handle)
    key = stats_cache_key(handle)

    cached = await cache_get(key)
    if cached is not None:
        try:
            return stats_from_dict(cached)
        except ValidationError as exc:
            logger.warning("Discarding invalid cached stats for %s: %s", handle, exc.message)

    now = now or datetime.now(tz=timezone.utc)
    raw = await fetch_contribution_data(
        handle, token=config.github_token, now=now, config=config, client=client
    )
    stats = build_stats_from_raw(raw, fetched_at=now.isoformat())

    supplemental = await _load_supplemental(handle)
    if supplemental is not None:
        stats = merge_stats(stats, supplemental)
        logger.info("Merged supplemental stats into %s", handle)

    await cache_set(key, stats_to_dict(stats), ttl_seconds=config.stats_cache_ttl_seconds)
    return stats
