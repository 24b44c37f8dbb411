"""
chapa/ingestion/stats_builder.py — Raw GitHub payload → Stats90d.

Pure transforms: no I/O, no clock reads (the caller passes fetched_at).

    compute_pr_weight()     — size-aware weight of one merged pull request.
    build_stats_from_raw()  — flattened GraphQL payload → Stats90d.
    merge_stats()           — fold a linked account's snapshot into the primary.
"""

import logging
import math
from typing import Any, Dict, Iterable, List, Mapping, Optional

from chapa.errors import ValidationError
from chapa.ingestion.stats import MAX_ACTIVE_DAYS, HeatmapDay, Stats90d, validate_stats

logger = logging.getLogger(__name__)

PR_WEIGHT_CAP = 3.0
# Ceiling on a single PR's weight: one huge PR cannot stand in for many.

PR_WEIGHT_AGG_CAP = 120.0
# Ceiling on the summed weight of all merged PRs in the window.

BURST_SPIKE_MIN_DAILY = 30
# The contribution calendar has day granularity only. A day with at least
# this many contributions is taken as the burst estimate; quieter days
# yield no burst signal.


def compute_pr_weight(additions: int, deletions: int, changed_files: int) -> float:
    """
    Weight of one merged PR.

        w = (0.5 + 0.25·ln(1 + files) + 0.25·ln(1 + adds + dels)) · size_multiplier
        size_multiplier = min(1, (files + adds + dels) / 10)

    Tiny PRs (< 10 total changes) are scaled down linearly; the result is
    capped at PR_WEIGHT_CAP.
    """
    total_changes = changed_files + additions + deletions
    size_multiplier = min(1.0, total_changes / 10)
    raw_weight = (
        0.5
        + 0.25 * math.log1p(changed_files)
        + 0.25 * math.log1p(additions + deletions)
    )
    return min(raw_weight * size_multiplier, PR_WEIGHT_CAP)


def _flatten_calendar(calendar: Mapping[str, Any]) -> List[HeatmapDay]:
    days: List[HeatmapDay] = []
    for week in calendar.get("weeks") or []:
        for day in week.get("contributionDays") or []:
            days.append(HeatmapDay(date=day["date"], count=int(day["contributionCount"])))
    return days[-MAX_ACTIVE_DAYS:]


def _nodes(container: Optional[Mapping[str, Any]]) -> Iterable[Mapping[str, Any]]:
    if not container:
        return []
    return [n for n in container.get("nodes") or [] if n is not None]


def build_stats_from_raw(raw: Mapping[str, Any], fetched_at: str = "") -> Stats90d:
    """
    Transform a flattened GitHub contribution payload into a validated Stats90d.

    Args:
        raw:        Flattened contribution payload as produced by
                    chapa.ingestion.github_client.unwrap_user(): top-level
                    contributionCalendar, pullRequests.nodes (PR objects),
                    reviews, issues, repositories and ownedRepoStars.
        fetched_at: ISO timestamp recorded on the snapshot.

    Returns:
        Stats90d for raw["login"].

    Raises:
        ValidationError: if the payload lacks the fields the query guarantees.
    """
    try:
        calendar = raw["contributionCalendar"]
        heatmap = _flatten_calendar(calendar)
        commits_total = int(calendar["totalContributions"])
        login = raw["login"]
    except (KeyError, TypeError) as exc:
        raise ValidationError(
            "GitHub payload is missing the contribution calendar.",
            details={"missing": str(exc)},
        ) from exc

    active_days = sum(1 for day in heatmap if day.count > 0)

    # ── Merged pull requests ──────────────────────────────────────────────────
    merged = [pr for pr in _nodes(raw.get("pullRequests")) if pr.get("merged")]
    prs_merged_weight = min(
        sum(
            compute_pr_weight(
                int(pr.get("additions", 0)),
                int(pr.get("deletions", 0)),
                int(pr.get("changedFiles", 0)),
            )
            for pr in merged
        ),
        PR_WEIGHT_AGG_CAP,
    )
    lines_added = sum(int(pr.get("additions", 0)) for pr in merged)
    lines_deleted = sum(int(pr.get("deletions", 0)) for pr in merged)

    # ── Repositories ──────────────────────────────────────────────────────────
    repo_commits: List[int] = []
    for repo in _nodes(raw.get("repositories")):
        ref = repo.get("defaultBranchRef") or {}
        history = ((ref.get("target") or {}).get("history") or {})
        commits = int(history.get("totalCount", 0) or 0)
        if commits > 0:
            repo_commits.append(commits)
    total_repo_commits = sum(repo_commits)
    top_repo_share = max(repo_commits) / total_repo_commits if total_repo_commits else 0.0

    max_daily = max((day.count for day in heatmap), default=0)
    max_commits_in_10min = max_daily if max_daily >= BURST_SPIKE_MIN_DAILY else 0

    owned = list(_nodes(raw.get("ownedRepoStars")))
    total_stars = sum(int(r.get("stargazerCount", 0) or 0) for r in owned)
    total_forks = sum(int(r.get("forkCount", 0) or 0) for r in owned)
    total_watchers = sum(
        int((r.get("watchers") or {}).get("totalCount", 0) or 0) for r in owned
    )

    stats = Stats90d(
        handle=login,
        display_name=raw.get("name") or None,
        avatar_url=raw.get("avatarUrl") or None,
        commits_total=commits_total,
        active_days=active_days,
        prs_merged_count=len(merged),
        prs_merged_weight=prs_merged_weight,
        reviews_submitted_count=int((raw.get("reviews") or {}).get("totalCount", 0) or 0),
        issues_closed_count=int((raw.get("issues") or {}).get("totalCount", 0) or 0),
        lines_added=lines_added,
        lines_deleted=lines_deleted,
        repos_contributed=len(repo_commits),
        top_repo_share=top_repo_share,
        max_commits_in_10min=max_commits_in_10min,
        total_stars=total_stars,
        total_forks=total_forks,
        total_watchers=total_watchers,
        heatmap_data=tuple(heatmap),
        fetched_at=fetched_at,
    )
    validate_stats(stats)
    logger.debug(
        "Built stats for %s: %d commits, %d active days, %d merged PRs",
        login, commits_total, active_days, len(merged),
    )
    return stats


# ── Linked-account merge ──────────────────────────────────────────────────────

def _merge_heatmaps(a: Iterable[HeatmapDay], b: Iterable[HeatmapDay]) -> List[HeatmapDay]:
    totals: Dict[str, int] = {}
    for day in list(a) + list(b):
        totals[day.date] = totals.get(day.date, 0) + day.count
    merged = [HeatmapDay(date=d, count=totals[d]) for d in sorted(totals)]
    return merged[-MAX_ACTIVE_DAYS:]


def _max_optional(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return max(a, b)


def merge_stats(primary: Stats90d, supplemental: Stats90d) -> Stats90d:
    """
    Merge a linked account's snapshot (e.g. an enterprise-managed account)
    into the primary one.

    Counts are summed; PR weight is summed and re-capped; heatmaps are merged
    by date and active_days recomputed from the result; top_repo_share is
    approximated as max(P·shareP, S·shareS) / (P + S); burst and ratio signals
    take the maximum; community signals take the maximum because both
    accounts usually see the same repositories. Identity fields come from the
    primary. The result is flagged has_supplemental_data=True.
    """
    heatmap = _merge_heatmaps(primary.heatmap_data, supplemental.heatmap_data)
    total_commits = primary.commits_total + supplemental.commits_total
    if total_commits > 0:
        top_repo_share = max(
            primary.commits_total * primary.top_repo_share,
            supplemental.commits_total * supplemental.top_repo_share,
        ) / total_commits
    else:
        top_repo_share = 0.0

    return Stats90d(
        handle=primary.handle,
        display_name=primary.display_name,
        avatar_url=primary.avatar_url,
        fetched_at=primary.fetched_at,
        commits_total=total_commits,
        active_days=sum(1 for day in heatmap if day.count > 0),
        prs_merged_count=primary.prs_merged_count + supplemental.prs_merged_count,
        prs_merged_weight=min(
            primary.prs_merged_weight + supplemental.prs_merged_weight, PR_WEIGHT_AGG_CAP
        ),
        reviews_submitted_count=primary.reviews_submitted_count + supplemental.reviews_submitted_count,
        issues_closed_count=primary.issues_closed_count + supplemental.issues_closed_count,
        lines_added=primary.lines_added + supplemental.lines_added,
        lines_deleted=primary.lines_deleted + supplemental.lines_deleted,
        repos_contributed=primary.repos_contributed + supplemental.repos_contributed,
        top_repo_share=top_repo_share,
        max_commits_in_10min=max(primary.max_commits_in_10min, supplemental.max_commits_in_10min),
        micro_commit_ratio=_max_optional(primary.micro_commit_ratio, supplemental.micro_commit_ratio),
        docs_only_pr_ratio=_max_optional(primary.docs_only_pr_ratio, supplemental.docs_only_pr_ratio),
        total_stars=max(primary.total_stars, supplemental.total_stars),
        total_forks=max(primary.total_forks, supplemental.total_forks),
        total_watchers=max(primary.total_watchers, supplemental.total_watchers),
        heatmap_data=tuple(heatmap),
        has_supplemental_data=True,
    )
