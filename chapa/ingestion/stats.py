"""
chapa/ingestion/stats.py — The Stats90d activity snapshot.

A Stats90d is an immutable record of one handle's public activity over the
trailing 90-day window. It is built upstream (GitHub GraphQL → stats_builder)
and consumed read-only by the scoring engine and the badge renderer.

Validation is strict and all-or-nothing: a snapshot with negative counts,
out-of-range ratios or missing fields is rejected with a ValidationError that
lists every problem, rather than being scored into a nonsense result.
"""

import math
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from chapa.errors import InvalidHandle, ValidationError

# GitHub login: 1–39 chars, alphanumerics and hyphens, no leading or
# trailing hyphen.
_HANDLE_RE = re.compile(r"^[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?$")
_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

# 13 weeks × 7 days: the contribution calendar never holds more.
MAX_ACTIVE_DAYS = 91


def is_valid_handle(handle: Any) -> bool:
    """True if `handle` is a syntactically valid GitHub login."""
    return isinstance(handle, str) and bool(_HANDLE_RE.match(handle))


def require_valid_handle(handle: Any) -> str:
    """Return `handle` unchanged, or raise InvalidHandle."""
    if not is_valid_handle(handle):
        raise InvalidHandle(
            f"'{handle}' is not a valid GitHub handle.",
            details={"handle": str(handle)[:64]},
        )
    return handle


@dataclass(frozen=True)
class HeatmapDay:
    """One contribution-calendar cell: ISO date and contribution count."""

    date: str
    count: int


@dataclass(frozen=True)
class Stats90d:
    """
    Immutable 90-day activity snapshot for one handle.

    Fields:
        handle:                   GitHub login.
        display_name:             Profile name, if any.
        avatar_url:               Profile avatar URL, if any.
        commits_total:            Total contributions in the window.
        active_days:              Days with at least one contribution (0..91).
        prs_merged_count:         Merged pull requests.
        prs_merged_weight:        Size-weighted merged PR total (see stats_builder).
        reviews_submitted_count:  Pull request reviews submitted.
        issues_closed_count:      Issues closed.
        lines_added:              Lines added across merged PRs.
        lines_deleted:            Lines deleted across merged PRs.
        repos_contributed:        Repositories with commits in the window.
        top_repo_share:           Share of commits landing in the busiest repo (0..1).
        max_commits_in_10min:     Burst estimate; 0 when no spike was observed.
        micro_commit_ratio:       Share of tiny commits (0..1), None when unknown.
        docs_only_pr_ratio:       Share of documentation-only PRs (0..1), None when unknown.
        total_stars:              Stars across owned repositories.
        total_forks:              Forks across owned repositories.
        total_watchers:           Watchers across owned repositories.
        heatmap_data:             Daily contribution counts, oldest first.
        fetched_at:               ISO timestamp of the upstream fetch.
        has_supplemental_data:    True if linked-account stats were merged in.
    """

    handle: str
    commits_total: int
    active_days: int
    prs_merged_count: int
    prs_merged_weight: float
    reviews_submitted_count: int
    issues_closed_count: int
    lines_added: int
    lines_deleted: int
    repos_contributed: int
    top_repo_share: float
    max_commits_in_10min: int
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    micro_commit_ratio: Optional[float] = None
    docs_only_pr_ratio: Optional[float] = None
    total_stars: int = 0
    total_forks: int = 0
    total_watchers: int = 0
    heatmap_data: Tuple[HeatmapDay, ...] = field(default_factory=tuple)
    fetched_at: str = ""
    has_supplemental_data: bool = False


# ── Field catalogue ───────────────────────────────────────────────────────────

_COUNT_FIELDS = (
    "commits_total",
    "active_days",
    "prs_merged_count",
    "reviews_submitted_count",
    "issues_closed_count",
    "lines_added",
    "lines_deleted",
    "repos_contributed",
    "max_commits_in_10min",
    "total_stars",
    "total_forks",
    "total_watchers",
)

_REQUIRED_FIELDS = (
    "handle",
    "commits_total",
    "active_days",
    "prs_merged_count",
    "prs_merged_weight",
    "reviews_submitted_count",
    "issues_closed_count",
    "lines_added",
    "lines_deleted",
    "repos_contributed",
    "top_repo_share",
    "max_commits_in_10min",
)

_CAMEL_ALIASES = {
    "displayName": "display_name",
    "avatarUrl": "avatar_url",
    "commitsTotal": "commits_total",
    "activeDays": "active_days",
    "prsMergedCount": "prs_merged_count",
    "prsMergedWeight": "prs_merged_weight",
    "reviewsSubmittedCount": "reviews_submitted_count",
    "issuesClosedCount": "issues_closed_count",
    "linesAdded": "lines_added",
    "linesDeleted": "lines_deleted",
    "reposContributed": "repos_contributed",
    "topRepoShare": "top_repo_share",
    "maxCommitsIn10Min": "max_commits_in_10min",
    "microCommitRatio": "micro_commit_ratio",
    "docsOnlyPrRatio": "docs_only_pr_ratio",
    "totalStars": "total_stars",
    "totalForks": "total_forks",
    "totalWatchers": "total_watchers",
    "heatmapData": "heatmap_data",
    "fetchedAt": "fetched_at",
    "hasSupplementalData": "has_supplemental_data",
}


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _ratio_problem(name: str, value: Optional[float]) -> Optional[str]:
    if value is None:
        return None
    if not _is_number(value) or not 0.0 <= value <= 1.0:
        return f"{name} must be within [0, 1], got {value!r}"
    return None


def validate_stats(stats: Stats90d) -> None:
    """
    Check every invariant of a Stats90d snapshot.

    Raises:
        ValidationError: listing every violated constraint under
                         details["problems"]. Nothing is raised for a
                         well-formed snapshot.
    """
    problems: List[str] = []

    if not is_valid_handle(stats.handle):
        problems.append(f"handle {stats.handle!r} is not a valid GitHub handle")

    for name in _COUNT_FIELDS:
        value = getattr(stats, name)
        if not isinstance(value, int) or isinstance(value, bool):
            problems.append(f"{name} must be an integer, got {value!r}")
        elif value < 0:
            problems.append(f"{name} must be >= 0, got {value}")

    if isinstance(stats.active_days, int) and stats.active_days > MAX_ACTIVE_DAYS:
        problems.append(
            f"active_days cannot exceed {MAX_ACTIVE_DAYS}, got {stats.active_days}"
        )

    if not _is_number(stats.prs_merged_weight) or stats.prs_merged_weight < 0:
        problems.append(
            f"prs_merged_weight must be a finite number >= 0, got {stats.prs_merged_weight!r}"
        )

    for name in ("top_repo_share", "micro_commit_ratio", "docs_only_pr_ratio"):
        problem = _ratio_problem(name, getattr(stats, name))
        if problem:
            problems.append(problem)
    if stats.top_repo_share is None:
        problems.append("top_repo_share is required")

    for i, day in enumerate(stats.heatmap_data):
        if not isinstance(day, HeatmapDay):
            problems.append(f"heatmap_data[{i}] is not a HeatmapDay")
            continue
        if not isinstance(day.date, str) or not _ISO_DATE_RE.match(day.date):
            problems.append(f"heatmap_data[{i}].date must be YYYY-MM-DD, got {day.date!r}")
        if not isinstance(day.count, int) or isinstance(day.count, bool) or day.count < 0:
            problems.append(f"heatmap_data[{i}].count must be an integer >= 0, got {day.count!r}")

    if problems:
        raise ValidationError(
            f"Invalid activity snapshot for {stats.handle!r}: {len(problems)} problem(s).",
            details={"problems": problems},
        )


def stats_from_dict(data: Mapping[str, Any]) -> Stats90d:
    """
    Build and validate a Stats90d from a JSON-like mapping.

    Accepts snake_case keys or the camelCase keys used by the web client and
    the stats cache. Unknown keys are ignored.

    Raises:
        ValidationError: if a required field is missing, a field has the
                         wrong shape, or the snapshot fails validate_stats().
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Activity snapshot must be a JSON object.")

    norm: Dict[str, Any] = {}
    for key, value in data.items():
        norm[_CAMEL_ALIASES.get(key, key)] = value

    missing = [name for name in _REQUIRED_FIELDS if norm.get(name) is None]
    if missing:
        raise ValidationError(
            f"Activity snapshot is missing required field(s): {', '.join(missing)}.",
            details={"missing": missing},
        )

    raw_heatmap = norm.get("heatmap_data") or []
    if not isinstance(raw_heatmap, (list, tuple)):
        raise ValidationError("heatmap_data must be a list of {date, count} objects.")
    heatmap: List[HeatmapDay] = []
    for i, entry in enumerate(raw_heatmap):
        if isinstance(entry, HeatmapDay):
            heatmap.append(entry)
        elif isinstance(entry, Mapping) and "date" in entry and "count" in entry:
            heatmap.append(HeatmapDay(date=entry["date"], count=entry["count"]))
        else:
            raise ValidationError(
                f"heatmap_data[{i}] must be an object with date and count.",
                details={"index": i},
            )

    stats = Stats90d(
        handle=norm["handle"],
        display_name=norm.get("display_name"),
        avatar_url=norm.get("avatar_url"),
        commits_total=norm["commits_total"],
        active_days=norm["active_days"],
        prs_merged_count=norm["prs_merged_count"],
        prs_merged_weight=norm["prs_merged_weight"],
        reviews_submitted_count=norm["reviews_submitted_count"],
        issues_closed_count=norm["issues_closed_count"],
        lines_added=norm["lines_added"],
        lines_deleted=norm["lines_deleted"],
        repos_contributed=norm["repos_contributed"],
        top_repo_share=norm["top_repo_share"],
        max_commits_in_10min=norm["max_commits_in_10min"],
        micro_commit_ratio=norm.get("micro_commit_ratio"),
        docs_only_pr_ratio=norm.get("docs_only_pr_ratio"),
        total_stars=norm.get("total_stars", 0) or 0,
        total_forks=norm.get("total_forks", 0) or 0,
        total_watchers=norm.get("total_watchers", 0) or 0,
        heatmap_data=tuple(heatmap),
        fetched_at=norm.get("fetched_at") or "",
        has_supplemental_data=bool(norm.get("has_supplemental_data", False)),
    )
    validate_stats(stats)
    return stats


def stats_to_dict(stats: Stats90d) -> Dict[str, Any]:
    """JSON-ready snake_case mapping; stats_from_dict() reverses it."""
    data = asdict(stats)
    data["heatmap_data"] = [
        {"date": day.date, "count": day.count} for day in stats.heatmap_data
    ]
    return data
