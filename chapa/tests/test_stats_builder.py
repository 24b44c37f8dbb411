"""
Tests for the raw GitHub payload → Stats90d transform and the linked-account merge.
"""

import math

import pytest

from chapa.errors import ValidationError
from chapa.ingestion.github_client import unwrap_user
from chapa.ingestion.stats import HeatmapDay
from chapa.ingestion.stats_builder import (
    BURST_SPIKE_MIN_DAILY,
    PR_WEIGHT_AGG_CAP,
    PR_WEIGHT_CAP,
    build_stats_from_raw,
    compute_pr_weight,
    merge_stats,
)


# ── PR weight ─────────────────────────────────────────────────────────────────

def test_empty_pr_has_zero_weight():
    assert compute_pr_weight(0, 0, 0) == 0.0


def test_tiny_pr_is_scaled_down():
    """Fewer than 10 total changes → weight scaled by total/10."""
    expected = (0.5 + 0.25 * math.log1p(1) + 0.25 * math.log1p(3)) * 0.4
    assert compute_pr_weight(2, 1, 1) == pytest.approx(expected)


def test_regular_pr_weight():
    expected = 0.5 + 0.25 * math.log1p(5) + 0.25 * math.log1p(150)
    assert compute_pr_weight(100, 50, 5) == pytest.approx(expected)


def test_huge_pr_weight_is_capped():
    assert compute_pr_weight(10**9, 10**9, 10**6) == PR_WEIGHT_CAP


# ── build_stats_from_raw ──────────────────────────────────────────────────────

def test_build_from_typical_user(gh_user):
    stats = build_stats_from_raw(unwrap_user(gh_user), fetched_at="2026-10-01T00:00:00+00:00")

    assert stats.handle == "octocat"
    assert stats.display_name == "The Octocat"
    assert stats.commits_total == 46 * 3
    assert stats.active_days == 46
    assert len(stats.heatmap_data) == 91
    # Unmerged PR is ignored
    assert stats.prs_merged_count == 2
    assert stats.lines_added == 160
    assert stats.lines_deleted == 40
    assert stats.prs_merged_weight == pytest.approx(
        compute_pr_weight(120, 30, 6) + compute_pr_weight(40, 10, 2)
    )
    assert stats.reviews_submitted_count == 14
    assert stats.issues_closed_count == 5
    assert stats.repos_contributed == 2
    assert stats.top_repo_share == pytest.approx(0.75)
    assert stats.total_stars == 128
    assert stats.total_forks == 4
    assert stats.total_watchers == 6
    assert stats.max_commits_in_10min == 0
    assert stats.fetched_at == "2026-10-01T00:00:00+00:00"
    assert stats.has_supplemental_data is False


def test_repos_without_commits_are_not_counted(make_user):
    stats = build_stats_from_raw(unwrap_user(make_user(repo_commits=(0, 0, 12))))
    assert stats.repos_contributed == 1
    assert stats.top_repo_share == 1.0


def test_no_repos_gives_zero_share(make_user):
    stats = build_stats_from_raw(unwrap_user(make_user(repo_commits=())))
    assert stats.repos_contributed == 0
    assert stats.top_repo_share == 0.0


def test_spike_day_sets_burst_estimate(make_user):
    counts = [1] * 91
    counts[40] = BURST_SPIKE_MIN_DAILY + 5
    stats = build_stats_from_raw(unwrap_user(make_user(counts=counts)))
    assert stats.max_commits_in_10min == BURST_SPIKE_MIN_DAILY + 5


def test_quiet_days_give_no_burst(make_user):
    counts = [BURST_SPIKE_MIN_DAILY - 1] * 91
    stats = build_stats_from_raw(unwrap_user(make_user(counts=counts)))
    assert stats.max_commits_in_10min == 0


def test_heatmap_trimmed_to_last_91_days(make_user):
    counts = [0] * 7 + [1] * 91
    stats = build_stats_from_raw(unwrap_user(make_user(counts=counts)))
    assert len(stats.heatmap_data) == 91
    assert all(day.count == 1 for day in stats.heatmap_data)
    assert stats.active_days == 91


def test_aggregate_pr_weight_is_capped(make_user):
    prs = [{"additions": 5000, "deletions": 5000, "changedFiles": 200, "merged": True}] * 60
    stats = build_stats_from_raw(unwrap_user(make_user(prs=prs)))
    assert stats.prs_merged_weight == PR_WEIGHT_AGG_CAP


def test_missing_calendar_raises():
    with pytest.raises(ValidationError):
        build_stats_from_raw({"login": "octocat"})


def test_unwrap_user_drops_null_pr_nodes(make_user):
    user = make_user()
    user["contributionsCollection"]["pullRequestContributions"]["nodes"].append(None)
    user["contributionsCollection"]["pullRequestContributions"]["nodes"].append({"pullRequest": None})
    flat = unwrap_user(user)
    assert len(flat["pullRequests"]["nodes"]) == 3


# ── merge_stats ───────────────────────────────────────────────────────────────

def test_merge_sums_counts_and_flags_supplemental(make_stats, make_heatmap):
    primary = make_stats(
        commits_total=100, top_repo_share=0.5,
        heatmap_data=make_heatmap([1, 0, 0]), active_days=1,
    )
    supplemental = make_stats(
        handle="octocat-corp", commits_total=50, top_repo_share=1.0,
        heatmap_data=make_heatmap([0, 2, 0]), active_days=1,
        prs_merged_count=3, reviews_submitted_count=4, total_stars=900,
        micro_commit_ratio=0.4,
    )
    merged = merge_stats(primary, supplemental)

    assert merged.handle == "octocat"
    assert merged.has_supplemental_data is True
    assert merged.commits_total == 150
    assert merged.prs_merged_count == 15
    assert merged.reviews_submitted_count == 29
    assert merged.heatmap_data == make_heatmap([1, 2, 0])
    assert merged.active_days == 2
    # max(100·0.5, 50·1.0) / 150
    assert merged.top_repo_share == pytest.approx(50 / 150)
    assert merged.total_stars == 900
    assert merged.micro_commit_ratio == 0.4


def test_merge_adds_counts_on_shared_dates(make_stats):
    day = (HeatmapDay(date="2026-07-01", count=2),)
    merged = merge_stats(make_stats(heatmap_data=day), make_stats(heatmap_data=day))
    assert merged.heatmap_data == (HeatmapDay(date="2026-07-01", count=4),)


def test_merge_recaps_pr_weight(make_stats):
    merged = merge_stats(make_stats(prs_merged_weight=100.0), make_stats(prs_merged_weight=100.0))
    assert merged.prs_merged_weight == PR_WEIGHT_AGG_CAP
