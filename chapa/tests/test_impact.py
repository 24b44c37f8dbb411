"""
Tests for computeImpactV4: composite, adjustment, tiers and the public result.
"""

import json

import pytest

from chapa.errors import ValidationError
from chapa.scoring import compute_impact_v4, get_tier
from chapa.scoring.dimensions import DimensionScores
from chapa.scoring.impact import TIERS, compute_adjusted_score, compute_composite

PUBLIC_KEYS = {
    "handle",
    "dimensions",
    "archetype",
    "compositeScore",
    "confidence",
    "confidencePenalties",
    "adjustedComposite",
    "tier",
}


@pytest.mark.parametrize("score,tier", [
    (100, "Elite"), (85, "Elite"), (84, "High"), (70, "High"),
    (69, "Solid"), (40, "Solid"), (39, "Emerging"), (0, "Emerging"),
])
def test_tier_boundaries_use_greater_or_equal(score, tier):
    assert get_tier(score) == tier


def test_composite_is_equal_weighted_mean():
    assert compute_composite(DimensionScores(80, 60, 40, 20)) == 50
    assert compute_composite(DimensionScores(100, 100, 100, 100)) == 100


def test_adjustment_scales_with_confidence():
    assert compute_adjusted_score(60, 100) == 60
    assert compute_adjusted_score(80, 50) == 74
    assert compute_adjusted_score(0, 50) == 0


def test_adjusted_never_exceeds_composite(make_stats):
    result = compute_impact_v4(make_stats(active_days=3, max_commits_in_10min=25))
    assert result.adjusted_composite <= result.composite_score
    assert result.confidence < 100


def test_saturated_profile_is_elite_and_balanced(make_stats, make_heatmap):
    stats = make_stats(
        commits_total=200, prs_merged_weight=40.0, prs_merged_count=12, issues_closed_count=30,
        reviews_submitted_count=60, micro_commit_ratio=0.0,
        active_days=90, heatmap_data=make_heatmap([5] * 91),
        repos_contributed=10, top_repo_share=0.0, total_stars=500, total_forks=200,
        total_watchers=100, docs_only_pr_ratio=1.0,
    )
    result = compute_impact_v4(stats)
    assert result.composite_score == 100
    assert result.confidence == 100
    assert result.adjusted_composite == 100
    assert result.tier == "Elite"
    assert result.archetype == "Balanced"


def test_idle_profile(make_stats):
    idle = make_stats(
        commits_total=0, active_days=0, prs_merged_count=0, prs_merged_weight=0.0,
        reviews_submitted_count=0, issues_closed_count=0, lines_added=0, lines_deleted=0,
        repos_contributed=0, top_repo_share=0.0, total_stars=0, total_forks=0,
        total_watchers=0, heatmap_data=(),
    )
    result = compute_impact_v4(idle)
    assert result.composite_score == 0
    assert result.adjusted_composite == 0
    assert result.tier == "Emerging"
    assert result.archetype == "Emerging"
    assert [p.flag for p in result.confidence_penalties] == ["low_activity_signal"]
    assert result.confidence == 90


def test_scoring_is_deterministic(make_stats):
    stats = make_stats(micro_commit_ratio=0.3, docs_only_pr_ratio=0.1)
    assert compute_impact_v4(stats) == compute_impact_v4(stats)


def test_result_ranges(make_stats):
    result = compute_impact_v4(make_stats())
    assert 0 <= result.composite_score <= 100
    assert 0 <= result.adjusted_composite <= 100
    assert 50 <= result.confidence <= 100
    assert result.tier in TIERS
    assert result.tier == get_tier(result.adjusted_composite)


def test_invalid_snapshot_is_rejected_before_scoring(make_stats):
    with pytest.raises(ValidationError):
        compute_impact_v4(make_stats(commits_total=-5))


def test_public_dict_exposes_only_result_fields(make_stats):
    payload = compute_impact_v4(make_stats(has_supplemental_data=True)).to_public_dict()
    assert set(payload) == PUBLIC_KEYS
    assert set(payload["dimensions"]) == {"building", "guarding", "consistency", "breadth"}
    for penalty in payload["confidencePenalties"]:
        assert set(penalty) == {"flag", "penalty", "reason"}
    text = json.dumps(payload).lower()
    for leaked in ("weight", "cap", "threshold", "calibration"):
        assert leaked not in text


def test_narrative_mentions_handle_and_tier_only(make_stats):
    result = compute_impact_v4(make_stats())
    assert "octocat" in result.narrative
    assert result.tier in result.narrative
    assert "weight" not in result.narrative.lower()
