"""
Tests for batch scoring and the cohort summary.
"""

import pandas as pd

from chapa.scoring.archetype import ARCHETYPES
from chapa.scoring.cohort import (
    COHORT_COLUMNS,
    cohort_summary,
    results_to_frame,
    score_cohort,
    score_many,
)
from chapa.scoring.impact import TIERS


def _cohort(make_stats):
    return [
        make_stats(handle="alice", commits_total=200, reviews_submitted_count=60),
        make_stats(handle="bob", active_days=3),
        make_stats(handle="carol"),
    ]


def test_invalid_snapshot_is_skipped_not_fatal(make_stats):
    stats = _cohort(make_stats) + [make_stats(handle="dave", commits_total=-1)]
    results, rejected = score_many(stats)
    assert [r.handle for r in results] == ["alice", "bob", "carol"]
    assert len(rejected) == 1
    assert rejected[0][0] == "dave"


def test_frame_sorted_by_score_then_handle(make_stats):
    df = score_cohort(_cohort(make_stats))
    assert list(df.columns) == COHORT_COLUMNS
    scores = df["adjusted_composite"].tolist()
    assert scores == sorted(scores, reverse=True)
    # Identical snapshots tie on score and fall back to alphabetical order.
    tied = score_cohort([make_stats(handle="zed"), make_stats(handle="amy")])
    assert tied["handle"].tolist() == ["amy", "zed"]


def test_penalty_columns(make_stats):
    df = score_cohort(_cohort(make_stats))
    bob = df[df["handle"] == "bob"].iloc[0]
    assert bob["penalty_count"] == 1
    assert bob["penalty_flags"] == "low_activity_signal"


def test_summary_structure(make_stats):
    summary = cohort_summary(score_cohort(_cohort(make_stats)))
    assert summary["total_handles"] == 3
    assert set(summary["tier_counts"]) == set(TIERS)
    assert set(summary["archetype_counts"]) == set(ARCHETYPES)
    assert sum(summary["tier_counts"].values()) == 3
    assert sum(summary["archetype_counts"].values()) == 3
    assert summary["penalised_share"] == round(1 / 3, 3)
    assert summary["penalty_counts"] == {"low_activity_signal": 1}


def test_empty_cohort_summary_is_zero_filled():
    df = results_to_frame([])
    assert isinstance(df, pd.DataFrame)
    assert df.empty
    summary = cohort_summary(df)
    assert summary["total_handles"] == 0
    assert all(v == 0 for v in summary["tier_counts"].values())
    assert summary["penalty_counts"] == {}
