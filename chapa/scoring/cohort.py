"""
chapa/scoring/cohort.py — Batch scoring for a group of handles.

Scores many snapshots at once and summarises the distribution, for admin
dashboards, offline audits and the Markdown cohort report. A snapshot that
fails validation is logged and skipped; it never aborts the batch.
"""

import logging
from collections import Counter
from typing import Iterable, List, Tuple

import pandas as pd

from chapa.errors import ValidationError
from chapa.ingestion.stats import Stats90d
from chapa.scoring.archetype import ARCHETYPES
from chapa.scoring.impact import TIERS, ImpactV4Result, compute_impact_v4

logger = logging.getLogger(__name__)

COHORT_COLUMNS = [
    "handle",
    "adjusted_composite",
    "composite_score",
    "tier",
    "archetype",
    "confidence",
    "building",
    "guarding",
    "consistency",
    "breadth",
    "penalty_count",
    "penalty_flags",
]


def score_many(
    stats_list: Iterable[Stats90d],
) -> Tuple[List[ImpactV4Result], List[Tuple[str, str]]]:
    """
    Score each snapshot independently.

    Returns:
        (results, rejected) where rejected is a list of (handle, message)
        for snapshots that failed validation.
    """
    results: List[ImpactV4Result] = []
    rejected: List[Tuple[str, str]] = []
    for stats in stats_list:
        try:
            results.append(compute_impact_v4(stats))
        except ValidationError as exc:
            logger.warning("Skipping %s: %s", getattr(stats, "handle", "?"), exc.message)
            rejected.append((str(getattr(stats, "handle", "?")), exc.message))
    return results, rejected


def results_to_frame(results: Iterable[ImpactV4Result]) -> pd.DataFrame:
    """
    One row per result, sorted by adjusted_composite desc, then handle asc.
    """
    rows = []
    for r in results:
        rows.append({
            "handle": r.handle,
            "adjusted_composite": r.adjusted_composite,
            "composite_score": r.composite_score,
            "tier": r.tier,
            "archetype": r.archetype,
            "confidence": r.confidence,
            "building": r.dimensions.building,
            "guarding": r.dimensions.guarding,
            "consistency": r.dimensions.consistency,
            "breadth": r.dimensions.breadth,
            "penalty_count": len(r.confidence_penalties),
            "penalty_flags": ",".join(p.flag for p in r.confidence_penalties),
        })
    df = pd.DataFrame(rows, columns=COHORT_COLUMNS)
    if df.empty:
        return df
    return df.sort_values(
        ["adjusted_composite", "handle"], ascending=[False, True]
    ).reset_index(drop=True)


def score_cohort(stats_list: Iterable[Stats90d]) -> pd.DataFrame:
    """Score a cohort and return the sorted results DataFrame."""
    results, rejected = score_many(stats_list)
    df = results_to_frame(results)
    logger.info(
        "Scored cohort: %d handles, %d rejected.", len(df), len(rejected)
    )
    return df


def cohort_summary(df: pd.DataFrame) -> dict:
    """
    Distribution summary of a score_cohort() DataFrame.

    Returns:
        {
          'total_handles': int,
          'mean_adjusted': float,
          'median_confidence': float,
          'tier_counts': {tier: int, ...},          # every tier, zero-filled
          'archetype_counts': {archetype: int, ...},  # every archetype, zero-filled
          'penalised_share': float,                 # share with >= 1 penalty
          'penalty_counts': {flag: int, ...},       # only flags that occurred
        }
    """
    if df.empty:
        return {
            "total_handles": 0,
            "mean_adjusted": 0.0,
            "median_confidence": 0.0,
            "tier_counts": {tier: 0 for tier in TIERS},
            "archetype_counts": {name: 0 for name in ARCHETYPES},
            "penalised_share": 0.0,
            "penalty_counts": {},
        }

    tier_counts = df["tier"].value_counts()
    archetype_counts = df["archetype"].value_counts()
    flags = Counter(
        flag
        for joined in df["penalty_flags"]
        for flag in joined.split(",")
        if flag
    )
    return {
        "total_handles": int(len(df)),
        "mean_adjusted": round(float(df["adjusted_composite"].mean()), 1),
        "median_confidence": float(df["confidence"].median()),
        "tier_counts": {tier: int(tier_counts.get(tier, 0)) for tier in TIERS},
        "archetype_counts": {name: int(archetype_counts.get(name, 0)) for name in ARCHETYPES},
        "penalised_share": round(float((df["penalty_count"] > 0).mean()), 3),
        "penalty_counts": dict(sorted(flags.items())),
    }
