"""
chapa/scoring/normalize.py — Signal normalisation helpers.

All helpers map a raw signal into [0, 1]:

    normalize()         — log-scaled against a cap, for heavy-tailed counts
                          (stars, PR weight, commits) so one outlier cannot
                          dominate.
    linear_ratio()      — min(x, cap) / cap, for bounded counts.
    heatmap_evenness()  — 1 / (1 + CV) of weekly totals.
"""

import math
from typing import Iterable

import numpy as np

from chapa.ingestion.stats import HeatmapDay


def normalize(value: float, cap: float) -> float:
    """ln(1 + min(x, cap)) / ln(1 + cap); 0 for x <= 0."""
    if value <= 0:
        return 0.0
    return math.log1p(min(value, cap)) / math.log1p(cap)


def linear_ratio(value: float, cap: float) -> float:
    if value <= 0:
        return 0.0
    return min(value, cap) / cap


def clamp(value: float, lo: float = 0.0, hi: float = 100.0) -> float:
    return max(lo, min(hi, value))


def round_half_up(value: float) -> int:
    """Round to the nearest integer, .5 away from zero (no banker's rounding)."""
    return int(math.floor(value + 0.5))


def heatmap_evenness(days: Iterable[HeatmapDay]) -> float:
    """
    How evenly activity is spread across the weeks of the window.

    Daily counts are summed into 7-day buckets (oldest first; a trailing
    partial week forms its own bucket). Evenness is 1 / (1 + CV), where CV is
    the population coefficient of variation of the weekly totals.

    Returns:
        1.0 for perfectly even weeks, approaching 0 for a single spike.
        0.0 for an empty heatmap or one with no activity.
    """
    counts = np.array([day.count for day in days], dtype=float)
    if counts.size == 0:
        return 0.0
    weekly = np.add.reduceat(counts, np.arange(0, counts.size, 7))
    mean = float(weekly.mean())
    if mean == 0:
        return 0.0
    cv = float(weekly.std()) / mean
    return 1.0 / (1.0 + cv)
