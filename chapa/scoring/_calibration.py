"""
chapa/scoring/_calibration.py — Private scoring calibration.

Caps, signal weights, dimension weights, tier thresholds, archetype tolerances
and the confidence penalty table. Imported only by chapa.scoring modules.
Nothing here is ever serialised into a response, a badge or a report: the
public result carries scores and neutral penalty reasons only.

Changing a value here changes every score. Treat edits as a methodology
release.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

_WEIGHT_TOLERANCE = 1e-9


@dataclass(frozen=True)
class PenaltyRule:
    """One confidence penalty: stable flag id, points deducted, neutral reason."""

    flag: str
    points: int
    reason: str


@dataclass(frozen=True)
class ScoringCalibration:
    """
    Immutable scoring calibration.

    Signal weights inside each dimension and the four dimension weights must
    each sum to 1.0; __post_init__ enforces it so a bad edit fails at import.
    """

    # ── Signal caps (value at which a signal saturates) ───────────────────────
    pr_weight_cap: float = 40.0
    issues_cap: float = 30.0
    commits_cap: float = 200.0
    reviews_cap: float = 60.0
    review_ratio_cap: float = 5.0
    active_days_cap: float = 90.0
    burst_cap: float = 30.0
    repos_cap: float = 10.0
    stars_cap: float = 500.0
    forks_cap: float = 200.0
    watchers_cap: float = 100.0

    unknown_micro_commit_ratio: float = 0.3
    # Conservative assumption when the micro-commit ratio was not measured.

    # ── Signal weights per dimension ──────────────────────────────────────────
    building_weights: Tuple[float, float, float] = (0.70, 0.20, 0.10)
    # merged PR weight, issues closed, commits

    guarding_weights: Tuple[float, float, float] = (0.60, 0.25, 0.15)
    # reviews, review-to-PR ratio, inverse micro-commit ratio

    consistency_weights: Tuple[float, float, float] = (0.50, 0.35, 0.15)
    # active days, heatmap evenness, inverse burst

    breadth_weights: Tuple[float, float, float, float, float, float] = (
        0.35, 0.25, 0.15, 0.10, 0.05, 0.10,
    )
    # repos, inverse top-repo share, stars, forks, watchers, docs-only PRs

    # ── Composite ─────────────────────────────────────────────────────────────
    dimension_weights: Dict[str, float] = field(
        default_factory=lambda: {
            "building": 0.25,
            "guarding": 0.25,
            "consistency": 0.25,
            "breadth": 0.25,
        }
    )

    confidence_base_factor: float = 0.85
    # adjusted = composite · (base + (1 - base) · confidence / 100)

    # ── Tiers (checked highest first, >= comparison) ─────────────────────────
    tier_thresholds: Tuple[Tuple[str, int], ...] = (
        ("Elite", 85),
        ("High", 70),
        ("Solid", 40),
    )
    lowest_tier: str = "Emerging"

    # ── Archetypes ────────────────────────────────────────────────────────────
    archetype_spread_tolerance: int = 15
    # Single tolerance for every dimension comparison: a profile whose
    # dimensions all lie within this spread is Balanced.

    emerging_average_floor: float = 40.0
    emerging_peak_floor: int = 50
    # Below either floor the profile is Emerging whatever its shape.

    dominant_min_score: int = 70
    # A single-dimension archetype needs its leading dimension at least here.

    archetype_tie_priority: Tuple[str, ...] = ("breadth", "guarding", "consistency", "building")

    # ── Confidence ────────────────────────────────────────────────────────────
    confidence_floor: int = 50

    burst_flag_min: int = 20
    micro_commit_flag_min: float = 0.6
    generated_change_lines_min: int = 20000
    generated_change_reviews_max: int = 2
    low_collab_prs_min: int = 10
    low_collab_reviews_max: int = 1
    low_review_volume_reviews_below: int = 3
    low_review_volume_commits_min: int = 60
    concentration_share_min: float = 0.95
    concentration_repos_max: int = 1
    low_activity_days_below: int = 7

    penalties: Tuple[PenaltyRule, ...] = (
        PenaltyRule(
            "burst_activity",
            15,
            "Some activity is concentrated in short bursts, which makes sustained patterns harder to read.",
        ),
        PenaltyRule(
            "micro_commit_pattern",
            10,
            "A large share of commits are very small, so commit volume carries less signal.",
        ),
        PenaltyRule(
            "generated_change_pattern",
            15,
            "Large change volume with limited review activity can make it harder to interpret change size.",
        ),
        PenaltyRule(
            "low_collaboration_signal",
            10,
            "Most merged work shows limited review activity, so collaboration signals are lighter.",
        ),
        PenaltyRule(
            "low_review_volume",
            5,
            "Few reviews were submitted relative to commit activity in this period.",
        ),
        PenaltyRule(
            "single_repo_concentration",
            5,
            "Activity is concentrated in a single repository, so breadth signals are limited.",
        ),
        PenaltyRule(
            "supplemental_unverified",
            5,
            "Includes activity from a linked account that could not be independently confirmed.",
        ),
        PenaltyRule(
            "low_activity_signal",
            10,
            "Activity was recorded on only a few days, so there is less data to work with.",
        ),
    )

    mutually_exclusive_penalties: Tuple[Tuple[str, str], ...] = (
        ("low_collaboration_signal", "low_review_volume"),
    )
    # (dominant, suppressed): when the first fires the second never appears.

    def __post_init__(self) -> None:
        groups = {
            "building_weights": self.building_weights,
            "guarding_weights": self.guarding_weights,
            "consistency_weights": self.consistency_weights,
            "breadth_weights": self.breadth_weights,
            "dimension_weights": tuple(self.dimension_weights.values()),
        }
        for name, weights in groups.items():
            if abs(sum(weights) - 1.0) > _WEIGHT_TOLERANCE:
                raise ValueError(f"{name} must sum to 1.0, got {sum(weights)}")
        flags = [rule.flag for rule in self.penalties]
        if len(set(flags)) != len(flags):
            raise ValueError("penalty flags must be unique")

    def penalty(self, flag: str) -> PenaltyRule:
        for rule in self.penalties:
            if rule.flag == flag:
                return rule
        raise KeyError(flag)


DEFAULT_CALIBRATION = ScoringCalibration()
