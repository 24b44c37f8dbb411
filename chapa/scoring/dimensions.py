"""
chapa/scoring/dimensions.py — The four Impact dimensions.

Each dimension is a weighted blend of normalised signals, scaled to 0–100 and
rounded half-up:

    building     (Builder)     — shipping: merged PR weight, issues closed, commits.
    guarding     (Guardian)    — reviewing: reviews, review-to-PR ratio, commit hygiene.
    consistency  (Marathoner)  — showing up: active days, weekly evenness, no bursts.
    breadth      (Polymath)    — reach: repositories, spread, community signals, docs.

Every positive signal is non-decreasing in its dimension. The inverse signals
(burst size, micro-commit ratio, top-repo share, and PR count in the review
ratio) can only lower a dimension as they grow.
"""

from dataclasses import dataclass

from chapa.ingestion.stats import Stats90d
from chapa.scoring._calibration import DEFAULT_CALIBRATION, ScoringCalibration
from chapa.scoring.normalize import clamp, heatmap_evenness, linear_ratio, normalize, round_half_up

DIMENSION_NAMES = ("building", "guarding", "consistency", "breadth")


@dataclass(frozen=True)
class DimensionScores:
    """
    Four dimension scores, each an integer in [0, 100].

    Fields:
        building:     Builder axis.
        guarding:     Guardian axis.
        consistency:  Marathoner axis.
        breadth:      Polymath axis.
    """

    building: int
    guarding: int
    consistency: int
    breadth: int

    def as_dict(self) -> dict:
        return {name: getattr(self, name) for name in DIMENSION_NAMES}

    def values(self) -> tuple:
        return tuple(getattr(self, name) for name in DIMENSION_NAMES)


def _to_score(blend: float) -> int:
    return round_half_up(clamp(blend * 100))


def compute_building(stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> int:
    w_prs, w_issues, w_commits = cal.building_weights
    blend = (
        w_prs * normalize(stats.prs_merged_weight, cal.pr_weight_cap)
        + w_issues * normalize(stats.issues_closed_count, cal.issues_cap)
        + w_commits * normalize(stats.commits_total, cal.commits_cap)
    )
    return _to_score(blend)


def compute_guarding(stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> int:
    """
    Review-centred score; 0 when no reviews were submitted.

    The review-to-PR ratio saturates at review_ratio_cap reviews per merged
    PR. A pure reviewer (no merged PRs) gets the full ratio component.
    """
    if stats.reviews_submitted_count == 0:
        return 0
    w_reviews, w_ratio, w_hygiene = cal.guarding_weights

    if stats.prs_merged_count > 0:
        ratio = stats.reviews_submitted_count / stats.prs_merged_count
        review_ratio = min(ratio, cal.review_ratio_cap) / cal.review_ratio_cap
    else:
        review_ratio = 1.0

    micro = stats.micro_commit_ratio
    if micro is None:
        micro = cal.unknown_micro_commit_ratio

    blend = (
        w_reviews * normalize(stats.reviews_submitted_count, cal.reviews_cap)
        + w_ratio * review_ratio
        + w_hygiene * (1.0 - micro)
    )
    return _to_score(blend)


def compute_consistency(stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> int:
    if stats.active_days == 0:
        return 0
    w_days, w_even, w_burst = cal.consistency_weights
    blend = (
        w_days * linear_ratio(stats.active_days, cal.active_days_cap)
        + w_even * heatmap_evenness(stats.heatmap_data)
        + w_burst * (1.0 - linear_ratio(stats.max_commits_in_10min, cal.burst_cap))
    )
    return _to_score(blend)


def compute_breadth(stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> int:
    if stats.repos_contributed == 0:
        return 0
    w_repos, w_spread, w_stars, w_forks, w_watchers, w_docs = cal.breadth_weights
    blend = (
        w_repos * linear_ratio(stats.repos_contributed, cal.repos_cap)
        + w_spread * (1.0 - stats.top_repo_share)
        + w_stars * normalize(stats.total_stars, cal.stars_cap)
        + w_forks * normalize(stats.total_forks, cal.forks_cap)
        + w_watchers * normalize(stats.total_watchers, cal.watchers_cap)
        + w_docs * (stats.docs_only_pr_ratio or 0.0)
    )
    return _to_score(blend)


def compute_dimensions(
    stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION
) -> DimensionScores:
    """Compute all four dimensions for an already validated snapshot."""
    return DimensionScores(
        building=compute_building(stats, cal),
        guarding=compute_guarding(stats, cal),
        consistency=compute_consistency(stats, cal),
        breadth=compute_breadth(stats, cal),
    )
