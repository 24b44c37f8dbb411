"""
chapa/scoring/confidence.py — How much weight the Impact score can bear.

Confidence starts at 100 and loses a fixed number of points for every
triggered condition in the penalty catalogue (eight conditions), floored at
the calibration minimum. Penalties describe data patterns, never intent:
reasons are neutral and never accusatory.

Mutual exclusion: `low_collaboration_signal` dominates `low_review_volume`.
When the former fires the latter is suppressed even if its own trigger
holds, so at most seven penalties ever apply together.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from chapa.ingestion.stats import Stats90d
from chapa.scoring._calibration import DEFAULT_CALIBRATION, ScoringCalibration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfidencePenalty:
    """
    One applied penalty.

    Fields:
        flag:     Stable identifier, e.g. 'burst_activity'.
        penalty:  Points deducted from confidence.
        reason:   Neutral, user-facing explanation.
    """

    flag: str
    penalty: int
    reason: str

    def to_dict(self) -> dict:
        return {"flag": self.flag, "penalty": self.penalty, "reason": self.reason}


@dataclass(frozen=True)
class ConfidenceResult:
    confidence: int
    penalties: Tuple[ConfidencePenalty, ...]


def _triggers(cal: ScoringCalibration) -> Dict[str, Callable[[Stats90d], bool]]:
    return {
        "burst_activity": lambda s: s.max_commits_in_10min >= cal.burst_flag_min,
        "micro_commit_pattern": lambda s: (
            s.micro_commit_ratio is not None
            and s.micro_commit_ratio >= cal.micro_commit_flag_min
        ),
        "generated_change_pattern": lambda s: (
            s.lines_added + s.lines_deleted >= cal.generated_change_lines_min
            and s.reviews_submitted_count <= cal.generated_change_reviews_max
        ),
        "low_collaboration_signal": lambda s: (
            s.prs_merged_count >= cal.low_collab_prs_min
            and s.reviews_submitted_count <= cal.low_collab_reviews_max
        ),
        "low_review_volume": lambda s: (
            s.reviews_submitted_count < cal.low_review_volume_reviews_below
            and s.commits_total >= cal.low_review_volume_commits_min
        ),
        "single_repo_concentration": lambda s: (
            s.top_repo_share >= cal.concentration_share_min
            and s.repos_contributed <= cal.concentration_repos_max
        ),
        "supplemental_unverified": lambda s: s.has_supplemental_data,
        "low_activity_signal": lambda s: s.active_days < cal.low_activity_days_below,
    }


def triggered_flags(stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> List[str]:
    """
    Flags whose trigger holds, in catalogue order, after mutual exclusion.
    """
    triggers = _triggers(cal)
    fired = [rule.flag for rule in cal.penalties if triggers[rule.flag](stats)]
    for dominant, suppressed in cal.mutually_exclusive_penalties:
        if dominant in fired and suppressed in fired:
            fired.remove(suppressed)
    return fired


def compute_confidence(
    stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION
) -> ConfidenceResult:
    """
    Compute confidence and the list of applied penalties.

    Returns:
        ConfidenceResult with confidence in [cal.confidence_floor, 100].
    """
    penalties = tuple(
        ConfidencePenalty(flag=rule.flag, penalty=rule.points, reason=rule.reason)
        for rule in (cal.penalty(flag) for flag in triggered_flags(stats, cal))
    )
    confidence = max(cal.confidence_floor, 100 - sum(p.penalty for p in penalties))
    if penalties:
        logger.debug(
            "Confidence for %s: %d (%s)",
            stats.handle, confidence, ", ".join(p.flag for p in penalties),
        )
    return ConfidenceResult(confidence=confidence, penalties=penalties)
