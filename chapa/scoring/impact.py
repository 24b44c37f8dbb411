"""
chapa/scoring/impact.py — Impact v4: the scoring entry point.

compute_impact_v4(stats) is a pure function of the snapshot: no randomness,
no clock reads, no I/O. Identical input yields an identical ImpactV4Result,
which is what lets a badge's verification code be recomputed later.

Pipeline:
    validate → four dimensions → composite (weighted blend)
             → archetype → confidence + penalties
             → adjusted composite → tier

The engine is all-or-nothing: an invalid snapshot raises ValidationError
before any score is computed.

Serialisation: ImpactV4Result.to_public_dict() is the only sanctioned way to
expose a result. It carries scores, labels and neutral penalty reasons, never
weights, caps or thresholds.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Tuple

from chapa.ingestion.stats import Stats90d, validate_stats
from chapa.scoring._calibration import DEFAULT_CALIBRATION, ScoringCalibration
from chapa.scoring.archetype import get_archetype
from chapa.scoring.confidence import ConfidencePenalty, compute_confidence
from chapa.scoring.dimensions import DimensionScores, compute_dimensions
from chapa.scoring.normalize import clamp, round_half_up

logger = logging.getLogger(__name__)

TIERS: Tuple[str, ...] = ("Emerging", "Solid", "High", "Elite")


@dataclass(frozen=True)
class ImpactV4Result:
    """
    Complete Impact v4 result for one handle.

    Fields:
        handle:                GitHub login that was scored.
        dimensions:            The four dimension scores (0–100 each).
        archetype:             Builder | Guardian | Marathoner | Polymath | Balanced | Emerging.
        composite_score:       Weighted blend of the dimensions (0–100).
        confidence:            Reliability of the score, [floor, 100].
        confidence_penalties:  Penalties that reduced confidence, catalogue order.
        adjusted_composite:    Composite scaled by confidence (0–100).
        tier:                  Emerging | Solid | High | Elite, from adjusted_composite.
    """

    handle: str
    dimensions: DimensionScores
    archetype: str
    composite_score: int
    confidence: int
    confidence_penalties: Tuple[ConfidencePenalty, ...]
    adjusted_composite: int
    tier: str

    @property
    def narrative(self) -> str:
        """One-line human summary, safe for any user-facing surface."""
        return (
            f"{self.handle} scores {self.adjusted_composite} "
            f"({self.tier} tier, {self.archetype} archetype) "
            f"at {self.confidence}% confidence."
        )

    def to_public_dict(self) -> Dict[str, Any]:
        """JSON-ready representation for responses, caches and reports."""
        return {
            "handle": self.handle,
            "dimensions": self.dimensions.as_dict(),
            "archetype": self.archetype,
            "compositeScore": self.composite_score,
            "confidence": self.confidence,
            "confidencePenalties": [p.to_dict() for p in self.confidence_penalties],
            "adjustedComposite": self.adjusted_composite,
            "tier": self.tier,
        }


def get_tier(score: float, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> str:
    """
    Map a 0–100 score to a tier.

    Thresholds are checked highest first with >=, so a score exactly at a
    cut-off takes the higher tier.
    """
    for tier, threshold in cal.tier_thresholds:
        if score >= threshold:
            return tier
    return cal.lowest_tier


def compute_composite(dims: DimensionScores, cal: ScoringCalibration = DEFAULT_CALIBRATION) -> int:
    by_name = dims.as_dict()
    blend = sum(weight * by_name[name] for name, weight in cal.dimension_weights.items())
    return round_half_up(clamp(blend))


def compute_adjusted_score(
    composite: int, confidence: int, cal: ScoringCalibration = DEFAULT_CALIBRATION
) -> int:
    """Scale the composite by confidence; full confidence leaves it unchanged."""
    base = cal.confidence_base_factor
    factor = base + (1.0 - base) * (confidence / 100)
    return round_half_up(clamp(composite * factor))


def compute_impact_v4(
    stats: Stats90d, cal: ScoringCalibration = DEFAULT_CALIBRATION
) -> ImpactV4Result:
    """
    Score one Stats90d snapshot.

    Args:
        stats: The handle's 90-day snapshot.

    Returns:
        ImpactV4Result.

    Raises:
        ValidationError: if the snapshot is malformed (nothing is computed).
    """
    validate_stats(stats)

    dims = compute_dimensions(stats, cal)
    composite = compute_composite(dims, cal)
    archetype = get_archetype(dims, cal)
    conf = compute_confidence(stats, cal)
    adjusted = compute_adjusted_score(composite, conf.confidence, cal)

    result = ImpactV4Result(
        handle=stats.handle,
        dimensions=dims,
        archetype=archetype,
        composite_score=composite,
        confidence=conf.confidence,
        confidence_penalties=conf.penalties,
        adjusted_composite=adjusted,
        tier=get_tier(adjusted, cal),
    )
    logger.debug("Impact v4 for %s: %s", stats.handle, result.narrative)
    return result
