"""
chapa.scoring — Impact v4 scoring engine.

Modules:
    normalize    — Log/linear signal normalisation, heatmap evenness.
    dimensions   — Building, Guarding, Consistency, Breadth (0–100 each).
    archetype    — Exactly one archetype per profile.
    confidence   — Penalty catalogue and floored confidence.
    impact       — compute_impact_v4(), tiers, adjusted composite.
    cohort       — pandas batch scoring and distribution summary.

Calibration lives in the private _calibration module and is never exported.
"""

from chapa.scoring.impact import ImpactV4Result, compute_impact_v4, get_tier

__all__ = ["ImpactV4Result", "compute_impact_v4", "get_tier"]
