"""
chapa/scoring/archetype.py — One categorical label per profile.

Decision order (first match wins, so exactly one archetype is assigned):

    1. Emerging    — mean dimension below the average floor, or no dimension
                     reaching the peak floor.
    2. Balanced    — all four dimensions within the spread tolerance of each
                     other (max − min <= tolerance).
    3. Dominant    — the leading dimension, if it reaches the dominant minimum.
                     Exact ties resolve by fixed priority
                     Polymath > Guardian > Marathoner > Builder.
    4. Emerging    — otherwise.

Because step 2 is evaluated before step 3 with the same tolerance, a dominant
archetype is only ever assigned when the leader sits more than the tolerance
above the weakest dimension.
"""

from typing import Tuple

from chapa.scoring._calibration import DEFAULT_CALIBRATION, ScoringCalibration
from chapa.scoring.dimensions import DIMENSION_NAMES, DimensionScores

ARCHETYPES: Tuple[str, ...] = (
    "Builder",
    "Guardian",
    "Marathoner",
    "Polymath",
    "Balanced",
    "Emerging",
)

DIMENSION_ARCHETYPE = {
    "building": "Builder",
    "guarding": "Guardian",
    "consistency": "Marathoner",
    "breadth": "Polymath",
}


def get_archetype(
    dims: DimensionScores, cal: ScoringCalibration = DEFAULT_CALIBRATION
) -> str:
    """Return exactly one archetype name from ARCHETYPES."""
    values = dims.values()
    average = sum(values) / len(values)
    peak = max(values)

    if average < cal.emerging_average_floor or peak < cal.emerging_peak_floor:
        return "Emerging"

    if peak - min(values) <= cal.archetype_spread_tolerance:
        return "Balanced"

    if peak < cal.dominant_min_score:
        return "Emerging"

    by_name = dims.as_dict()
    for name in cal.archetype_tie_priority:
        if by_name[name] == peak:
            return DIMENSION_ARCHETYPE[name]

    # archetype_tie_priority lists every dimension, so a leader is always found.
    raise AssertionError(f"no dimension matches peak {peak} in {DIMENSION_NAMES}")
