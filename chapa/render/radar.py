"""
chapa/render/radar.py — Four-axis diamond chart of the dimension scores.

Axes clockwise from the top: Building, Guarding, Consistency, Breadth. A
score of 0 sits at the centre and 100 at the outer ring. Guide rings are
drawn at 25/50/75/100 %.
"""

import math
from typing import List, Tuple

from chapa.render.theme import WARM_AMBER, BadgeTheme
from chapa.scoring.dimensions import DimensionScores

RADAR_AXES: Tuple[Tuple[str, str, float], ...] = (
    ("building", "Building", -math.pi / 2),
    ("guarding", "Guarding", 0.0),
    ("consistency", "Consistency", math.pi / 2),
    ("breadth", "Breadth", math.pi),
)
RING_LEVELS = (0.25, 0.5, 0.75, 1.0)
LABEL_OFFSET = 20


def radar_points(
    dims: DimensionScores, cx: float, cy: float, radius: float
) -> List[Tuple[int, int]]:
    """Integer vertex coordinates of the data polygon, in axis order."""
    by_name = dims.as_dict()
    return [
        _to_point(cx, cy, angle, radius * by_name[key] / 100)
        for key, _, angle in RADAR_AXES
    ]


def _to_point(cx: float, cy: float, angle: float, dist: float) -> Tuple[int, int]:
    return (
        int(round(cx + dist * math.cos(angle))),
        int(round(cy + dist * math.sin(angle))),
    )


def _points_attr(points: List[Tuple[int, int]]) -> str:
    return " ".join(f"{x},{y}" for x, y in points)


def render_radar_chart(
    dims: DimensionScores,
    cx: int,
    cy: int,
    radius: int,
    theme: BadgeTheme = WARM_AMBER,
) -> str:
    """SVG <g> for the radar chart centred on (cx, cy)."""
    rings = []
    for level in RING_LEVELS:
        pts = [_to_point(cx, cy, angle, radius * level) for _, _, angle in RADAR_AXES]
        outer = level == 1.0
        rings.append(
            f'<polygon points="{_points_attr(pts)}" fill="none" stroke="{theme.stroke}" '
            f'stroke-width="{1.5 if outer else 0.8}" opacity="{0.5 if outer else 0.3}"/>'
        )

    axis_lines = []
    for _, _, angle in RADAR_AXES:
        x2, y2 = _to_point(cx, cy, angle, radius)
        axis_lines.append(
            f'<line x1="{cx}" y1="{cy}" x2="{x2}" y2="{y2}" stroke="{theme.stroke}" '
            f'stroke-width="0.8" opacity="0.3"/>'
        )

    data = radar_points(dims, cx, cy, radius)
    dots = [
        f'<circle cx="{x}" cy="{y}" r="4" fill="{theme.accent}" stroke="{theme.bg}" stroke-width="2"/>'
        for x, y in data
    ]

    labels = []
    for _, label, angle in RADAR_AXES:
        x, y = _to_point(cx, cy, angle, radius + LABEL_OFFSET)
        anchor, dx, dy = "middle", 0, 4
        if angle == 0.0:
            anchor, dx = "start", 4
        elif angle == math.pi:
            anchor, dx = "end", -4
        if angle == -math.pi / 2:
            dy = -6
        elif angle == math.pi / 2:
            dy = 14
        labels.append(
            f'<text x="{x + dx}" y="{y + dy}" font-family="\'Plus Jakarta Sans\', system-ui, sans-serif" '
            f'font-size="13" fill="{theme.text_secondary}" text-anchor="{anchor}">{label}</text>'
        )

    body = "\n    ".join(
        rings
        + axis_lines
        + [
            f'<polygon points="{_points_attr(data)}" fill="{theme.accent}" fill-opacity="0.15" '
            f'stroke="{theme.accent}" stroke-width="2" stroke-opacity="0.8"/>'
        ]
        + dots
        + labels
    )
    return f'<g aria-label="Impact dimensions">\n    {body}\n  </g>'
