"""
chapa/render/heatmap.py — 13-week × 7-day contribution grid.

Cells are laid out column-per-week, oldest week on the left, matching the
order of Stats90d.heatmap_data. Missing days render as empty cells.
"""

from dataclasses import dataclass
from typing import List, Sequence

from chapa.ingestion.stats import HeatmapDay
from chapa.render.theme import WARM_AMBER, BadgeTheme, heatmap_level

CELL_SIZE = 14
CELL_GAP = 3
WEEKS = 13
DAYS = 7
WEEK_DELAY_MS = 60

HEATMAP_WIDTH = WEEKS * (CELL_SIZE + CELL_GAP) - CELL_GAP
HEATMAP_HEIGHT = DAYS * (CELL_SIZE + CELL_GAP) - CELL_GAP


@dataclass(frozen=True)
class HeatmapCell:
    x: int
    y: int
    level: int
    delay_ms: int


def build_heatmap_cells(
    heatmap_data: Sequence[HeatmapDay],
    offset_x: int = 0,
    offset_y: int = 0,
    cell_size: int = CELL_SIZE,
    cell_gap: int = CELL_GAP,
) -> List[HeatmapCell]:
    """Position and colour level for all 91 cells."""
    cells: List[HeatmapCell] = []
    for week in range(WEEKS):
        for day in range(DAYS):
            idx = week * DAYS + day
            count = heatmap_data[idx].count if idx < len(heatmap_data) else 0
            cells.append(
                HeatmapCell(
                    x=offset_x + week * (cell_size + cell_gap),
                    y=offset_y + day * (cell_size + cell_gap),
                    level=heatmap_level(count),
                    delay_ms=week * WEEK_DELAY_MS,
                )
            )
    return cells


def render_heatmap_svg(
    cells: Sequence[HeatmapCell],
    theme: BadgeTheme = WARM_AMBER,
    animate: bool = True,
    cell_size: int = CELL_SIZE,
) -> str:
    """
    SVG <rect> elements for the grid.

    With animate=True each cell starts transparent and fades in, one week
    column at a time. Pass animate=False for renderers without SMIL support.
    """
    parts = []
    for c in cells:
        fill = theme.heatmap[c.level]
        if animate:
            parts.append(
                f'<rect x="{c.x}" y="{c.y}" width="{cell_size}" height="{cell_size}" rx="3" '
                f'fill="{fill}" opacity="0">'
                f'<animate attributeName="opacity" from="0" to="1" dur="0.4s" '
                f'begin="{c.delay_ms}ms" fill="freeze"/></rect>'
            )
        else:
            parts.append(
                f'<rect x="{c.x}" y="{c.y}" width="{cell_size}" height="{cell_size}" rx="3" '
                f'fill="{fill}"/>'
            )
    return "\n    ".join(parts)
