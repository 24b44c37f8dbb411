"""
chapa/render/theme.py — Badge colour themes.

A theme is a fixed palette; the heatmap uses five intensity levels of the
accent colour, bucketed by daily contribution count:

    0 → level 0,  1–2 → 1,  3–5 → 2,  6–10 → 3,  11+ → 4
"""

from dataclasses import dataclass
from typing import Dict, Tuple


@dataclass(frozen=True)
class BadgeTheme:
    name: str
    bg: str
    card: str
    text_primary: str
    text_secondary: str
    accent: str
    stroke: str
    heatmap: Tuple[str, str, str, str, str]
    tier_colors: Dict[str, str]
    accent_rgb: Tuple[int, int, int]


WARM_AMBER = BadgeTheme(
    name="warm-amber",
    bg="#12100D",
    card="#1A1610",
    text_primary="#E6EDF3",
    text_secondary="#9AA4B2",
    accent="#E2A84B",
    stroke="rgba(226,168,75,0.12)",
    heatmap=(
        "rgba(226,168,75,0.06)",
        "rgba(226,168,75,0.20)",
        "rgba(226,168,75,0.38)",
        "rgba(226,168,75,0.58)",
        "rgba(226,168,75,0.85)",
    ),
    tier_colors={
        "Emerging": "#9AA4B2",
        "Solid": "#E6EDF3",
        "High": "#F0C97D",
        "Elite": "#E2A84B",
    },
    accent_rgb=(226, 168, 75),
)

MIDNIGHT = BadgeTheme(
    name="midnight",
    bg="#0D1117",
    card="#161B22",
    text_primary="#E6EDF3",
    text_secondary="#8B949E",
    accent="#7C9CF5",
    stroke="rgba(124,156,245,0.14)",
    heatmap=(
        "rgba(124,156,245,0.06)",
        "rgba(124,156,245,0.20)",
        "rgba(124,156,245,0.38)",
        "rgba(124,156,245,0.58)",
        "rgba(124,156,245,0.85)",
    ),
    tier_colors={
        "Emerging": "#8B949E",
        "Solid": "#E6EDF3",
        "High": "#A5BCFA",
        "Elite": "#7C9CF5",
    },
    accent_rgb=(124, 156, 245),
)

THEMES: Dict[str, BadgeTheme] = {t.name: t for t in (WARM_AMBER, MIDNIGHT)}

# Alpha of each heatmap level, shared by SVG rgba() strings and PNG fills.
HEATMAP_ALPHAS = (0.06, 0.20, 0.38, 0.58, 0.85)


def get_theme(name: str) -> BadgeTheme:
    return THEMES.get(name, WARM_AMBER)


def heatmap_level(count: int) -> int:
    """Intensity bucket 0–4 for a daily contribution count."""
    if count <= 0:
        return 0
    if count <= 2:
        return 1
    if count <= 5:
        return 2
    if count <= 10:
        return 3
    return 4


def heatmap_color(count: int, theme: BadgeTheme = WARM_AMBER) -> str:
    return theme.heatmap[heatmap_level(count)]


def tier_color(tier: str, theme: BadgeTheme = WARM_AMBER) -> str:
    return theme.tier_colors.get(tier, theme.text_secondary)
