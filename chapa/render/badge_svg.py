"""
chapa/render/badge_svg.py — Badge SVG composition.

render_badge_svg() is a pure function of its inputs: same stats, impact,
config, avatar and verification code → byte-identical SVG. No clock reads,
no random ids. That is what allows a verification code embedded in a badge
to be recomputed and matched later.

Layouts:
    full     1200×630 card: header, heatmap, headline stats, radar chart,
             impact panel, footer, optional verification strip.
    compact  600×200 strip: header, heatmap, dimension bars, score.

User-controlled text (handle, display name, hash) is always XML-escaped.
When no avatar is supplied the header draws PLACEHOLDER_ICON_PATH.
"""

from typing import List, Optional

from chapa.ingestion.stats import Stats90d
from chapa.render.avatar import FetchedAvatar
from chapa.render.badge_config import DEFAULT_BADGE_CONFIG, BadgeConfig
from chapa.render.heatmap import build_heatmap_cells, render_heatmap_svg
from chapa.render.radar import render_radar_chart
from chapa.render.theme import BadgeTheme, get_theme, tier_color
from chapa.scoring.dimensions import DIMENSION_NAMES
from chapa.scoring.impact import ImpactV4Result
from chapa.verification.hmac_code import VerificationCode

PAD = 60
MONO = "'JetBrains Mono', 'Courier New', monospace"
SANS = "'Plus Jakarta Sans', system-ui, sans-serif"
CORAL = "#E05A47"
DEFAULT_BASE_URL = "https://chapa.thecreativetoken.com"

# Person silhouette on a 24×24 grid, drawn when the avatar is unavailable.
PLACEHOLDER_ICON_PATH = (
    "M12 12c2.65 0 4.8-2.15 4.8-4.8S14.65 2.4 12 2.4 7.2 4.55 7.2 7.2 9.35 12 12 12z"
    "m0 2.4c-3.2 0-9.6 1.61-9.6 4.8v2.4h19.2v-2.4c0-3.19-6.4-4.8-9.6-4.8z"
)

DIMENSION_LABELS = {
    "building": "Building",
    "guarding": "Guarding",
    "consistency": "Consistency",
    "breadth": "Breadth",
}


def escape_xml(text: str) -> str:
    """Escape & < > ' " for safe embedding in SVG text and attributes."""
    return (
        str(text)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("'", "&apos;")
        .replace('"', "&quot;")
    )


# ── Shared pieces ─────────────────────────────────────────────────────────────

def _defs(theme: BadgeTheme, config: BadgeConfig, avatar_cx: int, avatar_cy: int, avatar_r: int) -> str:
    r, g, b = theme.accent_rgb
    parts = [
        f'<clipPath id="avatar-clip"><circle cx="{avatar_cx}" cy="{avatar_cy}" r="{avatar_r}"/></clipPath>'
    ]
    if config.background == "aurora":
        parts.append(
            '<radialGradient id="aurora" cx="85%" cy="0%" r="90%">'
            f'<stop offset="0%" stop-color="rgb({r},{g},{b})" stop-opacity="0.22"/>'
            f'<stop offset="100%" stop-color="{theme.bg}" stop-opacity="0"/>'
            "</radialGradient>"
        )
    if config.border == "gradient":
        parts.append(
            '<linearGradient id="border-gradient" x1="0" y1="0" x2="1" y2="1">'
            f'<stop offset="0%" stop-color="{theme.accent}" stop-opacity="0.9"/>'
            f'<stop offset="50%" stop-color="{theme.accent}" stop-opacity="0.1"/>'
            f'<stop offset="100%" stop-color="{theme.accent}" stop-opacity="0.9"/>'
            "</linearGradient>"
        )
    if config.tier_treatment == "enhanced":
        parts.append(
            '<filter id="tier-glow" x="-20%" y="-40%" width="140%" height="180%">'
            '<feGaussianBlur stdDeviation="6" result="blur"/>'
            '<feMerge><feMergeNode in="blur"/><feMergeNode in="SourceGraphic"/></feMerge>'
            "</filter>"
        )
    return "<defs>\n    " + "\n    ".join(parts) + "\n  </defs>"


def _background(theme: BadgeTheme, config: BadgeConfig, w: int, h: int) -> str:
    parts = [f'<rect width="{w}" height="{h}" rx="16" fill="{theme.bg}"/>']
    if config.background == "aurora":
        parts.append(f'<rect width="{w}" height="{h}" rx="16" fill="url(#aurora)"/>')
    if config.border == "solid-amber":
        parts.append(
            f'<rect x="1" y="1" width="{w - 2}" height="{h - 2}" rx="15" fill="none" '
            f'stroke="{theme.stroke}" stroke-width="2"/>'
        )
    elif config.border == "gradient":
        parts.append(
            f'<rect x="1" y="1" width="{w - 2}" height="{h - 2}" rx="15" fill="none" '
            f'stroke="url(#border-gradient)" stroke-width="2"/>'
        )
    return "\n  ".join(parts)


def _avatar(avatar: Optional[FetchedAvatar], theme: BadgeTheme, cx: int, cy: int, r: int) -> str:
    if avatar is not None:
        return (
            f'<image href="{avatar.data_uri}" x="{cx - r}" y="{cy - r}" width="{2 * r}" '
            f'height="{2 * r}" clip-path="url(#avatar-clip)" preserveAspectRatio="xMidYMid slice"/>'
        )
    scale = (2 * r * 0.6) / 24
    offset = 12 * scale
    return (
        f'<g aria-label="Avatar placeholder">'
        f'<circle cx="{cx}" cy="{cy}" r="{r}" fill="{theme.card}" stroke="{theme.stroke}" stroke-width="1"/>'
        f'<path d="{PLACEHOLDER_ICON_PATH}" fill="{theme.text_secondary}" '
        f'transform="translate({cx - offset:.2f} {cy - offset:.2f}) scale({scale:.4f})"/>'
        f"</g>"
    )


def _tier_attrs(config: BadgeConfig) -> str:
    return ' filter="url(#tier-glow)"' if config.tier_treatment == "enhanced" else ""


def render_verification_strip(
    code: VerificationCode, base_url: str = DEFAULT_BASE_URL, height: int = 630, x: int = 1145
) -> str:
    """
    Vertical seal on the right edge: separator line plus rotated
    "VERIFIED · {hash} · {date}" linking to the verification page.
    """
    safe_hash = escape_xml(code.hash)
    safe_date = escape_xml(code.date)
    center_x = x + 23
    text_y = height // 2
    verify_url = escape_xml(f"{base_url.rstrip('/')}/verify/{code.hash}")
    return (
        '<g aria-label="Verification seal">\n'
        f'    <line x1="{x}" y1="30" x2="{x}" y2="{height - 30}" stroke="{CORAL}" stroke-width="1" opacity="0.15"/>\n'
        f'    <a href="{verify_url}" target="_blank">\n'
        f'      <text transform="rotate(-90 {center_x} {text_y})" x="{center_x}" y="{text_y}" '
        f'font-family="{MONO}" font-size="11" fill="{CORAL}" opacity="0.50" text-anchor="middle" '
        f'letter-spacing="2">VERIFIED · {safe_hash} · {safe_date}</text>\n'
        "    </a>\n"
        "  </g>"
    )


# ── Layouts ───────────────────────────────────────────────────────────────────

def _render_full(
    stats: Stats90d,
    impact: ImpactV4Result,
    config: BadgeConfig,
    theme: BadgeTheme,
    avatar: Optional[FetchedAvatar],
    verification: Optional[VerificationCode],
    base_url: str,
) -> str:
    w, h = config.size
    safe_handle = escape_xml(stats.handle)
    subtitle = escape_xml(stats.display_name) if stats.display_name else "Developer Impact Badge"
    t_color = tier_color(impact.tier, theme)

    heat_x, heat_y = PAD, 200
    cells = build_heatmap_cells(stats.heatmap_data, heat_x, heat_y)
    heatmap_svg = render_heatmap_svg(cells, theme, animate=config.animate_heatmap)

    stats_y = 370
    card_x, card_y = 760, 150

    body: List[str] = [
        _background(theme, config, w, h),
        "<!-- Header -->",
        _avatar(avatar, theme, PAD + 32, 72, 32),
        f'<text x="{PAD + 84}" y="68" font-family="{MONO}" font-size="28" font-weight="700" '
        f'fill="{theme.text_primary}">@{safe_handle}</text>',
        f'<text x="{PAD + 84}" y="96" font-family="{SANS}" font-size="16" '
        f'fill="{theme.text_secondary}">{subtitle}</text>',
        f'<text x="{w - PAD - 20}" y="68" font-family="{MONO}" font-size="22" font-weight="700" '
        f'fill="{theme.accent}" text-anchor="end">CHAPA</text>',
        "<!-- Heatmap (13w × 7d) -->",
        f'<text x="{heat_x}" y="{heat_y - 14}" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}" letter-spacing="1">LAST 90 DAYS</text>',
        heatmap_svg,
        "<!-- Headline stats -->",
        f'<g font-family="{SANS}">',
    ]
    for i, (label, value) in enumerate((
        ("COMMITS", stats.commits_total),
        ("PRS MERGED", stats.prs_merged_count),
        ("REVIEWS", stats.reviews_submitted_count),
    )):
        x = PAD + i * 80
        body.append(
            f'  <text x="{x}" y="{stats_y}" font-size="11" fill="{theme.text_secondary}" '
            f'letter-spacing="1">{label}</text>'
        )
        body.append(
            f'  <text x="{x}" y="{stats_y + 32}" font-family="{MONO}" font-size="26" font-weight="700" '
            f'fill="{theme.text_primary}">{value}</text>'
        )
    body.append("</g>")

    body += [
        "<!-- Dimensions -->",
        render_radar_chart(impact.dimensions, 530, 320, 120, theme),
        "<!-- Impact panel -->",
        f'<g font-family="{MONO}">',
        f'  <rect x="{card_x}" y="{card_y}" width="360" height="320" rx="12" fill="{theme.card}" '
        f'stroke="{theme.stroke}" stroke-width="1"/>',
        f'  <text x="{card_x + 30}" y="{card_y + 42}" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}" letter-spacing="2">IMPACT</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 96}" font-size="48" font-weight="800" '
        f'fill="{t_color}"{_tier_attrs(config)}>{impact.tier.upper()}</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 130}" font-family="{SANS}" font-size="16" '
        f'fill="{theme.text_primary}">{impact.archetype}</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 176}" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}" letter-spacing="1">SCORE</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 222}" font-size="48" font-weight="700" '
        f'fill="{theme.accent}">{impact.adjusted_composite}</text>',
        f'  <text x="{card_x + 120}" y="{card_y + 222}" font-size="20" '
        f'fill="{theme.text_secondary}">/ 100</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 262}" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}" letter-spacing="1">CONFIDENCE</text>',
        f'  <text x="{card_x + 30}" y="{card_y + 294}" font-size="26" font-weight="500" '
        f'fill="{theme.text_primary}">{impact.confidence}%</text>',
        "</g>",
        "<!-- Footer -->",
        f'<text x="{PAD}" y="{h - 50}" font-family="{SANS}" font-size="14" fill="{theme.text_secondary}">'
        f'<tspan fill="{theme.accent}" font-weight="600">{stats.active_days}</tspan> active days · '
        f'<tspan fill="{theme.accent}" font-weight="600">{stats.repos_contributed}</tspan> repos</text>',
    ]
    if verification is not None:
        body.append(render_verification_strip(verification, base_url, height=h, x=w - 55))

    return _wrap(w, h, _defs(theme, config, PAD + 32, 72, 32), body, safe_handle)


def _render_compact(
    stats: Stats90d,
    impact: ImpactV4Result,
    config: BadgeConfig,
    theme: BadgeTheme,
    avatar: Optional[FetchedAvatar],
    verification: Optional[VerificationCode],
    base_url: str,
) -> str:
    w, h = config.size
    safe_handle = escape_xml(stats.handle)
    t_color = tier_color(impact.tier, theme)
    cells = build_heatmap_cells(stats.heatmap_data, 20, 92, cell_size=10, cell_gap=2)

    body: List[str] = [
        _background(theme, config, w, h),
        _avatar(avatar, theme, 44, 44, 24),
        f'<text x="80" y="42" font-family="{MONO}" font-size="18" font-weight="700" '
        f'fill="{theme.text_primary}">@{safe_handle}</text>',
        f'<text x="80" y="62" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}">{impact.archetype}</text>',
        render_heatmap_svg(cells, theme, animate=config.animate_heatmap, cell_size=10),
        f'<g font-family="{SANS}" font-size="11" fill="{theme.text_secondary}">',
    ]
    by_name = impact.dimensions.as_dict()
    for i, name in enumerate(DIMENSION_NAMES):
        y = 100 + i * 22
        value = by_name[name]
        body.append(f'  <text x="200" y="{y + 8}">{DIMENSION_LABELS[name]}</text>')
        body.append(f'  <rect x="290" y="{y}" width="120" height="8" rx="4" fill="{theme.heatmap[0]}"/>')
        body.append(
            f'  <rect x="290" y="{y}" width="{round(120 * value / 100)}" height="8" rx="4" '
            f'fill="{theme.accent}"/>'
        )
    body.append("</g>")
    body += [
        f'<text x="{w - 30}" y="44" font-family="{MONO}" font-size="22" font-weight="800" '
        f'fill="{t_color}" text-anchor="end"{_tier_attrs(config)}>{impact.tier.upper()}</text>',
        f'<text x="{w - 30}" y="130" font-family="{MONO}" font-size="44" font-weight="700" '
        f'fill="{theme.accent}" text-anchor="end">{impact.adjusted_composite}</text>',
        f'<text x="{w - 30}" y="154" font-family="{SANS}" font-size="12" '
        f'fill="{theme.text_secondary}" text-anchor="end">{impact.confidence}% confidence</text>',
    ]
    if verification is not None:
        verify_url = escape_xml(f"{base_url.rstrip('/')}/verify/{verification.hash}")
        body.append(
            f'<a href="{verify_url}" target="_blank"><text x="{w - 30}" y="{h - 14}" '
            f'font-family="{MONO}" font-size="9" fill="{CORAL}" opacity="0.6" text-anchor="end" '
            f'letter-spacing="1">VERIFIED · {escape_xml(verification.hash)} · '
            f'{escape_xml(verification.date)}</text></a>'
        )

    return _wrap(w, h, _defs(theme, config, 44, 44, 24), body, safe_handle)


def _wrap(w: int, h: int, defs: str, body: List[str], safe_handle: str) -> str:
    inner = "\n  ".join(body)
    return (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w}" height="{h}" '
        f'viewBox="0 0 {w} {h}" role="img" aria-label="Chapa impact badge for @{safe_handle}">\n'
        f"  {defs}\n"
        f"  {inner}\n"
        "</svg>\n"
    )


def render_badge_svg(
    stats: Stats90d,
    impact: ImpactV4Result,
    config: BadgeConfig = DEFAULT_BADGE_CONFIG,
    avatar: Optional[FetchedAvatar] = None,
    verification: Optional[VerificationCode] = None,
    base_url: str = DEFAULT_BASE_URL,
) -> str:
    """
    Compose the badge SVG.

    Args:
        stats:        The snapshot that was scored.
        impact:       Its ImpactV4Result.
        config:       Rendering preferences.
        avatar:       Fetched avatar, or None to draw the placeholder icon.
        verification: Verification code to embed, or None for no seal.
        base_url:     Origin used in the verification link.

    Returns:
        Complete SVG document as a string.
    """
    theme = get_theme(config.theme)
    if config.layout == "compact":
        return _render_compact(stats, impact, config, theme, avatar, verification, base_url)
    return _render_full(stats, impact, config, theme, avatar, verification, base_url)
