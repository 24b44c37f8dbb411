"""
chapa/render/og_png.py — Static PNG badge for Open Graph / social cards.

Draws the full 1200×630 card directly with Pillow, mirroring the SVG layout
(no animation). Two degradations keep the endpoint up:

    fonts   — with no font_dir configured, Pillow's built-in scalable font is
              used. If a configured font is missing, the same fallback
              applies for this request and a warning is logged.
    avatar  — if the avatar is absent or cannot be decoded (e.g. SVG), the
              placeholder silhouette is drawn.
"""

import io
import logging
import math
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from chapa.errors import RenderError
from chapa.ingestion.stats import Stats90d
from chapa.render.avatar import FetchedAvatar
from chapa.render.badge_config import DEFAULT_BADGE_CONFIG, BadgeConfig
from chapa.render.fonts import MONO_BOLD, SANS_SEMIBOLD, load_badge_fonts
from chapa.render.heatmap import CELL_SIZE, build_heatmap_cells
from chapa.render.radar import RADAR_AXES, RING_LEVELS, radar_points
from chapa.render.theme import HEATMAP_ALPHAS, BadgeTheme, get_theme, tier_color
from chapa.scoring.impact import ImpactV4Result
from chapa.verification.hmac_code import VerificationCode

logger = logging.getLogger(__name__)

OG_WIDTH, OG_HEIGHT = 1200, 630
PAD = 60
CORAL = (224, 90, 71)

RGBA = Tuple[int, int, int, int]


def _hex(color: str, alpha: float = 1.0) -> RGBA:
    color = color.lstrip("#")
    r, g, b = (int(color[i:i + 2], 16) for i in (0, 2, 4))
    return (r, g, b, int(round(255 * alpha)))


def _accent(theme: BadgeTheme, alpha: float) -> RGBA:
    r, g, b = theme.accent_rgb
    return (r, g, b, int(round(255 * alpha)))


class _FontSet:
    """Sized font factory over cached bytes, or Pillow's default font."""

    def __init__(self, font_bytes: Optional[Dict[str, bytes]]):
        self._bytes = font_bytes
        self._sized: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}

    def get(self, name: str, size: int):
        key = (name, size)
        if key not in self._sized:
            if self._bytes is not None:
                self._sized[key] = ImageFont.truetype(io.BytesIO(self._bytes[name]), size)
            else:
                self._sized[key] = ImageFont.load_default(size=size)
        return self._sized[key]


def _resolve_fonts(font_dir: Optional[str]) -> _FontSet:
    if not font_dir:
        logger.debug("No font directory configured, using the built-in font")
        return _FontSet(None)
    try:
        return _FontSet(load_badge_fonts(font_dir))
    except RenderError as exc:
        logger.warning("Badge fonts unavailable, using default font: %s", exc.message)
        return _FontSet(None)


def _decode_avatar(avatar: Optional[FetchedAvatar], size: int) -> Optional[Image.Image]:
    if avatar is None:
        return None
    try:
        img = Image.open(io.BytesIO(avatar.data))
        img.load()
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        logger.warning("Avatar could not be decoded (%s), using placeholder", exc)
        return None
    return img.convert("RGBA").resize((size, size), Image.Resampling.LANCZOS)


def _paste_avatar(canvas: Image.Image, avatar: Optional[FetchedAvatar], theme: BadgeTheme,
                  cx: int, cy: int, r: int) -> None:
    draw = ImageDraw.Draw(canvas, "RGBA")
    box = (cx - r, cy - r, cx + r, cy + r)
    img = _decode_avatar(avatar, 2 * r)
    if img is not None:
        mask = Image.new("L", (2 * r, 2 * r), 0)
        ImageDraw.Draw(mask).ellipse((0, 0, 2 * r - 1, 2 * r - 1), fill=255)
        canvas.paste(img, (cx - r, cy - r), mask)
        return
    draw.ellipse(box, fill=_hex(theme.card), outline=_accent(theme, 0.12), width=1)
    head = r * 0.28
    draw.ellipse((cx - head, cy - r * 0.55, cx + head, cy - r * 0.55 + 2 * head),
                 fill=_hex(theme.text_secondary))
    draw.pieslice((cx - r * 0.55, cy + r * 0.05, cx + r * 0.55, cy + r * 1.05),
                  180, 360, fill=_hex(theme.text_secondary))


def _draw_radar(draw: ImageDraw.ImageDraw, impact: ImpactV4Result, theme: BadgeTheme,
                fonts: _FontSet, cx: int, cy: int, radius: int) -> None:
    for level in RING_LEVELS:
        pts = [
            (cx + radius * level * math.cos(a), cy + radius * level * math.sin(a))
            for _, _, a in RADAR_AXES
        ]
        draw.polygon(pts, outline=_accent(theme, 0.3 if level == 1.0 else 0.15))
    data = radar_points(impact.dimensions, cx, cy, radius)
    draw.polygon(data, fill=_accent(theme, 0.15), outline=_accent(theme, 0.8))
    for x, y in data:
        draw.ellipse((x - 4, y - 4, x + 4, y + 4), fill=_hex(theme.accent))
    label_font = fonts.get(SANS_SEMIBOLD, 13)
    for _, label, angle in RADAR_AXES:
        lx = cx + (radius + 20) * math.cos(angle)
        ly = cy + (radius + 20) * math.sin(angle)
        anchor = "mm"
        if angle == 0.0:
            anchor = "lm"
        elif angle == math.pi:
            anchor = "rm"
        draw.text((lx, ly), label, font=label_font, fill=_hex(theme.text_secondary), anchor=anchor)


def render_badge_png(
    stats: Stats90d,
    impact: ImpactV4Result,
    config: BadgeConfig = DEFAULT_BADGE_CONFIG,
    avatar: Optional[FetchedAvatar] = None,
    verification: Optional[VerificationCode] = None,
    font_dir: Optional[str] = None,
) -> bytes:
    """
    Render the full badge as PNG bytes (always 1200×630, static).

    Blocking (disk and CPU); async callers should run it in a worker thread.
    """
    theme = get_theme(config.theme)
    fonts = _resolve_fonts(font_dir)
    canvas = Image.new("RGBA", (OG_WIDTH, OG_HEIGHT), _hex(theme.bg))
    draw = ImageDraw.Draw(canvas, "RGBA")

    if config.background == "aurora":
        glow = Image.new("RGBA", (OG_WIDTH, OG_HEIGHT), (0, 0, 0, 0))
        gdraw = ImageDraw.Draw(glow)
        for i in range(12, 0, -1):
            rad = 60 * i
            gdraw.ellipse((1020 - rad, -rad, 1020 + rad, rad), fill=_accent(theme, 0.02))
        canvas.alpha_composite(glow)
    if config.border != "none":
        draw.rounded_rectangle((1, 1, OG_WIDTH - 2, OG_HEIGHT - 2), radius=15,
                               outline=_accent(theme, 0.35 if config.border == "gradient" else 0.12),
                               width=2)

    # ── Header ────────────────────────────────────────────────────────────────
    _paste_avatar(canvas, avatar, theme, PAD + 32, 72, 32)
    draw.text((PAD + 84, 68), f"@{stats.handle}", font=fonts.get(MONO_BOLD, 28),
              fill=_hex(theme.text_primary), anchor="ls")
    draw.text((PAD + 84, 96), stats.display_name or "Developer Impact Badge",
              font=fonts.get(SANS_SEMIBOLD, 16), fill=_hex(theme.text_secondary), anchor="ls")
    draw.text((OG_WIDTH - PAD - 20, 68), "CHAPA", font=fonts.get(MONO_BOLD, 22),
              fill=_hex(theme.accent), anchor="rs")

    # ── Heatmap ───────────────────────────────────────────────────────────────
    draw.text((PAD, 186), "LAST 90 DAYS", font=fonts.get(SANS_SEMIBOLD, 12),
              fill=_hex(theme.text_secondary), anchor="ls")
    for cell in build_heatmap_cells(stats.heatmap_data, PAD, 200):
        draw.rounded_rectangle((cell.x, cell.y, cell.x + CELL_SIZE, cell.y + CELL_SIZE), radius=3,
                               fill=_accent(theme, HEATMAP_ALPHAS[cell.level]))

    # ── Headline stats ────────────────────────────────────────────────────────
    for i, (label, value) in enumerate((
        ("COMMITS", stats.commits_total),
        ("PRS MERGED", stats.prs_merged_count),
        ("REVIEWS", stats.reviews_submitted_count),
    )):
        x = PAD + i * 80
        draw.text((x, 370), label, font=fonts.get(SANS_SEMIBOLD, 11),
                  fill=_hex(theme.text_secondary), anchor="ls")
        draw.text((x, 402), str(value), font=fonts.get(MONO_BOLD, 26),
                  fill=_hex(theme.text_primary), anchor="ls")

    _draw_radar(draw, impact, theme, fonts, 530, 320, 120)

    # ── Impact panel ──────────────────────────────────────────────────────────
    card_x, card_y = 760, 150
    draw.rounded_rectangle((card_x, card_y, card_x + 360, card_y + 320), radius=12,
                           fill=_hex(theme.card), outline=_accent(theme, 0.12), width=1)
    draw.text((card_x + 30, card_y + 42), "IMPACT", font=fonts.get(SANS_SEMIBOLD, 12),
              fill=_hex(theme.text_secondary), anchor="ls")
    draw.text((card_x + 30, card_y + 96), impact.tier.upper(), font=fonts.get(MONO_BOLD, 48),
              fill=_hex(tier_color(impact.tier, theme)), anchor="ls")
    draw.text((card_x + 30, card_y + 130), impact.archetype, font=fonts.get(SANS_SEMIBOLD, 16),
              fill=_hex(theme.text_primary), anchor="ls")
    draw.text((card_x + 30, card_y + 176), "SCORE", font=fonts.get(SANS_SEMIBOLD, 12),
              fill=_hex(theme.text_secondary), anchor="ls")
    draw.text((card_x + 30, card_y + 222), str(impact.adjusted_composite),
              font=fonts.get(MONO_BOLD, 48), fill=_hex(theme.accent), anchor="ls")
    draw.text((card_x + 120, card_y + 222), "/ 100", font=fonts.get(MONO_BOLD, 20),
              fill=_hex(theme.text_secondary), anchor="ls")
    draw.text((card_x + 30, card_y + 262), "CONFIDENCE", font=fonts.get(SANS_SEMIBOLD, 12),
              fill=_hex(theme.text_secondary), anchor="ls")
    draw.text((card_x + 30, card_y + 294), f"{impact.confidence}%", font=fonts.get(MONO_BOLD, 26),
              fill=_hex(theme.text_primary), anchor="ls")

    draw.text((PAD, OG_HEIGHT - 50),
              f"{stats.active_days} active days · {stats.repos_contributed} repos",
              font=fonts.get(SANS_SEMIBOLD, 14), fill=_hex(theme.text_secondary), anchor="ls")

    if verification is not None:
        strip_x = OG_WIDTH - 55
        draw.line((strip_x, 30, strip_x, OG_HEIGHT - 30), fill=CORAL + (38,), width=1)
        label = f"VERIFIED · {verification.hash} · {verification.date}"
        text_font = fonts.get(MONO_BOLD, 11)
        left, top, right, bottom = draw.textbbox((0, 0), label, font=text_font)
        strip = Image.new("RGBA", (right - left + 4, bottom - top + 4), (0, 0, 0, 0))
        ImageDraw.Draw(strip).text((2 - left, 2 - top), label, font=text_font, fill=CORAL + (128,))
        strip = strip.rotate(90, expand=True)
        canvas.alpha_composite(
            strip, (strip_x + 23 - strip.width // 2, OG_HEIGHT // 2 - strip.height // 2)
        )

    out = io.BytesIO()
    canvas.convert("RGB").save(out, format="PNG", optimize=True)
    return out.getvalue()
