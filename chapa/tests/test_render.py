"""
Tests for the badge building blocks: themes, badge config, heatmap grid,
radar chart and the font cache.
"""

import pytest

from chapa.errors import RenderError, ValidationError
from chapa.render.badge_config import (
    DEFAULT_BADGE_CONFIG,
    BadgeConfig,
    badge_config_from_dict,
    badge_config_key,
    load_badge_config,
    save_badge_config,
)
from chapa.render.fonts import clear_font_cache, load_font_bytes
from chapa.render.heatmap import build_heatmap_cells, render_heatmap_svg
from chapa.render.radar import radar_points, render_radar_chart
from chapa.render.theme import MIDNIGHT, WARM_AMBER, get_theme, heatmap_color, heatmap_level
from chapa.scoring.dimensions import DimensionScores


# ── Theme ─────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("count,level", [
    (0, 0), (1, 1), (2, 1), (3, 2), (5, 2), (6, 3), (10, 3), (11, 4), (400, 4),
])
def test_heatmap_level_buckets(count, level):
    assert heatmap_level(count) == level


def test_theme_lookup_falls_back_to_default():
    assert get_theme("midnight") is MIDNIGHT
    assert get_theme("neon") is WARM_AMBER
    assert heatmap_color(0) == WARM_AMBER.heatmap[0]


# ── Badge config ──────────────────────────────────────────────────────────────

def test_badge_config_defaults_and_sizes():
    assert DEFAULT_BADGE_CONFIG.size == (1200, 630)
    assert BadgeConfig(layout="compact").size == (600, 200)


def test_badge_config_accepts_camel_case_keys():
    config = badge_config_from_dict({"theme": "midnight", "tierTreatment": "enhanced", "animateHeatmap": False})
    assert config.theme == "midnight"
    assert config.tier_treatment == "enhanced"
    assert config.animate_heatmap is False
    assert config.layout == "full"


@pytest.mark.parametrize("data", [
    {"theme": "neon"},
    {"sparkles": True},
    {"animate_heatmap": 1},
    {"animate_heatmap": "yes"},
    ["theme", "midnight"],
])
def test_badge_config_rejects_invalid(data):
    with pytest.raises(ValidationError):
        badge_config_from_dict(data)


def test_badge_config_key_is_case_insensitive():
    assert badge_config_key("OctoCat") == "badge-config:octocat"


@pytest.mark.asyncio
async def test_badge_config_persists_without_expiry(fake_redis):
    await save_badge_config("OctoCat", BadgeConfig(theme="midnight", layout="compact"))
    assert fake_redis.ttl("badge-config:octocat") is None
    loaded = await load_badge_config("octocat")
    assert loaded == BadgeConfig(theme="midnight", layout="compact")


@pytest.mark.asyncio
async def test_invalid_stored_config_falls_back_to_defaults(fake_redis):
    fake_redis.data["badge-config:octocat"] = '{"theme": "neon"}'
    assert await load_badge_config("octocat") == DEFAULT_BADGE_CONFIG


@pytest.mark.asyncio
async def test_missing_config_uses_defaults():
    assert await load_badge_config("octocat") == DEFAULT_BADGE_CONFIG


# ── Heatmap ───────────────────────────────────────────────────────────────────

def test_heatmap_grid_layout(make_heatmap):
    cells = build_heatmap_cells(make_heatmap([0, 1, 4, 8, 20] + [0] * 86), offset_x=100, offset_y=50)
    assert len(cells) == 91
    assert (cells[0].x, cells[0].y) == (100, 50)
    assert (cells[1].x, cells[1].y) == (100, 67)
    assert (cells[7].x, cells[7].y) == (117, 50)
    assert [c.level for c in cells[:5]] == [0, 1, 2, 3, 4]
    assert cells[7].delay_ms == 60
    assert cells[90].delay_ms == 12 * 60


def test_short_heatmap_pads_with_empty_cells(make_heatmap):
    cells = build_heatmap_cells(make_heatmap([3] * 10))
    assert len(cells) == 91
    assert all(c.level == 0 for c in cells[10:])


def test_heatmap_animation_toggle(make_heatmap):
    cells = build_heatmap_cells(make_heatmap([1] * 91))
    animated = render_heatmap_svg(cells, animate=True)
    static = render_heatmap_svg(cells, animate=False)
    assert animated.count("<animate ") == 91
    assert "<animate" not in static
    assert static.count('rx="3"') == 91


# ── Radar ─────────────────────────────────────────────────────────────────────

def test_radar_axis_order():
    points = radar_points(DimensionScores(100, 50, 100, 0), cx=200, cy=200, radius=100)
    assert points == [(200, 100), (250, 200), (200, 300), (200, 200)]


def test_radar_zero_collapses_to_centre():
    points = radar_points(DimensionScores(0, 0, 0, 0), cx=10, cy=20, radius=80)
    assert points == [(10, 20)] * 4


def test_radar_chart_labels():
    svg = render_radar_chart(DimensionScores(60, 40, 80, 20), 300, 300, 120)
    for label in ("Building", "Guarding", "Consistency", "Breadth"):
        assert f">{label}</text>" in svg
    assert svg.startswith('<g aria-label="Impact dimensions">')


# ── Fonts ─────────────────────────────────────────────────────────────────────

def test_font_cache_reads_once(tmp_path):
    clear_font_cache()
    font = tmp_path / "Test.ttf"
    font.write_bytes(b"font-bytes")
    assert load_font_bytes("Test.ttf", str(tmp_path)) == b"font-bytes"
    font.write_bytes(b"changed")
    assert load_font_bytes("Test.ttf", str(tmp_path)) == b"font-bytes"
    clear_font_cache()
    assert load_font_bytes("Test.ttf", str(tmp_path)) == b"changed"


def test_missing_font_raises_render_error(tmp_path):
    with pytest.raises(RenderError):
        load_font_bytes("Missing.ttf", str(tmp_path))


def test_unconfigured_font_dir_raises_render_error():
    with pytest.raises(RenderError):
        load_font_bytes("Test.ttf", None)
