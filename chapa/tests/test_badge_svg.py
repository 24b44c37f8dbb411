"""
Tests for badge SVG composition.
"""

import pytest

from chapa.render.avatar import FetchedAvatar
from chapa.render.badge_config import BadgeConfig
from chapa.render.badge_svg import PLACEHOLDER_ICON_PATH, escape_xml, render_badge_svg
from chapa.scoring import compute_impact_v4
from chapa.verification.hmac_code import VerificationCode

CODE = VerificationCode(hash="a1b2c3d4", date="2026-10-19")


@pytest.fixture
def scored(make_stats):
    stats = make_stats()
    return stats, compute_impact_v4(stats)


def test_escape_xml():
    assert escape_xml("""<a href='x'>Tom & "Jerry"</a>""") == (
        "&lt;a href=&apos;x&apos;&gt;Tom &amp; &quot;Jerry&quot;&lt;/a&gt;"
    )


def test_full_layout_document(scored):
    stats, impact = scored
    svg = render_badge_svg(stats, impact)
    assert svg.startswith('<svg xmlns="http://www.w3.org/2000/svg" width="1200" height="630"')
    assert 'aria-label="Chapa impact badge for @octocat"' in svg
    assert svg.endswith("</svg>\n")
    assert ">@octocat</text>" in svg
    assert ">The Octocat</text>" in svg
    assert svg.count('width="14" height="14"') == 91
    assert f">{impact.tier.upper()}</text>" in svg
    assert f">{impact.adjusted_composite}</text>" in svg
    assert f">{impact.confidence}%</text>" in svg


def test_compact_layout(scored):
    stats, impact = scored
    svg = render_badge_svg(stats, impact, BadgeConfig(layout="compact"))
    assert 'width="600" height="200"' in svg
    assert svg.count('width="10" height="10"') == 91
    for label in ("Building", "Guarding", "Consistency", "Breadth"):
        assert f">{label}</text>" in svg


def test_placeholder_when_no_avatar(scored):
    stats, impact = scored
    svg = render_badge_svg(stats, impact)
    assert '<g aria-label="Avatar placeholder">' in svg
    assert f'<path d="{PLACEHOLDER_ICON_PATH}"' in svg
    assert "<image " not in svg


def test_avatar_is_embedded_as_data_uri(scored):
    stats, impact = scored
    avatar = FetchedAvatar(content_type="image/png", data=b"\x89PNG")
    svg = render_badge_svg(stats, impact, avatar=avatar)
    assert f'<image href="{avatar.data_uri}"' in svg
    assert "Avatar placeholder" not in svg


def test_user_text_is_escaped(make_stats):
    stats = make_stats(display_name='<script>alert("x")</script> & co')
    svg = render_badge_svg(stats, compute_impact_v4(stats))
    assert "<script>" not in svg
    assert "&lt;script&gt;alert(&quot;x&quot;)&lt;/script&gt; &amp; co" in svg


def test_missing_display_name_uses_generic_subtitle(make_stats):
    stats = make_stats(display_name=None)
    assert ">Developer Impact Badge</text>" in render_badge_svg(stats, compute_impact_v4(stats))


def test_verification_strip(scored):
    stats, impact = scored
    assert "VERIFIED" not in render_badge_svg(stats, impact)
    svg = render_badge_svg(stats, impact, verification=CODE, base_url="https://badges.example.org/")
    assert "VERIFIED · a1b2c3d4 · 2026-10-19" in svg
    assert 'href="https://badges.example.org/verify/a1b2c3d4"' in svg
    compact = render_badge_svg(stats, impact, BadgeConfig(layout="compact"), verification=CODE)
    assert "VERIFIED · a1b2c3d4 · 2026-10-19" in compact


def test_animation_follows_config(scored):
    stats, impact = scored
    assert "<animate " in render_badge_svg(stats, impact)
    assert "<animate" not in render_badge_svg(stats, impact, BadgeConfig(animate_heatmap=False))


def test_config_options_change_look_not_numbers(scored):
    stats, impact = scored
    plain = render_badge_svg(stats, impact)
    fancy = render_badge_svg(stats, impact, BadgeConfig(
        theme="midnight", background="aurora", border="gradient", tier_treatment="enhanced",
    ))
    assert plain != fancy
    assert 'fill="url(#aurora)"' in fancy
    assert 'stroke="url(#border-gradient)"' in fancy
    assert 'filter="url(#tier-glow)"' in fancy
    assert f">{impact.adjusted_composite}</text>" in fancy


def test_rendering_is_deterministic(scored):
    stats, impact = scored
    first = render_badge_svg(stats, impact, verification=CODE)
    assert render_badge_svg(stats, impact, verification=CODE) == first
