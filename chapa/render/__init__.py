"""
chapa.render — Badge rendering pipeline.

Modules:
    theme         — Colour palettes, heatmap intensity buckets, tier colours.
    badge_config  — User rendering preferences, validation and storage.
    heatmap       — 13×7 contribution grid.
    radar         — Four-axis dimension chart.
    badge_svg     — Deterministic SVG composition (full / compact layouts).
    og_png        — Static 1200×630 PNG for social cards (Pillow).
    fonts         — Process-wide font byte cache.
    avatar        — Bounded avatar fetch; None on any failure.
"""
