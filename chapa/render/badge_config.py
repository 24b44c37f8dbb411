"""
chapa/render/badge_config.py — User-chosen badge rendering preferences.

BadgeConfig is independent of scoring: it changes how a badge looks, never
what it says. Configs are stored without expiry under badge-config:{handle}.
A missing or invalid stored config silently falls back to the defaults so a
bad write can never break a badge.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Tuple

from chapa.cache.store import cache_get, cache_set
from chapa.errors import ValidationError

logger = logging.getLogger(__name__)

BADGE_CONFIG_OPTIONS: Dict[str, Tuple[Any, ...]] = {
    "theme": ("warm-amber", "midnight"),
    "layout": ("full", "compact"),
    "background": ("solid", "aurora"),
    "border": ("solid-amber", "gradient", "none"),
    "tier_treatment": ("standard", "enhanced"),
    "animate_heatmap": (True, False),
}

LAYOUT_SIZES = {
    "full": (1200, 630),
    "compact": (600, 200),
}


@dataclass(frozen=True)
class BadgeConfig:
    """
    Fields:
        theme:           Colour palette (see chapa.render.theme).
        layout:          'full' 1200×630 card or 'compact' 600×200 strip.
        background:      'solid' fill or soft 'aurora' gradient.
        border:          Card outline style.
        tier_treatment:  'enhanced' adds a glow behind the tier label.
        animate_heatmap: Fade heatmap weeks in (SVG only; PNG is static).
    """

    theme: str = "warm-amber"
    layout: str = "full"
    background: str = "solid"
    border: str = "solid-amber"
    tier_treatment: str = "standard"
    animate_heatmap: bool = True

    @property
    def size(self) -> Tuple[int, int]:
        return LAYOUT_SIZES[self.layout]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DEFAULT_BADGE_CONFIG = BadgeConfig()

_CAMEL_KEYS = {"tierTreatment": "tier_treatment", "animateHeatmap": "animate_heatmap"}


def badge_config_from_dict(data: Mapping[str, Any]) -> BadgeConfig:
    """
    Validate a partial config mapping; omitted keys take their defaults.

    Raises:
        ValidationError: for unknown keys or values outside BADGE_CONFIG_OPTIONS.
    """
    if not isinstance(data, Mapping):
        raise ValidationError("Badge config must be a JSON object.")
    values: Dict[str, Any] = {}
    problems = []
    for key, value in data.items():
        name = _CAMEL_KEYS.get(key, key)
        allowed = BADGE_CONFIG_OPTIONS.get(name)
        if allowed is None:
            problems.append(f"unknown option '{key}'")
        elif value not in allowed or (isinstance(value, bool) != isinstance(allowed[0], bool)):
            problems.append(f"{key} must be one of {list(allowed)}, got {value!r}")
        else:
            values[name] = value
    if problems:
        raise ValidationError("Invalid badge config.", details={"problems": problems})
    return BadgeConfig(**values)


def badge_config_key(handle: str) -> str:
    return f"badge-config:{handle.lower()}"


async def load_badge_config(handle: str) -> BadgeConfig:
    """Stored config for `handle`, or the defaults on miss or invalid data."""
    stored = await cache_get(badge_config_key(handle))
    if stored is None:
        return DEFAULT_BADGE_CONFIG
    try:
        return badge_config_from_dict(stored)
    except ValidationError as exc:
        logger.warning("Ignoring invalid stored badge config for %s: %s", handle, exc.details)
        return DEFAULT_BADGE_CONFIG


async def save_badge_config(handle: str, config: BadgeConfig) -> None:
    await cache_set(badge_config_key(handle), config.to_dict(), ttl_seconds=None)
