"""
chapa/render/fonts.py — Process-wide font byte cache for PNG rendering.

Font files are read from disk once per process and kept in memory. A missing
or unreadable file raises RenderError from load_font_bytes(); the PNG
renderer catches it and falls back to Pillow's built-in font for that
request only. Failed loads are not cached, so a font dropped into place
later is picked up on the next render.
"""

import logging
import os
import threading
from typing import Dict, Optional, Tuple

from chapa.errors import RenderError

logger = logging.getLogger(__name__)

MONO_BOLD = "JetBrainsMono-Bold.ttf"
SANS_SEMIBOLD = "PlusJakartaSans-SemiBold.ttf"
BADGE_FONTS: Tuple[str, ...] = (MONO_BOLD, SANS_SEMIBOLD)

_font_cache: Dict[str, bytes] = {}
_lock = threading.Lock()


def load_font_bytes(filename: str, font_dir: Optional[str]) -> bytes:
    """
    Bytes of `filename` from `font_dir`.

    Raises:
        RenderError: if no directory is configured or the file cannot be read.
    """
    if not font_dir:
        raise RenderError(f"No font directory configured for {filename}.")
    path = os.path.join(font_dir, filename)
    with _lock:
        cached = _font_cache.get(path)
        if cached is not None:
            return cached
        try:
            with open(path, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise RenderError(
                f"Font {filename} could not be loaded.",
                details={"path": path, "reason": str(exc)},
            ) from exc
        _font_cache[path] = data
        logger.debug("Loaded font %s (%d bytes)", path, len(data))
        return data


def load_badge_fonts(font_dir: Optional[str]) -> Dict[str, bytes]:
    """All badge fonts, keyed by filename. Raises RenderError if any is missing."""
    return {name: load_font_bytes(name, font_dir) for name in BADGE_FONTS}


def clear_font_cache() -> None:
    with _lock:
        _font_cache.clear()
