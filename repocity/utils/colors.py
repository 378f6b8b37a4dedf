"""CSS colour parsing and blending helpers."""

from __future__ import annotations

from typing import Optional, Tuple

from PIL import ImageColor

RGB = Tuple[int, int, int]


def rgb(value: str) -> RGB:
    """Parse a CSS colour string (``#rgb``, ``#rrggbb``, ``rgb(...)``, names)."""
    r, g, b = ImageColor.getrgb(value)[:3]
    return (r, g, b)


def parse_color(value) -> Optional[RGB]:
    """Like :func:`rgb` but returns ``None`` for missing or unparseable input."""
    if value is None:
        return None
    if isinstance(value, (tuple, list)) and len(value) >= 3:
        return (int(value[0]), int(value[1]), int(value[2]))
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return rgb(value.strip())
    except ValueError:
        return None


def to_unit_rgba(color: RGB, alpha: float = 1.0) -> list:
    """Colour as ``[r, g, b, a]`` floats in ``[0, 1]`` (pybullet convention)."""
    return [color[0] / 255.0, color[1] / 255.0, color[2] / 255.0, alpha]


def lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def lerp_color(a: RGB, b: RGB, t: float) -> Tuple[float, float, float]:
    """Blend two colours; returns float channels so small steps are not lost."""
    return (lerp(a[0], b[0], t), lerp(a[1], b[1], t), lerp(a[2], b[2], t))
