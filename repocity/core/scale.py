"""Star count → building proportions."""

from __future__ import annotations

import math

from repocity.constants import (
    FLOOR_HEIGHT,
    LINEAR_GENTLE_MAX,
    LINEAR_MID_MAX,
    LINEAR_STEEP_MAX,
    LIT_BASE,
    LIT_DECADES,
    LIT_MAX,
    LIT_SPAN,
    LOG_BASE_HEIGHT,
    LOG_HEIGHT_PER_DECADE,
    MIN_HEIGHT,
    SQRT_COEFFICIENT,
    SQRT_MAX,
)

# Height at the top of each linear segment
_STEEP_TOP = MIN_HEIGHT + LINEAR_STEEP_MAX * 4.0                          # 28
_MID_TOP = _STEEP_TOP + (LINEAR_MID_MAX - LINEAR_STEEP_MAX) * 2.0         # 118
_GENTLE_TOP = _MID_TOP + (LINEAR_GENTLE_MAX - LINEAR_MID_MAX) * 0.5       # 343


def _check_stars(stars: int) -> None:
    if stars < 0:
        raise ValueError(f"star count must be >= 0, got {stars}")


def height_of(stars: int) -> float:
    """Building height for *stars*.

    linear (4/star) → linear (2/star) → linear (0.5/star) → sqrt → log10,
    continuous at every breakpoint and non-decreasing.
    """
    _check_stars(stars)
    if stars == 0:
        return MIN_HEIGHT
    if stars <= LINEAR_STEEP_MAX:
        return MIN_HEIGHT + stars * 4.0
    if stars <= LINEAR_MID_MAX:
        return _STEEP_TOP + (stars - LINEAR_STEEP_MAX) * 2.0
    if stars <= LINEAR_GENTLE_MAX:
        return _MID_TOP + (stars - LINEAR_MID_MAX) * 0.5
    if stars <= SQRT_MAX:
        return _GENTLE_TOP + math.sqrt(stars - LINEAR_GENTLE_MAX) * SQRT_COEFFICIENT
    # log10 of the int itself: finite for any star count
    return LOG_BASE_HEIGHT + (math.log10(stars) - math.log10(SQRT_MAX)) * LOG_HEIGHT_PER_DECADE


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def floors_of(stars: int) -> int:
    return max(1, round_half_up(height_of(stars) / FLOOR_HEIGHT))


def lit_probability(stars: int) -> float:
    """Share of lit windows: more popular repositories glow more."""
    _check_stars(stars)
    saturation = min(1.0, math.log10(stars + 1) / LIT_DECADES)
    return min(LIT_MAX, LIT_BASE + LIT_SPAN * saturation)
