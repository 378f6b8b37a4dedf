import math

import pytest

from repocity.core.scale import floors_of, height_of, lit_probability, round_half_up


@pytest.mark.parametrize(
    "stars, expected",
    [
        (0, 8.0),
        (1, 12.0),
        (5, 28.0),
        (6, 30.0),
        (50, 118.0),
        (51, 118.5),
        (500, 343.0),
        (5000, 450.0),
        (10000, 450.0 + 100.0 * math.log10(2)),
        (50000, 550.0),
    ],
)
def test_height_curve_anchor_points(stars, expected):
    assert height_of(stars) == pytest.approx(expected)


def test_height_is_non_decreasing():
    heights = [height_of(s) for s in range(0, 20001)]
    assert all(b >= a for a, b in zip(heights, heights[1:]))


@pytest.mark.parametrize("breakpoint", [5, 50, 500, 5000])
def test_height_is_continuous_at_breakpoints(breakpoint):
    # one star across a breakpoint never jumps more than the steepest slope
    assert height_of(breakpoint + 1) - height_of(breakpoint) <= 4.0


def test_height_rejects_negative_stars():
    with pytest.raises(ValueError):
        height_of(-1)


def test_round_half_up():
    assert round_half_up(0.5) == 1
    assert round_half_up(1.5) == 2
    assert round_half_up(2.5) == 3
    assert round_half_up(2.49) == 2


def test_floors():
    assert floors_of(0) == 1
    assert floors_of(5) == 5          # 28 / 6 = 4.67
    assert floors_of(10000) == 80     # 480.1 / 6 = 80.02
    assert all(floors_of(s) >= 1 for s in range(0, 200))


def test_lit_probability_bounds():
    assert lit_probability(0) == pytest.approx(0.2)
    assert lit_probability(9999) == pytest.approx(0.95)
    assert lit_probability(10 ** 9) == pytest.approx(0.95)
    values = [lit_probability(s) for s in range(0, 12000, 7)]
    assert all(0.2 <= v <= 0.95 for v in values)
    assert all(b >= a for a, b in zip(values, values[1:]))


def test_huge_star_counts_stay_finite():
    stars = 10 ** 400
    height = height_of(stars)
    assert math.isfinite(height)
    assert height == pytest.approx(450.0 + 100.0 * (400 - math.log10(5000)))
    assert floors_of(stars) == round_half_up(height / 6.0)
    assert lit_probability(stars) == pytest.approx(0.95)
