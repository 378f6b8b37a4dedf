"""
Outward square spiral over the integer street grid.

Index 0 is the origin, followed by rings of 8, 16, 24 … cells. Buildings are
placed in descending-star order so the most starred repositories end up in the
centre of the city.
"""

from __future__ import annotations

from typing import List, Tuple

from repocity.constants import CELL_PITCH

Cell = Tuple[int, int]


def spiral_coordinates(count: int) -> List[Cell]:
    """First *count* spiral cells, computed in a single forward walk."""
    if count < 0:
        raise ValueError(f"count must be >= 0, got {count}")
    cells: List[Cell] = []
    x = z = 0
    dx, dz = 1, 0
    steps, taken, turns = 1, 0, 0
    for _ in range(count):
        cells.append((x, z))
        x += dx
        z += dz
        taken += 1
        if taken == steps:
            taken = 0
            dx, dz = -dz, dx
            turns += 1
            if turns % 2 == 0:
                steps += 1
    return cells


def spiral_coordinate(index: int) -> Cell:
    """The *index*-th spiral cell. Depends on *index* alone."""
    if index < 0:
        raise ValueError(f"index must be >= 0, got {index}")
    return spiral_coordinates(index + 1)[index]


def cell_to_world(cell: Cell) -> Tuple[float, float]:
    gx, gz = cell
    return gx * CELL_PITCH, gz * CELL_PITCH
