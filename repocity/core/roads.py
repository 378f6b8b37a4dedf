"""
Road network and building pads.

Roads connect orthogonally adjacent occupied grid cells. Each shared edge is
visited once (east and north neighbours only), so a 3×3 block yields exactly
12 segments. All roads, sidewalks, pads and building boxes are merged into one
mesh per category, keeping the number of renderable objects constant however
large the city gets.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np

from repocity.constants import (
    CELL_PITCH,
    PAD_HEIGHT,
    PAD_MARGIN,
    ROAD_WIDTH,
    ROAD_Y,
    SIDEWALK_WIDTH,
    SIDEWALK_Y,
)
from repocity.protocol import BuildingRecord, MergedMesh, PadGeometry, RoadSegment

Vec3 = Tuple[float, float, float]

# (dx, dz, orientation) – only the "forward" half of the neighbourhood
NEIGHBOUR_OFFSETS = ((1, 0, "ew"), (0, 1, "ns"))


# ---------------------------------------------------------------------------
# SECTION 1: Mesh accumulation
# ---------------------------------------------------------------------------
class MeshBuilder:
    """Collects quads and emits a single :class:`MergedMesh`."""

    def __init__(self):
        self._vertices: List[Vec3] = []
        self._indices: List[Tuple[int, int, int]] = []

    def __len__(self) -> int:
        return len(self._indices)

    def add_quad(self, v0: Vec3, v1: Vec3, v2: Vec3, v3: Vec3) -> None:
        """Counter-clockwise corners as seen from the front side."""
        base = len(self._vertices)
        self._vertices.extend((v0, v1, v2, v3))
        self._indices.append((base, base + 1, base + 2))
        self._indices.append((base, base + 2, base + 3))

    def add_flat_rect(self, x0: float, z0: float, x1: float, z1: float, y: float) -> None:
        """Horizontal rectangle facing up."""
        self.add_quad((x0, y, z0), (x0, y, z1), (x1, y, z1), (x1, y, z0))

    def add_box(self, cx: float, cz: float, width: float, depth: float,
                y0: float, y1: float, *, bottom: bool = True) -> None:
        """Axis-aligned box; ``bottom=False`` leaves the underside open."""
        x0, x1 = cx - width / 2, cx + width / 2
        z0, z1 = cz - depth / 2, cz + depth / 2
        self.add_flat_rect(x0, z0, x1, z1, y1)                                   # top
        self.add_quad((x1, y0, z0), (x1, y1, z0), (x1, y1, z1), (x1, y0, z1))    # +x
        self.add_quad((x0, y0, z1), (x0, y1, z1), (x0, y1, z0), (x0, y0, z0))    # -x
        self.add_quad((x1, y0, z1), (x1, y1, z1), (x0, y1, z1), (x0, y0, z1))    # +z
        self.add_quad((x0, y0, z0), (x0, y1, z0), (x1, y1, z0), (x1, y0, z0))    # -z
        if bottom:
            self.add_quad((x0, y0, z0), (x1, y0, z0), (x1, y0, z1), (x0, y0, z1))

    def build(self) -> MergedMesh:
        if not self._indices:
            return MergedMesh.empty()
        return MergedMesh(
            vertices=np.asarray(self._vertices, dtype=np.float64),
            indices=np.asarray(self._indices, dtype=np.int32),
        )


# ---------------------------------------------------------------------------
# SECTION 2: Connectivity
# ---------------------------------------------------------------------------
def occupancy(buildings: Iterable[BuildingRecord]) -> Dict[Tuple[int, int], BuildingRecord]:
    return {b.cell: b for b in buildings}


def build_roads(buildings: Sequence[BuildingRecord]) -> Tuple[RoadSegment, ...]:
    """One segment per pair of orthogonally adjacent occupied cells."""
    occupied = occupancy(buildings)
    segments: List[RoadSegment] = []
    for b in buildings:
        for dx, dz, orientation in NEIGHBOUR_OFFSETS:
            other = occupied.get((b.grid_x + dx, b.grid_z + dz))
            if other is None:
                continue
            segments.append(RoadSegment(
                start=b.repo.name,
                end=other.repo.name,
                orientation=orientation,
                center_x=(b.world_x + other.world_x) / 2,
                center_z=(b.world_z + other.world_z) / 2,
                length=CELL_PITCH,
                width=ROAD_WIDTH,
            ))
    return tuple(segments)


def road_meshes(segments: Sequence[RoadSegment]) -> Tuple[MergedMesh, MergedMesh]:
    """Merged ``(roads, sidewalks)``: one asphalt strip and two kerbs per segment."""
    roads, sidewalks = MeshBuilder(), MeshBuilder()
    for s in segments:
        half_len = s.length / 2
        half_w = s.width / 2
        outer = half_w + SIDEWALK_WIDTH
        if s.orientation == "ew":
            x0, x1 = s.center_x - half_len, s.center_x + half_len
            roads.add_flat_rect(x0, s.center_z - half_w, x1, s.center_z + half_w, ROAD_Y)
            sidewalks.add_flat_rect(x0, s.center_z + half_w, x1, s.center_z + outer, SIDEWALK_Y)
            sidewalks.add_flat_rect(x0, s.center_z - outer, x1, s.center_z - half_w, SIDEWALK_Y)
        else:
            z0, z1 = s.center_z - half_len, s.center_z + half_len
            roads.add_flat_rect(s.center_x - half_w, z0, s.center_x + half_w, z1, ROAD_Y)
            sidewalks.add_flat_rect(s.center_x + half_w, z0, s.center_x + outer, z1, SIDEWALK_Y)
            sidewalks.add_flat_rect(s.center_x - outer, z0, s.center_x - half_w, z1, SIDEWALK_Y)
    return roads.build(), sidewalks.build()


# ---------------------------------------------------------------------------
# SECTION 3: Pads & building boxes
# ---------------------------------------------------------------------------
def build_pads(buildings: Sequence[BuildingRecord]) -> Tuple[PadGeometry, ...]:
    return tuple(
        PadGeometry(
            name=b.repo.name,
            center_x=b.world_x,
            center_z=b.world_z,
            width=b.width + 2 * PAD_MARGIN,
            depth=b.depth + 2 * PAD_MARGIN,
            height=PAD_HEIGHT,
        )
        for b in buildings
    )


def pad_mesh(pads: Sequence[PadGeometry]) -> MergedMesh:
    """Top face plus four sides per pad, merged."""
    builder = MeshBuilder()
    for pad in pads:
        builder.add_box(pad.center_x, pad.center_z, pad.width, pad.depth,
                        0.0, pad.height, bottom=False)
    return builder.build()


def building_mesh(buildings: Sequence[BuildingRecord]) -> MergedMesh:
    """Settled (full height) building boxes, merged."""
    builder = MeshBuilder()
    for b in buildings:
        builder.add_box(b.world_x, b.world_z, b.width, b.depth, 0.0, b.height)
    return builder.build()
