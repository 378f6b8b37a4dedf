# repocity/protocol.py
# -----------------------------------------------------------------------------
#  repocity – scene description handed to the renderer
# -----------------------------------------------------------------------------
"""Data model of a generated city.

Everything in here is plain data: positions, sizes, colours and pixel buffers.
A renderer consumes a :class:`CityLayout` by reference; the layout is never
mutated after the assembler publishes it.

``CityLayout.pack()`` / ``CityLayout.unpack()`` serialise the whole layout with
msgpack. The envelope carries the SHA‑256 of the packed body so a consumer can
check it received exactly the layout that was generated.
"""
from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

import msgpack
import numpy as np

from repocity.constants import (
    LAYOUT_VERSION,
    TILE_ROWS,
)
from repocity.utils.colors import RGB, parse_color
from repocity.utils.hash import sha256_hex

# --------------------------------------------------------------------------- #
# 1.  Raster & mesh buffers                                                    #
# --------------------------------------------------------------------------- #

_WIRE_TYPES: Dict[str, type] = {}


def _wire(cls):
    _WIRE_TYPES[cls.__name__] = cls
    return cls


@_wire
@dataclass(frozen=True, slots=True, eq=False)
class Texture:
    """``(height, width, channels)`` uint8 pixel buffer, row 0 at the top."""

    pixels: np.ndarray

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def __eq__(self, other):
        if not isinstance(other, Texture):
            return NotImplemented
        return (
            self.pixels.dtype == other.pixels.dtype
            and np.array_equal(self.pixels, other.pixels)
        )


@_wire
@dataclass(frozen=True, slots=True)
class WindowTile:
    """Tileable window pattern for one wall orientation."""

    texture: Texture
    columns: int
    rows: int = TILE_ROWS
    repeat_y: int = 1

    def tiled(self) -> np.ndarray:
        """The pattern repeated vertically to cover the full building height."""
        return np.tile(self.texture.pixels, (self.repeat_y, 1, 1))


@_wire
@dataclass(frozen=True, slots=True, eq=False)
class MergedMesh:
    """Triangle soup merged into a single renderable object."""

    vertices: np.ndarray   # (N, 3) float64, y up
    indices: np.ndarray    # (M, 3) int32

    @property
    def triangle_count(self) -> int:
        return int(self.indices.shape[0])

    @staticmethod
    def empty() -> "MergedMesh":
        return MergedMesh(
            vertices=np.zeros((0, 3), dtype=np.float64),
            indices=np.zeros((0, 3), dtype=np.int32),
        )

    def __eq__(self, other):
        if not isinstance(other, MergedMesh):
            return NotImplemented
        return (
            np.array_equal(self.vertices, other.vertices)
            and np.array_equal(self.indices, other.indices)
        )


# --------------------------------------------------------------------------- #
# 2.  Inputs                                                                   #
# --------------------------------------------------------------------------- #


def _pick(obj: dict, *keys, default=None):
    for key in keys:
        if key in obj and obj[key] is not None:
            return obj[key]
    return default


@_wire
@dataclass(frozen=True, slots=True)
class Repository:
    name: str
    stars: int
    description: str = ""

    @staticmethod
    def from_dict(obj: dict) -> "Repository":
        """Accept ``{name, stars, description}`` or the scraper's ``repo_*`` keys."""
        name = _pick(obj, "name", "repo_name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError(f"repository entry without a name: {obj!r}")
        raw_stars = _pick(obj, "stars", "repo_stars", default=0)
        if isinstance(raw_stars, bool):
            raise ValueError(f"invalid star count for {name!r}: {raw_stars!r}")
        try:
            stars = int(raw_stars)
        except (TypeError, ValueError, OverflowError) as e:
            raise ValueError(f"invalid star count for {name!r}: {raw_stars!r}") from e
        if stars < 0:
            raise ValueError(f"negative star count for {name!r}: {stars}")
        description = _pick(obj, "description", "repo_description", default="")
        return Repository(name=name.strip(), stars=stars, description=str(description))


@_wire
@dataclass(frozen=True, slots=True)
class Branding:
    """Optional site branding; every field may be missing."""

    primary_color: Optional[RGB] = None
    accent_color: Optional[RGB] = None
    favicon_url: Optional[str] = None
    screenshot_url: Optional[str] = None

    @staticmethod
    def from_dict(obj: Optional[dict]) -> "Branding":
        """Build from a branding payload. Unparseable colours count as absent."""
        if not obj:
            return Branding()
        colors = obj.get("colors") if isinstance(obj.get("colors"), dict) else {}
        primary = _pick(obj, "primary_color", "primaryColor") or _pick(colors, "primary")
        accent = _pick(obj, "accent_color", "accentColor") or _pick(colors, "accent")
        return Branding(
            primary_color=parse_color(primary),
            accent_color=parse_color(accent),
            favicon_url=_pick(obj, "favicon_url", "faviconUrl", "favicon") or None,
            screenshot_url=_pick(obj, "screenshot_url", "screenshotUrl", "screenshot") or None,
        )

    def accent_colors(self) -> Tuple[RGB, ...]:
        return tuple(c for c in (self.primary_color, self.accent_color) if c is not None)

    def light_color(self) -> Optional[RGB]:
        return self.accent_color or self.primary_color

    def is_empty(self) -> bool:
        return not (self.accent_colors() or self.favicon_url or self.screenshot_url)


# --------------------------------------------------------------------------- #
# 3.  Derived scene description                                                #
# --------------------------------------------------------------------------- #


@_wire
@dataclass(frozen=True, slots=True)
class BuildingRecord:
    repo: Repository
    index: int
    grid_x: int
    grid_z: int
    world_x: float
    world_z: float
    width: float
    depth: float
    height: float
    floors: int

    @property
    def name(self) -> str:
        return self.repo.name

    @property
    def cell(self) -> Tuple[int, int]:
        return (self.grid_x, self.grid_z)

    @property
    def summary(self) -> str:
        """Second line of the hover card."""
        return f"{self.repo.stars} stars · {self.floors} floors"


@_wire
@dataclass(frozen=True, slots=True)
class BuildingMaterials:
    face_color: RGB
    roof_color: RGB
    bottom_color: RGB
    emissive_intensity: float
    roof_emissive_intensity: float
    roughness: float
    metalness: float
    lit_probability: float
    front: WindowTile
    side: WindowTile
    label: Texture

    def faces(self) -> Tuple[str, ...]:
        """Material slot per box face, in ``[+x, -x, +y, -y, +z, -z]`` order."""
        return ("side", "side", "roof", "bottom", "front", "front")


@_wire
@dataclass(frozen=True, slots=True)
class RoadSegment:
    start: str
    end: str
    orientation: str        # "ew" or "ns"
    center_x: float
    center_z: float
    length: float
    width: float

    @property
    def key(self) -> Tuple[str, str]:
        return (self.start, self.end)


@_wire
@dataclass(frozen=True, slots=True)
class PadGeometry:
    name: str
    center_x: float
    center_z: float
    width: float
    depth: float
    height: float


@_wire
@dataclass(frozen=True, slots=True)
class StreetLamp:
    building: str
    x: float
    z: float
    pole_height: float
    color: RGB
    intensity: float
    distance: float


@_wire
@dataclass(frozen=True, slots=True)
class AccentLight:
    building: str
    x: float
    y: float
    z: float
    color: RGB
    intensity: float
    distance: float


@_wire
@dataclass(frozen=True, slots=True)
class BrandDecal:
    """Screenshot or favicon shown on a roof; the renderer loads ``url``."""

    kind: str               # "screenshot" or "favicon"
    url: str
    building: str
    x: float
    y: float
    z: float
    size: float


@_wire
@dataclass(frozen=True, slots=True)
class LightSpec:
    kind: str
    color: RGB
    intensity: float
    position: Optional[Tuple[float, float, float]] = None


@_wire
@dataclass(frozen=True, slots=True)
class Environment:
    sky: Texture
    ground: Texture
    ground_repeat: int
    ground_size: float
    fog_color: RGB
    fog_near: float
    fog_far: float
    lights: Tuple[LightSpec, ...] = ()


@_wire
@dataclass(frozen=True, slots=True)
class CityMeshes:
    """One merged mesh per category."""

    roads: MergedMesh = field(default_factory=MergedMesh.empty)
    sidewalks: MergedMesh = field(default_factory=MergedMesh.empty)
    pads: MergedMesh = field(default_factory=MergedMesh.empty)
    buildings: MergedMesh = field(default_factory=MergedMesh.empty)


# --------------------------------------------------------------------------- #
# 4.  Wire helpers                                                             #
# --------------------------------------------------------------------------- #


_INT_MIN, _INT_MAX = -(1 << 63), (1 << 64) - 1   # msgpack integer range


def _to_wire(obj: Any) -> Any:
    if isinstance(obj, int) and not isinstance(obj, bool) and not _INT_MIN <= obj <= _INT_MAX:
        return {"__bigint__": str(obj)}
    if isinstance(obj, np.ndarray):
        return {"__nd__": [obj.dtype.str, list(obj.shape), obj.tobytes()]}
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        out = {f.name: _to_wire(getattr(obj, f.name)) for f in dataclasses.fields(obj)}
        out["__kind__"] = type(obj).__name__
        return out
    if isinstance(obj, (list, tuple)):
        return [_to_wire(v) for v in obj]
    if isinstance(obj, dict):
        return {k: _to_wire(v) for k, v in obj.items()}
    return obj


def _from_wire(obj: dict) -> Any:
    if "__bigint__" in obj:
        return int(obj["__bigint__"])
    if "__nd__" in obj:
        dtype, shape, data = obj["__nd__"]
        return np.frombuffer(data, dtype=np.dtype(dtype)).reshape(shape).copy()
    kind = obj.pop("__kind__", None)
    if kind is None:
        return obj
    try:
        cls = _WIRE_TYPES[kind]
    except KeyError as e:
        raise ValueError(f"unknown record kind in layout: {kind!r}") from e
    return cls(**obj)


# --------------------------------------------------------------------------- #
# 5.  City layout                                                              #
# --------------------------------------------------------------------------- #


@_wire
@dataclass(frozen=True, slots=True)
class CityLayout:
    buildings: Tuple[BuildingRecord, ...] = ()
    materials: Tuple[BuildingMaterials, ...] = ()
    roads: Tuple[RoadSegment, ...] = ()
    pads: Tuple[PadGeometry, ...] = ()
    lamps: Tuple[StreetLamp, ...] = ()
    accent_lights: Tuple[AccentLight, ...] = ()
    decals: Tuple[BrandDecal, ...] = ()
    meshes: CityMeshes = field(default_factory=CityMeshes)
    environment: Optional[Environment] = None
    total_stars: int = 0

    @staticmethod
    def empty() -> "CityLayout":
        return CityLayout()

    def __len__(self) -> int:
        return len(self.buildings)

    @property
    def is_empty(self) -> bool:
        return not self.buildings

    def building(self, name: str) -> Optional[BuildingRecord]:
        for b in self.buildings:
            if b.repo.name == name:
                return b
        return None

    def extent(self) -> float:
        """Radius of the occupied area around the origin (world units)."""
        if not self.buildings:
            return 0.0
        return max(math.hypot(b.world_x, b.world_z) for b in self.buildings)

    # msgpack helpers for persistence / hand-off to an out-of-process renderer
    def _body(self) -> bytes:
        return msgpack.packb(_to_wire(self), use_bin_type=True)

    @property
    def digest(self) -> str:
        return sha256_hex(self._body())

    def pack(self) -> bytes:
        body = self._body()
        return msgpack.packb(
            {
                "version": LAYOUT_VERSION,
                "sha256": sha256_hex(body),
                "layout": body,
            },
            use_bin_type=True,
        )

    @staticmethod
    def unpack(blob: bytes) -> "CityLayout":
        envelope = msgpack.unpackb(blob, raw=False)
        if envelope.get("version") != LAYOUT_VERSION:
            raise ValueError(f"unsupported layout version: {envelope.get('version')!r}")
        body = envelope["layout"]
        if sha256_hex(body) != envelope.get("sha256"):
            raise ValueError("layout digest mismatch")
        layout = msgpack.unpackb(
            body, raw=False, use_list=False, object_hook=_from_wire, strict_map_key=False
        )
        if not isinstance(layout, CityLayout):
            raise ValueError("payload is not a city layout")
        return layout
