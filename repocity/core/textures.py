"""
Procedural textures for buildings and the environment.

Every function here is a pure mapping ``(dimensions, seed, parameters) →
pixel buffer``. Buffers are ``numpy.uint8`` arrays laid out ``(rows, cols,
channels)``; Pillow is only involved where text has to be rasterised.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence, Tuple

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from repocity.constants import (
    BOTTOM_COLOR,
    BRAND_COLOR_WEIGHT,
    FACE_COLORS,
    GROUND_GRAIN_PX,
    GROUND_GRID_COLOR,
    GROUND_GRID_LINES,
    GROUND_TEXTURE_PX,
    LABEL_ELLIPSIS,
    LABEL_MAX_CHARS,
    LABEL_NAME_COLOR,
    LABEL_SIZE_PX,
    LABEL_STAR_COLOR,
    MIN_WINDOW_COLUMNS,
    ROOF_COLOR,
    ROOF_EMISSIVE_INTENSITY,
    SKY_STOPS,
    SKY_TEXTURE_PX,
    TILE_ROWS,
    WALL_EMISSIVE_INTENSITY,
    WALL_METALNESS,
    WALL_ROUGHNESS,
    WINDOW_BORDER_PX,
    WINDOW_CELL_PX,
    WINDOW_CELL_SIZE,
    WINDOW_LIT_COLORS,
    WINDOW_OFF_COLOR,
)
from repocity.core.rng import SeededRNG
from repocity.core.scale import lit_probability
from repocity.protocol import BuildingMaterials, BuildingRecord, Texture, WindowTile
from repocity.utils.colors import RGB, rgb

BASE_PALETTE: Tuple[RGB, ...] = tuple(rgb(c) for c in WINDOW_LIT_COLORS)
OFF_COLOR: RGB = rgb(WINDOW_OFF_COLOR)


# ---------------------------------------------------------------------------
# SECTION 1: Window tiles
# ---------------------------------------------------------------------------
def window_columns(extent: float) -> int:
    return max(MIN_WINDOW_COLUMNS, int(math.floor(extent / WINDOW_CELL_SIZE)))


def build_palette(brand_colors: Iterable[RGB] = ()) -> Tuple[RGB, ...]:
    """Lit window palette, each brand colour appended twice to bias selection."""
    palette = list(BASE_PALETTE)
    for color in brand_colors:
        palette.extend([tuple(color)] * BRAND_COLOR_WEIGHT)
    return tuple(palette)


def window_pattern(columns: int, lit_pct: float, seed: str,
                   rows: int = TILE_ROWS) -> np.ndarray:
    """Lit mask and palette draw for each window cell.

    Returns an ``(rows, columns, 2)`` float array of ``(r, c)`` where ``r`` is
    the lit draw and ``c`` the colour draw (``nan`` for dark cells). Every
    cell consumes exactly two values so cell ``k`` always reads draws ``2k``
    and ``2k + 1`` whatever ``lit_pct`` is.
    """
    rng = SeededRNG(seed)
    out = np.full((rows, columns, 2), np.nan, dtype=np.float64)
    for row in range(rows):
        for col in range(columns):
            r = rng()
            out[row, col, 0] = r
            if r < lit_pct:
                out[row, col, 1] = rng()
            else:
                rng.skip()  # keep sequence aligned
    return out


def window_tile_pixels(columns: int, lit_pct: float, seed: str,
                       palette: Sequence[RGB] = BASE_PALETTE) -> np.ndarray:
    """Rasterise one tileable ``TILE_ROWS × columns`` window pattern."""
    pattern = window_pattern(columns, lit_pct, seed)
    h = TILE_ROWS * WINDOW_CELL_PX
    w = columns * WINDOW_CELL_PX
    pixels = np.empty((h, w, 3), dtype=np.uint8)
    pixels[:, :] = OFF_COLOR
    inner = WINDOW_CELL_PX - 2 * WINDOW_BORDER_PX
    for row in range(TILE_ROWS):
        for col in range(columns):
            c = pattern[row, col, 1]
            if np.isnan(c):
                continue
            color = palette[int(c * len(palette))]
            y0 = row * WINDOW_CELL_PX + WINDOW_BORDER_PX
            x0 = col * WINDOW_CELL_PX + WINDOW_BORDER_PX
            pixels[y0:y0 + inner, x0:x0 + inner] = color
    return pixels


def window_tile(extent: float, floors: int, lit_pct: float, seed: str,
                palette: Sequence[RGB] = BASE_PALETTE) -> WindowTile:
    columns = window_columns(extent)
    return WindowTile(
        texture=Texture(window_tile_pixels(columns, lit_pct, seed, palette)),
        columns=columns,
        rows=TILE_ROWS,
        repeat_y=max(1, math.ceil(floors / TILE_ROWS)),
    )


# ---------------------------------------------------------------------------
# SECTION 2: Labels
# ---------------------------------------------------------------------------
def truncate_name(name: str, limit: int = LABEL_MAX_CHARS) -> str:
    if len(name) <= limit:
        return name
    return name[: limit - len(LABEL_ELLIPSIS)] + LABEL_ELLIPSIS


def label_lines(name: str, stars: int) -> Tuple[str, str]:
    """``(star line, name line)``; zero-star repositories show no count."""
    return (str(stars) if stars > 0 else "", truncate_name(name))


def render_label(name: str, stars: int, size: Tuple[int, int] = LABEL_SIZE_PX) -> Texture:
    """Transparent RGBA label: star count above, name below."""
    w, h = size
    img = Image.new("RGBA", (w, h), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()
    for text, color, cy in zip(label_lines(name, stars),
                               (LABEL_STAR_COLOR, LABEL_NAME_COLOR),
                               (h * 0.28, h * 0.72)):
        if not text:
            continue
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        x = (w - (right - left)) / 2 - left
        y = cy - (bottom - top) / 2 - top
        draw.text((x, y), text, font=font, fill=color)
    return Texture(np.asarray(img, dtype=np.uint8).copy())


# ---------------------------------------------------------------------------
# SECTION 3: Building materials
# ---------------------------------------------------------------------------
def face_color(name: str) -> RGB:
    rng = SeededRNG(name + "mat")
    return rgb(rng.choice(FACE_COLORS))


def building_materials(building: BuildingRecord,
                       palette: Sequence[RGB] = BASE_PALETTE) -> BuildingMaterials:
    name = building.repo.name
    lit_pct = lit_probability(building.repo.stars)
    return BuildingMaterials(
        face_color=face_color(name),
        roof_color=rgb(ROOF_COLOR),
        bottom_color=rgb(BOTTOM_COLOR),
        emissive_intensity=WALL_EMISSIVE_INTENSITY,
        roof_emissive_intensity=ROOF_EMISSIVE_INTENSITY,
        roughness=WALL_ROUGHNESS,
        metalness=WALL_METALNESS,
        lit_probability=lit_pct,
        front=window_tile(building.width, building.floors, lit_pct, name + "front", palette),
        side=window_tile(building.depth, building.floors, lit_pct, name + "side", palette),
        label=render_label(name, building.repo.stars),
    )


# ---------------------------------------------------------------------------
# SECTION 4: Environment
# ---------------------------------------------------------------------------
def sky_texture(size: Tuple[int, int] = SKY_TEXTURE_PX) -> Texture:
    """Vertical gradient through ``SKY_STOPS``, zenith at row 0."""
    w, h = size
    t = (np.arange(h, dtype=np.float64) + 0.5) / h
    stops = [s for s, _ in SKY_STOPS]
    colors = np.array([rgb(c) for _, c in SKY_STOPS], dtype=np.float64)
    column = np.stack([np.interp(t, stops, colors[:, ch]) for ch in range(3)], axis=-1)
    pixels = np.repeat(np.rint(column)[:, None, :], w, axis=1)
    return Texture(pixels.astype(np.uint8))


def ground_texture(size: int = GROUND_TEXTURE_PX, grain: int = GROUND_GRAIN_PX,
                   seed: str = "ground") -> Texture:
    """Dark asphalt with seeded noise grain and a grid of road lines."""
    rng = SeededRNG(seed)
    blocks = size // grain
    values = np.empty((blocks, blocks), dtype=np.int64)
    for by in range(blocks):
        for bx in range(blocks):
            values[by, bx] = int(20 + rng() * 12)
    grey = np.kron(values, np.ones((grain, grain), dtype=np.int64))
    pixels = np.stack([grey, grey, grey + 8], axis=-1).astype(np.uint8)

    line = rgb(GROUND_GRID_COLOR)
    step = size // GROUND_GRID_LINES
    for i in range(0, size + 1, step):
        lo, hi = max(0, i - 1), min(size, i + 1)
        pixels[lo:hi, :] = line
        pixels[:, lo:hi] = line
    return Texture(pixels)
