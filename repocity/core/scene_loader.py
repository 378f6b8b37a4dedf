# repocity/core/scene_loader.py
"""
Spawn a :class:`CityLayout` into a PyBullet client and keep it in step with a
:class:`SceneController`.

The layout is y‑up; PyBullet is z‑up, so every point goes through
:func:`to_bullet` (a proper rotation, triangle winding is preserved).

PyBullet cannot rescale a body after creation, so the rise‑in is shown by
sliding each full-height box up out of the ground: its top always sits at
``height * scale_y``. Optional textures that fail to load are left out; the
rest of the city is unaffected.
"""
from __future__ import annotations

import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np
import pybullet as p
from loguru import logger
from PIL import Image

from repocity.constants import (
    GROUND_RGBA,
    LABEL_OFFSET_Y,
    LAMP_POLE_RADIUS,
    LAMP_RGBA,
    MESH_CACHE_DIR,
    PAD_RGBA,
    RENDER_FPS,
    ROAD_RGBA,
    SIDEWALK_RGBA,
)
from repocity.core.animation import SceneController
from repocity.protocol import CityLayout, MergedMesh, Texture
from repocity.utils.colors import to_unit_rgba
from repocity.utils.hash import sha256sum

# ---------------------------------------------------------------------------
# SECTION 1: Coordinates & file helpers
# ---------------------------------------------------------------------------
def to_bullet(x: float, y: float, z: float) -> Tuple[float, float, float]:
    return (x, -z, y)


def write_obj(mesh: MergedMesh, filepath: str) -> str:
    with open(filepath, "w") as f:
        f.write(f"# repocity merged mesh ({mesh.triangle_count} triangles)\n")
        for x, y, z in mesh.vertices:
            bx, by, bz = to_bullet(x, y, z)
            f.write(f"v {bx:.4f} {by:.4f} {bz:.4f}\n")
        for a, b, c in mesh.indices + 1:
            f.write(f"f {a} {b} {c}\n")
    return filepath


def write_png(texture: Texture, filepath: str, pixels: Optional[np.ndarray] = None) -> str:
    Image.fromarray(texture.pixels if pixels is None else pixels).save(filepath)
    return filepath


# ---------------------------------------------------------------------------
# SECTION 2: Texture cache (per client)
# ---------------------------------------------------------------------------
_TEX_ID: Dict[Tuple[int, str, str], int] = {}


def _load_texture(cli: int, path: str) -> int:
    """Load *path* once per client and file content; ``-1`` when it cannot be loaded.

    Keyed on the file digest, so a PNG rewritten in place is loaded again.
    """
    if not os.path.exists(path):
        logger.warning(f"Texture not found at {path}")
        return -1
    key = (cli, path, sha256sum(path))
    if key not in _TEX_ID:
        try:
            _TEX_ID[key] = p.loadTexture(path, physicsClientId=cli)
        except Exception as e:
            logger.warning(f"Error loading texture {path}: {e}")
            _TEX_ID[key] = -1
    return _TEX_ID[key]


def _local_path(url: str) -> Optional[str]:
    if url.startswith("file://"):
        url = url[len("file://"):]
    return url if os.path.exists(url) else None


# ---------------------------------------------------------------------------
# SECTION 3: Spawners
# ---------------------------------------------------------------------------
@dataclass
class CityHandles:
    buildings: List[int] = field(default_factory=list)
    textured: List[bool] = field(default_factory=list)
    meshes: Dict[str, int] = field(default_factory=dict)
    lamps: List[int] = field(default_factory=list)
    accents: List[int] = field(default_factory=list)
    decals: List[int] = field(default_factory=list)
    ground: Optional[int] = None
    # last (scale_y, desat_progress) pushed to PyBullet, per building
    applied: Dict[int, Tuple[float, float]] = field(default_factory=dict)


def _spawn_ground(cli, layout, asset_dir) -> int:
    env = layout.environment
    half = (env.ground_size if env else 6000.0) / 2
    vis = p.createVisualShape(
        p.GEOM_BOX, halfExtents=[half, half, 0.05],
        rgbaColor=GROUND_RGBA, specularColor=[0, 0, 0], physicsClientId=cli,
    )
    col = p.createCollisionShape(p.GEOM_BOX, halfExtents=[half, half, 0.05], physicsClientId=cli)
    body = p.createMultiBody(0, col, vis, [0, 0, -0.55], physicsClientId=cli)
    if env is not None and asset_dir is not None:
        tex = _load_texture(cli, write_png(env.ground, os.path.join(asset_dir, "ground.png")))
        if tex >= 0:
            p.changeVisualShape(body, -1, textureUniqueId=tex, physicsClientId=cli)
    return body


def _spawn_mesh(cli, mesh: MergedMesh, obj_path: str, rgba) -> Optional[int]:
    if mesh.triangle_count == 0:
        return None
    write_obj(mesh, obj_path)
    vis = p.createVisualShape(
        p.GEOM_MESH, fileName=obj_path, meshScale=[1, 1, 1],
        rgbaColor=rgba, specularColor=[0, 0, 0], physicsClientId=cli,
    )
    return p.createMultiBody(0, -1, vis, [0, 0, 0], physicsClientId=cli)


def _spawn_buildings(cli, layout, asset_dir, handles: CityHandles) -> None:
    for b, mat in zip(layout.buildings, layout.materials):
        half = [b.width / 2, b.depth / 2, b.height / 2]
        vis = p.createVisualShape(
            p.GEOM_BOX, halfExtents=half,
            rgbaColor=to_unit_rgba(mat.face_color), physicsClientId=cli,
        )
        col = p.createCollisionShape(p.GEOM_BOX, halfExtents=half, physicsClientId=cli)
        body = p.createMultiBody(
            0, col, vis, list(to_bullet(b.world_x, b.height / 2, b.world_z)),
            physicsClientId=cli,
        )
        textured = False
        if asset_dir is not None:
            path = os.path.join(asset_dir, f"building_{b.index:04d}_front.png")
            write_png(mat.front.texture, path, pixels=mat.front.tiled())
            tex = _load_texture(cli, path)
            if tex >= 0:
                p.changeVisualShape(body, -1, rgbaColor=[1, 1, 1, 1],
                                    textureUniqueId=tex, physicsClientId=cli)
                textured = True
        handles.buildings.append(body)
        handles.textured.append(textured)


def _spawn_lamps(cli, layout, handles: CityHandles) -> None:
    for lamp in layout.lamps:
        pole = p.createVisualShape(
            p.GEOM_CYLINDER, radius=LAMP_POLE_RADIUS, length=lamp.pole_height,
            rgbaColor=LAMP_RGBA, physicsClientId=cli,
        )
        bulb = p.createVisualShape(
            p.GEOM_SPHERE, radius=0.8, rgbaColor=to_unit_rgba(lamp.color), physicsClientId=cli,
        )
        handles.lamps.append(p.createMultiBody(
            0, -1, pole, list(to_bullet(lamp.x, lamp.pole_height / 2, lamp.z)), physicsClientId=cli,
        ))
        handles.lamps.append(p.createMultiBody(
            0, -1, bulb, list(to_bullet(lamp.x, lamp.pole_height + 0.5, lamp.z)), physicsClientId=cli,
        ))


def _spawn_accents(cli, layout, handles: CityHandles) -> None:
    for light in layout.accent_lights:
        vis = p.createVisualShape(
            p.GEOM_SPHERE, radius=2.0, rgbaColor=to_unit_rgba(light.color), physicsClientId=cli,
        )
        handles.accents.append(p.createMultiBody(
            0, -1, vis, list(to_bullet(light.x, light.y, light.z)), physicsClientId=cli,
        ))


def _spawn_decals(cli, layout, handles: CityHandles) -> None:
    for decal in layout.decals:
        path = _local_path(decal.url)
        tex = _load_texture(cli, path) if path else -1
        if tex < 0:
            logger.warning(f"Omitting {decal.kind} decal on {decal.building!r}: {decal.url} not loadable")
            continue
        half = decal.size / 2
        vis = p.createVisualShape(
            p.GEOM_BOX, halfExtents=[half, half, 0.1], rgbaColor=[1, 1, 1, 1], physicsClientId=cli,
        )
        body = p.createMultiBody(
            0, -1, vis, list(to_bullet(decal.x, decal.y + 0.2, decal.z)), physicsClientId=cli,
        )
        p.changeVisualShape(body, -1, textureUniqueId=tex, physicsClientId=cli)
        handles.decals.append(body)


def build_city(cli: int, layout: CityLayout, asset_dir: Optional[str] = None) -> CityHandles:
    """Spawn every element of *layout*; returns the body ids."""
    if asset_dir is None:
        asset_dir = os.path.join(MESH_CACHE_DIR, layout.digest[:16])
    Path(asset_dir).mkdir(parents=True, exist_ok=True)

    handles = CityHandles()
    handles.ground = _spawn_ground(cli, layout, asset_dir)
    for name, rgba in (("roads", ROAD_RGBA), ("sidewalks", SIDEWALK_RGBA), ("pads", PAD_RGBA)):
        body = _spawn_mesh(cli, getattr(layout.meshes, name),
                           os.path.join(asset_dir, f"{name}.obj"), rgba)
        if body is not None:
            handles.meshes[name] = body
    _spawn_buildings(cli, layout, asset_dir, handles)
    _spawn_lamps(cli, layout, handles)
    _spawn_accents(cli, layout, handles)
    _spawn_decals(cli, layout, handles)
    logger.info(
        f"Spawned city: {len(handles.buildings)} buildings, "
        f"{len(handles.meshes)} merged meshes, {len(handles.lamps) // 2} lamps"
    )
    return handles


# ---------------------------------------------------------------------------
# SECTION 4: Per-frame sync
# ---------------------------------------------------------------------------
def sync_animation(cli: int, handles: CityHandles, controller: SceneController) -> int:
    """Push changed animation state into PyBullet; returns bodies touched."""
    touched = 0
    layout = controller.layout
    for i, state in enumerate(controller.states):
        key = (state.scale_y, state.desat_progress)
        if handles.applied.get(i) == key:
            continue
        prev = handles.applied.get(i)
        body = handles.buildings[i]
        if prev is None or prev[0] != state.scale_y:
            b = layout.buildings[i]
            # top of the box tracks the scaled height
            center_y = b.height * state.scale_y - b.height / 2
            p.resetBasePositionAndOrientation(
                body, list(to_bullet(b.world_x, center_y, b.world_z)), [0, 0, 0, 1],
                physicsClientId=cli,
            )
        if prev is None or prev[1] != state.desat_progress:
            params = controller.material(i)
            if handles.textured[i]:
                base = layout.materials[i].emissive_intensity or 1.0
                k = params.emissive_intensity / base
                rgba = [k, k, k, 1.0]
            else:
                rgba = [c / 255.0 for c in params.face_color] + [1.0]
            p.changeVisualShape(body, -1, rgbaColor=rgba, physicsClientId=cli)
        handles.applied[i] = key
        touched += 1
    return touched


# ---------------------------------------------------------------------------
# SECTION 5: Interactive viewer
# ---------------------------------------------------------------------------
def run_viewer(layout: CityLayout, asset_dir: Optional[str] = None) -> None:
    """Open a GUI client, play the rise-in and cycle the selection with N/C."""
    cli = p.connect(p.GUI)
    p.configureDebugVisualizer(p.COV_ENABLE_GUI, 0, physicsClientId=cli)
    radius = max(layout.extent(), 200.0)
    p.resetDebugVisualizerCamera(
        cameraDistance=radius * 1.6, cameraYaw=35, cameraPitch=-30,
        cameraTargetPosition=[0, 0, 30], physicsClientId=cli,
    )
    handles = build_city(cli, layout, asset_dir)
    controller = SceneController(layout)
    card_id = -1
    cursor = -1
    last = time.perf_counter()

    while p.isConnected(physicsClientId=cli):
        keys = p.getKeyboardEvents(physicsClientId=cli)
        if keys.get(ord("n"), 0) & p.KEY_WAS_TRIGGERED and controller.states:
            cursor = (cursor + 1) % len(controller.states)
            name = controller.states[cursor].name
            controller.set_active(name)
            controller.set_hovered(name)
        if keys.get(ord("c"), 0) & p.KEY_WAS_TRIGGERED:
            cursor = -1
            controller.set_active(None)
            controller.set_hovered(None)

        now = time.perf_counter()
        controller.tick(now - last)
        last = now
        sync_animation(cli, handles, controller)

        card = controller.hover_card()
        if card is not None:
            b = layout.building(card[0])
            text = f"{card[0]} | {card[1]}"
            card_id = p.addUserDebugText(
                text, list(to_bullet(b.world_x, b.height + LABEL_OFFSET_Y, b.world_z)),
                textColorRGB=[1, 0.8, 0.27], textSize=1.4,
                replaceItemUniqueId=card_id if card_id >= 0 else -1,
                physicsClientId=cli,
            )
        elif card_id >= 0:
            p.removeUserDebugItem(card_id, physicsClientId=cli)
            card_id = -1

        time.sleep(1.0 / RENDER_FPS)
