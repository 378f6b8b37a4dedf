import os

import numpy as np
import pytest

p = pytest.importorskip("pybullet")

from repocity.core.animation import SceneController
from repocity.core.city_generator import assemble
from repocity.core import scene_loader
from repocity.core.scene_loader import build_city, sync_animation, to_bullet, write_obj, write_png
from repocity.protocol import Texture


@pytest.fixture
def client():
    cli = p.connect(p.DIRECT)
    try:
        yield cli
    finally:
        p.disconnect(physicsClientId=cli)


@pytest.fixture(scope="module")
def layout():
    return assemble(
        [{"name": f"team/app{i}", "stars": 3 ** i} for i in range(7)],
        {"primaryColor": "#3366ff", "faviconUrl": "/definitely/not/here.ico"},
    )


def test_to_bullet_is_a_rotation():
    assert to_bullet(1.0, 2.0, 3.0) == (1.0, -3.0, 2.0)


def test_write_obj(tmp_path, layout):
    path = write_obj(layout.meshes.pads, str(tmp_path / "pads.obj"))
    lines = open(path).read().splitlines()
    assert sum(1 for ln in lines if ln.startswith("v ")) == len(layout.meshes.pads.vertices)
    assert sum(1 for ln in lines if ln.startswith("f ")) == layout.meshes.pads.triangle_count
    # OBJ indices are 1-based
    assert min(int(tok) for ln in lines if ln.startswith("f ") for tok in ln.split()[1:]) == 1


def test_build_city_spawns_every_element(client, tmp_path, layout):
    handles = build_city(client, layout, str(tmp_path))

    assert len(handles.buildings) == len(layout.buildings)
    assert set(handles.meshes) == {"roads", "sidewalks", "pads"}
    assert len(handles.lamps) == 2 * len(layout.lamps)
    assert len(handles.accents) == len(layout.accent_lights) == 4
    assert handles.decals == []          # favicon path does not exist
    assert handles.ground is not None
    assert os.path.exists(tmp_path / "roads.obj")
    assert os.path.exists(tmp_path / "ground.png")
    assert os.path.exists(tmp_path / "building_0000_front.png")


def test_sync_follows_the_controller(client, tmp_path, layout):
    handles = build_city(client, layout, str(tmp_path))
    controller = SceneController(layout)

    assert sync_animation(client, handles, controller) == len(layout.buildings)
    assert sync_animation(client, handles, controller) == 0

    controller.tick(10.0)
    assert sync_animation(client, handles, controller) == len(layout.buildings)
    for body, b in zip(handles.buildings, layout.buildings):
        (x, y, z), _ = p.getBasePositionAndOrientation(body, physicsClientId=client)
        assert z == pytest.approx(b.height / 2, abs=1e-6)
        assert x == pytest.approx(b.world_x, abs=1e-6)
        assert y == pytest.approx(-b.world_z, abs=1e-6)

    controller.set_active(layout.buildings[0].name)
    controller.tick(1.0)
    assert sync_animation(client, handles, controller) == len(layout.buildings) - 1


def test_rewritten_texture_is_loaded_again(client, tmp_path):
    path = str(tmp_path / "tile.png")
    write_png(Texture(np.zeros((8, 8, 3), dtype=np.uint8)), path)
    scene_loader._load_texture(client, path)
    scene_loader._load_texture(client, path)
    write_png(Texture(np.full((8, 8, 3), 200, dtype=np.uint8)), path)
    scene_loader._load_texture(client, path)

    keys = [k for k in scene_loader._TEX_ID if k[:2] == (client, path)]
    assert len(keys) == 2
    assert len({digest for _, _, digest in keys}) == 2


def test_missing_texture_is_not_cached(client, tmp_path):
    path = str(tmp_path / "absent.png")
    assert scene_loader._load_texture(client, path) == -1
    assert not any(k[1] == path for k in scene_loader._TEX_ID)
