import json
import math
import os
import subprocess
import sys
from pathlib import Path

import pytest

from repocity.constants import CELL_PITCH
from repocity.core.city_generator import assemble, footprint, normalize_repositories
from repocity.core.scale import lit_probability
from repocity.protocol import Branding, Repository


def repos(n, prefix="org/repo"):
    return [{"name": f"{prefix}{i}", "stars": (i * 37) % 500, "description": f"#{i}"}
            for i in range(n)]


# ────────────────────────────── Scenario ──────────────────────────────
def test_two_repository_city():
    layout = assemble([{"name": "a", "stars": 0}, {"name": "b", "stars": 10000}])

    b, a = layout.buildings
    assert (b.name, b.cell, b.index) == ("b", (0, 0), 0)
    assert (a.name, a.cell, a.index) == ("a", (1, 0), 1)
    assert (a.world_x, a.world_z) == (CELL_PITCH, 0.0)
    assert b.height == pytest.approx(450.0 + 100.0 * math.log10(2))
    assert b.floors == 80
    assert a.height == 8.0
    assert a.floors == 1

    (road,) = layout.roads
    assert road.orientation == "ew"
    assert {road.start, road.end} == {"a", "b"}

    assert [lamp.building for lamp in layout.lamps] == ["b"]
    assert layout.total_stars == 10000
    assert layout.accent_lights == ()
    assert layout.decals == ()


def test_layout_is_deterministic():
    first = assemble(repos(12))
    second = assemble(repos(12))
    assert first.digest == second.digest
    assert first.buildings == second.buildings


_DIGEST_SCRIPT = (
    "import json, sys\n"
    "from repocity.core.city_generator import assemble\n"
    "print(assemble(json.loads(sys.argv[1])).digest)\n"
)


@pytest.mark.parametrize("hash_seed", ["0", "1234"])
def test_layout_digest_is_stable_across_processes(hash_seed):
    entries = repos(10) + [{"name": "ünï/cødé", "stars": 7}]
    root = Path(__file__).resolve().parents[1]
    env = dict(os.environ, PYTHONHASHSEED=hash_seed,
               PYTHONPATH=os.pathsep.join(filter(None, [str(root), os.environ.get("PYTHONPATH")])))
    result = subprocess.run(
        [sys.executable, "-c", _DIGEST_SCRIPT, json.dumps(entries)],
        capture_output=True, text=True, env=env, cwd=root, check=True,
    )
    assert result.stdout.strip() == assemble(entries).digest


def test_ties_keep_input_order():
    layout = assemble([{"name": "x", "stars": 5}, {"name": "y", "stars": 5}])
    assert [b.name for b in layout.buildings] == ["x", "y"]


def test_adding_a_smaller_repository_keeps_existing_cells():
    base = repos(8)
    before = {b.name: b.cell for b in assemble(base).buildings}
    after = {b.name: b.cell for b in assemble(base + [{"name": "tiny", "stars": 0}]).buildings}
    # zero-star entries sort after every existing zero-star one
    assert all(after[name] == cell for name, cell in before.items())


def test_footprint_jitter_range():
    for name in ("a", "b/c", "django/django", "x" * 50):
        width, depth = footprint(name)
        assert 16.0 <= width < 28.0
        assert 14.0 <= depth < 24.0
    assert footprint("a") == footprint("a")


# ────────────────────────────── Input handling ──────────────────────────────
@pytest.mark.parametrize("entries", [None, [], [{"stars": 3}, {"name": "", "stars": 1}]])
def test_empty_input_gives_empty_city(entries):
    layout = assemble(entries)
    assert layout.is_empty
    assert len(layout) == 0
    assert layout.roads == ()


def test_malformed_and_duplicate_entries_are_skipped():
    kept = normalize_repositories([
        {"name": "ok", "stars": 3},
        {"stars": 4},
        {"name": "neg", "stars": -1},
        {"name": "nan", "stars": "lots"},
        "not-a-dict",
        {"name": "ok", "stars": 99},
        Repository("direct", 1),
    ])
    assert [(r.name, r.stars) for r in kept] == [("ok", 3), ("direct", 1)]


def test_non_finite_star_count_is_skipped():
    layout = assemble(json.loads('[{"name": "x", "stars": Infinity}, {"name": "y", "stars": 3}]'))
    assert [b.name for b in layout.buildings] == ["y"]


def test_huge_star_count_builds_a_finite_tower():
    layout = assemble([{"name": "giant", "stars": 10 ** 400}, {"name": "dwarf", "stars": 1}])
    giant = layout.building("giant")
    assert giant.index == 0
    assert math.isfinite(giant.height)
    assert len(layout.digest) == 64


def test_scraper_shaped_input():
    layout = assemble([{"repo_name": "u/p", "repo_stars": "12", "repo_description": "d"}])
    (b,) = layout.buildings
    assert (b.name, b.repo.stars, b.repo.description) == ("u/p", 12, "d")


# ────────────────────────────── Materials & decorations ──────────────────────
def test_materials_align_with_buildings():
    layout = assemble(repos(7))
    assert len(layout.materials) == len(layout.buildings) == 7
    for b, mat in zip(layout.buildings, layout.materials):
        assert mat.lit_probability == pytest.approx(lit_probability(b.repo.stars))
        assert mat.front.repeat_y == math.ceil(b.floors / 4)
        assert mat.label.pixels.shape == (40, 192, 4)
        assert mat.faces() == ("side", "side", "roof", "bottom", "front", "front")


def test_lamps_every_third_building():
    layout = assemble(repos(10))
    names = [b.name for b in layout.buildings]
    assert [lamp.building for lamp in layout.lamps] == names[::3]
    for lamp in layout.lamps:
        b = layout.building(lamp.building)
        assert abs(abs(lamp.x - b.world_x) - (b.width / 2 + 8.0)) < 1e-9
        assert abs(lamp.z - b.world_z) <= b.depth / 2


def test_branding_adds_accent_lights_and_decals():
    branding = {
        "accentColor": "#ff0000",
        "screenshotUrl": "https://example.org/shot.png",
        "faviconUrl": "https://example.org/favicon.ico",
    }
    layout = assemble(repos(6), branding)

    assert len(layout.accent_lights) == 4
    assert all(light.color == (255, 0, 0) for light in layout.accent_lights)
    top = layout.buildings[0]
    assert layout.accent_lights[0].y > top.height

    kinds = {d.kind: d for d in layout.decals}
    assert kinds["screenshot"].building == layout.buildings[0].name
    assert kinds["favicon"].building == layout.buildings[1].name


def test_branding_changes_window_palette_only():
    plain = assemble(repos(5))
    branded = assemble(repos(5), Branding(primary_color=(255, 0, 255)))
    assert plain.buildings == branded.buildings
    assert plain.roads == branded.roads


def test_unparseable_branding_is_ignored():
    layout = assemble(repos(3), {"primaryColor": "not-a-colour"})
    assert layout.accent_lights == ()
    assert layout.digest == assemble(repos(3)).digest


def test_meshes_and_environment():
    layout = assemble(repos(9))
    assert layout.meshes.buildings.triangle_count == 9 * 12
    assert layout.meshes.roads.triangle_count == len(layout.roads) * 2
    env = layout.environment
    assert env is not None
    assert [light.kind for light in env.lights] == ["ambient", "directional", "directional", "hemisphere"]
    assert layout.extent() == pytest.approx(math.hypot(CELL_PITCH, CELL_PITCH))
