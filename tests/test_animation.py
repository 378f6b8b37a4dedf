import pytest

from repocity.constants import DESAT_EMISSIVE_INTENSITY, RISE_MIN_SCALE
from repocity.core.animation import (
    AnimationState,
    RisePhase,
    SceneController,
    blend_material,
    ease_out_cubic,
    rise_local_progress,
    tick_desaturation,
    tick_rise,
)
from repocity.core.city_generator import assemble

FRAME = 1.0 / 60.0


@pytest.fixture(scope="module")
def layout():
    return assemble([
        {"name": f"org/r{i}", "stars": 1000 - i * 50, "description": f"repo {i}"}
        for i in range(12)
    ])


def settle(controller, limit=500):
    for _ in range(limit):
        controller.tick(FRAME)
        if controller.settled:
            return
    raise AssertionError("rise-in never settled")


# ────────────────────────────── Rise-in ──────────────────────────────
def test_initial_state(layout):
    controller = SceneController(layout)
    assert len(controller.states) == 12
    for s in controller.states:
        assert s.phase is RisePhase.PENDING
        assert s.scale_y == RISE_MIN_SCALE
        assert s.position_y == pytest.approx(s.height * RISE_MIN_SCALE / 2)


def test_staggered_start(layout):
    controller = SceneController(layout)
    # clock = 0.01: only indices 0..2 (start delays 0, 0.004, 0.008) have moved
    assert controller.tick(FRAME) == 3
    assert controller.states[0].phase is RisePhase.RISING
    assert controller.states[11].phase is RisePhase.PENDING   # delay 0.044


def test_rise_is_monotonic_and_settles_exactly(layout):
    controller = SceneController(layout)
    last = [s.scale_y for s in controller.states]
    while not controller.settled:
        controller.tick(FRAME)
        now = [s.scale_y for s in controller.states]
        assert all(b >= a for a, b in zip(last, now))
        last = now
    for s in controller.states:
        assert s.phase is RisePhase.SETTLED
        assert s.scale_y == 1.0
        assert s.rise_progress == 1.0
        assert s.position_y == s.height / 2


def test_large_delta_settles_in_one_tick(layout):
    controller = SceneController(layout)
    assert controller.tick(10.0) == 12
    assert controller.settled
    # nothing left to animate
    assert controller.tick(FRAME) == 0


def test_pending_building_reports_no_change():
    state = AnimationState(name="late", index=50, height=40.0)
    before = (state.scale_y, state.position_y)
    assert not tick_rise(state, 0.1)
    assert state.phase is RisePhase.PENDING
    assert (state.scale_y, state.position_y) == before
    assert tick_rise(state, 0.3)
    assert state.phase is RisePhase.RISING


def test_settled_building_is_never_recomputed():
    state = AnimationState(name="a", index=0, height=100.0)
    assert tick_rise(state, 1.0)
    assert not tick_rise(state, 0.5)
    assert state.scale_y == 1.0


def test_rise_helpers():
    assert ease_out_cubic(0.0) == 0.0
    assert ease_out_cubic(1.0) == 1.0
    assert rise_local_progress(0.0, 0) == 0.0
    assert rise_local_progress(0.5, 0) == 0.5
    assert rise_local_progress(0.002, 1) == 0.0
    # late buildings still finish by the time the clock reaches 1
    late = AnimationState(name="late", index=400, height=20.0)
    assert rise_local_progress(0.99, 400) == 0.0
    tick_rise(late, 1.0)
    assert late.phase is RisePhase.SETTLED
    assert late.scale_y == 1.0


# ────────────────────────────── Desaturation ──────────────────────────────
def test_desaturation_snaps_and_idles():
    state = AnimationState(name="a", index=0, height=10.0)
    assert state.desat_idle
    assert tick_desaturation(state, FRAME, 1.0)
    assert 0.0 < state.desat_progress < 1.0
    for _ in range(200):
        tick_desaturation(state, FRAME, 1.0)
    assert state.desat_progress == 1.0
    assert state.desat_idle
    assert not tick_desaturation(state, FRAME, 1.0)


def test_selection_fades_everything_else(layout):
    controller = SceneController(layout)
    settle(controller)
    controller.set_active("org/r3")
    for _ in range(200):
        controller.tick(FRAME)
    for s in controller.states:
        expected = 0.0 if s.name == "org/r3" else 1.0
        assert s.desat_progress == expected
        assert s.desat_idle
    assert controller.state("org/r3").active

    controller.set_active(None)
    for _ in range(200):
        controller.tick(FRAME)
    assert all(s.desat_progress == 0.0 for s in controller.states)
    assert controller.tick(FRAME) == 0


def test_hover_does_not_desaturate(layout):
    controller = SceneController(layout)
    settle(controller)
    controller.set_hovered("org/r1")
    assert controller.tick(FRAME) == 0
    assert controller.state("org/r1").hovered
    assert controller.material(1).highlighted


def test_blend_material_endpoints(layout):
    controller = SceneController(layout)
    mat = layout.materials[0]
    state = controller.states[0]
    base = blend_material(mat, state)
    assert base.face_color == tuple(float(c) for c in mat.face_color)
    assert base.emissive_intensity == mat.emissive_intensity

    state.desat_progress = 1.0
    faded = blend_material(mat, state)
    assert faded.face_color == (42.0, 42.0, 48.0)
    assert faded.emissive_intensity == pytest.approx(DESAT_EMISSIVE_INTENSITY)


# ────────────────────────────── Controller ──────────────────────────────
def test_unknown_names_and_negative_delta(layout):
    controller = SceneController(layout)
    with pytest.raises(KeyError):
        controller.set_active("missing")
    with pytest.raises(KeyError):
        controller.set_hovered("missing")
    with pytest.raises(ValueError):
        controller.tick(-0.1)


def test_hover_card(layout):
    controller = SceneController(layout)
    assert controller.hover_card() is None
    controller.set_hovered("org/r0")
    name, summary, description = controller.hover_card()
    b = layout.building("org/r0")
    assert name == "org/r0"
    assert summary == f"1000 stars · {b.floors} floors"
    assert description == "repo 0"


def test_load_resets_everything(layout):
    controller = SceneController(layout)
    settle(controller)
    controller.set_active("org/r2")
    smaller = assemble([{"name": "solo", "stars": 1}])
    controller.load(smaller)
    assert controller.rise_clock == 0.0
    assert controller.active is None
    assert not controller.settled
    assert [s.name for s in controller.states] == ["solo"]
    assert controller.states[0].phase is RisePhase.PENDING


def test_empty_controller():
    controller = SceneController()
    assert controller.tick(FRAME) == 0
    assert controller.hover_card() is None
