"""
Per-frame animation of a city layout.

Two state machines run for every building on each scheduler tick:

* **rise-in** – ``pending → rising → settled``. A single global clock advances
  by ``dt * RISE_RATE``; each building starts a little later than the one
  before it and grows from the ground with a cubic ease-out. When the clock
  reaches 1 every building is snapped to its exact resting state once and is
  never recomputed again.
* **desaturation** – when a building is selected every *other* building fades
  towards a near-greyscale, low-glow material. The blend snaps to its target
  under ``DESAT_EPSILON`` and then stays idle until the target changes.

:class:`SceneController` is the single writer of all of this state; renderers
only read it between ticks.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from loguru import logger

from repocity.constants import (
    DESAT_COLOR,
    DESAT_EMISSIVE_INTENSITY,
    DESAT_EPSILON,
    DESAT_RATE,
    RISE_DELAY,
    RISE_MIN_SCALE,
    RISE_MIN_SPAN,
    RISE_RATE,
)
from repocity.protocol import BuildingMaterials, CityLayout
from repocity.utils.colors import lerp, lerp_color, rgb

_DESAT_RGB = rgb(DESAT_COLOR)


class RisePhase(enum.Enum):
    PENDING = "pending"
    RISING = "rising"
    SETTLED = "settled"


@dataclass(slots=True)
class AnimationState:
    name: str
    index: int
    height: float
    rise_progress: float = 0.0
    scale_y: float = RISE_MIN_SCALE
    position_y: float = 0.0
    phase: RisePhase = RisePhase.PENDING
    desat_progress: float = 0.0
    desat_target: float = 0.0
    desat_idle: bool = True
    hovered: bool = False
    active: bool = False

    def __post_init__(self):
        self.position_y = self.height * self.scale_y / 2


@dataclass(frozen=True, slots=True)
class MaterialParams:
    """Blended wall parameters for one frame."""

    face_color: Tuple[float, float, float]
    emissive_intensity: float
    highlighted: bool = False


# ---------------------------------------------------------------------------
# SECTION 1: Rise-in
# ---------------------------------------------------------------------------
def clamp01(x: float) -> float:
    return max(0.0, min(1.0, x))


def ease_out_cubic(x: float) -> float:
    return 1.0 - (1.0 - x) ** 3


def rise_local_progress(global_progress: float, index: int) -> float:
    delay = index * RISE_DELAY
    return clamp01((global_progress - delay) / max(RISE_MIN_SPAN, 1.0 - delay))


def tick_rise(state: AnimationState, global_progress: float) -> bool:
    """Advance one building; returns ``True`` when its transform changed."""
    if state.phase is RisePhase.SETTLED:
        return False
    if global_progress >= 1.0:
        state.rise_progress = 1.0
        state.scale_y = 1.0
        state.position_y = state.height / 2
        state.phase = RisePhase.SETTLED
        return True
    local = rise_local_progress(global_progress, state.index)
    if local == 0.0 and state.phase is RisePhase.PENDING:
        return False   # not started yet, transform unchanged
    eased = ease_out_cubic(local)
    state.rise_progress = local
    state.scale_y = RISE_MIN_SCALE + eased * (1.0 - RISE_MIN_SCALE)
    # anchored to the ground: centre sits at half the scaled height
    state.position_y = state.height * state.scale_y / 2
    state.phase = RisePhase.RISING if local > 0.0 else RisePhase.PENDING
    return True


# ---------------------------------------------------------------------------
# SECTION 2: Desaturation
# ---------------------------------------------------------------------------
def tick_desaturation(state: AnimationState, delta: float, target: float) -> bool:
    """Approach *target*; returns ``True`` when the blend changed."""
    if target != state.desat_target:
        state.desat_target = target
        state.desat_idle = False
    if state.desat_idle:
        return False
    step = min(1.0, delta * DESAT_RATE)
    state.desat_progress += (target - state.desat_progress) * step
    if abs(target - state.desat_progress) < DESAT_EPSILON:
        state.desat_progress = target
        state.desat_idle = True
    return True


def blend_material(materials: BuildingMaterials, state: AnimationState) -> MaterialParams:
    t = state.desat_progress
    return MaterialParams(
        face_color=lerp_color(materials.face_color, _DESAT_RGB, t),
        emissive_intensity=lerp(materials.emissive_intensity, DESAT_EMISSIVE_INTENSITY, t),
        highlighted=state.hovered or state.active,
    )


# ---------------------------------------------------------------------------
# SECTION 3: Scene controller
# ---------------------------------------------------------------------------
@dataclass
class SceneController:
    """Owns the rise clock, the selection and every building's state."""

    layout: CityLayout = field(default_factory=CityLayout.empty)
    rise_clock: float = field(default=0.0, init=False)
    active: Optional[str] = field(default=None, init=False)
    hovered: Optional[str] = field(default=None, init=False)
    states: List[AnimationState] = field(default_factory=list, init=False, repr=False)
    _settled: bool = field(default=False, init=False, repr=False)

    def __post_init__(self):
        self.load(self.layout)

    def load(self, layout: CityLayout) -> None:
        """Swap in a new layout; in-flight animation is discarded."""
        self.layout = layout
        self.rise_clock = 0.0
        self.active = None
        self.hovered = None
        self._settled = False
        self.states = [
            AnimationState(name=b.repo.name, index=b.index, height=b.height)
            for b in layout.buildings
        ]
        logger.debug(f"Scene controller loaded {len(self.states)} buildings")

    @property
    def settled(self) -> bool:
        return self._settled

    def state(self, name: str) -> Optional[AnimationState]:
        for s in self.states:
            if s.name == name:
                return s
        return None

    def _check_name(self, name: Optional[str]) -> None:
        if name is not None and self.state(name) is None:
            raise KeyError(f"no building named {name!r}")

    def set_active(self, name: Optional[str]) -> None:
        """Select a building (``None`` clears the selection)."""
        self._check_name(name)
        self.active = name
        for s in self.states:
            s.active = s.name == name

    def set_hovered(self, name: Optional[str]) -> None:
        self._check_name(name)
        self.hovered = name
        for s in self.states:
            s.hovered = s.name == name

    def desat_target(self, state: AnimationState) -> float:
        return 1.0 if self.active is not None and state.name != self.active else 0.0

    def tick(self, delta: float) -> int:
        """Advance every building by *delta* seconds; returns how many changed."""
        if delta < 0:
            raise ValueError(f"frame delta must be >= 0, got {delta}")
        changed = 0
        run_rise = not self._settled
        if run_rise and self.rise_clock < 1.0:
            self.rise_clock = min(1.0, self.rise_clock + delta * RISE_RATE)
        for s in self.states:
            moved = tick_rise(s, self.rise_clock) if run_rise else False
            faded = tick_desaturation(s, delta, self.desat_target(s))
            if moved or faded:
                changed += 1
        if run_rise and self.rise_clock >= 1.0:
            self._settled = True
        return changed

    def material(self, index: int) -> MaterialParams:
        return blend_material(self.layout.materials[index], self.states[index])

    def hover_card(self) -> Optional[Tuple[str, str, str]]:
        """``(name, summary, description)`` of the hovered building."""
        if self.hovered is None:
            return None
        b = self.layout.building(self.hovered)
        return (b.repo.name, b.summary, b.repo.description)
