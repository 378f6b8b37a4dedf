from repocity.core.animation import AnimationState, RisePhase, SceneController
from repocity.core.city_generator import assemble
from repocity.core.rng import SeededRNG
from repocity.core.scale import floors_of, height_of, lit_probability
from repocity.core.spiral import spiral_coordinate, spiral_coordinates

__all__ = [
    "AnimationState",
    "RisePhase",
    "SceneController",
    "SeededRNG",
    "assemble",
    "floors_of",
    "height_of",
    "lit_probability",
    "spiral_coordinate",
    "spiral_coordinates",
]
