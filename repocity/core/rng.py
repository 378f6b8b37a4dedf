"""
String-seeded deterministic random stream.

The stream depends only on the seed text, never on the interpreter's hash
randomisation, wall-clock or hardware entropy, so the same repository name
always produces the same building on every machine.
"""

from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_MIX = 0x45D9F3B
_SCALE = float(1 << 32)


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def seed_hash(seed: str) -> int:
    """Fold *seed* into a signed 32-bit accumulator with ``h = 31*h + code``.

    Characters are folded as UTF-16 code units so astral characters contribute
    their surrogate pair.
    """
    h = 0
    data = seed.encode("utf-16-le")
    for i in range(0, len(data), 2):
        code = data[i] | (data[i + 1] << 8)
        h = _to_int32(31 * h + code)
    return h


class SeededRNG:
    """Deterministic generator keyed by a string.

    Calling the instance (or :meth:`next_float`) returns the next value in
    ``[0, 1)``. ``draws`` counts how many values have been consumed.
    """

    __slots__ = ("_seed", "_state", "draws")

    def __init__(self, seed: str):
        self._seed = seed
        self._state = seed_hash(seed)
        self.draws = 0

    @property
    def seed(self) -> str:
        return self._seed

    def next_float(self) -> float:
        h = self._state & _MASK32
        h = ((h ^ (h >> 16)) * _MIX) & _MASK32
        h = ((h ^ (h >> 16)) * _MIX) & _MASK32
        h ^= h >> 16
        self._state = _to_int32(h)
        self.draws += 1
        return h / _SCALE

    __call__ = next_float

    def skip(self, n: int = 1) -> None:
        """Consume *n* values without using them."""
        for _ in range(n):
            self.next_float()

    def range(self, min_val: float, max_val: float) -> float:
        return min_val + self.next_float() * (max_val - min_val)

    def rand_int(self, min_val: int, max_val: int) -> int:
        """Integer in ``[min_val, max_val]`` (inclusive)."""
        return min_val + int(self.next_float() * (max_val - min_val + 1))

    def index(self, length: int) -> int:
        """Index into a sequence of *length* items; always one draw."""
        return int(self.next_float() * length)

    def choice(self, seq: Sequence[T]) -> T:
        """Select an element from a non-empty sequence."""
        if not seq:
            raise ValueError("choice() from an empty sequence")
        return seq[self.index(len(seq))]
