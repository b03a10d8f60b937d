"""Deterministic 32-bit integer stream shared by every stochastic stage."""

from __future__ import annotations

import math

import numpy as np

SEED_OFFSET = 453413

_INT32_SPAN = 1 << 32
_INT32_HALF = 1 << 31


def wrap32(value: int) -> int:
    """Wrap a Python integer to the signed 32-bit range."""

    return ((value + _INT32_HALF) & 0xFFFFFFFF) - _INT32_HALF


def wrap32_array(values: np.ndarray) -> np.ndarray:
    """Wrap an int64 array to the signed 32-bit range, keeping int64 storage."""

    return ((values + _INT32_HALF) & 0xFFFFFFFF) - _INT32_HALF


def trunc_mod(value: int, modulus: int) -> int:
    """Remainder with the sign of the dividend (C/JS `%` semantics)."""

    return int(math.fmod(value, modulus))


class DeterministicRng:
    """Seeded generator whose next state is a pure function of the current one.

    The state is a single signed 32-bit integer initialised to
    ``453413 + seed``. Every draw replaces it, so two generators built from the
    same seed agree on every draw for as long as they are consumed in the same
    order.
    """

    __slots__ = ("state", "draws")

    def __init__(self, seed: int) -> None:
        self.state = wrap32(SEED_OFFSET + int(seed))
        self.draws = 0

    def next(self) -> int:
        s = self.state
        s2 = wrap32(s * s)
        t1 = wrap32(s * 751423) ^ 234423
        t2 = wrap32(s2 * 346)
        t3 = wrap32(wrap32(s2 * s) * 342521)
        t4 = 93337524
        # Integer division truncates toward zero.
        t5 = abs(s) // 2346
        if s < 0:
            t5 = -t5
        t6 = s ^ 234621356
        t7 = s2 >> 16
        self.state = wrap32(t1 - t2 + t3 - t4 + t5 - t6 + t7)
        self.draws += 1
        return self.state

    def next_unit_range256(self) -> int:
        """Return an integer in ``[-256, 255]``."""

        return (self.next() & 511) - 256

    def next_unit_vector3(self) -> tuple[float, float, float]:
        """Return a float32-rounded direction built from three bounded draws.

        The vector is left unnormalised when all three draws are zero.
        """

        x = float(self.next_unit_range256())
        y = float(self.next_unit_range256())
        z = float(self.next_unit_range256())
        length = math.sqrt(x * x + y * y + z * z)
        if length > 0:
            x /= length
            y /= length
            z /= length
        return float(np.float32(x)), float(np.float32(y)), float(np.float32(z))

    def __repr__(self) -> str:
        return f"DeterministicRng(state={self.state}, draws={self.draws})"
