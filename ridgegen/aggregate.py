"""Diffusion-limited aggregation adapted to height stamping."""

from __future__ import annotations

import math

import numpy as np
import structlog

from ridgegen.grid import get_pixel, set_pixel_max
from ridgegen.rng import DeterministicRng, trunc_mod

logger = structlog.get_logger()

ROOT_HEIGHT = 100.0
ANGLE_MODULUS = 2127
HEIGHT_MODULUS = 111
DISPLACEMENT = 0.4
MAX_DEPTH = 256

Point = tuple[float, float, float]


def grow(
    field: np.ndarray,
    point_budget: int,
    rng: DeterministicRng,
    seed_value: int,
) -> list[Point]:
    """Grow a branching ridge network from the field center.

    Each attempt picks an existing point, proposes an offset whose length
    grows with the attempt index, and rejects it if the probe along the new
    segment meets a stamped cell. Accepted segments are stamped by recursive
    midpoint displacement with max-combine writes, so no cell is ever lowered.
    Returns the ordered point list, root first.
    """

    if point_budget < 0:
        raise ValueError("point_budget must be >= 0")

    height, width = field.shape
    z_bias = (trunc_mod(seed_value, 15) + 2) / 7.0
    base_radius = max(width * 16 // 1024, 1)
    max_radius = width // 6

    points: list[Point] = [(width / 2.0, height / 2.0, ROOT_HEIGHT)]
    rejected = 0

    for i in range(point_budget):
        origin = points[abs(rng.next()) % len(points)]
        angle = abs(rng.next()) % ANGLE_MODULUS
        jitter = abs(rng.next()) % base_radius
        radius = (jitter + base_radius) * (((i * i) & 3) + 1) * ((i & 7) + 1)
        radius = min(radius, max_radius)

        dx = math.sin(angle) * radius
        dy = math.cos(angle) * radius
        dz = (abs(rng.next()) % HEIGHT_MODULUS) - origin[2]

        steps = 4 * radius
        # A zero-length offset has nothing to probe and is accepted as a stacked point.
        if steps > 0 and _collides(field, origin, dx, dy, steps):
            rejected += 1
            continue

        target = (origin[0] + dx, origin[1] + dy, origin[2] + dz)
        _stamp_segment(field, origin, target, rng, z_bias)
        points.append(target)

    logger.info("Aggregation completed", points=len(points), rejected=rejected, draws=rng.draws)
    return points


def _collides(field: np.ndarray, origin: Point, dx: float, dy: float, steps: int) -> bool:
    ox, oy, _ = origin
    for j in range(steps // 5, steps * 5 // 4 + 1):
        a = j / steps
        if get_pixel(field, ox + dx * a, oy + dy * a) > 0:
            return True
    return False


def _stamp_segment(
    field: np.ndarray,
    start: Point,
    end: Point,
    rng: DeterministicRng,
    z_bias: float,
) -> None:
    # Depth-first, first half before second half: the draw order of true recursion.
    pending = [(start, end, 0)]
    while pending:
        a, b, depth = pending.pop()
        dx = a[0] - b[0]
        dy = a[1] - b[1]
        length = math.sqrt(dx * dx + dy * dy)
        if not length >= 1.0 or depth >= MAX_DEPTH:
            continue

        rx, ry, rz = rng.next_unit_vector3()
        rz += z_bias
        middle = (
            (a[0] + b[0]) / 2 + rx * length * DISPLACEMENT,
            (a[1] + b[1]) / 2 + ry * length * DISPLACEMENT,
            (a[2] + b[2]) / 2 + rz * length * DISPLACEMENT,
        )
        set_pixel_max(field, middle[0], middle[1], middle[2])

        pending.append((middle, b, depth + 1))
        pending.append((a, middle, depth + 1))
