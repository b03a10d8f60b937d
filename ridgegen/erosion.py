"""Random-walker carving followed by multi-radius redistribution of carved mass."""

from __future__ import annotations

import time

import numpy as np
import structlog

from ridgegen.blur import scaled_blur
from ridgegen.config import BLUR_REFERENCE_WIDTH, ErosionConfig, ParallelConfig
from ridgegen.grid import NORMALIZED_MAX, normalize
from ridgegen.rng import DeterministicRng

logger = structlog.get_logger()

# Diagonal neighbours, indexed by (l + draw) & 3.
DIAGONALS = ((-1, -1), (1, -1), (1, 1), (-1, 1))


def carve(
    field: np.ndarray,
    rng: DeterministicRng,
    walkers: int,
    *,
    max_steps: int = 400,
    carve_rate: float = 0.2,
    ramp_steps: int = 5,
) -> int:
    """Move walkers downhill over diagonal neighbours, lowering each cell they leave.

    All walkers spawn first, then advance one step each per round. A walker
    with no strictly lower neighbour halts for good. Returns the total number
    of moves made.
    """

    if walkers < 0:
        raise ValueError("walkers must be >= 0")

    height, width = field.shape
    heights = field.reshape(-1).tolist()
    positions = [(abs(rng.next()) % width, abs(rng.next()) % height) for _ in range(walkers)]

    active = list(range(walkers))
    moves = 0
    for step in range(max_steps):
        if not active:
            break
        ramp = min((step + 1) / ramp_steps, 1.0)
        moving = []
        for walker in active:
            x, y = positions[walker]
            here = (y % height) * width + x % width
            current = heights[here]
            best_x, best_y, best_z = x, y, current

            for l in range(4):
                ox, oy = DIAGONALS[(l + rng.next()) & 3]
                nx = x + ox
                ny = y + oy
                z = heights[(ny % height) * width + nx % width]
                if z < best_z:
                    best_x, best_y, best_z = nx, ny, z

            if best_z < current:
                lowered = current * (1.0 - carve_rate * ramp) + best_z * carve_rate * ramp
                heights[here] = np.float32(lowered).item()
                positions[walker] = (best_x, best_y)
                moving.append(walker)
        moves += len(moving)
        active = moving

    field[...] = np.asarray(heights, dtype=np.float32).reshape(height, width)
    return moves


def redistribute(
    field: np.ndarray,
    original: np.ndarray,
    *,
    config: ErosionConfig | None = None,
    reference_width: int | None = BLUR_REFERENCE_WIDTH,
    parallel: ParallelConfig | None = None,
) -> None:
    """Spread the carved material back out and rebuild ``field`` from ``original``.

    The residual ``max(0, original - carved)`` is compressed with an eighth
    root, blurred at several radii and summed with fixed weights. The result
    is subtracted from the normalized original, scaled so that lower ground
    receives more of it.
    """

    cfg = config or ErosionConfig()
    if len(cfg.radii) != len(cfg.weights):
        raise ValueError("erosion radii and weights must have the same length")

    residual = np.maximum(original.astype(np.float64) - field.astype(np.float64), 0.0)
    compressed = np.sqrt(np.sqrt(np.sqrt(residual))).astype(np.float32)

    mass = np.zeros_like(compressed)
    for radius, weight in zip(cfg.radii, cfg.weights):
        layer = compressed.copy()
        scaled_blur(layer, radius // 2, reference_width=reference_width, parallel=parallel)
        mass[...] = (mass.astype(np.float64) + layer.astype(np.float64) * weight).astype(np.float32)

    base = original.copy()
    normalize(base)
    base64 = base.astype(np.float64)
    deposit = cfg.low_bias + cfg.elevation_bias * base64 / NORMALIZED_MAX
    field[...] = (base64 - mass.astype(np.float64) * cfg.strength * deposit).astype(np.float32)
    normalize(field)


def erode(
    field: np.ndarray,
    rng: DeterministicRng,
    walkers: int | None = None,
    *,
    config: ErosionConfig | None = None,
    reference_width: int | None = BLUR_REFERENCE_WIDTH,
    parallel: ParallelConfig | None = None,
) -> None:
    """Carve ``field`` in place with random walkers, then redistribute the mass."""

    cfg = config or ErosionConfig()
    count = cfg.walkers if walkers is None else walkers
    started = time.perf_counter()

    original = field.copy()
    moves = carve(
        field,
        rng,
        count,
        max_steps=cfg.max_steps,
        carve_rate=cfg.carve_rate,
        ramp_steps=cfg.ramp_steps,
    )
    redistribute(field, original, config=cfg, reference_width=reference_width, parallel=parallel)

    logger.info(
        "Erosion completed",
        walkers=count,
        moves=moves,
        seconds=round(time.perf_counter() - started, 3),
    )
