"""Hash-based lattice noise with cubic-convolution interpolation."""

from __future__ import annotations

import numpy as np

from ridgegen.config import ParallelConfig
from ridgegen.parallel import run_partitioned
from ridgegen.rng import wrap32, wrap32_array


def lattice_seed(seed: int) -> int:
    """Derive the 32-bit hash seed used for every lattice sample."""

    seed = wrap32(int(seed))
    return wrap32(seed + wrap32(seed * 3456) + wrap32(seed * 23521))


def sample_lattice(x: np.ndarray, y: np.ndarray, seed_value: int) -> np.ndarray:
    """Hash integer lattice coordinates to values in ``[0, 1]``.

    ``x`` and ``y`` broadcast against each other. All products wrap at 32 bits.
    """

    x = np.asarray(x, dtype=np.int64)
    y = np.asarray(y, dtype=np.int64)
    a = wrap32_array(seed_value + x + y + x * 2561 + y * 5131)
    xa = wrap32_array(wrap32_array(x * a) * 353)
    ya = wrap32_array(wrap32_array(y * a) * 241)
    xy = wrap32_array(wrap32_array(x * y) * 21)
    total = wrap32_array(seed_value + x * 1531359 + y * 8437113 + xa + ya + xy + 532515)
    return (total & 65535).astype(np.float64) / 65535.0


def cubic_interpolate(p0, p1, p2, p3, x):
    """Cubic convolution through four control points at parameter ``x``."""

    return p1 + 0.5 * x * (p2 - p0 + x * (2.0 * p0 - 5.0 * p1 + 4.0 * p2 - p3 + x * (3.0 * (p1 - p2) + p3 - p0)))


def bicubic_interpolate(p, x, y):
    """Interpolate a 4x4 block ``p[i][j]`` (``i`` along x, ``j`` along y).

    Entries may be arrays that broadcast against ``x`` and ``y``. The four
    column results are rounded to float32 before the pass along x.
    """

    columns = [np.asarray(cubic_interpolate(*p[i], y), dtype=np.float32).astype(np.float64) for i in range(4)]
    return cubic_interpolate(*columns, x)


def synthesize(
    width: int,
    height: int,
    seed: int,
    octaves: int,
    *,
    parallel: ParallelConfig | None = None,
) -> np.ndarray:
    """Fill a ``(height, width)`` float32 field with multi-octave lattice noise.

    Each cell depends only on ``seed`` and its coordinates, so disjoint row
    ranges are computed independently and the result does not depend on how
    the rows are partitioned.
    """

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if octaves < 1:
        raise ValueError("octaves must be >= 1")

    seed_value = lattice_seed(seed)
    tables = [_level_table(width, height, level, seed_value) for level in range(octaves)]
    out = np.empty((height, width), dtype=np.float32)

    def task(start: int, end: int) -> None:
        out[start:end] = _synthesize_rows(tables, width, start, end)

    run_partitioned(task, height, parallel)
    return out


def _level_table(width: int, height: int, level: int, seed_value: int) -> np.ndarray:
    size_x = max(width >> level, 1)
    size_y = max(height >> level, 1)
    xs = np.arange(size_x, dtype=np.int64)
    ys = np.arange(size_y, dtype=np.int64)
    return sample_lattice(xs[None, :], ys[:, None], seed_value)


def _synthesize_rows(tables: list[np.ndarray], width: int, start: int, end: int) -> np.ndarray:
    px = np.arange(width, dtype=np.int64)
    py = np.arange(start, end, dtype=np.int64)
    value = np.zeros((end - start, width), dtype=np.float64)

    for level, table in enumerate(tables):
        size_y, size_x = table.shape
        cell = 1 << level
        rx = px >> level
        ry = py >> level
        x01 = (px & (cell - 1)).astype(np.float64) / cell
        y01 = ((py & (cell - 1)).astype(np.float64) / cell)[:, None]

        rows = [((ry + j) % size_y)[:, None] for j in range(4)]
        cols = [((rx + i) % size_x)[None, :] for i in range(4)]
        block = [[table[rows[j], cols[i]] for j in range(4)] for i in range(4)]
        sample = bicubic_interpolate(block, x01[None, :], y01)
        # Earlier octaves decay by half at every level; the new one enters at full weight.
        value = value * 0.5 + sample

    return value.astype(np.float32)
