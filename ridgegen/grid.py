"""Toroidal heightfield helpers: addressing, normalization and masks."""

from __future__ import annotations

import math

import numpy as np

NORMALIZED_MAX = 200.0
MIN_RANGE = 0.0001
PEAK_FLOOR = 1e-6
WEIGHT_PRIOR_CELLS = 100


def new_field(width: int, height: int) -> np.ndarray:
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    return np.zeros((height, width), dtype=np.float32)


def weight_prior(width: int, height: int) -> np.ndarray:
    """Weight field seeded with ``1/2^k`` in its first cells, zero elsewhere."""

    weights = new_field(width, height)
    flat = weights.reshape(-1)
    count = min(WEIGHT_PRIOR_CELLS, flat.size)
    flat[:count] = np.power(2.0, -np.arange(count, dtype=np.float64)).astype(np.float32)
    return weights


def wrap_index(i: int, size: int) -> int:
    """Resolve any integer coordinate onto ``[0, size)``."""

    return ((i % size) + size) % size


def get_pixel(field: np.ndarray, i: float, j: float) -> float:
    """Read column ``i``, row ``j`` with wrap-around on both axes."""

    height, width = field.shape
    return float(field[wrap_index(math.floor(j), height), wrap_index(math.floor(i), width)])


def set_pixel_max(field: np.ndarray, i: float, j: float, value: float) -> None:
    """Raise the wrapped cell to ``value``; never lowers it."""

    height, width = field.shape
    row = wrap_index(math.floor(j), height)
    col = wrap_index(math.floor(i), width)
    if value > float(field[row, col]):
        field[row, col] = value


def repair_nonfinite(field: np.ndarray) -> int:
    """Replace NaN/Inf with 0 in place and return how many were replaced."""

    bad = ~np.isfinite(field)
    count = int(np.count_nonzero(bad))
    if count:
        field[bad] = 0.0
    return count


def normalize(field: np.ndarray) -> int:
    """Rescale ``field`` in place onto ``[0, 200]``.

    Non-finite values are zeroed before the min/max scan. A range narrower than
    ``0.0001`` is treated as 1 so flat fields shift to zero instead of
    exploding. Returns the number of repaired cells.
    """

    if field.size == 0:
        return 0
    repaired = repair_nonfinite(field)
    lo = float(field.min())
    hi = float(field.max())
    span = hi - lo
    if abs(span) < MIN_RANGE:
        span = 1.0
    field[...] = ((field.astype(np.float64) - lo) * NORMALIZED_MAX / span).astype(np.float32)
    return repaired


def normalize_peak(field: np.ndarray) -> int:
    """Scale ``field`` in place so its largest magnitude is 1.

    Returns the number of non-finite cells found (and zeroed) afterwards.
    """

    magnitude = np.abs(field.astype(np.float64))
    magnitude = magnitude[~np.isnan(magnitude)]
    peak = max(float(magnitude.max()) if magnitude.size else 0.0, PEAK_FLOOR)
    with np.errstate(invalid="ignore", over="ignore"):
        field[...] = (field.astype(np.float64) / peak).astype(np.float32)
    return repair_nonfinite(field)


def apply_radial_falloff(field: np.ndarray, power: float) -> None:
    """Multiply by ``1 - (d/r)^power`` inside the inscribed circle, 0 outside."""

    height, width = field.shape
    cx = width * 0.5
    cy = height * 0.5
    max_r = min(width, height) * 0.5
    ys, xs = np.indices((height, width), dtype=np.float64)
    d = np.sqrt((xs - cx) ** 2 + (ys - cy) ** 2) / max_r
    factor = np.zeros_like(d)
    inside = d < 1.0
    factor[inside] = 1.0 - np.power(d[inside], power)
    field[...] = (field.astype(np.float64) * factor).astype(np.float32)
