"""Preview rasters derived from generated heightfields."""

from __future__ import annotations

import numpy as np

from ridgegen.grid import NORMALIZED_MAX


def hillshade(
    height: np.ndarray,
    *,
    azimuth_deg: float = 315.0,
    altitude_deg: float = 45.0,
    vertical_exaggeration: float = 1.0,
) -> np.ndarray:
    """Compute an 8-bit hillshade, treating the grid as toroidal."""

    if height.ndim != 2:
        raise ValueError("height must be a 2D array")

    values = height.astype(np.float64) * float(vertical_exaggeration)
    dz_dx = (np.roll(values, -1, axis=1) - np.roll(values, 1, axis=1)) * 0.5
    dz_dy = (np.roll(values, -1, axis=0) - np.roll(values, 1, axis=0)) * 0.5

    slope = np.pi / 2.0 - np.arctan(np.hypot(dz_dx, dz_dy))
    aspect = np.arctan2(-dz_dx, dz_dy)
    azimuth = np.deg2rad(azimuth_deg)
    altitude = np.deg2rad(altitude_deg)

    shaded = np.sin(altitude) * np.sin(slope) + np.cos(altitude) * np.cos(slope) * np.cos(azimuth - aspect)
    return np.round(np.clip(shaded, 0.0, 1.0) * 255.0).astype(np.uint8)


def height_preview_u16(height: np.ndarray) -> np.ndarray:
    """Map the full value range of ``height`` onto 16-bit grayscale."""

    lo = float(np.min(height))
    hi = float(np.max(height))
    scale = max(hi - lo, 1e-6)
    norm = np.clip((height.astype(np.float64) - lo) / scale, 0.0, 1.0)
    return np.round(norm * 65535.0).astype(np.uint16)


def noise_gain_preview_u8(weight: np.ndarray, *, weight_floor: float = 0.05) -> np.ndarray:
    """Render the per-cell lattice noise gain implied by a weight field.

    The gain is ``sqrt(weight / 200 + weight_floor)`` clamped at zero, shown
    relative to its value at the top of the normalized range.
    """

    gain = np.sqrt(np.maximum(weight.astype(np.float64) / NORMALIZED_MAX + weight_floor, 0.0))
    top = np.sqrt(1.0 + weight_floor)
    return np.round(np.clip(gain / top, 0.0, 1.0) * 255.0).astype(np.uint8)
