"""Summary statistics for generated heightfields."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class HeightfieldStats:
    """Range and shape summary of one field."""

    min_value: float
    max_value: float
    mean_value: float
    std_value: float
    peak_magnitude: float
    hypsometric_integral: float
    nonfinite_count: int


def field_stats(values: np.ndarray) -> HeightfieldStats:
    """Summarize ``values``; non-finite cells are counted and left out."""

    if values.ndim != 2:
        raise ValueError("values must be 2D")

    finite_mask = np.isfinite(values)
    nonfinite = int(values.size - np.count_nonzero(finite_mask))
    finite = values[finite_mask].astype(np.float64)
    if finite.size == 0:
        return HeightfieldStats(0.0, 0.0, 0.0, 0.0, 0.0, 0.0, nonfinite)

    lo = float(finite.min())
    hi = float(finite.max())
    return HeightfieldStats(
        min_value=lo,
        max_value=hi,
        mean_value=float(finite.mean()),
        std_value=float(finite.std()),
        peak_magnitude=float(np.abs(finite).max()),
        hypsometric_integral=_hypsometric_integral(finite, lo, hi),
        nonfinite_count=nonfinite,
    )


def _hypsometric_integral(values: np.ndarray, lo: float, hi: float) -> float:
    if hi <= lo + 1e-6:
        return 0.0
    return float(np.mean(np.clip((values - lo) / (hi - lo), 0.0, 1.0)))
