from __future__ import annotations

import numpy as np
import pytest

from ridgegen.blur import stack_blur
from ridgegen.config import ErosionConfig, ParallelConfig
from ridgegen.erosion import carve, erode, redistribute
from ridgegen.grid import normalize
from ridgegen.rng import DeterministicRng

SEQUENTIAL = ParallelConfig(enabled=False)


def _terrain(size: int = 48, seed: int = 4) -> np.ndarray:
    field = np.random.default_rng(seed).uniform(0.0, 200.0, size=(size, size)).astype(np.float32)
    stack_blur(field, 3, parallel=SEQUENTIAL)
    normalize(field)
    return field


def test_carving_only_lowers_cells() -> None:
    original = _terrain()
    field = original.copy()
    moves = carve(field, DeterministicRng(42), 2000)
    assert moves > 0
    assert np.all(field <= original)
    assert np.any(field < original)


def test_flat_field_halts_every_walker() -> None:
    field = np.full((16, 16), 10.0, dtype=np.float32)
    rng = DeterministicRng(1)
    moves = carve(field, rng, 50)
    assert moves == 0
    # Spawn draws plus one round of four neighbour draws per walker.
    assert rng.draws == 50 * 2 + 50 * 4
    assert np.all(field == 10.0)


def test_zero_walkers_is_noop() -> None:
    field = _terrain()
    before = field.copy()
    assert carve(field, DeterministicRng(0), 0) == 0
    assert np.array_equal(field, before)


def test_carving_is_deterministic() -> None:
    a = _terrain()
    b = a.copy()
    carve(a, DeterministicRng(9), 1500)
    carve(b, DeterministicRng(9), 1500)
    assert a.tobytes() == b.tobytes()


def test_erosion_difference_is_bounded_and_finite() -> None:
    original = _terrain(seed=8)
    field = original.copy()
    erode(field, DeterministicRng(42), config=ErosionConfig(walkers=3000), reference_width=None, parallel=SEQUENTIAL)

    diff = float(np.sum(np.abs(original.astype(np.float64) - field.astype(np.float64))))
    assert np.isfinite(diff)
    assert diff <= 200.0 * field.size
    assert np.isfinite(field).all()
    assert float(field.min()) >= 0.0
    assert float(field.max()) <= 200.0 + 1e-3


def test_redistribute_without_carving_returns_normalized_original() -> None:
    original = _terrain(seed=2)
    field = original.copy()
    redistribute(field, original, reference_width=None, parallel=SEQUENTIAL)
    expected = original.copy()
    normalize(expected)
    normalize(expected)
    assert np.allclose(field, expected, atol=1e-3)


def test_redistribute_rejects_mismatched_weights() -> None:
    field = _terrain()
    with pytest.raises(ValueError):
        redistribute(field, field.copy(), config=ErosionConfig(radii=(0, 1), weights=(1.0,)))
