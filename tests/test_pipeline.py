from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from ridgegen.blur import stack_blur
from ridgegen.config import ErosionConfig, GeneratorConfig, ParallelConfig, SummationConfig
from ridgegen.grid import NORMALIZED_MAX, weight_prior
from ridgegen.heightfield import add_lattice_noise, generate_heightfield, sum_blurred

SEQUENTIAL = ParallelConfig(enabled=False)
SMALL = GeneratorConfig(point_budget=30, erosion=ErosionConfig(walkers=2000))


def test_small_grid_end_to_end() -> None:
    result = generate_heightfield(64, 64, 42, config=GeneratorConfig(point_budget=50))
    flat = result.height.reshape(-1)

    assert flat.size == 4096
    assert result.height.dtype == np.float32
    assert np.isfinite(flat).all()
    assert float(flat.min()) >= -1.0
    assert float(flat.max()) <= 1.0
    assert float(np.max(np.abs(flat))) == pytest.approx(1.0, abs=1e-4)
    assert result.repaired_nonfinite == 0
    assert result.point_count >= 2


def test_intermediate_stages_are_normalized() -> None:
    result = generate_heightfield(48, 48, 5, config=SMALL)
    for stage in (result.h_dla, result.h_summed, result.h_noise, result.h_eroded):
        assert np.isfinite(stage).all()
        assert float(stage.min()) >= 0.0
        assert float(stage.max()) <= NORMALIZED_MAX + 1e-3
    assert set(result.stage_seconds) == {"aggregate", "summation", "noise", "erosion"}


def test_progress_milestones_are_reported_in_order() -> None:
    seen: list[int] = []
    config = GeneratorConfig(point_budget=10, erosion=ErosionConfig(walkers=500))
    generate_heightfield(32, 32, 3, config=config, progress=lambda _m, p: seen.append(p))
    assert seen == [0, 10, 30, 50, 70, 90, 100]


def test_failing_progress_callback_does_not_abort() -> None:
    calls: list[str] = []

    def explode(message: str, percent: int) -> None:
        calls.append(message)
        raise RuntimeError("display went away")

    quiet = GeneratorConfig(point_budget=10, erosion=ErosionConfig(walkers=500))
    result = generate_heightfield(32, 32, 3, config=quiet, progress=explode)
    reference = generate_heightfield(32, 32, 3, config=quiet)

    assert len(calls) == 7
    assert result.height.tobytes() == reference.height.tobytes()


def test_radial_falloff_changes_result() -> None:
    config = GeneratorConfig(point_budget=20, erosion=ErosionConfig(walkers=500))
    plain = generate_heightfield(32, 32, 9, config=config)
    faded = generate_heightfield(32, 32, 9, config=replace(config, apply_falloff=True, falloff_power=2.0))
    assert not np.array_equal(plain.h_noise, faded.h_noise)
    assert faded.h_noise[0, 0] == 0.0


def test_invalid_arguments_are_rejected() -> None:
    with pytest.raises(ValueError):
        generate_heightfield(0, 32, 1)
    with pytest.raises(ValueError):
        generate_heightfield(32, 32, 1 << 31)
    with pytest.raises(ValueError):
        generate_heightfield(32, 32, 1, config=GeneratorConfig(point_budget=-1))


def test_sum_blurred_captures_weight_levels() -> None:
    field = np.random.default_rng(0).uniform(0.0, 200.0, size=(32, 32)).astype(np.float32)
    weight = weight_prior(32, 32)
    sum_blurred(field, weight, reference_width=None, parallel=SEQUENTIAL)

    assert np.isfinite(field).all()
    assert float(field.min()) == 0.0
    assert float(field.max()) == pytest.approx(NORMALIZED_MAX, abs=1e-3)
    # Level 7 writes layer - 0.5 * level6, so the prior is gone.
    assert weight.reshape(-1)[0] != 1.0


def test_sum_blurred_with_few_levels_keeps_weight_prior() -> None:
    field = np.random.default_rng(1).uniform(0.0, 200.0, size=(16, 16)).astype(np.float32)
    weight = weight_prior(16, 16)
    before = weight.copy()
    sum_blurred(field, weight, config=SummationConfig(levels=3), reference_width=None, parallel=SEQUENTIAL)
    assert np.array_equal(weight, before)


def test_sum_blurred_requires_weight_per_level() -> None:
    field = np.zeros((8, 8), dtype=np.float32)
    with pytest.raises(ValueError):
        sum_blurred(field, weight_prior(8, 8), config=SummationConfig(levels=4, weights=(1.0, 2.0)))


def test_add_lattice_noise_with_zero_blend_only_normalizes() -> None:
    field = np.random.default_rng(2).uniform(0.0, 50.0, size=(32, 32)).astype(np.float32)
    stack_blur(field, 2, parallel=SEQUENTIAL)
    weight = np.full((32, 32), 100.0, dtype=np.float32)
    expected = field.copy()
    add_lattice_noise(field, weight, 42, 0.0, parallel=SEQUENTIAL)
    assert float(field.max()) == pytest.approx(NORMALIZED_MAX, abs=1e-3)
    order = np.argsort(expected.reshape(-1), kind="stable")
    assert np.all(np.diff(field.reshape(-1)[order]) >= -1e-3)
