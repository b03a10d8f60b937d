"""Heightfield composition pipeline."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field as dataclass_field
import time

import numpy as np
import structlog

from ridgegen.aggregate import grow
from ridgegen.blur import scaled_blur
from ridgegen.config import BLUR_REFERENCE_WIDTH, GeneratorConfig, NoiseConfig, ParallelConfig, SummationConfig
from ridgegen.erosion import erode
from ridgegen.grid import NORMALIZED_MAX, apply_radial_falloff, new_field, normalize, normalize_peak, weight_prior
from ridgegen.noise import synthesize
from ridgegen.rng import DeterministicRng

logger = structlog.get_logger()

ProgressCallback = Callable[[str, int], None]

_INT32_MIN = -(1 << 31)
_INT32_MAX = (1 << 31) - 1


@dataclass(frozen=True)
class HeightfieldResult:
    """Final field plus the intermediate snapshots of each stage."""

    height: np.ndarray
    weight: np.ndarray
    h_dla: np.ndarray
    h_summed: np.ndarray
    h_noise: np.ndarray
    h_eroded: np.ndarray
    point_count: int
    repaired_nonfinite: int
    stage_seconds: dict[str, float] = dataclass_field(default_factory=dict)


def sum_blurred(
    field: np.ndarray,
    weight: np.ndarray,
    *,
    config: SummationConfig | None = None,
    reference_width: int | None = BLUR_REFERENCE_WIDTH,
    parallel: ParallelConfig | None = None,
) -> None:
    """Replace ``field`` with a weighted sum of progressively blurred copies.

    Level ``i`` blurs a fresh copy at radius ``2^(i+1) - 1`` (split into two
    passes of about two thirds each) and normalizes it. The capture level is
    copied into ``weight``; the blend level then overwrites ``weight`` with
    ``layer - 0.5 * weight``.
    """

    cfg = config or SummationConfig()
    if len(cfg.weights) < cfg.levels:
        raise ValueError("summation needs one weight per level")

    total = np.zeros_like(field)
    for level in range(cfg.levels):
        radius = (2 << level) - 1
        layer = field.copy()
        scaled_blur(layer, radius * 2 // 3 + 1, reference_width=reference_width, parallel=parallel)
        scaled_blur(layer, radius * 2 // 3, reference_width=reference_width, parallel=parallel)
        normalize(layer)

        if level == cfg.weight_capture_level:
            weight[...] = layer
        if level == cfg.weight_blend_level:
            weight[...] = (layer.astype(np.float64) - weight.astype(np.float64) * 0.5).astype(np.float32)

        total[...] = (total.astype(np.float64) + layer.astype(np.float64) * cfg.weights[level]).astype(np.float32)

    field[...] = total
    normalize(field)


def add_lattice_noise(
    field: np.ndarray,
    weight: np.ndarray,
    seed: int,
    blend: float,
    *,
    config: NoiseConfig | None = None,
    parallel: ParallelConfig | None = None,
) -> None:
    """Perturb ``field`` with lattice noise, scaled by the square root of ``weight``."""

    cfg = config or NoiseConfig()
    height, width = field.shape
    normalize(field)
    normalize(weight)
    base = field.astype(np.float64)

    noise = synthesize(width, height, seed, cfg.octaves, parallel=parallel)
    normalize(noise)

    gain = np.sqrt(np.maximum(weight.astype(np.float64) / NORMALIZED_MAX + cfg.weight_floor, 0.0))
    field[...] = (base + (noise.astype(np.float64) - NORMALIZED_MAX / 2) * gain * blend).astype(np.float32)
    normalize(field)


def generate_heightfield(
    width: int,
    height: int,
    seed: int,
    *,
    config: GeneratorConfig | None = None,
    progress: ProgressCallback | None = None,
) -> HeightfieldResult:
    """Generate a deterministic heightfield with values in ``[-1, 1]``.

    Stages: aggregation, multi-scale blurred summation, broad lattice noise
    (optionally with a radial falloff), erosion, detail lattice noise and peak
    normalization. ``progress`` is called at fixed milestones; anything it
    raises is logged and ignored.
    """

    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    if not _INT32_MIN <= int(seed) <= _INT32_MAX:
        raise ValueError("seed must fit in a signed 32-bit integer")

    cfg = config or GeneratorConfig()
    if cfg.noise.octaves < 1:
        raise ValueError("noise octaves must be >= 1")
    seed = int(seed)
    ref = cfg.blur_reference_width
    timings: dict[str, float] = {}
    log = logger.bind(width=width, height=height, seed=seed)

    _report(progress, f"Generating terrain {width}x{height} with seed {seed}", 0)
    data = new_field(width, height)
    weight = weight_prior(width, height)
    rng = DeterministicRng(seed)

    _report(progress, "Growing aggregate", 10)
    started = time.perf_counter()
    points = grow(data, cfg.point_budget, rng, seed)
    normalize(data)
    h_dla = data.copy()
    timings["aggregate"] = time.perf_counter() - started

    _report(progress, "Blurring and summing scales", 30)
    started = time.perf_counter()
    sum_blurred(data, weight, config=cfg.summation, reference_width=ref, parallel=cfg.parallel)
    normalize(data)
    h_summed = data.copy()
    timings["summation"] = time.perf_counter() - started

    _report(progress, "Adding lattice noise", 50)
    started = time.perf_counter()
    add_lattice_noise(data, weight, seed, cfg.noise.broad_blend, config=cfg.noise, parallel=cfg.parallel)
    if cfg.apply_falloff:
        apply_radial_falloff(data, cfg.falloff_power)
    h_noise = data.copy()
    timings["noise"] = time.perf_counter() - started

    _report(progress, "Simulating erosion", 70)
    started = time.perf_counter()
    erode(data, rng, config=cfg.erosion, reference_width=ref, parallel=cfg.parallel)
    h_eroded = data.copy()
    add_lattice_noise(data, weight, seed, cfg.noise.detail_blend, config=cfg.noise, parallel=cfg.parallel)
    timings["erosion"] = time.perf_counter() - started

    _report(progress, "Finalizing", 90)
    repaired = normalize_peak(data)
    if repaired:
        log.warning("Non-finite values replaced with zero", count=repaired)

    log.info("Terrain generated", points=len(points), seconds=round(sum(timings.values()), 3))
    _report(progress, "Generation complete", 100)

    return HeightfieldResult(
        height=data,
        weight=weight,
        h_dla=h_dla,
        h_summed=h_summed,
        h_noise=h_noise,
        h_eroded=h_eroded,
        point_count=len(points),
        repaired_nonfinite=repaired,
        stage_seconds=timings,
    )


def _report(progress: ProgressCallback | None, message: str, percent: int) -> None:
    logger.info("Progress", message=message, percent=percent)
    if progress is None:
        return
    try:
        progress(message, percent)
    except Exception:
        logger.warning("Progress callback failed", message=message, percent=percent, exc_info=True)
