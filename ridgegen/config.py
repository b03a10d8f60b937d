"""Configuration models for terrain generation."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


DEFAULT_SIZE = 512
DEFAULT_POINT_BUDGET = 300
DEFAULT_FALLOFF_POWER = 4.0
BLUR_REFERENCE_WIDTH = 800


@dataclass(frozen=True)
class SummationConfig:
    """Controls the multi-scale blurred summation of the aggregate."""

    levels: int = 8
    weights: tuple[float, ...] = (0.1, 0.4, 0.8, 2.0, 4.0, 4.0, 5.0, 5.0)
    weight_capture_level: int = 6
    weight_blend_level: int = 7


@dataclass(frozen=True)
class NoiseConfig:
    """Controls lattice noise synthesis and how strongly it is blended in."""

    octaves: int = 7
    broad_blend: float = 0.075
    detail_blend: float = 0.2
    weight_floor: float = 0.05


@dataclass(frozen=True)
class ErosionConfig:
    """Controls particle carving and the multi-radius redistribution of carved mass."""

    walkers: int = 20000
    max_steps: int = 400
    carve_rate: float = 0.2
    ramp_steps: int = 5
    radii: tuple[int, ...] = (0, 1, 2, 4, 8, 16, 32)
    weights: tuple[float, ...] = (0.16, 0.32, 0.9, 6.0, 40.0, 100.0, 200.0)
    strength: float = 0.6
    low_bias: float = 0.05
    elevation_bias: float = 0.95


@dataclass(frozen=True)
class ParallelConfig:
    """Worker pool used by the row/column partitioned stages."""

    enabled: bool = True
    workers: int | None = None


@dataclass(frozen=True)
class RenderConfig:
    """Derived raster rendering configuration."""

    hillshade_azimuth_deg: float = 315.0
    hillshade_altitude_deg: float = 45.0
    hillshade_vertical_exaggeration: float = 40.0


@dataclass(frozen=True)
class GeneratorConfig:
    """Primary generation configuration."""

    point_budget: int = DEFAULT_POINT_BUDGET
    falloff_power: float = DEFAULT_FALLOFF_POWER
    apply_falloff: bool = False
    blur_reference_width: int | None = BLUR_REFERENCE_WIDTH
    summation: SummationConfig = field(default_factory=SummationConfig)
    noise: NoiseConfig = field(default_factory=NoiseConfig)
    erosion: ErosionConfig = field(default_factory=ErosionConfig)
    parallel: ParallelConfig = field(default_factory=ParallelConfig)
    render: RenderConfig = field(default_factory=RenderConfig)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
