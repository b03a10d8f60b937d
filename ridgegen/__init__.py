"""Seeded terrain synthesis: aggregation, blur, lattice noise and erosion."""

from .config import DEFAULT_SIZE, GeneratorConfig
from .heightfield import HeightfieldResult, generate_heightfield
from .rng import DeterministicRng

__all__ = ["DEFAULT_SIZE", "DeterministicRng", "GeneratorConfig", "HeightfieldResult", "generate_heightfield"]
