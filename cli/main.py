"""CLI entry point for terrain generation."""

from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import datetime, timezone
import logging
from pathlib import Path
import platform
import random
import shutil
import tempfile
import time

import numpy as np
import structlog

from ridgegen.config import DEFAULT_SIZE, GeneratorConfig, ParallelConfig
from ridgegen.derive import height_preview_u16, hillshade, noise_gain_preview_u8
from ridgegen.heightfield import generate_heightfield
from ridgegen.io import (
    replace_directory_contents,
    run_directory,
    write_field_npy,
    write_json,
    write_png_u16,
    write_png_u8,
)
from ridgegen.metrics import field_stats

RANDOM_SEED_LIMIT = 200000


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deterministic seeded terrain heightfield generator")
    parser.add_argument("--seed", type=int, default=None, help="Integer seed (random in [0, 200000) if omitted)")
    parser.add_argument("--out", default="out", help="Output root directory")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Width and height in pixels")
    parser.add_argument("--w", type=int, default=None, help="Width override in pixels")
    parser.add_argument("--h", type=int, default=None, help="Height override in pixels")
    parser.add_argument("--points", type=int, default=None, help="Aggregation point budget")
    parser.add_argument("--octaves", type=int, default=None, help="Lattice noise octave count")
    parser.add_argument("--walkers", type=int, default=None, help="Erosion walker count")
    parser.add_argument("--falloff", action="store_true", help="Fade terrain to zero outside the inscribed circle")
    parser.add_argument("--falloff-power", type=float, default=None, help="Exponent of the radial falloff")
    parser.add_argument("--sequential", action="store_true", help="Disable the worker pool")
    parser.add_argument("--workers", type=int, default=None, help="Worker pool size (default: CPU count)")
    parser.add_argument("--overwrite", action="store_true", help="Overwrite files in existing output directory")
    parser.add_argument(
        "--json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Write metadata JSON files",
    )
    parser.add_argument("--log-level", default="warning", help="Log level (debug, info, warning, error)")
    return parser


def configure_logging(level_name: str) -> None:
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {level_name}")
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )


def config_from_args(args: argparse.Namespace) -> GeneratorConfig:
    config = GeneratorConfig(
        apply_falloff=args.falloff,
        parallel=ParallelConfig(enabled=not args.sequential, workers=args.workers),
    )
    if args.points is not None:
        config = replace(config, point_budget=args.points)
    if args.falloff_power is not None:
        config = replace(config, falloff_power=args.falloff_power)
    if args.octaves is not None:
        config = replace(config, noise=replace(config.noise, octaves=args.octaves))
    if args.walkers is not None:
        config = replace(config, erosion=replace(config.erosion, walkers=args.walkers))
    return config


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        configure_logging(args.log_level)
    except ValueError as exc:
        parser.error(str(exc))

    seed = args.seed if args.seed is not None else random.randrange(RANDOM_SEED_LIMIT)
    width = args.w or args.size
    height = args.h or args.size
    if width <= 0 or height <= 0:
        parser.error("width and height must be positive")
    config = config_from_args(args)
    out_dir = run_directory(args.out, seed, width, height, overwrite=args.overwrite)

    def on_progress(message: str, percent: int) -> None:
        print(f"[{percent:3d}%] {message}")

    generation_start = time.perf_counter()
    try:
        result = generate_heightfield(width, height, seed, config=config, progress=on_progress)
    except ValueError as exc:
        parser.error(str(exc))
    generation_seconds = time.perf_counter() - generation_start

    shade = hillshade(
        result.height,
        azimuth_deg=config.render.hillshade_azimuth_deg,
        altitude_deg=config.render.hillshade_altitude_deg,
        vertical_exaggeration=config.render.hillshade_vertical_exaggeration,
    )
    stats = field_stats(result.height)

    stage_dir = Path(tempfile.mkdtemp(prefix=".staging-", dir=str(out_dir.parent)))
    try:
        write_field_npy(stage_dir / "height.npy", result.height)
        write_field_npy(stage_dir / "weight.npy", result.weight)
        write_png_u16(stage_dir / "height_16.png", height_preview_u16(result.height))
        write_png_u8(stage_dir / "hillshade.png", shade)
        write_png_u8(
            stage_dir / "debug_weight.png",
            noise_gain_preview_u8(result.weight, weight_floor=config.noise.weight_floor),
        )
        if args.json:
            deterministic_meta = {
                "seed": seed,
                "width": width,
                "height": height,
                "config": config.to_dict(),
                "point_count": result.point_count,
                "repaired_nonfinite": result.repaired_nonfinite,
                "stats": {
                    "min": stats.min_value,
                    "max": stats.max_value,
                    "mean": stats.mean_value,
                    "std": stats.std_value,
                    "peak_magnitude": stats.peak_magnitude,
                    "hypsometric_integral": stats.hypsometric_integral,
                },
            }
            meta = {
                **deterministic_meta,
                "generated_at_utc": datetime.now(timezone.utc).isoformat(),
                "generation_seconds": generation_seconds,
                "stage_seconds": dict(result.stage_seconds),
                "python_version": platform.python_version(),
                "numpy_version": np.__version__,
            }
            write_json(stage_dir / "deterministic_meta.json", deterministic_meta)
            write_json(stage_dir / "meta.json", meta)

        replace_directory_contents(stage_dir, out_dir)
    finally:
        shutil.rmtree(stage_dir, ignore_errors=True)

    print(f"Generated terrain: {out_dir}")
    print(f"Seed {seed}; {result.point_count} aggregate points; range [{stats.min_value:.3f}, {stats.max_value:.3f}]")
    print(f"Generation time: {generation_seconds:.3f} s ({width}x{height})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
