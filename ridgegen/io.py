"""Output serialization for generated heightfields."""

from __future__ import annotations

import json
from pathlib import Path
import shutil
from typing import Any

import numpy as np
from PIL import Image


def run_directory(out_root: str | Path, seed: int, width: int, height: int, *, overwrite: bool) -> Path:
    """Create and return ``<out_root>/seed-<seed>/<w>x<h>``.

    Refuses to reuse a non-empty directory unless ``overwrite`` is set.
    """

    target = Path(out_root) / f"seed-{seed}" / f"{width}x{height}"
    if target.exists() and any(target.iterdir()) and not overwrite:
        raise FileExistsError(f"Output directory is not empty: {target}. Pass --overwrite to replace it.")
    target.mkdir(parents=True, exist_ok=True)
    return target


def replace_directory_contents(staging: Path, target: Path) -> None:
    """Empty ``target`` and move every entry of ``staging`` into it."""

    for child in target.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child)
        else:
            child.unlink()
    for child in staging.iterdir():
        shutil.move(str(child), str(target / child.name))


def write_field_npy(path: str | Path, values: np.ndarray) -> None:
    np.save(Path(path), values.astype(np.float32), allow_pickle=False)


def write_png_u16(path: str | Path, raster_u16: np.ndarray) -> None:
    Image.fromarray(raster_u16.astype(np.uint16)).save(Path(path))


def write_png_u8(path: str | Path, raster_u8: np.ndarray) -> None:
    Image.fromarray(raster_u8.astype(np.uint8)).save(Path(path))


def write_json(path: str | Path, payload: dict[str, Any]) -> None:
    text = json.dumps(payload, indent=2, sort_keys=True)
    Path(path).write_text(text + "\n", encoding="utf-8")
