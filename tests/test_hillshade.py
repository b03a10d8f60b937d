from __future__ import annotations

import numpy as np

from ridgegen.config import GeneratorConfig
from ridgegen.derive import height_preview_u16, hillshade, noise_gain_preview_u8
from ridgegen.heightfield import generate_heightfield


def test_hillshade_vertical_exaggeration_changes_output() -> None:
    result = generate_heightfield(48, 48, 11, config=GeneratorConfig(point_budget=30))

    shade_1x = hillshade(result.height, vertical_exaggeration=1.0)
    shade_40x = hillshade(result.height, vertical_exaggeration=40.0)

    assert shade_1x.dtype == np.uint8
    assert not np.array_equal(shade_1x, shade_40x)


def test_flat_field_shades_uniformly() -> None:
    shade = hillshade(np.zeros((8, 8), dtype=np.float32))
    assert np.all(shade == shade[0, 0])


def test_height_preview_spans_16_bits() -> None:
    values = np.linspace(-1.0, 1.0, 64, dtype=np.float32).reshape(8, 8)
    preview = height_preview_u16(values)
    assert preview.dtype == np.uint16
    assert int(preview.min()) == 0
    assert int(preview.max()) == 65535


def test_noise_gain_preview_tracks_weight() -> None:
    weight = np.array([[0.0, 50.0], [200.0, -20.0]], dtype=np.float32)
    preview = noise_gain_preview_u8(weight, weight_floor=0.05)

    assert preview.dtype == np.uint8
    assert int(preview[1, 0]) == 255
    assert int(preview[0, 0]) == round(255 * np.sqrt(0.05 / 1.05))
    assert preview[0, 0] < preview[0, 1] < preview[1, 0]
    # Weight below the floor clamps the gain to zero.
    assert int(preview[1, 1]) == 0
