"""Separable stack blur on toroidal float32 fields."""

from __future__ import annotations

import numpy as np

from ridgegen.config import BLUR_REFERENCE_WIDTH, ParallelConfig
from ridgegen.parallel import run_partitioned

MAX_RADIUS = 254
DECOMPOSE_STEP = 128

# Fixed-point reciprocals of the stack weight (radius + 1)**2: mul[r] / 2**shr[r].
STACKBLUR_MUL = (
    512, 512, 456, 512, 328, 456, 335, 512, 405, 328, 271, 456, 388, 335, 292, 512,
    454, 405, 364, 328, 298, 271, 496, 456, 420, 388, 360, 335, 312, 292, 273, 512,
    482, 454, 428, 405, 383, 364, 345, 328, 312, 298, 284, 271, 259, 496, 475, 456,
    437, 420, 404, 388, 374, 360, 347, 335, 323, 312, 302, 292, 282, 273, 265, 512,
    497, 482, 468, 454, 441, 428, 417, 405, 394, 383, 373, 364, 354, 345, 337, 328,
    320, 312, 305, 298, 291, 284, 278, 271, 265, 259, 507, 496, 485, 475, 465, 456,
    446, 437, 428, 420, 412, 404, 396, 388, 381, 374, 367, 360, 354, 347, 341, 335,
    329, 323, 318, 312, 307, 302, 297, 292, 287, 282, 278, 273, 269, 265, 261, 512,
    505, 497, 489, 482, 475, 468, 461, 454, 447, 441, 435, 428, 422, 417, 411, 405,
    399, 394, 389, 383, 378, 373, 368, 364, 359, 354, 350, 345, 341, 337, 332, 328,
    324, 320, 316, 312, 309, 305, 301, 298, 294, 291, 287, 284, 281, 278, 274, 271,
    268, 265, 262, 259, 257, 507, 501, 496, 491, 485, 480, 475, 470, 465, 460, 456,
    451, 446, 442, 437, 433, 428, 424, 420, 416, 412, 408, 404, 400, 396, 392, 388,
    385, 381, 377, 374, 370, 367, 363, 360, 357, 354, 350, 347, 344, 341, 338, 335,
    332, 329, 326, 323, 320, 318, 315, 312, 310, 307, 304, 302, 299, 297, 294, 292,
    289, 287, 285, 282, 280, 278, 275, 273, 271, 269, 267, 265, 263, 261, 259,
)

STACKBLUR_SHR = (
    9, 11, 12, 13, 13, 14, 14, 15, 15, 15, 15, 16, 16, 16, 16, 17,
    17, 17, 17, 17, 17, 17, 18, 18, 18, 18, 18, 18, 18, 18, 18, 19,
    19, 19, 19, 19, 19, 19, 19, 19, 19, 19, 19, 19, 19, 20, 20, 20,
    20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 20, 21,
    21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 21,
    21, 21, 21, 21, 21, 21, 21, 21, 21, 21, 22, 22, 22, 22, 22, 22,
    22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22,
    22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 22, 23,
    23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23,
    23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23,
    23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23, 23,
    23, 23, 23, 23, 23, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24,
    24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24,
    24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24,
    24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24,
    24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24, 24,
)


def stack_blur(field: np.ndarray, radius: int, *, parallel: ParallelConfig | None = None) -> None:
    """Blur a 2D float32 field in place with wrap-around edges.

    Rows are swept first, then columns; the column pass starts only after every
    row slice has finished. Radii below 1 are a no-op.
    """

    if field.ndim != 2:
        raise ValueError("field must be a 2D array")
    if field.dtype != np.float32:
        raise ValueError("field must be float32")
    radius = int(radius)
    if radius > MAX_RADIUS:
        raise ValueError(f"blur radius must be <= {MAX_RADIUS}, got {radius}")
    if radius < 1:
        return

    height, width = field.shape

    def row_task(start: int, end: int) -> None:
        _sweep(field[start:end, :], radius)

    def column_task(start: int, end: int) -> None:
        _sweep(field[:, start:end].T, radius)

    run_partitioned(row_task, height, parallel)
    run_partitioned(column_task, width, parallel)


def scaled_blur(
    field: np.ndarray,
    radius: int,
    *,
    reference_width: int | None = BLUR_REFERENCE_WIDTH,
    parallel: ParallelConfig | None = None,
) -> None:
    """Blur with a radius expressed relative to ``reference_width`` pixels.

    The request is rescaled to the field width; radii above 254 are applied as
    ``radius // 128`` passes at radius 254.
    """

    if radius <= 0:
        return
    if reference_width:
        radius = radius * field.shape[1] // reference_width
    if radius > MAX_RADIUS:
        for _ in range(radius // DECOMPOSE_STEP):
            stack_blur(field, MAX_RADIUS, parallel=parallel)
    else:
        stack_blur(field, radius, parallel=parallel)


def _sweep(lines: np.ndarray, radius: int) -> None:
    """Stack-blur every row of ``lines`` in place along its last axis.

    ``lines`` is a view into the target field; sums run in float64 and the
    circular stack holds float32 samples.
    """

    count, length = lines.shape
    last = length - 1
    div = 2 * radius + 1
    mul = STACKBLUR_MUL[radius]
    divisor = float(1 << STACKBLUR_SHR[radius])

    stack = np.empty((div, count), dtype=np.float32)
    total = np.zeros(count, dtype=np.float64)
    sum_in = np.zeros(count, dtype=np.float64)
    sum_out = np.zeros(count, dtype=np.float64)

    for i in range(radius + 1):
        value = lines[:, (last - radius + i + 1) % length].astype(np.float64)
        stack[i] = value
        total += value * (i + 1)
        sum_out += value

    src = 0
    for i in range(1, radius + 1):
        if i <= last:
            src += 1
        value = lines[:, src].astype(np.float64)
        stack[i + radius] = value
        total += value * (radius + 1 - i)
        sum_in += value

    sp = radius
    xp = min(radius, last)
    dst = 0
    for x in range(length + radius):
        if x == length:
            dst = 0
        if x < length:
            lines[:, dst] = total * mul / divisor
        else:
            # Fade the wrapped tail into the already written start to hide the seam.
            a = (x - length) / radius
            column = dst % length
            existing = lines[:, column].astype(np.float64)
            lines[:, column] = existing * a + (1.0 - a) * (total * mul) / divisor
        dst += 1

        total -= sum_out
        stack_start = sp + div - radius
        if stack_start >= div:
            stack_start -= div
        sum_out -= stack[stack_start]

        if xp < last:
            xp += 1
        if xp == last:
            xp = 0
        incoming = lines[:, xp]
        stack[stack_start] = incoming
        sum_in += incoming
        total += sum_in

        sp += 1
        if sp >= div:
            sp = 0
        sum_out += stack[sp]
        sum_in -= stack[sp]
