"""Row/column partitioned fan-out over a thread pool."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
import os

import structlog

from ridgegen.config import ParallelConfig

logger = structlog.get_logger()

DEFAULT_WORKERS = 4


def worker_count(config: ParallelConfig | None = None) -> int:
    """Number of workers to use; 1 means strictly sequential."""

    cfg = config or ParallelConfig()
    if not cfg.enabled:
        return 1
    if cfg.workers is not None:
        return max(1, int(cfg.workers))
    return os.cpu_count() or DEFAULT_WORKERS


def partition(length: int, parts: int) -> list[tuple[int, int]]:
    """Split ``[0, length)`` into ``parts`` contiguous, disjoint ranges.

    Range ``k`` is ``[k*length//parts, (k+1)*length//parts)``; empty ranges are
    dropped.
    """

    parts = max(1, min(parts, length))
    bounds = [(k * length // parts, (k + 1) * length // parts) for k in range(parts)]
    return [(start, end) for start, end in bounds if end > start]


def run_partitioned(
    task: Callable[[int, int], None],
    length: int,
    config: ParallelConfig | None = None,
) -> None:
    """Run ``task(start, end)`` over disjoint slices of ``[0, length)``.

    Returns only after every slice has finished. Each task must write only
    inside its own range. When the pool cannot be started the slices run
    sequentially in order, which produces the same result.
    """

    ranges = partition(length, worker_count(config))
    if len(ranges) <= 1:
        for start, end in ranges:
            task(start, end)
        return

    try:
        executor = ThreadPoolExecutor(max_workers=len(ranges), thread_name_prefix="ridgegen")
    except RuntimeError:
        logger.warning("Worker pool unavailable, running sequentially", slices=len(ranges))
        for start, end in ranges:
            task(start, end)
        return

    futures = []
    with executor:
        for start, end in ranges:
            try:
                futures.append(executor.submit(task, start, end))
            except RuntimeError:
                logger.warning("Worker pool rejected slice, running it inline", start=start, end=end)
                task(start, end)
        for future in futures:
            future.result()
