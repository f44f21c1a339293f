"""Strong-scaling measurement of batch aggregation against Amdahl's Law.

The aggregate is embarrassingly parallel, but each run still has serial
parts: spawning streams, starting the pool, shipping batches to workers and
the final reduction. Timing ``aggregate`` for several worker counts and
fitting the parallel fraction ``p`` shows how much those parts cost.
"""

from __future__ import annotations

import csv
import logging
import time
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .estimator import UNIT_BOUNDS, Bounds, aggregate
from .executors import worker_pool


__all__ = [
    "ScalingResult",
    "amdahl",
    "fit_parallel_fraction",
    "measure_scaling",
    "write_scaling_csv",
]


logger = logging.getLogger(__name__)


@dataclass
class ScalingResult:
    workers: int
    time_s: float
    speedup: float
    efficiency: float
    estimate: float


def amdahl(parallel_fraction: float, devices: int) -> float:
    """Calculate theoretical speedup using Amdahl's Law.

    Amdahl's Law formula:
        Speedup(p, N) = 1 / [(1-p) + p/N]

    Where:
        p = fraction of work that can be parallelized (0.0 to 1.0)
        N = number of parallel workers
        (1-p) = serial fraction (bottleneck)

    Examples:
        amdahl(0.95, 4) = 3.48x  (95% parallel, 4 workers)
        amdahl(0.50, 4) = 1.6x   (50% parallel limits scaling)

    Parameters:
        parallel_fraction: Fraction of work that parallelizes (0.0-1.0)
        devices: Number of parallel workers

    Returns:
        Theoretical speedup factor
    """
    if not 0.0 <= parallel_fraction <= 1.0:
        raise ValueError(f"parallel_fraction must be in [0, 1], got {parallel_fraction}")
    if devices < 1:
        raise ValueError(f"devices must be >= 1, got {devices}")
    return 1.0 / ((1 - parallel_fraction) + parallel_fraction / devices)


def fit_parallel_fraction(
    measurements: Iterable[Tuple[int, float]],
    grid: Optional[Sequence[float]] = None,
) -> float:
    """Find the ``p`` whose Amdahl curve best explains measured speedups.

    Grid search over ``p`` in [0.5, 0.999] minimising the sum of squared
    errors between predicted and measured speedup.

    Args:
        measurements: ``(workers, speedup)`` pairs
        grid: Candidate ``p`` values (default: 100 points in [0.5, 0.999])

    Returns:
        Best-fitting parallel fraction
    """
    measurements = list(measurements)
    if not measurements:
        raise ValueError("need at least one (workers, speedup) measurement")
    candidates = np.linspace(0.5, 0.999, 100) if grid is None else grid

    best_p = float(candidates[0])
    best_error = float("inf")
    for p_test in candidates:
        error = sum((amdahl(p_test, workers) - speedup) ** 2 for workers, speedup in measurements)
        if error < best_error:
            best_error = error
            best_p = float(p_test)
    return best_p


def measure_scaling(
    n: int,
    j: int,
    worker_counts: Sequence[int],
    kind: str = "process",
    repeats: int = 3,
    seed: Optional[int] = 0,
    bounds: Bounds = UNIT_BOUNDS,
) -> List[ScalingResult]:
    """Time ``aggregate(n, j)`` for each worker count.

    Each configuration runs once as warmup (pool start-up, imports) and then
    ``repeats`` times; the median wall-clock time is kept. Speedup and
    efficiency are relative to the first worker count, so list 1 first for
    a conventional baseline. Every run uses the same seed, so all
    configurations must agree on the estimate.
    """
    if not worker_counts:
        raise ValueError("worker_counts must not be empty")
    if repeats < 1:
        raise ValueError(f"repeats must be >= 1, got {repeats}")

    results: List[ScalingResult] = []
    baseline_s: Optional[float] = None
    for workers in worker_counts:
        times = []
        value = float("nan")
        with worker_pool(kind, max_workers=workers) as pool:
            aggregate(n, min(j, workers), rng=seed, bounds=bounds, executor=pool)
            for _ in range(repeats):
                start = time.perf_counter()
                value = aggregate(n, j, rng=seed, bounds=bounds, executor=pool)
                times.append(time.perf_counter() - start)

        median_s = float(np.median(times))
        if baseline_s is None:
            baseline_s = median_s
        speedup = baseline_s / median_s if median_s > 0 else float("inf")
        result = ScalingResult(
            workers=workers,
            time_s=median_s,
            speedup=speedup,
            efficiency=speedup / workers * worker_counts[0],
            estimate=value,
        )
        logger.info(
            "workers=%d time=%.3fs speedup=%.2fx efficiency=%.1f%%",
            workers,
            median_s,
            speedup,
            100 * result.efficiency,
        )
        results.append(result)
    return results


def write_scaling_csv(results: Iterable[ScalingResult], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=[f.name for f in fields(ScalingResult)])
        writer.writeheader()
        for result in results:
            writer.writerow(asdict(result))
    return path
