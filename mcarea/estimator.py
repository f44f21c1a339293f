"""Monte Carlo area estimation of the disk inscribed in a square.

Points are drawn uniformly from the square ``[-r, r]^2`` and the fraction
landing inside the disk ``x^2 + y^2 <= r^2`` is scaled by the square's area
``V = (2r)^2``::

    estimate = V * inside / n

For ``r = 1`` the target area is pi, so ``estimate(n)`` converges to pi
with standard error ``V * sqrt(p(1-p)/n)`` where ``p = pi/4``.

The batch form splits the work into ``j`` independent batches of ``n``
samples. Each batch owns its random stream and returns only its
inside-count; counts are combined by summation, so batches may run on any
executor in any order::

    aggregate = V * sum(inside_i) / (n * j)
"""

from __future__ import annotations

import functools
import logging
import math
import numbers
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

import numpy as np

from .errors import InvalidSampleSize
from .executors import CancellationToken, run_batches
from .random_state import RandomSource, as_generator, describe_source, spawn_streams, uniform


__all__ = [
    "Bounds",
    "UNIT_BOUNDS",
    "count_inside",
    "estimate",
    "estimate_from_counts",
    "aggregate_counts",
    "aggregate",
    "MonteCarloEstimator",
]


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bounds:
    """Square sampling domain ``[-radius, radius]^2`` around the target disk."""

    radius: float = 1.0

    def __post_init__(self):
        radius = self.radius
        if isinstance(radius, bool) or not isinstance(radius, numbers.Real):
            raise ValueError(f"radius must be a positive finite number, got {radius!r}")
        if not (math.isfinite(radius) and radius > 0):
            raise ValueError(f"radius must be a positive finite number, got {radius!r}")
        # numpy scalars are stored as plain floats
        object.__setattr__(self, "radius", float(radius))

    @property
    def side(self) -> float:
        return 2.0 * self.radius

    @property
    def volume(self) -> float:
        """Area of the bounding square, the scale factor ``V``."""
        return self.side * self.side

    @property
    def target_area(self) -> float:
        """Exact area of the embedded disk."""
        return math.pi * self.radius * self.radius

    @property
    def inside_fraction(self) -> float:
        """Probability ``p`` that a uniform sample lands in the disk."""
        return self.target_area / self.volume


UNIT_BOUNDS = Bounds()


def count_inside(n: int, bounds: Bounds = UNIT_BOUNDS, rng: Any = None) -> int:
    """Draw ``n`` samples and return how many fall inside the disk.

    All ``n`` x-coordinates are drawn before the ``n`` y-coordinates. Points
    on the circle count as inside.

    Args:
        n: Number of samples (>= 1)
        bounds: Sampling domain
        rng: Random source or seed (see ``mcarea.random_state``)

    Returns:
        Inside-count in ``[0, n]``

    Raises:
        InvalidSampleSize: If ``n`` is not a positive integer
    """
    _check_count("n", n)
    n = int(n)
    rng = as_generator(rng)

    r = bounds.radius
    xs = uniform(rng, n, -r, r)
    ys = uniform(rng, n, -r, r)
    limit = r * r

    if isinstance(xs, list):
        return sum(1 for x, y in zip(xs, ys) if x * x + y * y <= limit)
    # numpy arrays and torch tensors share the same elementwise syntax
    return int((xs * xs + ys * ys <= limit).sum())


def estimate_from_counts(inside: int, total: int, bounds: Bounds = UNIT_BOUNDS) -> float:
    """Scale an inside-count over ``total`` samples to an area estimate."""
    _check_count("total", total)
    if not 0 <= inside <= total:
        raise ValueError(f"inside must be in [0, {total}], got {inside}")
    return bounds.volume * inside / total


def estimate(n: int, bounds: Bounds = UNIT_BOUNDS, rng: Any = None) -> float:
    """Estimate the disk's area from ``n`` uniform samples.

    The result lies in ``[0, V]``; with ``n = 1`` it is exactly ``0.0`` or ``V``.

    Example:
        >>> import numpy as np
        >>> value = estimate(100_000, rng=np.random.default_rng(0))
        >>> 3.0 < value < 3.3
        True
    """
    inside = count_inside(n, bounds, rng)
    return estimate_from_counts(inside, n, bounds)


def aggregate_counts(
    n: int,
    streams: Sequence[RandomSource],
    *,
    bounds: Bounds = UNIT_BOUNDS,
    executor: Optional[Executor] = None,
    cancel: Optional[CancellationToken] = None,
    max_pending: Optional[int] = None,
) -> List[int]:
    """Run one batch of ``n`` samples per stream and return the inside-counts.

    Counts are returned in stream order whatever order the batches finish in.
    Streams must be picklable when ``executor`` is a process pool.

    Raises:
        InvalidSampleSize: If ``n`` is invalid or ``streams`` is empty
        EstimationCancelled: If ``cancel`` fires before all batches finish
    """
    _check_count("n", n)
    streams = list(streams)
    if not streams:
        raise InvalidSampleSize("j", 0)

    task = functools.partial(count_inside, n, bounds)
    counts = [0] * len(streams)
    for index, inside in run_batches(task, streams, executor=executor, cancel=cancel, max_pending=max_pending):
        counts[index] = inside
    return counts


def aggregate(
    n: int,
    j: int,
    rng: Any = None,
    *,
    bounds: Bounds = UNIT_BOUNDS,
    executor: Optional[Executor] = None,
    cancel: Optional[CancellationToken] = None,
    max_pending: Optional[int] = None,
) -> float:
    """Estimate the disk's area from ``j`` independent batches of ``n`` samples.

    ``j`` child streams are spawned from ``rng`` up front, one per batch, so
    the result does not depend on the executor or on completion order.
    Fails fast: the first failing batch aborts the whole aggregate.

    Args:
        n: Samples per batch (>= 1)
        j: Number of batches (>= 1)
        rng: Parent random source or seed
        bounds: Sampling domain
        executor: Where batches run (inline when ``None``)
        cancel: Optional cancellation token
        max_pending: Submission window passed to ``run_batches``

    Returns:
        ``V * total_inside / (n * j)``

    Example:
        >>> from mcarea.executors import worker_pool
        >>> with worker_pool("thread", max_workers=4) as pool:
        ...     value = aggregate(10_000, 8, rng=1, executor=pool)
        >>> 3.0 < value < 3.3
        True
    """
    _check_count("n", n)
    _check_count("j", j)

    rng = as_generator(rng)
    logger.debug("Spawning %d streams from %s", j, describe_source(rng))
    streams = spawn_streams(rng, j)
    counts = aggregate_counts(
        n, streams, bounds=bounds, executor=executor, cancel=cancel, max_pending=max_pending
    )
    total_inside = sum(counts)
    logger.debug("Aggregated %d batches of %d samples: inside=%d", j, n, total_inside)
    return estimate_from_counts(total_inside, n * j, bounds)


class MonteCarloEstimator:
    """Bounds plus a default executor, bundled for repeated use.

    Example:
        >>> est = MonteCarloEstimator(Bounds(radius=2.0))
        >>> est.estimate(1, rng=0) in (0.0, est.bounds.volume)
        True
    """

    def __init__(self, bounds: Bounds = UNIT_BOUNDS, executor: Optional[Executor] = None):
        self.bounds = bounds
        self.executor = executor

    def count(self, n: int, rng: Any = None) -> int:
        return count_inside(n, self.bounds, rng)

    def estimate(self, n: int, rng: Any = None) -> float:
        return estimate(n, self.bounds, rng)

    def aggregate(
        self,
        n: int,
        j: int,
        rng: Any = None,
        *,
        executor: Optional[Executor] = None,
        cancel: Optional[CancellationToken] = None,
    ) -> float:
        return aggregate(
            n,
            j,
            rng,
            bounds=self.bounds,
            executor=executor if executor is not None else self.executor,
            cancel=cancel,
        )

    def __repr__(self) -> str:
        return f"MonteCarloEstimator(bounds={self.bounds!r}, executor={self.executor!r})"


def _check_count(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)) or value < 1:
        raise InvalidSampleSize(name, value)
