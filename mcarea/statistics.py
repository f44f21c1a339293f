"""Convergence study for the Monte Carlo estimator.

Repeats ``estimate`` over independent trials at several sample sizes and
compares the observed spread with the theoretical standard error

    sigma(n) = V * sqrt(p (1 - p) / n),    p = target_area / V

which shrinks as ``1/sqrt(n)``: 100x more samples buys one more digit.
"""

from __future__ import annotations

import csv
import logging
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Iterable, List, Optional

import numpy as np

from .estimator import UNIT_BOUNDS, Bounds, estimate
from .random_state import batch_streams


__all__ = [
    "ConvergenceRow",
    "theoretical_std_error",
    "run_trials",
    "convergence_study",
    "write_convergence_csv",
]


logger = logging.getLogger(__name__)


@dataclass
class ConvergenceRow:
    """Summary of ``trials`` estimates at sample size ``n``."""
    n: int
    trials: int
    mean: float
    std: float
    mean_abs_error: float
    theoretical_std: float


def theoretical_std_error(n: int, bounds: Bounds = UNIT_BOUNDS) -> float:
    """Standard deviation of ``estimate(n)`` for a single trial."""
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    p = bounds.inside_fraction
    return bounds.volume * math.sqrt(p * (1.0 - p) / n)


def run_trials(
    n: int,
    trials: int,
    seed: Optional[int] = None,
    bounds: Bounds = UNIT_BOUNDS,
) -> np.ndarray:
    """Return ``trials`` independent estimates, trial ``t`` on batch stream ``t``."""
    streams = batch_streams(seed, trials)
    return np.array([estimate(n, bounds, stream) for stream in streams])


def convergence_study(
    sample_sizes: Iterable[int],
    trials: int = 20,
    seed: Optional[int] = None,
    bounds: Bounds = UNIT_BOUNDS,
) -> List[ConvergenceRow]:
    """Summarise repeated trials for each sample size.

    Each sample size draws from its own branch of the seed tree so rows are
    independent of each other.

    Example:
        >>> rows = convergence_study([100, 10_000], trials=10, seed=0)
        >>> rows[0].std > rows[1].std
        True
    """
    rows = []
    truth = bounds.target_area
    for offset, n in enumerate(sample_sizes):
        branch_seed = None if seed is None else [seed, offset]
        values = run_trials(n, trials, seed=branch_seed, bounds=bounds)
        row = ConvergenceRow(
            n=int(n),
            trials=trials,
            mean=float(values.mean()),
            std=float(values.std(ddof=1)) if trials > 1 else 0.0,
            mean_abs_error=float(np.abs(values - truth).mean()),
            theoretical_std=theoretical_std_error(n, bounds),
        )
        logger.info(
            "n=%d mean=%.6f std=%.6f (theory %.6f) |err|=%.6f",
            row.n,
            row.mean,
            row.std,
            row.theoretical_std,
            row.mean_abs_error,
        )
        rows.append(row)
    return rows


def write_convergence_csv(rows: Iterable[ConvergenceRow], path: Path) -> Path:
    """Write ``rows`` as CSV with a header line and return ``path``."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.DictWriter(handle, fieldnames=[f.name for f in fields(ConvergenceRow)])
        writer.writeheader()
        for row in rows:
            writer.writerow(asdict(row))
    return path
