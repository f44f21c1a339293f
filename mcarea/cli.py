"""Command-line interface helpers shared across the example scripts."""

from __future__ import annotations

import argparse
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

from .executors import POOL_KINDS


_DEFAULT_RUN_ROOT = Path("./runs")

# Heavy (production) defaults
_HEAVY_DEFAULTS = {
    "samples": 1_000_000,
    "batches": 16,
    "trials": 30,
    "sample_sizes": [100, 1_000, 10_000, 100_000, 1_000_000],
    "worker_counts": [1, 2, 4, 8],
    "repeats": 3,
}

# Lightweight (test) defaults for fast validation runs
_TEST_DEFAULTS = {
    "samples": 10_000,
    "batches": 4,
    "trials": 5,
    "sample_sizes": [100, 1_000, 10_000],
    "worker_counts": [1, 2],
    "repeats": 1,
}


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def add_estimation_args(
    parser: argparse.ArgumentParser,
    *,
    include_study: bool = False,
    include_distributed: bool = False,
) -> argparse.ArgumentParser:
    """Attach common estimation arguments to ``parser``."""

    parser.add_argument(
        "--samples",
        "-n",
        type=_positive_int,
        default=None,
        help="Samples per batch (n)",
    )
    parser.add_argument(
        "--batches",
        "-j",
        type=_positive_int,
        default=None,
        help="Number of independent batches (j); 1 runs a single estimate",
    )
    parser.add_argument(
        "--radius", type=float, default=1.0, help="Half side of the sampling square"
    )
    parser.add_argument("--seed", type=int, default=42, help="Base random seed")
    parser.add_argument(
        "--executor",
        choices=POOL_KINDS,
        default="process",
        help="Where batches run",
    )
    parser.add_argument(
        "--workers",
        type=_positive_int,
        default=None,
        help="Pool size (defaults to the executor's own choice)",
    )

    parser.add_argument(
        "--output-dir",
        type=str,
        default=None,
        help="Directory where logs, CSV files and results are written",
    )
    parser.add_argument(
        "--test-mode",
        action="store_true",
        help="Activate lightweight defaults suitable for quick testing",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    if include_study:
        parser.add_argument(
            "--sample-sizes",
            type=_positive_int,
            nargs="+",
            default=None,
            help="Sample sizes for the convergence study",
        )
        parser.add_argument(
            "--trials",
            type=_positive_int,
            default=None,
            help="Independent trials per sample size",
        )
        parser.add_argument(
            "--worker-counts",
            type=_positive_int,
            nargs="+",
            default=None,
            help="Worker counts for the scaling study (first one is the baseline)",
        )
        parser.add_argument(
            "--repeats",
            type=_positive_int,
            default=None,
            help="Timed repetitions per worker count (median is reported)",
        )

    if include_distributed:
        parser.add_argument(
            "--backend",
            type=str,
            default="gloo",
            help="Backend handed to torch.distributed.init_process_group",
        )
        parser.add_argument(
            "--init-method",
            type=str,
            default="env://",
            help="Process-group init method (e.g., env://, tcp://<host>:<port>)",
        )
        parser.add_argument("--rank", type=int, default=None, help="Explicit global rank override")
        parser.add_argument(
            "--world-size", type=int, default=None, help="Explicit world-size override"
        )
        parser.add_argument(
            "--local-rank",
            type=int,
            default=None,
            help="Explicit local-rank override (torchrun/SLURM typically set this)",
        )
        parser.add_argument(
            "--master-addr",
            type=str,
            default=None,
            help="Master address used for rendezvous (defaults to SLURM or torchrun env)",
        )
        parser.add_argument(
            "--master-port",
            type=int,
            default=None,
            help="Master port used for rendezvous (defaults to SLURM or torchrun env)",
        )
        parser.add_argument(
            "--verbose-logs",
            action="store_true",
            help="Emit console logs from every rank instead of rank 0 only",
        )

    return parser


def finalize_estimation_args(args: argparse.Namespace) -> argparse.Namespace:
    """Fill unset sizes from the heavy or test-mode defaults and return args.

    Mode-dependent flags parse to ``None`` when omitted, so any value given
    on the command line wins over ``--test-mode``, even one equal to a
    heavy default.
    """

    defaults = _TEST_DEFAULTS if getattr(args, "test_mode", False) else _HEAVY_DEFAULTS
    for key, value in defaults.items():
        if hasattr(args, key) and getattr(args, key) is None:
            setattr(args, key, list(value) if isinstance(value, list) else value)
    if args.radius <= 0:
        raise ValueError(f"--radius must be positive, got {args.radius}")
    return args


def resolve_output_paths(
    args: argparse.Namespace,
    default_prefix: str,
    *,
    results_filename: Optional[str] = "results.json",
) -> Tuple[Path, Optional[Path]]:
    """Resolve the run directory and results file from CLI arguments."""

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_dir = Path(args.output_dir) if args.output_dir else _DEFAULT_RUN_ROOT / f"{default_prefix}_{timestamp}"
    output_dir = output_dir.expanduser().resolve()
    output_dir.mkdir(parents=True, exist_ok=True)
    args.output_dir = str(output_dir)

    results_path: Optional[Path] = None
    if results_filename is not None:
        results_path = output_dir / results_filename

    return output_dir, results_path
