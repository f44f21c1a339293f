#!/usr/bin/env python3
"""Estimate pi (or the area of a radius-r disk) with independent batches.

Usage:
    python estimate_pi.py --samples 1000000 --batches 1          # single estimate
    python estimate_pi.py --samples 1000000 --batches 16 --executor process --workers 4
    python estimate_pi.py --test-mode --executor thread

Ctrl-C (or SIGTERM / SIGUSR1 under SLURM) stops issuing batches; the pool is
shut down and the run exits with status 130 without an estimate.
"""

import argparse
import logging
import math
import sys
import time

from mcarea.cli import add_estimation_args, finalize_estimation_args, resolve_output_paths
from mcarea.errors import EstimationCancelled
from mcarea.estimator import Bounds, aggregate, estimate
from mcarea.executors import CancellationToken, worker_pool
from mcarea.logging_utils import format_timespan, setup_basic_logging
from mcarea.metrics import append_metrics_json
from mcarea.signal_handler import CancelOnSignal
from mcarea.statistics import theoretical_std_error


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Monte Carlo area estimation with batch-parallel aggregation"
    )
    add_estimation_args(parser)
    return parser.parse_args()


def main():
    args = finalize_estimation_args(parse_args())

    output_dir, results_path = resolve_output_paths(args, default_prefix="estimate")
    log_path = setup_basic_logging(output_dir, verbose=args.verbose)
    wall_start = time.perf_counter()
    logging.info(f"Logging to {log_path}")

    logging.info("=" * 60)
    logging.info("Monte Carlo Estimation")
    logging.info("=" * 60)
    for arg, value in vars(args).items():
        logging.info(f"  {arg}: {value}")
    logging.info("=" * 60)

    bounds = Bounds(radius=args.radius)
    total_samples = args.samples * args.batches
    append_metrics_json(results_path, {"config": vars(args)})

    token = CancellationToken()
    start = time.perf_counter()
    try:
        with CancelOnSignal(token):
            if args.batches == 1:
                value = estimate(args.samples, bounds, args.seed)
            else:
                with worker_pool(args.executor, max_workers=args.workers) as pool:
                    value = aggregate(
                        args.samples,
                        args.batches,
                        rng=args.seed,
                        bounds=bounds,
                        executor=pool,
                        cancel=token,
                    )
    except EstimationCancelled as exc:
        logging.warning(f"{exc}; no estimate produced")
        append_metrics_json(results_path, {"summary": {"cancelled": True, "completed_batches": exc.completed}})
        sys.exit(130)
    elapsed = time.perf_counter() - start

    truth = bounds.target_area
    error = abs(value - truth)
    sigma = theoretical_std_error(total_samples, bounds)

    logging.info("Results:")
    logging.info(f"  Total samples: {total_samples:,}")
    logging.info(f"  Estimate:      {value:.10f}")
    logging.info(f"  True area:     {truth:.10f}")
    logging.info(f"  Error:         {error:.10f} ({error / sigma:.2f} sigma)")
    logging.info(f"  Elapsed:       {format_timespan(elapsed)}")

    append_metrics_json(
        results_path,
        {
            "estimate": value,
            "total_samples": total_samples,
            "abs_error": error,
            "std_error": sigma,
            "elapsed_s": elapsed,
            "summary": {"pi_equivalent": value / (args.radius ** 2), "pi": math.pi},
        },
    )
    logging.info(f"Results saved to {results_path}")
    logging.info("Total runtime: %s", format_timespan(time.perf_counter() - wall_start))


if __name__ == "__main__":
    main()
