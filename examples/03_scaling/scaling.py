#!/usr/bin/env python3
"""Strong scaling of batch aggregation, fitted to Amdahl's Law.

Keeps the total work fixed (``--batches`` x ``--samples``) and times the
aggregate with 1, 2, 4, ... workers. The measured speedups are fitted to
Speedup(p, N) = 1 / [(1-p) + p/N] to expose the serial fraction: pool
start-up, pickling streams to workers and the final reduction.

Usage:
    python scaling.py --executor process --worker-counts 1 2 4 8 --output-dir runs/scaling
    python scaling.py --test-mode --executor thread --output-dir runs/scaling
    python plot_scaling.py runs/scaling/scaling.csv
"""

import argparse
import logging
import time

from mcarea.cli import add_estimation_args, finalize_estimation_args, resolve_output_paths
from mcarea.estimator import Bounds
from mcarea.logging_utils import format_timespan, setup_basic_logging
from mcarea.metrics import append_metrics_json
from mcarea.scaling import fit_parallel_fraction, measure_scaling, write_scaling_csv


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Strong-scaling study of batch aggregation")
    add_estimation_args(parser, include_study=True)
    return parser.parse_args()


def main():
    args = finalize_estimation_args(parse_args())
    output_dir, results_path = resolve_output_paths(args, default_prefix="scaling")
    setup_basic_logging(output_dir, log_name="scaling.log", verbose=args.verbose)
    wall_start = time.perf_counter()

    total = args.samples * args.batches
    logging.info(
        f"Scaling study: {args.batches} batches x {args.samples:,} samples = {total:,} "
        f"on {args.executor} pools of {args.worker_counts}"
    )
    results = measure_scaling(
        args.samples,
        args.batches,
        args.worker_counts,
        kind=args.executor,
        repeats=args.repeats,
        seed=args.seed,
        bounds=Bounds(radius=args.radius),
    )

    csv_path = write_scaling_csv(results, output_dir / "scaling.csv")
    logging.info(f"✓ Measured speedup data written to {csv_path}")

    estimates = {r.estimate for r in results}
    if len(estimates) != 1:
        logging.warning(f"Worker counts disagree on the estimate: {sorted(estimates)}")

    append_metrics_json(results_path, {"config": vars(args)})
    if len(results) > 1:
        best_p = fit_parallel_fraction((r.workers, r.speedup) for r in results)
        serial_fraction = 1.0 - best_p
        logging.info(f"✓ Fitted parallel fraction: p = {best_p:.3f}")
        logging.info(f"  Serial fraction: {serial_fraction:.3f} ({serial_fraction * 100:.1f}%)")
        logging.info(f"  Maximum theoretical speedup: {1.0 / serial_fraction:.1f}x")
        with open(output_dir / "scaling_fitted_p.txt", "w") as f:
            f.write(f"{best_p}\n")
        append_metrics_json(results_path, {"summary": {"fitted_p": best_p}})

    logging.info("Total runtime: %s", format_timespan(time.perf_counter() - wall_start))


if __name__ == "__main__":
    main()
