#!/usr/bin/env python3
"""Convergence study: how the estimator's error shrinks with n.

Runs ``--trials`` independent estimates for each of ``--sample-sizes`` and
writes convergence.csv (mean, spread, mean |error| and the theoretical
standard error V*sqrt(p(1-p)/n)). The spread should fall by ~10x for every
100x increase in n.

Usage:
    python convergence.py --output-dir runs/conv
    python convergence.py --test-mode --output-dir runs/conv
    python plot_convergence.py runs/conv/convergence.csv
"""

import argparse
import logging
import time

from mcarea.cli import add_estimation_args, finalize_estimation_args, resolve_output_paths
from mcarea.estimator import Bounds
from mcarea.logging_utils import format_timespan, setup_basic_logging
from mcarea.metrics import append_metrics_json
from mcarea.statistics import convergence_study, write_convergence_csv


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Monte Carlo convergence study")
    add_estimation_args(parser, include_study=True)
    return parser.parse_args()


def main():
    args = finalize_estimation_args(parse_args())
    output_dir, results_path = resolve_output_paths(args, default_prefix="convergence")
    setup_basic_logging(output_dir, log_name="convergence.log", verbose=args.verbose)
    wall_start = time.perf_counter()

    bounds = Bounds(radius=args.radius)
    logging.info(
        f"Convergence study: sizes={args.sample_sizes}, trials={args.trials}, "
        f"radius={args.radius}, seed={args.seed}"
    )
    rows = convergence_study(args.sample_sizes, trials=args.trials, seed=args.seed, bounds=bounds)

    csv_path = write_convergence_csv(rows, output_dir / "convergence.csv")
    logging.info(f"✓ Convergence data written to {csv_path}")

    append_metrics_json(results_path, {"config": vars(args)})
    if len(rows) > 1:
        first, last = rows[0], rows[-1]
        observed = first.std / last.std if last.std > 0 else float("inf")
        expected = (last.n / first.n) ** 0.5
        logging.info(
            f"Spread ratio n={first.n} -> n={last.n}: observed {observed:.1f}x, "
            f"1/sqrt(n) predicts {expected:.1f}x"
        )
        append_metrics_json(
            results_path, {"summary": {"observed_ratio": observed, "expected_ratio": expected}}
        )

    logging.info("Total runtime: %s", format_timespan(time.perf_counter() - wall_start))


if __name__ == "__main__":
    main()
