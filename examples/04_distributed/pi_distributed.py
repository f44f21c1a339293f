#!/usr/bin/env python3
"""One batch per rank, summed with all_reduce.

Each rank draws ``--samples`` points from its own partition of the seed
tree, so the global result is the same however the ranks are scheduled.

Usage:
    torchrun --nproc_per_node=4 pi_distributed.py --samples 1000000
    srun -n 8 python pi_distributed.py --samples 1000000    # SLURM
    python pi_distributed.py --samples 1000000               # single process
"""

import argparse
import logging
import math
import time

from mcarea.cli import add_estimation_args, finalize_estimation_args, resolve_output_paths
from mcarea.distributed import distributed_estimate, infer_distributed_config, process_group
from mcarea.estimator import Bounds
from mcarea.logging_utils import format_timespan, setup_rank_logging
from mcarea.metrics import append_metrics_jsonl


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Distributed Monte Carlo estimation")
    add_estimation_args(parser, include_distributed=True)
    return parser.parse_args()


def main():
    args = finalize_estimation_args(parse_args())
    config = infer_distributed_config(
        backend=args.backend,
        rank=args.rank,
        world_size=args.world_size,
        local_rank=args.local_rank,
        master_addr=args.master_addr,
        master_port=args.master_port,
    )
    # Ranks must agree on the directory, so a timestamped default is not used.
    args.output_dir = args.output_dir or "runs/distributed"
    output_dir, _ = resolve_output_paths(args, default_prefix="distributed", results_filename=None)
    setup_rank_logging(output_dir, config.rank, args.verbose_logs)

    bounds = Bounds(radius=args.radius)
    start = time.perf_counter()
    with process_group(config, init_method=args.init_method):
        value = distributed_estimate(args.samples, args.seed, config, bounds)
    elapsed = time.perf_counter() - start

    total = args.samples * config.world_size
    logging.info(
        f"RESULT world_size={config.world_size} samples={total} "
        f"estimate={value:.10f} error={abs(value - bounds.target_area):.10f} "
        f"elapsed={format_timespan(elapsed)}"
    )
    append_metrics_jsonl(
        output_dir / "results.jsonl",
        {
            "world_size": config.world_size,
            "samples": total,
            "estimate": value,
            "pi_equivalent": value / (args.radius ** 2),
            "pi": math.pi,
            "elapsed_s": elapsed,
        },
        is_writer_fn=lambda: config.is_master,
    )


if __name__ == "__main__":
    main()
