"""Cluster-style aggregation with torch.distributed.

Each rank counts one batch from its own partition of the seed tree and the
inside-counts are summed with ``all_reduce``. Rank and world size come from
CLI overrides, torchrun (``RANK``/``WORLD_SIZE``/``LOCAL_RANK``) or SLURM
(``SLURM_PROCID``/``SLURM_NTASKS``/``SLURM_LOCALID``); without any of them
the run is a single process and no process group is created.
"""

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterator, Mapping, Optional, Tuple

import torch
import torch.distributed as dist

from .estimator import UNIT_BOUNDS, Bounds, count_inside, estimate_from_counts
from .random_state import rank_stream

__all__ = [
    "DistributedConfig",
    "parse_slurm_nodelist",
    "infer_distributed_config",
    "process_group",
    "all_reduce_counts",
    "distributed_estimate",
]


logger = logging.getLogger(__name__)


_DEFAULT_MASTER_ADDR = "127.0.0.1"
_DEFAULT_MASTER_PORT = 29500


@dataclass
class DistributedConfig:
    """Resolved placement of this process in the job."""
    rank: int
    world_size: int
    local_rank: int
    backend: str = "gloo"
    master_addr: str = _DEFAULT_MASTER_ADDR
    master_port: int = _DEFAULT_MASTER_PORT

    @property
    def is_master(self) -> bool:
        return self.rank == 0


def parse_slurm_nodelist(nodelist: str) -> str:
    """Return the first host of a SLURM node list.

    Format examples: "node01" or "node[01-04]" or "node01,node02"
    """
    if "[" in nodelist:
        base = nodelist.split("[")[0]
        first_num = nodelist.split("[")[1].split("-")[0].split(",")[0].rstrip("]")
        return f"{base}{first_num}"
    if "," in nodelist:
        return nodelist.split(",")[0]
    return nodelist


def infer_distributed_config(
    backend: str = "gloo",
    rank: Optional[int] = None,
    world_size: Optional[int] = None,
    local_rank: Optional[int] = None,
    master_addr: Optional[str] = None,
    master_port: Optional[int] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> DistributedConfig:
    """Infer distributed config from CLI overrides, torchrun, or SLURM environment."""
    env = os.environ if environ is None else environ

    # Priority 1: CLI overrides
    if rank is not None and world_size is not None:
        resolved = (rank, world_size, local_rank if local_rank is not None else 0)
        addr = master_addr or _DEFAULT_MASTER_ADDR
        port = master_port or _DEFAULT_MASTER_PORT
    # Priority 2: torchrun environment variables
    elif "RANK" in env and "WORLD_SIZE" in env:
        resolved = (int(env["RANK"]), int(env["WORLD_SIZE"]), int(env.get("LOCAL_RANK", "0")))
        addr = master_addr or env.get("MASTER_ADDR", _DEFAULT_MASTER_ADDR)
        port = master_port or int(env.get("MASTER_PORT", str(_DEFAULT_MASTER_PORT)))
    # Priority 3: SLURM environment variables
    elif "SLURM_PROCID" in env:
        if "SLURM_NTASKS" not in env:
            raise RuntimeError(
                "Running under SLURM but SLURM_NTASKS is missing. "
                "Ensure your SLURM job is configured correctly or provide explicit "
                "overrides via --rank and --world-size."
            )
        resolved = (
            int(env["SLURM_PROCID"]),
            int(env["SLURM_NTASKS"]),
            int(env.get("SLURM_LOCALID", "0")),
        )
        if master_addr is None and "SLURM_JOB_NODELIST" in env:
            addr = parse_slurm_nodelist(env["SLURM_JOB_NODELIST"])
        else:
            addr = master_addr or _DEFAULT_MASTER_ADDR
        port = master_port or int(
            env.get("SLURM_STEP_RESV_PORTS", str(_DEFAULT_MASTER_PORT)).split("-")[0]
        )
    else:
        resolved = (0, 1, 0)
        addr = master_addr or _DEFAULT_MASTER_ADDR
        port = master_port or _DEFAULT_MASTER_PORT

    resolved_rank, resolved_world_size, resolved_local_rank = resolved
    if resolved_world_size < 1 or not 0 <= resolved_rank < resolved_world_size:
        raise RuntimeError(
            f"Inconsistent distributed placement: rank={resolved_rank}, "
            f"world_size={resolved_world_size}"
        )

    return DistributedConfig(
        rank=resolved_rank,
        world_size=resolved_world_size,
        local_rank=resolved_local_rank,
        backend=backend,
        master_addr=addr,
        master_port=port,
    )


@contextmanager
def process_group(
    config: DistributedConfig,
    init_method: str = "env://",
    timeout: Optional[timedelta] = None,
) -> Iterator[DistributedConfig]:
    """Hold a process group for the duration of the block.

    The group is destroyed on every exit path. Single-process configs skip
    initialisation entirely.
    """
    if config.world_size == 1:
        yield config
        return

    os.environ["MASTER_ADDR"] = config.master_addr
    os.environ["MASTER_PORT"] = str(config.master_port)

    init_kwargs = {
        "backend": config.backend,
        "init_method": init_method,
        "rank": config.rank,
        "world_size": config.world_size,
    }
    if timeout is not None:
        init_kwargs["timeout"] = timeout
    dist.init_process_group(**init_kwargs)

    if config.is_master:
        logger.info(
            f"Initialized process group: world_size={config.world_size}, "
            f"backend={config.backend}, master={config.master_addr}:{config.master_port}"
        )
    try:
        yield config
    finally:
        if dist.is_initialized():
            dist.destroy_process_group()


def all_reduce_counts(inside: int, samples: int) -> Tuple[int, int]:
    """Sum ``(inside, samples)`` over all ranks; identity without a process group."""
    if not dist.is_initialized() or dist.get_world_size() == 1:
        return inside, samples

    tensor = torch.tensor([inside, samples], dtype=torch.int64)
    dist.all_reduce(tensor, op=dist.ReduceOp.SUM)
    total_inside, total_samples = tensor.tolist()
    return int(total_inside), int(total_samples)


def distributed_estimate(
    n: int,
    seed: Optional[int],
    config: DistributedConfig,
    bounds: Bounds = UNIT_BOUNDS,
) -> float:
    """Count ``n`` samples on this rank and return the global estimate.

    Every rank returns the same value. ``seed`` must be identical on all
    ranks (``None`` gives each rank unrelated entropy, which is still
    independent but not reproducible).
    """
    stream = rank_stream(seed, config.rank, config.world_size)
    inside = count_inside(n, bounds, stream)
    logger.debug(f"rank {config.rank}: inside={inside}/{n}")
    total_inside, total_samples = all_reduce_counts(inside, n)
    return estimate_from_counts(total_inside, total_samples, bounds)
