"""Random sources for reproducible, independent Monte Carlo batches.

Three families of source are accepted wherever a ``rng`` argument appears:

- ``numpy.random.Generator`` (the default; ``None``, an ``int`` seed or a
  ``SeedSequence`` are turned into one with ``numpy.random.default_rng``)
- ``torch.Generator`` (CPU)
- ``random.Random``

Parallel batches must never share a stream. ``spawn_streams`` derives
independent children from a parent source, and ``batch_streams`` /
``rank_stream`` index into the ``SeedSequence`` tree of a base seed so that
batch ``i`` always sees the same stream no matter how batches are grouped.
"""

from __future__ import annotations

import random
from typing import Any, List, Sequence, Union

import numpy as np
import torch

from .errors import InvalidSampleSize


__all__ = [
    "RandomSource",
    "as_generator",
    "uniform",
    "spawn_streams",
    "batch_streams",
    "rank_stream",
    "describe_source",
]


RandomSource = Union[np.random.Generator, torch.Generator, random.Random]

_SUPPORTED = (np.random.Generator, torch.Generator, random.Random)


def as_generator(rng: Any = None) -> RandomSource:
    """Return ``rng`` as a usable random source.

    Args:
        rng: A supported source, or a seed accepted by ``numpy.random.default_rng``

    Returns:
        The source itself, or a fresh numpy ``Generator``

    Raises:
        TypeError: If ``rng`` is neither a supported source nor a seed

    Example:
        >>> gen = as_generator(42)
        >>> isinstance(gen, np.random.Generator)
        True
    """
    if isinstance(rng, _SUPPORTED):
        return rng
    if rng is None or isinstance(rng, (int, np.integer, np.random.SeedSequence)):
        if isinstance(rng, bool):
            raise TypeError("a bool is not a random seed")
        return np.random.default_rng(rng)
    raise TypeError(
        f"Unsupported random source {type(rng).__name__}; expected a numpy Generator, "
        "torch.Generator, random.Random, an int seed or None"
    )


def uniform(rng: RandomSource, n: int, low: float, high: float):
    """Draw ``n`` floats uniformly from ``[low, high)``.

    The container matches the source: a numpy array, a float64 torch tensor,
    or a list of floats.
    """
    if isinstance(rng, np.random.Generator):
        return rng.uniform(low, high, n)
    if isinstance(rng, torch.Generator):
        return torch.rand(n, generator=rng, dtype=torch.float64) * (high - low) + low
    if isinstance(rng, random.Random):
        return [rng.uniform(low, high) for _ in range(n)]
    raise TypeError(f"Unsupported random source {type(rng).__name__}")


def spawn_streams(rng: Any, count: int) -> List[RandomSource]:
    """Derive ``count`` independent child sources from ``rng``.

    numpy generators use ``Generator.spawn``. For stdlib and torch sources the
    children are seeded from values drawn from the parent, so the parent is
    advanced and a seeded parent always yields the same children.

    Args:
        rng: Parent source (or seed)
        count: Number of children (>= 1)

    Returns:
        List of sources of the same family as ``rng``
    """
    if not _is_count(count):
        raise InvalidSampleSize("count", count)

    rng = as_generator(rng)
    if isinstance(rng, np.random.Generator):
        return rng.spawn(count)
    if isinstance(rng, random.Random):
        return [random.Random(rng.getrandbits(64)) for _ in range(count)]

    seeds = torch.randint(0, 2**62, (count,), generator=rng, dtype=torch.int64)
    children = []
    for seed in seeds.tolist():
        child = torch.Generator()
        child.manual_seed(seed)
        children.append(child)
    return children


def batch_streams(
    seed: Union[int, Sequence[int], None],
    count: int,
    start: int = 0,
) -> List[np.random.Generator]:
    """Return generators for batches ``start .. start + count - 1`` of ``seed``.

    Batch ``i`` is seeded by ``SeedSequence(seed, spawn_key=(i,))``, which is
    exactly child ``i`` of ``numpy.random.default_rng(seed).spawn(...)``.

    Example:
        >>> a = batch_streams(7, 4)
        >>> b = batch_streams(7, 2) + batch_streams(7, 2, start=2)
        >>> [g.random() for g in a] == [g.random() for g in b]
        True
    """
    if not _is_count(count):
        raise InvalidSampleSize("count", count)
    if start < 0:
        raise ValueError(f"start must be >= 0, got {start}")
    entropy = _entropy(seed)
    return [
        np.random.default_rng(np.random.SeedSequence(entropy, spawn_key=(index,)))
        for index in range(start, start + count)
    ]


def rank_stream(seed: Union[int, Sequence[int], None], rank: int, world_size: int) -> np.random.Generator:
    """Return the stream owned by ``rank`` out of ``world_size`` workers."""
    if world_size < 1:
        raise ValueError(f"world_size must be >= 1, got {world_size}")
    if not 0 <= rank < world_size:
        raise ValueError(f"rank must be in [0, {world_size}), got {rank}")
    return batch_streams(seed, 1, start=rank)[0]


def describe_source(rng: Any) -> str:
    """Short human-readable label for log lines."""
    if isinstance(rng, np.random.Generator):
        return f"numpy.{type(rng.bit_generator).__name__}"
    if isinstance(rng, torch.Generator):
        return "torch.Generator"
    if isinstance(rng, random.Random):
        return "random.Random"
    return type(rng).__name__


def _entropy(seed: Union[int, Sequence[int], None]) -> Union[int, Sequence[int]]:
    # An unseeded run still needs one shared root so batches stay independent.
    if seed is None:
        return np.random.SeedSequence().entropy
    return seed


def _is_count(value: Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, bool) and value >= 1
