import math
import random

import numpy as np
import pytest
import torch

from mcarea.errors import InvalidSampleSize
from mcarea.estimator import (
    UNIT_BOUNDS,
    Bounds,
    MonteCarloEstimator,
    aggregate,
    aggregate_counts,
    count_inside,
    estimate,
    estimate_from_counts,
)
from mcarea.executors import SerialExecutor
from mcarea.random_state import batch_streams
from mcarea.statistics import run_trials, theoretical_std_error


def test_bounds_geometry():
    """Test derived quantities of the sampling square."""
    b = Bounds(radius=2.0)
    assert b.side == 4.0
    assert b.volume == 16.0
    assert b.target_area == pytest.approx(4 * math.pi)
    assert b.inside_fraction == pytest.approx(math.pi / 4)
    assert UNIT_BOUNDS.volume == 4.0


@pytest.mark.parametrize("radius", [0, -1.0, float("nan"), float("inf"), "1", True, np.float64(-2.0)])
def test_bounds_rejects_bad_radius(radius):
    with pytest.raises(ValueError):
        Bounds(radius=radius)


@pytest.mark.parametrize("radius", [np.int64(2), np.float32(2.0), 2])
def test_bounds_accepts_numpy_scalars(radius):
    b = Bounds(radius=radius)
    assert type(b.radius) is float
    assert b.volume == 16.0
    assert b == Bounds(radius=2.0)


@pytest.mark.parametrize("n", [1, 2, 7, 100, 10_000])
@pytest.mark.parametrize("radius", [0.5, 1.0, 3.0])
def test_estimate_within_zero_and_volume(n, radius, rng):
    bounds = Bounds(radius=radius)
    value = estimate(n, bounds, rng)
    assert 0.0 <= value <= bounds.volume


def test_single_sample_is_all_or_nothing():
    """With n=1 the estimate is exactly 0 or V, never in between."""
    values = {estimate(1, UNIT_BOUNDS, seed) for seed in range(200)}
    assert values == {0.0, UNIT_BOUNDS.volume}


@pytest.mark.parametrize("n", [0, -5, 1.5, "10", None, True])
def test_invalid_sample_size(n):
    with pytest.raises(InvalidSampleSize) as excinfo:
        estimate(n, UNIT_BOUNDS, 0)
    assert excinfo.value.name == "n"
    assert isinstance(excinfo.value, ValueError)


@pytest.mark.parametrize("n,j", [(0, 4), (10, 0), (10, -1), (-3, 2)])
def test_aggregate_rejects_bad_sizes_before_drawing(n, j):
    source = random.Random(5)
    state = source.getstate()
    with pytest.raises(InvalidSampleSize):
        aggregate(n, j, rng=source)
    assert source.getstate() == state


def test_pi_scenario_one_million_samples():
    value = estimate(1_000_000, UNIT_BOUNDS, np.random.default_rng(12345))
    assert 3.0 <= value <= 3.3
    assert abs(value - math.pi) < 0.01


def test_count_inside_in_range(rng):
    inside = count_inside(5_000, UNIT_BOUNDS, rng)
    assert 0 <= inside <= 5_000
    assert isinstance(inside, int)


def test_estimate_is_reproducible_with_seeded_source():
    a = estimate(50_000, UNIT_BOUNDS, np.random.default_rng(3))
    b = estimate(50_000, UNIT_BOUNDS, np.random.default_rng(3))
    assert a == b


def test_aggregate_is_reproducible_across_executors(thread_pool):
    serial = aggregate(20_000, 8, rng=np.random.default_rng(11))
    again = aggregate(20_000, 8, rng=np.random.default_rng(11), executor=SerialExecutor())
    threaded = aggregate(20_000, 8, rng=np.random.default_rng(11), executor=thread_pool)
    assert serial == again == threaded


def test_aggregate_matches_sum_of_batch_streams():
    """aggregate(seed) spawns the same per-batch streams as batch_streams(seed)."""
    n, j, seed = 5_000, 6, 99
    counts = aggregate_counts(n, batch_streams(seed, j))
    expected = estimate_from_counts(sum(counts), n * j)
    assert aggregate(n, j, rng=seed) == expected


@pytest.mark.parametrize("groups,size", [(1, 10), (2, 5), (5, 2), (10, 1)])
def test_batch_partition_gives_identical_total(groups, size):
    """Summing sub-groups of batches equals summing all batches at once."""
    n, seed = 2_000, 2024
    direct = sum(aggregate_counts(n, batch_streams(seed, 10)))

    total = 0
    for g in range(groups):
        total += sum(aggregate_counts(n, batch_streams(seed, size, start=g * size)))
    assert total == direct


def test_aggregate_counts_keep_stream_order(thread_pool):
    streams = batch_streams(8, 12)
    expected = [count_inside(1_000, UNIT_BOUNDS, s) for s in batch_streams(8, 12)]
    assert aggregate_counts(1_000, streams, executor=thread_pool) == expected


def test_aggregate_counts_rejects_empty_streams():
    with pytest.raises(InvalidSampleSize):
        aggregate_counts(10, [])


def test_aggregate_agrees_with_single_estimate_in_expectation():
    """Matched total sample counts converge to the same area."""
    n, j = 20_000, 10
    sigma = theoretical_std_error(n * j)
    batched = aggregate(n, j, rng=1)
    single = estimate(n * j, UNIT_BOUNDS, np.random.default_rng(2))
    assert abs(batched - math.pi) < 5 * sigma
    assert abs(single - math.pi) < 5 * sigma


def test_error_shrinks_like_inverse_sqrt_n():
    small = run_trials(100, 60, seed=4)
    large = run_trials(10_000, 60, seed=5)
    ratio = small.std(ddof=1) / large.std(ddof=1)
    # 1/sqrt(n) predicts a ratio of 10
    assert 5 < ratio < 20
    assert abs(large.mean() - math.pi) < abs(small.mean() - math.pi) + 0.05


def test_scaled_bounds_estimate_scaled_area():
    bounds = Bounds(radius=3.0)
    value = estimate(400_000, bounds, np.random.default_rng(6))
    assert value == pytest.approx(bounds.target_area, abs=5 * theoretical_std_error(400_000, bounds))


def test_torch_generator_source():
    gen = torch.Generator()
    gen.manual_seed(0)
    value = estimate(100_000, UNIT_BOUNDS, gen)
    gen.manual_seed(0)
    assert estimate(100_000, UNIT_BOUNDS, gen) == value
    assert 3.0 < value < 3.3


def test_stdlib_random_source():
    value = estimate(20_000, UNIT_BOUNDS, random.Random(1))
    assert value == estimate(20_000, UNIT_BOUNDS, random.Random(1))
    assert 2.9 < value < 3.4


@pytest.mark.parametrize("inside,total", [(-1, 10), (11, 10), (0, 0)])
def test_estimate_from_counts_validation(inside, total):
    with pytest.raises(ValueError):
        estimate_from_counts(inside, total)


def test_estimate_from_counts_scales_by_volume():
    assert estimate_from_counts(3, 4) == 3.0
    assert estimate_from_counts(1, 2, Bounds(radius=0.5)) == 0.5


def test_estimator_class_uses_default_executor(thread_pool):
    est = MonteCarloEstimator(executor=thread_pool)
    assert est.aggregate(1_000, 4, rng=7) == aggregate(1_000, 4, rng=7)
    assert est.estimate(1, rng=0) in (0.0, 4.0)
    assert 0 <= est.count(10, rng=0) <= 10
    assert "MonteCarloEstimator" in repr(est)


def test_failing_batch_propagates_unmodified(thread_pool):
    streams = batch_streams(1, 3) + [object()]
    with pytest.raises(TypeError, match="Unsupported random source"):
        aggregate_counts(100, streams, executor=thread_pool)
